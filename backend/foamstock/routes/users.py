# Overview: Flask API routes for staff accounts; parses input and returns JSON responses.

"""
User management routes. Business owner only.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_role
from ..permissions import PERMISSION_DEFINITIONS
from ..services import auth_service


users_bp = Blueprint("users", __name__, url_prefix="/api/users")


@users_bp.get("")
@require_auth
@require_role("business_owner")
def list_users_route():
    users = auth_service.list_users()
    return jsonify({"status": "success", "count": len(users), "data": [u.to_dict() for u in users]})


@users_bp.get("/permissions")
@require_auth
@require_role("business_owner")
def list_permissions_route():
    return jsonify({
        "status": "success",
        "data": [
            {"name": name, "label": label, "description": description}
            for name, label, description in PERMISSION_DEFINITIONS
        ],
    })


@users_bp.get("/<int:user_id>")
@require_auth
@require_role("business_owner")
def get_user_route(user_id: int):
    return jsonify({"status": "success", "data": auth_service.get_user(user_id).to_dict()})


@users_bp.post("")
@require_auth
@require_role("business_owner")
def create_user_route():
    user = auth_service.create_staff_user(request.get_json(silent=True))
    return jsonify({"status": "success", "data": user.to_dict()}), 201


@users_bp.patch("/<int:user_id>")
@require_auth
@require_role("business_owner")
def update_user_route(user_id: int):
    user = auth_service.update_user(user_id, request.get_json(silent=True))
    return jsonify({"status": "success", "data": user.to_dict()})


@users_bp.patch("/<int:user_id>/permissions")
@require_auth
@require_role("business_owner")
def update_permissions_route(user_id: int):
    data = request.get_json(silent=True) or {}
    user = auth_service.update_permissions(user_id, data.get("permissions"))
    return jsonify({"status": "success", "data": user.to_dict()})


@users_bp.patch("/<int:user_id>/deactivate")
@require_auth
@require_role("business_owner")
def deactivate_user_route(user_id: int):
    user = auth_service.deactivate_user(user_id, actor=g.current_user)
    return jsonify({"status": "success", "message": "User deactivated successfully", "data": user.to_dict()})


@users_bp.patch("/<int:user_id>/activate")
@require_auth
@require_role("business_owner")
def activate_user_route(user_id: int):
    user = auth_service.activate_user(user_id)
    return jsonify({"status": "success", "message": "User activated successfully", "data": user.to_dict()})
