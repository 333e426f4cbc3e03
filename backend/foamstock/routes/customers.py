# Overview: Flask API routes for customer operations; parses input and returns JSON responses.

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import customer_service
from ..validation import parse_bool_arg

customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.get("")
@require_auth
@require_permission("manage_customers")
def list_customers_route():
    customers = customer_service.list_customers(
        search=request.args.get("search"),
        customer_type=request.args.get("customer_type"),
        is_active=parse_bool_arg(request.args.get("is_active")),
    )
    return jsonify({"status": "success", "count": len(customers), "data": [c.to_dict() for c in customers]})


@customers_bp.get("/top")
@require_auth
@require_permission("view_reports")
def top_customers_route():
    limit = request.args.get("limit", default=10, type=int)
    customers = customer_service.top_customers(limit)
    return jsonify({"status": "success", "data": [c.to_dict() for c in customers]})


@customers_bp.get("/<int:customer_id>")
@require_auth
@require_permission("manage_customers")
def get_customer_route(customer_id: int):
    return jsonify({"status": "success", "data": customer_service.customer_detail(customer_id)})


@customers_bp.get("/<int:customer_id>/purchases")
@require_auth
@require_permission("manage_customers")
def purchase_history_route(customer_id: int):
    result = customer_service.purchase_history(
        customer_id,
        page=request.args.get("page", default=1, type=int),
        per_page=request.args.get("per_page", default=20, type=int),
    )
    return jsonify({"status": "success", **result})


@customers_bp.post("")
@require_auth
@require_permission("manage_customers")
def create_customer_route():
    customer = customer_service.create_customer(
        request.get_json(silent=True),
        created_by_user_id=g.current_user.id,
    )
    return jsonify({"status": "success", "data": customer.to_dict()}), 201


@customers_bp.patch("/<int:customer_id>")
@require_auth
@require_permission("manage_customers")
def update_customer_route(customer_id: int):
    customer = customer_service.update_customer(customer_id, request.get_json(silent=True))
    return jsonify({"status": "success", "data": customer.to_dict()})


@customers_bp.delete("/<int:customer_id>")
@require_auth
@require_permission("manage_customers")
def delete_customer_route(customer_id: int):
    customer_service.deactivate_customer(customer_id)
    return jsonify({"status": "success", "message": "Customer deactivated successfully"})
