# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import supplier_service
from ..validation import parse_bool_arg

suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
@require_permission("manage_suppliers")
def list_suppliers_route():
    suppliers = supplier_service.list_suppliers(
        search=request.args.get("search"),
        is_active=parse_bool_arg(request.args.get("is_active")),
    )
    return jsonify({"status": "success", "count": len(suppliers), "data": [s.to_dict() for s in suppliers]})


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
@require_permission("manage_suppliers")
def get_supplier_route(supplier_id: int):
    return jsonify({"status": "success", "data": supplier_service.get_supplier(supplier_id).to_dict()})


@suppliers_bp.post("")
@require_auth
@require_permission("manage_suppliers")
def create_supplier_route():
    supplier = supplier_service.create_supplier(request.get_json(silent=True))
    return jsonify({"status": "success", "data": supplier.to_dict()}), 201


@suppliers_bp.patch("/<int:supplier_id>")
@require_auth
@require_permission("manage_suppliers")
def update_supplier_route(supplier_id: int):
    supplier = supplier_service.update_supplier(supplier_id, request.get_json(silent=True))
    return jsonify({"status": "success", "data": supplier.to_dict()})


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_permission("manage_suppliers")
def delete_supplier_route(supplier_id: int):
    supplier_service.deactivate_supplier(supplier_id)
    return jsonify({"status": "success", "message": "Supplier deactivated successfully"})
