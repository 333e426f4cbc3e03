# Overview: Flask API routes for products operations; parses input and returns JSON responses.

"""
Product management routes.

SECURITY: All routes require authentication.
- Read operations are open to any signed-in user
- Write operations require manage_inventory
- Deleting (deactivating) a product is reserved to the business owner
- Cost and margin fields are only shown with view_profits
"""
from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission, require_role
from ..services import products_service
from ..validation import parse_bool_arg

products_bp = Blueprint("products", __name__, url_prefix="/api/products")

COST_FIELDS = ("unit_cost_cents", "profit_margin")


def _product_payload(product) -> dict:
    data = products_service.product_to_dict(product)
    if not g.current_user.has_permission("view_profits"):
        for field in COST_FIELDS:
            data.pop(field, None)
    return data


@products_bp.get("")
@require_auth
def list_products_route():
    """
    Query params:
    - category, supplier_id, min_price, max_price (cents), search
    - include_inactive: bool (default false)
    """
    products = products_service.list_products(
        category=request.args.get("category"),
        supplier_id=request.args.get("supplier_id"),
        min_price=request.args.get("min_price"),
        max_price=request.args.get("max_price"),
        search=request.args.get("search"),
        include_inactive=bool(parse_bool_arg(request.args.get("include_inactive"))),
    )
    return jsonify({
        "status": "success",
        "count": len(products),
        "data": [_product_payload(p) for p in products],
    })


@products_bp.get("/categories")
@require_auth
def list_categories_route():
    return jsonify({"status": "success", "data": products_service.list_categories()})


@products_bp.get("/mattress/thickness-options")
@require_auth
def thickness_options_route():
    return jsonify({"status": "success", "data": products_service.mattress_thickness_options()})


@products_bp.get("/mattress/density-options")
@require_auth
def density_options_route():
    return jsonify({"status": "success", "data": products_service.mattress_density_options()})


@products_bp.get("/<int:product_id>")
@require_auth
def get_product_route(product_id: int):
    product = products_service.get_product(product_id)
    return jsonify({"status": "success", "data": _product_payload(product)})


@products_bp.post("")
@require_auth
@require_permission("manage_inventory")
def create_product_route():
    payload = request.get_json(silent=True) or {}
    location = payload.pop("location", None) if isinstance(payload, dict) else None
    product = products_service.create_product(payload, location=location)
    return jsonify({"status": "success", "data": _product_payload(product)}), 201


@products_bp.patch("/<int:product_id>")
@require_auth
@require_permission("manage_inventory")
def update_product_route(product_id: int):
    product = products_service.update_product(product_id, request.get_json(silent=True))
    return jsonify({"status": "success", "data": _product_payload(product)})


@products_bp.patch("/<int:product_id>/inventory")
@require_auth
@require_permission("manage_inventory")
def update_thresholds_route(product_id: int):
    product = products_service.update_stock_thresholds(product_id, request.get_json(silent=True))
    return jsonify({"status": "success", "data": _product_payload(product)})


@products_bp.delete("/<int:product_id>")
@require_auth
@require_role("business_owner")
def delete_product_route(product_id: int):
    products_service.delete_product(product_id)
    return jsonify({"status": "success", "message": "Product deactivated successfully"})
