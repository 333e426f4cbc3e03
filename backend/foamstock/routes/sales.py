# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

"""
Sales routes.

- Prices, totals and profit are always computed server-side
- Salespeople only see the sales they created
- Profit figures are only shown with view_profits
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import sales_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")

PROFIT_FIELDS = ("total_profit_cents", "profit_cents")


def _sale_payload(sale) -> dict:
    data = sale.to_dict()
    if not g.current_user.has_permission("view_profits"):
        data.pop("total_profit_cents", None)
        for item in data.get("items", []):
            item.pop("profit_cents", None)
    return data


def _summary_payload(summary: dict) -> dict:
    if not g.current_user.has_permission("view_profits"):
        summary = {k: v for k, v in summary.items() if k != "total_profit_cents"}
    return summary


def _update_response(result: sales_service.SaleUpdateResult):
    body = {"status": "success", "data": _sale_payload(result.sale)}
    if result.restock_report:
        body["restock_failures"] = result.restock_report.to_dict()
    return jsonify(body)


@sales_bp.post("")
@require_auth
@require_permission("manage_sales")
def create_sale_route():
    data = request.get_json(silent=True) or {}
    sale = sales_service.create_sale(
        items=data.get("items"),
        customer_id=data.get("customer_id"),
        payment_method=data.get("payment_method", "cash"),
        amount_paid_cents=data.get("amount_paid_cents", 0),
        discount_cents=data.get("discount_cents", 0),
        tax_cents=data.get("tax_cents", 0),
        notes=data.get("notes"),
        sold_by_user_id=g.current_user.id,
    )
    return jsonify({"status": "success", "data": _sale_payload(sale)}), 201


@sales_bp.get("")
@require_auth
@require_permission("manage_sales")
def list_sales_route():
    """
    Query params: start_date, end_date (ISO-8601), status, payment_method, customer_id
    """
    sales, summary = sales_service.list_sales(
        viewer=g.current_user,
        start_date=request.args.get("start_date"),
        end_date=request.args.get("end_date"),
        status=request.args.get("status"),
        payment_method=request.args.get("payment_method"),
        customer_id=request.args.get("customer_id"),
    )
    return jsonify({
        "status": "success",
        "count": len(sales),
        "summary": _summary_payload(summary),
        "data": [_sale_payload(s) for s in sales],
    })


@sales_bp.get("/summary/daily")
@require_auth
@require_permission("view_reports")
def daily_summary_route():
    """Query param: date (YYYY-MM-DD, default today UTC)."""
    summary = sales_service.daily_summary(request.args.get("date"))
    return jsonify({"status": "success", "data": _summary_payload(summary)})


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    sale = sales_service.get_sale(sale_id, viewer=g.current_user)
    return jsonify({"status": "success", "data": _sale_payload(sale)})


@sales_bp.patch("/<int:sale_id>")
@require_auth
@require_permission("manage_sales")
def update_sale_route(sale_id: int):
    result = sales_service.update_sale(
        sale_id,
        request.get_json(silent=True),
        actor_user_id=g.current_user.id,
    )
    return _update_response(result)


@sales_bp.patch("/<int:sale_id>/items")
@require_auth
@require_permission("manage_sales")
def revise_items_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    result = sales_service.revise_sale_items(sale_id, data.get("items"), actor_user_id=g.current_user.id)
    return _update_response(result)


@sales_bp.patch("/<int:sale_id>/status")
@require_auth
@require_permission("manage_sales")
def change_status_route(sale_id: int):
    data = request.get_json(silent=True) or {}
    result = sales_service.change_sale_status(sale_id, data.get("status"), actor_user_id=g.current_user.id)
    return _update_response(result)
