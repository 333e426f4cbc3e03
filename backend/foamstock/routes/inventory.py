# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

"""
Stock ledger routes.

Reads are open to any signed-in user; every mutation requires
manage_inventory and is recorded as a stock movement.
"""

from flask import Blueprint, g, jsonify, request

from ..decorators import require_auth, require_permission
from ..services import stock_service
from ..validation import parse_bool_arg


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


@inventory_bp.get("")
@require_auth
def list_inventory_route():
    """
    Query params:
    - status: in_stock | low_stock | out_of_stock | discontinued
    - low_stock: bool
    - category
    """
    records = stock_service.list_inventory(
        status=request.args.get("status"),
        low_stock=bool(parse_bool_arg(request.args.get("low_stock"))),
        category=request.args.get("category"),
    )
    return jsonify({"status": "success", "count": len(records), "data": [r.to_dict() for r in records]})


@inventory_bp.get("/alerts/low-stock")
@require_auth
def low_stock_alerts_route():
    records = stock_service.low_stock_alerts()
    return jsonify({"status": "success", "count": len(records), "data": [r.to_dict() for r in records]})


@inventory_bp.post("/bulk-update")
@require_auth
@require_permission("manage_inventory")
def bulk_update_route():
    data = request.get_json(silent=True) or {}
    results = stock_service.bulk_update(data.get("updates"), actor_user_id=g.current_user.id)
    return jsonify({
        "status": "success",
        "message": f"Bulk update completed. {sum(1 for r in results if r['success'])} of {len(results)} updated",
        "data": results,
    })


@inventory_bp.get("/<int:record_id>")
@require_auth
def get_record_route(record_id: int):
    return jsonify({"status": "success", "data": stock_service.get_record(record_id).to_dict()})


@inventory_bp.get("/<int:record_id>/summary")
@require_auth
def stock_summary_route(record_id: int):
    return jsonify({"status": "success", "data": stock_service.get_stock_summary(record_id)})


@inventory_bp.get("/<int:record_id>/history")
@require_auth
def movement_history_route(record_id: int):
    limit = min(max(request.args.get("limit", default=50, type=int), 1), 500)
    movements = stock_service.list_movements(record_id, limit=limit)
    return jsonify({"status": "success", "count": len(movements), "data": [m.to_dict() for m in movements]})


@inventory_bp.patch("/<int:record_id>/adjust")
@require_auth
@require_permission("manage_inventory")
def adjust_stock_route(record_id: int):
    data = request.get_json(silent=True) or {}
    record, movement = stock_service.adjust_stock(
        record_id,
        data.get("adjustment"),
        actor_user_id=g.current_user.id,
        reason=data.get("reason"),
    )
    return jsonify({
        "status": "success",
        "message": f"Stock adjusted by {movement.requested_delta} (applied {movement.delta})",
        "data": record.to_dict(),
        "movement": movement.to_dict(),
    })


@inventory_bp.patch("/<int:record_id>/stock")
@require_auth
@require_permission("manage_inventory")
def set_stock_route(record_id: int):
    data = request.get_json(silent=True) or {}
    record, movement = stock_service.set_stock(
        record_id,
        data.get("current_stock"),
        actor_user_id=g.current_user.id,
        notes=data.get("notes"),
    )
    return jsonify({"status": "success", "data": record.to_dict(), "movement": movement.to_dict()})
