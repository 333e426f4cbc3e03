# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

"""
Stock Ledger Invariants (authoritative)

- Product.current_stock is the only stored count; it never goes negative.
- Stock status (in_stock / low_stock / out_of_stock / discontinued) is derived
  from current_stock vs. min_stock_level on every read; it cannot be set.
- Every mutation (sale, sale revision, restock, adjustment, absolute set)
  appends a StockMovement in the same DB transaction as the count change.
- Manual adjustments clamp at zero; sales never clamp (they fail instead).
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy.orm import joinedload

from ..errors import ConflictError, NotFound, ValidationError
from ..extensions import db
from ..models import MOVEMENT_TYPES, STOCK_STATUSES, InventoryRecord, Product, StockMovement, derive_stock_status
from ..time_utils import utcnow
from .concurrency import lock_for_update, run_with_retry
from .unit_of_work import SqlAlchemyUnitOfWork


def apply_stock_delta(
    product: Product,
    delta: int,
    movement_type: str,
    *,
    actor_user_id: int | None = None,
    sale_id: int | None = None,
    reason: str | None = None,
    clamp: bool = False,
) -> StockMovement:
    """
    Stage a stock change and its audit entry on the current session.

    Does not commit; the caller owns the transaction.
    """
    if movement_type not in MOVEMENT_TYPES:
        raise ValueError(f"Unknown movement type: {movement_type}")
    before = product.current_stock or 0
    after = before + delta
    if after < 0:
        if not clamp:
            raise ValidationError(
                f"Stock for {product.name} cannot go below zero",
                details={"product_id": product.id, "current_stock": before, "delta": delta},
            )
        after = 0

    product.current_stock = after
    now = utcnow()
    if after > before:
        product.last_restocked_at = now

    movement = StockMovement(
        product_id=product.id,
        movement_type=movement_type,
        delta=after - before,
        requested_delta=delta,
        reason=reason,
        stock_before=before,
        stock_after=after,
        actor_user_id=actor_user_id,
        sale_id=sale_id,
        occurred_at=now,
    )
    db.session.add(movement)
    return movement


def ensure_inventory_record(product: Product, location: str | None = None) -> InventoryRecord:
    """Create the stock ledger record for a product if it has none. Does not commit."""
    record = db.session.query(InventoryRecord).filter_by(product_id=product.id).first()
    if record:
        return record
    record = InventoryRecord(product_id=product.id, location=location, last_checked_at=utcnow())
    db.session.add(record)
    return record


def _get_record(record_id: int, *, lock: bool = False) -> InventoryRecord:
    record = db.session.get(InventoryRecord, record_id)
    if not record:
        raise NotFound("Inventory item not found")
    if lock:
        # Lock the product row that actually holds the count
        lock_for_update(db.session.query(Product).filter_by(id=record.product_id)).first()
    return record


def get_record(record_id: int) -> InventoryRecord:
    return _get_record(record_id)


def get_stock_summary(record_id: int) -> dict:
    """Read operation: {current_stock, status, alerts_enabled}."""
    return _get_record(record_id).summary()


def adjust_stock(
    record_id: int,
    adjustment: int,
    *,
    actor_user_id: int | None,
    reason: str | None = None,
) -> tuple[InventoryRecord, StockMovement]:
    """
    Add (positive) or remove (negative) stock. The result is clamped at zero.
    """
    if isinstance(adjustment, bool) or not isinstance(adjustment, int):
        raise ValidationError("adjustment must be an integer")

    def _op():
        with SqlAlchemyUnitOfWork():
            record = _get_record(record_id, lock=True)
            movement = apply_stock_delta(
                record.product,
                adjustment,
                "adjustment",
                actor_user_id=actor_user_id,
                reason=reason or "Manual adjustment",
                clamp=True,
            )
            record.last_checked_at = movement.occurred_at
            if movement.delta > 0:
                record.last_restocked_at = movement.occurred_at
        return record, movement

    record, movement = run_with_retry(_op)
    current_app.logger.info(
        "Stock adjusted for product %s by %s: %s -> %s (%s)",
        record.product_id, movement.requested_delta, movement.stock_before, movement.stock_after, movement.reason,
    )
    return record, movement


def set_stock(
    record_id: int,
    current_stock: int,
    *,
    actor_user_id: int | None,
    notes: str | None = None,
) -> tuple[InventoryRecord, StockMovement]:
    """Absolute stock set (physical count)."""
    if isinstance(current_stock, bool) or not isinstance(current_stock, int):
        raise ValidationError("current_stock must be an integer")
    if current_stock < 0:
        raise ValidationError("current_stock must be >= 0")

    def _op():
        with SqlAlchemyUnitOfWork():
            record = _get_record(record_id, lock=True)
            delta = current_stock - record.product.current_stock
            movement = apply_stock_delta(
                record.product,
                delta,
                "set",
                actor_user_id=actor_user_id,
                reason=notes or "Stock count",
            )
            record.last_checked_at = movement.occurred_at
            if delta > 0:
                record.last_restocked_at = movement.occurred_at
            if notes:
                record.notes = notes
        return record, movement

    return run_with_retry(_op)


def list_inventory(
    *,
    status: str | None = None,
    low_stock: bool = False,
    category: str | None = None,
) -> list[InventoryRecord]:
    """
    List stock ledger records ordered by ascending stock.

    status / low_stock are evaluated against the derived status.
    """
    if status and status not in STOCK_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(STOCK_STATUSES)}")
    query = (
        db.session.query(InventoryRecord)
        .join(Product, InventoryRecord.product_id == Product.id)
        .options(joinedload(InventoryRecord.product))
    )
    if category:
        query = query.filter(Product.category == category)

    records = query.order_by(Product.current_stock.asc(), InventoryRecord.id.asc()).all()

    if status:
        records = [r for r in records if r.status == status]
    if low_stock:
        records = [r for r in records if r.status in ("low_stock", "out_of_stock")]
    return records


def low_stock_alerts() -> list[InventoryRecord]:
    """Active products at or below their minimum level, alerts enabled only."""
    return [
        r for r in list_inventory()
        if r.alerts_enabled and r.status in ("low_stock", "out_of_stock")
    ]


def bulk_update(updates: list[dict], *, actor_user_id: int | None) -> list[dict]:
    """
    Set absolute stock for many products. Each row is its own transaction;
    a failing row is reported and does not affect the others.
    """
    if not isinstance(updates, list) or not updates:
        raise ValidationError("updates array is required")

    results = []
    for update in updates:
        product_id = update.get("product_id") if isinstance(update, dict) else None
        record = (
            db.session.query(InventoryRecord).filter_by(product_id=product_id).first()
            if product_id is not None else None
        )
        if not record:
            results.append({
                "product_id": product_id,
                "success": False,
                "error": "Product not found in inventory",
            })
            continue
        try:
            record, _ = set_stock(
                record.id,
                update.get("new_stock"),
                actor_user_id=actor_user_id,
                notes=update.get("notes") or "Bulk update",
            )
        except (ValidationError, NotFound, ConflictError) as exc:
            db.session.rollback()
            results.append({"product_id": product_id, "success": False, "error": exc.message})
            continue
        results.append({"product_id": product_id, "success": True, "new_stock": record.current_stock})
    return results


def list_movements(record_id: int, *, limit: int = 50) -> list[StockMovement]:
    record = _get_record(record_id)
    return (
        db.session.query(StockMovement)
        .filter_by(product_id=record.product_id)
        .order_by(StockMovement.occurred_at.desc(), StockMovement.id.desc())
        .limit(limit)
        .all()
    )


def stock_status_for(product: Product) -> str:
    return derive_stock_status(product.current_stock, product.min_stock_level, product.is_active)
