from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


STOCK_STATUSES = ("in_stock", "low_stock", "out_of_stock", "discontinued")
MOVEMENT_TYPES = ("sale", "sale_revision", "restock", "adjustment", "set")


def derive_stock_status(current_stock: int, min_stock_level: int, is_active: bool = True) -> str:
    """
    Stock status is always derived, never stored.

    - inactive product -> discontinued
    - stock <= 0 -> out_of_stock
    - stock <= min level -> low_stock
    """
    if not is_active:
        return "discontinued"
    if current_stock <= 0:
        return "out_of_stock"
    if current_stock <= min_stock_level:
        return "low_stock"
    return "in_stock"


class InventoryRecord(db.Model):
    """
    Stock ledger entry for a product (one per product).

    The count itself is Product.current_stock; this row carries the
    bookkeeping around it (location, alerts, check/restock timestamps).
    """
    __tablename__ = "inventory_records"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_records_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    location = db.Column(db.String(128), nullable=True)
    alerts_enabled = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.String(255), nullable=True)

    last_restocked_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_checked_at = db.Column(db.DateTime(timezone=True), nullable=True, server_default=db.func.now())

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    product = db.relationship("Product", backref=db.backref("inventory_record", uselist=False, lazy=True))

    @property
    def current_stock(self) -> int:
        return self.product.current_stock

    @property
    def status(self) -> str:
        p = self.product
        return derive_stock_status(p.current_stock, p.min_stock_level, p.is_active)

    @property
    def needs_restock(self) -> bool:
        return self.product.current_stock < self.product.min_stock_level

    def summary(self) -> dict:
        return {
            "current_stock": self.current_stock,
            "status": self.status,
            "alerts_enabled": self.alerts_enabled,
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "product": self.product.to_summary() if self.product else None,
            "current_stock": self.current_stock,
            "min_stock_level": self.product.min_stock_level,
            "max_stock_level": self.product.max_stock_level,
            "status": self.status,
            "needs_restock": self.needs_restock,
            "location": self.location,
            "alerts_enabled": self.alerts_enabled,
            "notes": self.notes,
            "last_restocked_at": to_utc_z(self.last_restocked_at),
            "last_checked_at": to_utc_z(self.last_checked_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(db.Model):
    """
    Append-only audit trail of stock mutations.

    IMMUTABLE: rows are never updated or deleted. stock_before/stock_after
    are snapshots of Product.current_stock around the mutation.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_product_occurred", "product_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)

    movement_type = db.Column(db.String(16), nullable=False, index=True)
    delta = db.Column(db.Integer, nullable=False)
    # What the caller asked for; differs from delta only when a clamp applied
    requested_delta = db.Column(db.Integer, nullable=True)
    reason = db.Column(db.String(255), nullable=True)

    stock_before = db.Column(db.Integer, nullable=False)
    stock_after = db.Column(db.Integer, nullable=False)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True, index=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "delta": self.delta,
            "requested_delta": self.requested_delta,
            "reason": self.reason,
            "stock_before": self.stock_before,
            "stock_after": self.stock_after,
            "actor_user_id": self.actor_user_id,
            "sale_id": self.sale_id,
            "occurred_at": to_utc_z(self.occurred_at),
        }
