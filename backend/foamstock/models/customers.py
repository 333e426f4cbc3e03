from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


CUSTOMER_TYPES = ("regular", "wholesale", "corporate", "retail")


class Customer(db.Model):
    """
    Customer master data with running purchase totals.

    total_purchases / total_spent_cents are denormalized aggregates written
    only by the sale engine; they never decrease outside an explicit correction.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.Index("ix_customers_active", "is_active"),
        db.Index("ix_customers_total_spent", "total_spent_cents"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=False)

    street = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=False, default="Nigeria")

    customer_type = db.Column(db.String(16), nullable=False, default="retail")
    credit_limit_cents = db.Column(db.Integer, nullable=False, default=0)
    current_credit_cents = db.Column(db.Integer, nullable=False, default=0)

    total_purchases = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)
    last_purchase_date = db.Column(db.DateTime(timezone=True), nullable=True)

    notes = db.Column(db.Text, nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "customer_type": self.customer_type,
            "credit_limit_cents": self.credit_limit_cents,
            "current_credit_cents": self.current_credit_cents,
            "total_purchases": self.total_purchases,
            "total_spent_cents": self.total_spent_cents,
            "last_purchase_date": to_utc_z(self.last_purchase_date),
            "notes": self.notes,
            "is_active": self.is_active,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }

    def to_summary(self) -> dict:
        return {"id": self.id, "name": self.name, "phone": self.phone, "email": self.email}
