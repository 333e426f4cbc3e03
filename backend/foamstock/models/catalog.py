from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


PRODUCT_CATEGORIES = ("mattress", "pillow", "foot_mat", "bedsheet", "others")
PAYMENT_TERMS = ("prepaid", "net_15", "net_30", "net_60")


class Supplier(db.Model):
    """Vendor that supplies foam products. Soft-deactivated, never deleted."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_suppliers_name"),
        db.Index("ix_suppliers_active", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    company = db.Column(db.String(255), nullable=False)
    contact_person = db.Column(db.String(255), nullable=False)
    email = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=False)

    street = db.Column(db.String(255), nullable=True)
    city = db.Column(db.String(128), nullable=True)
    state = db.Column(db.String(128), nullable=True)
    country = db.Column(db.String(128), nullable=False, default="Nigeria")
    postal_code = db.Column(db.String(32), nullable=True)

    payment_terms = db.Column(db.String(16), nullable=False, default="net_30")
    rating = db.Column(db.Integer, nullable=False, default=3)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    notes = db.Column(db.Text, nullable=True)

    last_order_date = db.Column(db.DateTime(timezone=True), nullable=True)
    total_orders = db.Column(db.Integer, nullable=False, default=0)
    total_spent_cents = db.Column(db.Integer, nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "company": self.company,
            "contact_person": self.contact_person,
            "email": self.email,
            "phone": self.phone,
            "street": self.street,
            "city": self.city,
            "state": self.state,
            "country": self.country,
            "postal_code": self.postal_code,
            "payment_terms": self.payment_terms,
            "rating": self.rating,
            "is_active": self.is_active,
            "notes": self.notes,
            "last_order_date": to_utc_z(self.last_order_date),
            "total_orders": self.total_orders,
            "total_spent_cents": self.total_spent_cents,
            "products_supplied": [p.id for p in self.products_supplied],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Product(db.Model):
    """
    Product master data and the authoritative stock count.

    STOCK: current_stock lives here and is mutated only by the sale engine
    and the stock ledger service (both append a StockMovement in the same
    transaction). It never goes negative.

    Mattresses carry thickness (inches) and density; other categories may
    leave them null.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.CheckConstraint("current_stock >= 0", name="ck_products_stock_non_negative"),
        db.Index("ix_products_category_active", "category", "is_active"),
        db.Index("ix_products_name", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    sku = db.Column(db.String(64), nullable=True, index=True)
    category = db.Column(db.String(16), nullable=False)
    description = db.Column(db.Text, nullable=True)
    image = db.Column(db.String(512), nullable=True)

    thickness = db.Column(db.Integer, nullable=True)
    density = db.Column(db.Integer, nullable=True)
    length = db.Column(db.Integer, nullable=True)
    width = db.Column(db.Integer, nullable=True)

    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    # Authoritative storage in cents
    unit_cost_cents = db.Column(db.Integer, nullable=False)
    selling_price_cents = db.Column(db.Integer, nullable=False)

    current_stock = db.Column(db.Integer, nullable=False, default=0)
    min_stock_level = db.Column(db.Integer, nullable=False, default=5)
    max_stock_level = db.Column(db.Integer, nullable=False, default=100)

    tags = db.Column(db.String(512), nullable=True)  # comma separated
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    last_sold_at = db.Column(db.DateTime(timezone=True), nullable=True)
    last_restocked_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("products_supplied", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def profit_margin(self) -> float:
        """Markup over cost as a percentage, 0 when cost is unknown."""
        if not self.unit_cost_cents or self.selling_price_cents is None:
            return 0.0
        return round((self.selling_price_cents - self.unit_cost_cents) / self.unit_cost_cents * 100, 2)

    def __repr__(self) -> str:
        return f"<Product id={self.id} sku={self.sku!r} name={self.name!r} stock={self.current_stock}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "description": self.description,
            "image": self.image,
            "thickness": self.thickness,
            "density": self.density,
            "length": self.length,
            "width": self.width,
            "supplier_id": self.supplier_id,
            "unit_cost_cents": self.unit_cost_cents,
            "selling_price_cents": self.selling_price_cents,
            "profit_margin": self.profit_margin,
            "current_stock": self.current_stock,
            "min_stock_level": self.min_stock_level,
            "max_stock_level": self.max_stock_level,
            "tags": [t for t in (self.tags or "").split(",") if t],
            "is_active": self.is_active,
            "last_sold_at": to_utc_z(self.last_sold_at),
            "last_restocked_at": to_utc_z(self.last_restocked_at),
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }

    def to_summary(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "selling_price_cents": self.selling_price_cents,
        }
