# backend/foamstock/services/products_service.py
"""
Products Service

- create_product validates the supplier, generates a SKU when absent and
  opens the product's stock ledger record in the same transaction.
- current_stock is never written here; stock moves only through the sale
  engine and the stock ledger service.
- delete_product is a soft delete (is_active=false).
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFound, ValidationError
from ..extensions import db
from ..models import Product, Supplier
from ..validation import ModelValidationPolicy, coerce_int, enforce_rules_product, validate_payload
from .document_service import generate_sku
from .stock_service import ensure_inventory_record, stock_status_for


PRODUCT_MUTABLE_FIELDS = {
    "name", "sku", "category", "description", "image",
    "thickness", "density", "length", "width",
    "supplier_id", "unit_cost_cents", "selling_price_cents",
    "min_stock_level", "max_stock_level", "is_active",
}

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_MUTABLE_FIELDS,
    required_on_create={"name", "category", "supplier_id", "unit_cost_cents", "selling_price_cents"},
)

THRESHOLD_POLICY = ModelValidationPolicy(
    writable_fields={"min_stock_level", "max_stock_level"},
)


def _split_tags(payload: dict) -> tuple[dict, str | None, bool]:
    """Pull tags out of the payload; they are stored comma separated."""
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    if "tags" not in payload:
        return payload, None, False
    tags = payload.pop("tags")
    if tags is None:
        return payload, None, True
    if isinstance(tags, str):
        tags = tags.split(",")
    if not isinstance(tags, list):
        raise ValidationError("tags must be a list of strings")
    cleaned = [str(t).strip() for t in tags if str(t).strip()]
    return payload, ",".join(cleaned) or None, True


def _require_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFound("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def get_product(product_id: int) -> Product:
    product = db.session.get(Product, product_id)
    if not product:
        raise NotFound("Product not found", details={"product_id": product_id})
    return product


def product_to_dict(product: Product) -> dict:
    data = product.to_dict()
    data["stock_status"] = stock_status_for(product)
    data["supplier"] = (
        {"id": product.supplier.id, "name": product.supplier.name, "company": product.supplier.company}
        if product.supplier else None
    )
    return data


def list_products(
    *,
    category: str | None = None,
    supplier_id=None,
    min_price=None,
    max_price=None,
    search: str | None = None,
    include_inactive: bool = False,
) -> list[Product]:
    """Newest first. Prices filter on selling_price_cents."""
    query = db.session.query(Product)
    if not include_inactive:
        query = query.filter(Product.is_active.is_(True))
    if category:
        query = query.filter(Product.category == category)
    if supplier_id not in (None, ""):
        query = query.filter(Product.supplier_id == coerce_int(supplier_id, "supplier_id"))
    if min_price not in (None, ""):
        query = query.filter(Product.selling_price_cents >= coerce_int(min_price, "min_price"))
    if max_price not in (None, ""):
        query = query.filter(Product.selling_price_cents <= coerce_int(max_price, "max_price"))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Product.name.ilike(pattern),
            Product.description.ilike(pattern),
            Product.sku.ilike(pattern),
        ))
    return query.order_by(Product.created_at.desc(), Product.id.desc()).all()


def create_product(payload: dict, *, location: str | None = None) -> Product:
    payload, tags, _ = _split_tags(payload)
    if "current_stock" in payload:
        raise ValidationError("current_stock is managed through inventory")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
    enforce_rules_product(patch)
    supplier = _require_supplier(patch["supplier_id"])

    product = Product(**patch)
    product.tags = tags
    if not product.sku:
        product.sku = generate_sku(product.category)
    product.current_stock = 0

    db.session.add(product)
    db.session.flush()  # product.id is needed for the ledger record

    ensure_inventory_record(product, location=location)
    if product not in supplier.products_supplied:
        supplier.products_supplied.append(product)

    db.session.commit()
    current_app.logger.info("Product %s created (sku=%s)", product.id, product.sku)
    return product


def update_product(product_id: int, payload: dict) -> Product:
    product = get_product(product_id)
    payload, tags, has_tags = _split_tags(payload)
    if "current_stock" in payload:
        raise ValidationError("current_stock is managed through inventory")

    patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
    enforce_rules_product(patch, existing=product)
    if "supplier_id" in patch and patch["supplier_id"] != product.supplier_id:
        _require_supplier(patch["supplier_id"])
    if "sku" in patch and not patch["sku"]:
        patch["sku"] = generate_sku(patch.get("category") or product.category)

    for key, value in patch.items():
        setattr(product, key, value)
    if has_tags:
        product.tags = tags

    db.session.commit()
    return product


def update_stock_thresholds(product_id: int, payload: dict) -> Product:
    """Only min/max levels; the count itself goes through the stock ledger."""
    product = get_product(product_id)
    patch = validate_payload(model=Product, payload=payload, policy=THRESHOLD_POLICY, partial=True)
    if not patch:
        raise ValidationError("min_stock_level or max_stock_level is required")
    enforce_rules_product(patch, existing=product)
    for key, value in patch.items():
        setattr(product, key, value)
    db.session.commit()
    return product


def delete_product(product_id: int) -> Product:
    """Soft-delete only: preserve IDs and historical references."""
    product = get_product(product_id)
    if product.is_active:
        product.is_active = False
        db.session.commit()
        current_app.logger.info("Product %s deactivated", product.id)
    return product


def list_categories() -> list[dict]:
    """Active categories with product counts, stock value and stock-status counts."""
    products = db.session.query(Product).filter(Product.is_active.is_(True)).all()
    stats: dict[str, dict] = {}
    for product in products:
        entry = stats.setdefault(product.category, {
            "name": product.category,
            "product_count": 0,
            "total_value_cents": 0,
            "low_stock_count": 0,
            "out_of_stock_count": 0,
        })
        entry["product_count"] += 1
        entry["total_value_cents"] += (product.selling_price_cents or 0) * (product.current_stock or 0)
        status = stock_status_for(product)
        if status == "low_stock":
            entry["low_stock_count"] += 1
        elif status == "out_of_stock":
            entry["out_of_stock_count"] += 1
    return [stats[name] for name in sorted(stats)]


def _mattress_options(column) -> list[int]:
    rows = (
        db.session.query(column)
        .filter(Product.category == "mattress", column.isnot(None))
        .distinct()
        .order_by(column.asc())
        .all()
    )
    return [row[0] for row in rows]


def mattress_thickness_options() -> list[int]:
    return _mattress_options(Product.thickness)


def mattress_density_options() -> list[int]:
    return _mattress_options(Product.density)
