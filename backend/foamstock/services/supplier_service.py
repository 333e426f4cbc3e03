# Overview: Service-layer operations for suppliers; encapsulates business logic and database work.

"""
Supplier Service

Suppliers are soft-deactivated, never deleted, so products keep a valid
supplier reference. Names are unique across active and inactive suppliers.
"""

from flask import current_app
from sqlalchemy import or_

from ..errors import ConflictError, NotFound
from ..extensions import db
from ..models import Supplier
from ..validation import ModelValidationPolicy, enforce_rules_supplier, validate_payload


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "company", "contact_person", "email", "phone",
        "street", "city", "state", "country", "postal_code",
        "payment_terms", "rating", "notes", "is_active",
    },
    required_on_create={"name", "company", "contact_person", "email", "phone"},
)


def _ensure_name_free(name: str, *, exclude_id: int | None = None) -> None:
    query = db.session.query(Supplier).filter(Supplier.name == name)
    if exclude_id is not None:
        query = query.filter(Supplier.id != exclude_id)
    if query.first():
        raise ConflictError(f"Supplier '{name}' already exists")


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFound("Supplier not found", details={"supplier_id": supplier_id})
    return supplier


def list_suppliers(*, search: str | None = None, is_active: bool | None = None) -> list[Supplier]:
    query = db.session.query(Supplier)
    if is_active is not None:
        query = query.filter(Supplier.is_active.is_(is_active))
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Supplier.name.ilike(pattern),
            Supplier.company.ilike(pattern),
            Supplier.contact_person.ilike(pattern),
            Supplier.email.ilike(pattern),
        ))
    return query.order_by(Supplier.name.asc(), Supplier.id.asc()).all()


def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)
    enforce_rules_supplier(patch)
    _ensure_name_free(patch["name"])

    supplier = Supplier(**patch)
    db.session.add(supplier)
    db.session.commit()
    current_app.logger.info("Supplier %s created (%s)", supplier.id, supplier.name)
    return supplier


def update_supplier(supplier_id: int, payload: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)
    enforce_rules_supplier(patch)
    if "name" in patch and patch["name"] != supplier.name:
        _ensure_name_free(patch["name"], exclude_id=supplier.id)

    for key, value in patch.items():
        setattr(supplier, key, value)
    db.session.commit()
    return supplier


def deactivate_supplier(supplier_id: int) -> Supplier:
    supplier = get_supplier(supplier_id)
    if supplier.is_active:
        supplier.is_active = False
        db.session.commit()
        current_app.logger.info("Supplier %s deactivated", supplier.id)
    return supplier
