# Overview: Service-layer operations for customers; encapsulates business logic and database work.

"""
Customer Service

Running totals (total_purchases, total_spent_cents, last_purchase_date) are
written only by the sale engine and are not accepted from API payloads.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import or_

from ..errors import NotFound
from ..extensions import db
from ..models import Customer, Sale
from ..validation import ModelValidationPolicy, enforce_rules_customer, validate_payload


CUSTOMER_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "email", "phone", "street", "city", "state", "country",
        "customer_type", "credit_limit_cents", "current_credit_cents",
        "notes", "is_active",
    },
    required_on_create={"name", "phone"},
)

RECENT_SALES_LIMIT = 10


def get_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id)
    if not customer:
        raise NotFound("Customer not found", details={"customer_id": customer_id})
    return customer


def customer_detail(customer_id: int) -> dict:
    """Customer plus its ten most recent sales."""
    customer = get_customer(customer_id)
    recent = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
        .limit(RECENT_SALES_LIMIT)
        .all()
    )
    data = customer.to_dict()
    data["recent_sales"] = [s.to_dict(include_lines=False) for s in recent]
    return data


def list_customers(
    *,
    search: str | None = None,
    customer_type: str | None = None,
    is_active: bool | None = None,
) -> list[Customer]:
    query = db.session.query(Customer)
    if is_active is not None:
        query = query.filter(Customer.is_active.is_(is_active))
    if customer_type:
        query = query.filter(Customer.customer_type == customer_type)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.filter(or_(
            Customer.name.ilike(pattern),
            Customer.email.ilike(pattern),
            Customer.phone.ilike(pattern),
        ))
    return query.order_by(Customer.created_at.desc(), Customer.id.desc()).all()


def create_customer(payload: dict, *, created_by_user_id: int | None) -> Customer:
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=False)
    enforce_rules_customer(patch)

    customer = Customer(**patch)
    customer.created_by_user_id = created_by_user_id
    db.session.add(customer)
    db.session.commit()
    current_app.logger.info("Customer %s created by user %s", customer.id, created_by_user_id)
    return customer


def update_customer(customer_id: int, payload: dict) -> Customer:
    customer = get_customer(customer_id)
    patch = validate_payload(model=Customer, payload=payload, policy=CUSTOMER_POLICY, partial=True)
    enforce_rules_customer(patch)
    for key, value in patch.items():
        setattr(customer, key, value)
    db.session.commit()
    return customer


def deactivate_customer(customer_id: int) -> Customer:
    customer = get_customer(customer_id)
    if customer.is_active:
        customer.is_active = False
        db.session.commit()
    return customer


def purchase_history(customer_id: int, *, page: int = 1, per_page: int = 20) -> dict:
    customer = get_customer(customer_id)
    per_page = min(max(per_page, 1), 100)  # Default 20, max 100
    page = max(page, 1)

    base_query = (
        db.session.query(Sale)
        .filter(Sale.customer_id == customer.id)
        .order_by(Sale.created_at.desc(), Sale.id.desc())
    )
    total = base_query.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    sales = base_query.offset((page - 1) * per_page).limit(per_page).all()

    return {
        "items": [s.to_dict() for s in sales],
        "count": len(sales),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }


def top_customers(limit: int = 10) -> list[Customer]:
    limit = min(max(limit, 1), 100)
    return (
        db.session.query(Customer)
        .filter(Customer.is_active.is_(True))
        .order_by(Customer.total_spent_cents.desc(), Customer.id.asc())
        .limit(limit)
        .all()
    )
