# Overview: Sale engine; stock-checked sale creation, revision, status lifecycle and compensating restock.

"""
Sale processing.

- A sale and every stock decrement it causes commit together or not at all.
- Line prices and costs are snapshots of the product at the time of sale.
- Cancelling or refunding restores stock on a best-effort basis: the status
  change is committed first, then each line is restocked in its own
  transaction. Lines that cannot be restocked are reported, not raised.
"""

from __future__ import annotations

from dataclasses import dataclass

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..errors import (
    AppError,
    Forbidden,
    InsufficientStock,
    InvalidStatusTransition,
    PartialRestockFailure,
    ProductNotFound,
    RestockFailure,
    SaleNotFound,
    ValidationError,
)
from ..extensions import db
from ..models import Customer, PAYMENT_METHODS, Product, SALE_STATUSES, Sale, SaleLine, TERMINAL_STATUSES
from ..time_utils import day_bounds, is_date_only, parse_iso_datetime, utcnow
from ..validation import coerce_amount_cents, coerce_int
from .concurrency import lock_for_update, run_with_retry
from .document_service import next_sale_number
from .stock_service import apply_stock_delta
from .unit_of_work import SqlAlchemyUnitOfWork


# Allowed status transitions; same-status updates are no-ops
ALLOWED_TRANSITIONS = {
    "pending": {"completed", "cancelled", "refunded"},
    "completed": {"cancelled", "refunded"},
    "cancelled": set(),
    "refunded": set(),
}

UPDATABLE_FIELDS = ("discount_cents", "tax_cents", "amount_paid_cents", "payment_method", "notes", "status", "items")


class DuplicateSaleNumber(Exception):
    """The allocated sale number was taken by a concurrent insert."""
    pass


@dataclass(frozen=True)
class LineRequest:
    product_id: int
    quantity: int


@dataclass
class SaleUpdateResult:
    sale: Sale
    previous_status: str
    restock_report: PartialRestockFailure | None = None


def parse_line_requests(items) -> list[LineRequest]:
    if not isinstance(items, list) or not items:
        raise ValidationError("Sale must have at least one item")

    requests = []
    for index, item in enumerate(items):
        if not isinstance(item, dict):
            raise ValidationError(f"items[{index}] must be an object")
        if item.get("product_id") is None:
            raise ValidationError(f"items[{index}].product_id is required")
        if item.get("quantity") is None:
            raise ValidationError(f"items[{index}].quantity is required")
        requests.append(LineRequest(
            product_id=coerce_int(item["product_id"], f"items[{index}].product_id"),
            quantity=coerce_int(item["quantity"], f"items[{index}].quantity", minimum=1),
        ))
    return requests


def _validate_payment_method(payment_method) -> str:
    if payment_method not in PAYMENT_METHODS:
        raise ValidationError(f"payment_method must be one of: {', '.join(PAYMENT_METHODS)}")
    return payment_method


def _load_sale_locked(sale_id: int) -> Sale:
    sale = lock_for_update(db.session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise SaleNotFound(sale_id)
    return sale


def _apply_lines(sale: Sale, requests: list[LineRequest], *, actor_user_id, movement_type: str) -> None:
    """
    Stock-check and decrement each requested line in order, building sale lines.

    Checks run against the in-session product, so a product listed twice is
    checked against what the earlier line left behind.
    """
    now = utcnow()
    for position, req in enumerate(requests):
        product = lock_for_update(db.session.query(Product).filter_by(id=req.product_id)).first()
        if not product:
            raise ProductNotFound(req.product_id)

        available = product.current_stock or 0
        if available < req.quantity:
            raise InsufficientStock(product.id, product.name, available, req.quantity)

        apply_stock_delta(
            product,
            -req.quantity,
            movement_type,
            actor_user_id=actor_user_id,
            sale_id=sale.id,
            reason=f"Sale {sale.sale_number}",
        )
        product.last_sold_at = now

        unit_price = product.selling_price_cents or 0
        unit_cost = product.unit_cost_cents or 0
        sale.lines.append(SaleLine(
            product_id=product.id,
            position=position,
            quantity=req.quantity,
            unit_price_cents=unit_price,
            unit_cost_cents=unit_cost,
            total_price_cents=unit_price * req.quantity,
            profit_cents=(unit_price - unit_cost) * req.quantity,
        ))


def _restore_lines(sale: Sale, *, actor_user_id) -> None:
    """Put back the stock of every current line and drop the lines."""
    for line in list(sale.lines):
        product = lock_for_update(db.session.query(Product).filter_by(id=line.product_id)).first()
        if product:
            apply_stock_delta(
                product,
                line.quantity,
                "sale_revision",
                actor_user_id=actor_user_id,
                sale_id=sale.id,
                reason=f"Sale {sale.sale_number} revised",
            )
    sale.lines.clear()
    db.session.flush()


def _check_totals(sale: Sale) -> None:
    if sale.total_amount_cents < 0:
        raise ValidationError("Discount cannot exceed subtotal plus tax")


def _set_status(sale: Sale, status: str) -> None:
    now = utcnow()
    sale.status = status
    if status == "completed":
        sale.completed_at = now
    elif status in ("cancelled", "refunded"):
        sale.cancelled_at = now


def _check_transition(sale: Sale, current: str, target: str) -> None:
    if target not in ALLOWED_TRANSITIONS[current]:
        raise InvalidStatusTransition(
            f"Cannot change sale status from {current} to {target}",
            details={"from": current, "to": target},
        )
    if target == "completed" and sale.balance_cents > 0:
        raise InvalidStatusTransition(
            "Cannot complete a sale with an outstanding balance",
            details={"balance_cents": sale.balance_cents},
        )


def _settle_status(sale: Sale) -> None:
    """Pending sales complete once paid; completed sales may not reopen a balance."""
    if sale.status == "pending" and sale.balance_cents <= 0:
        _set_status(sale, "completed")
    elif sale.status == "completed" and sale.balance_cents > 0:
        raise ValidationError(
            "Change would leave a completed sale with an outstanding balance",
            details={"balance_cents": sale.balance_cents},
        )


def create_sale(
    *,
    items,
    sold_by_user_id: int,
    customer_id: int | None = None,
    payment_method: str = "cash",
    amount_paid_cents=0,
    discount_cents=0,
    tax_cents=0,
    notes: str | None = None,
) -> Sale:
    """
    Create a sale, decrementing stock for every line.

    All-or-nothing: a missing product or insufficient stock aborts the whole
    sale and no stock moves.
    """
    requests = parse_line_requests(items)
    payment_method = _validate_payment_method(payment_method)
    amount_paid = coerce_amount_cents(amount_paid_cents or 0, "amount_paid_cents")
    discount = coerce_amount_cents(discount_cents or 0, "discount_cents")
    tax = coerce_amount_cents(tax_cents or 0, "tax_cents")
    if customer_id is not None:
        customer_id = coerce_int(customer_id, "customer_id")

    def _op():
        with SqlAlchemyUnitOfWork() as uow:
            sale = Sale(
                sale_number=next_sale_number(),
                payment_method=payment_method,
                amount_paid_cents=amount_paid,
                discount_cents=discount,
                tax_cents=tax,
                notes=notes,
                status="pending",
                sold_by_user_id=sold_by_user_id,
            )
            uow.add(sale)
            try:
                uow.flush()
            except IntegrityError as exc:
                raise DuplicateSaleNumber(sale.sale_number) from exc

            _apply_lines(sale, requests, actor_user_id=sold_by_user_id, movement_type="sale")

            sale.recompute_totals()
            _check_totals(sale)

            if customer_id is not None:
                customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
                if customer:
                    sale.customer_id = customer.id
                    customer.total_purchases = (customer.total_purchases or 0) + 1
                    customer.total_spent_cents = (customer.total_spent_cents or 0) + sale.total_amount_cents
                    customer.last_purchase_date = utcnow()
                else:
                    current_app.logger.warning("Sale ignoring unknown customer %s", customer_id)

            if sale.amount_paid_cents >= sale.total_amount_cents:
                _set_status(sale, "completed")
        return sale

    sale = run_with_retry(_op, retry_on=(DuplicateSaleNumber,))
    current_app.logger.info(
        "Sale %s created by user %s: %d line(s), total %d, status %s",
        sale.sale_number, sold_by_user_id, len(sale.lines), sale.total_amount_cents, sale.status,
    )
    return sale


def update_sale(sale_id: int, patch: dict, *, actor_user_id: int | None) -> SaleUpdateResult:
    """
    Apply a partial update: payment fields, notes, line items and/or status.

    Field edits, line revision and the status change commit together; when
    the sale moves into cancelled/refunded its stock is then restored.
    Terminal sales accept note edits only.
    """
    if not isinstance(patch, dict):
        raise ValidationError("Invalid JSON payload")
    unknown = sorted(set(patch) - set(UPDATABLE_FIELDS))
    if unknown:
        raise ValidationError(f"Field not allowed: {unknown[0]}")

    target_status = patch.get("status")
    if target_status is not None and target_status not in SALE_STATUSES:
        raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")

    requests = parse_line_requests(patch["items"]) if "items" in patch else None
    values = {}
    for field in ("discount_cents", "tax_cents", "amount_paid_cents"):
        if field in patch:
            values[field] = coerce_amount_cents(patch[field], field)
    if "payment_method" in patch:
        values["payment_method"] = _validate_payment_method(patch["payment_method"])

    def _op():
        with SqlAlchemyUnitOfWork():
            sale = _load_sale_locked(sale_id)
            previous = sale.status

            if sale.is_terminal:
                if target_status not in (None, previous) or requests is not None or values:
                    raise InvalidStatusTransition(
                        f"Sale is {previous}; only notes can be changed",
                        details={"status": previous},
                    )
                if "notes" in patch:
                    sale.notes = patch["notes"]
                return sale, previous

            if requests is not None:
                _restore_lines(sale, actor_user_id=actor_user_id)
                _apply_lines(sale, requests, actor_user_id=actor_user_id, movement_type="sale_revision")

            for field, value in values.items():
                setattr(sale, field, value)
            if "notes" in patch:
                sale.notes = patch["notes"]

            sale.recompute_totals()
            _check_totals(sale)

            if target_status is not None and target_status != previous:
                _check_transition(sale, previous, target_status)
                _set_status(sale, target_status)
            else:
                _settle_status(sale)
        return sale, previous

    sale, previous = run_with_retry(_op)

    result = SaleUpdateResult(sale=sale, previous_status=previous)
    if sale.status != previous:
        current_app.logger.info("Sale %s status %s -> %s", sale.sale_number, previous, sale.status)
    if sale.is_terminal and previous not in TERMINAL_STATUSES:
        result.restock_report = restock_sale(sale, actor_user_id=actor_user_id)
    return result


def revise_sale_items(sale_id: int, items, *, actor_user_id: int | None) -> SaleUpdateResult:
    """Replace the line items of a non-terminal sale, moving stock by the difference."""
    return update_sale(sale_id, {"items": items}, actor_user_id=actor_user_id)


def change_sale_status(sale_id: int, status, *, actor_user_id: int | None) -> SaleUpdateResult:
    if status is None:
        raise ValidationError("status is required")
    return update_sale(sale_id, {"status": status}, actor_user_id=actor_user_id)


def restock_sale(sale: Sale, *, actor_user_id: int | None) -> PartialRestockFailure:
    """
    Return each line's quantity to stock, one transaction per line.

    Failures are collected into the report and logged; the remaining lines
    are still attempted.
    """
    sale_id = sale.id
    report = PartialRestockFailure(sale_id=sale_id)
    sale_number = sale.sale_number
    status = sale.status
    lines = [(line.id, line.product_id, line.quantity) for line in sale.lines]

    for line_id, product_id, quantity in lines:
        def _op(product_id=product_id, quantity=quantity):
            with SqlAlchemyUnitOfWork():
                product = lock_for_update(db.session.query(Product).filter_by(id=product_id)).first()
                if not product:
                    raise ProductNotFound(product_id)
                apply_stock_delta(
                    product,
                    quantity,
                    "restock",
                    actor_user_id=actor_user_id,
                    sale_id=sale_id,
                    reason=f"Sale {sale_number} {status}",
                )

        try:
            run_with_retry(_op)
        except (AppError, SQLAlchemyError) as exc:
            db.session.rollback()
            reason = exc.message if isinstance(exc, AppError) else str(exc)
            report.failures.append(RestockFailure(
                sale_line_id=line_id,
                product_id=product_id,
                quantity=quantity,
                reason=reason,
            ))
            current_app.logger.warning(
                "Restock failed for sale %s line %s (product %s, qty %s): %s",
                sale_number, line_id, product_id, quantity, reason,
            )
    return report


def get_sale(sale_id: int, *, viewer) -> Sale:
    sale = db.session.get(Sale, sale_id)
    if not sale:
        raise SaleNotFound(sale_id)
    if viewer.role == "salesperson" and sale.sold_by_user_id != viewer.id:
        raise Forbidden("Not authorized to view this sale")
    return sale


def list_sales(
    *,
    viewer,
    start_date: str | None = None,
    end_date: str | None = None,
    status: str | None = None,
    payment_method: str | None = None,
    customer_id=None,
) -> tuple[list[Sale], dict]:
    """
    List sales newest first, with a revenue/profit summary over the result.

    Salespeople only see their own sales.
    """
    query = db.session.query(Sale)
    if viewer.role == "salesperson":
        query = query.filter(Sale.sold_by_user_id == viewer.id)

    if start_date:
        try:
            start = parse_iso_datetime(start_date)
        except ValueError:
            raise ValidationError("start_date must be an ISO-8601 date")
        query = query.filter(Sale.created_at >= start)
    if end_date:
        try:
            end = parse_iso_datetime(end_date)
        except ValueError:
            raise ValidationError("end_date must be an ISO-8601 date")
        if is_date_only(end_date):
            # Date-only end bound covers the whole day
            query = query.filter(Sale.created_at < day_bounds(end.date())[1])
        else:
            query = query.filter(Sale.created_at <= end)
    if status:
        if status not in SALE_STATUSES:
            raise ValidationError(f"status must be one of: {', '.join(SALE_STATUSES)}")
        query = query.filter(Sale.status == status)
    if payment_method:
        query = query.filter(Sale.payment_method == _validate_payment_method(payment_method))
    if customer_id is not None:
        query = query.filter(Sale.customer_id == coerce_int(customer_id, "customer_id"))

    sales = query.order_by(Sale.created_at.desc(), Sale.id.desc()).all()
    return sales, summarize_sales(sales)


def summarize_sales(sales: list[Sale]) -> dict:
    total_sales = len(sales)
    total_revenue = sum(s.total_amount_cents for s in sales)
    total_profit = sum(s.total_profit_cents for s in sales)
    return {
        "total_sales": total_sales,
        "total_revenue_cents": total_revenue,
        "total_profit_cents": total_profit,
        "average_sale_cents": total_revenue // total_sales if total_sales else 0,
    }


def daily_summary(day: str | None = None) -> dict:
    """Totals over one UTC day's completed sales (default: today)."""
    if day:
        if not is_date_only(day):
            raise ValidationError("date must be YYYY-MM-DD")
        start, end = day_bounds(parse_iso_datetime(day).date())
    else:
        start, end = day_bounds()

    sales = (
        db.session.query(Sale)
        .filter(Sale.status == "completed", Sale.created_at >= start, Sale.created_at < end)
        .all()
    )
    summary = summarize_sales(sales)
    summary["date"] = start.date().isoformat()
    return summary
