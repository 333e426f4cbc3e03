# Overview: Error taxonomy shared by services and routes; rendered as JSON by the app.

from __future__ import annotations

from dataclasses import dataclass, field


class AppError(Exception):
    """Base for errors that map to a client-visible HTTP response."""
    status_code = 500

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def status(self) -> str:
        return "fail" if self.status_code < 500 else "error"

    def to_dict(self) -> dict:
        body = {"status": self.status, "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AppError):
    """400-level input problem."""
    status_code = 400


class InvalidStatusTransition(ValidationError):
    """Requested sale status is not reachable from the current one."""


class InsufficientStock(AppError):
    status_code = 400

    def __init__(self, product_id: int, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product: {product_name}. "
            f"Available: {available}, Requested: {requested}",
            details={
                "product_id": product_id,
                "available": available,
                "requested": requested,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class Unauthenticated(AppError):
    status_code = 401


class Forbidden(AppError):
    status_code = 403


class NotFound(AppError):
    status_code = 404


class ProductNotFound(NotFound):
    def __init__(self, product_id):
        super().__init__(f"Product {product_id} not found", details={"product_id": product_id})
        self.product_id = product_id


class SaleNotFound(NotFound):
    def __init__(self, sale_id):
        super().__init__("Sale not found", details={"sale_id": sale_id})


class ConflictError(AppError):
    """409-level business rule conflict (e.g., duplicate email)."""
    status_code = 409


class ConcurrentStockConflict(ConflictError):
    """
    The store aborted the transaction because another writer touched the same rows.
    Retryable: the caller should re-submit the whole operation.
    """

    def __init__(self, message: str = "Stock changed concurrently; retry the operation"):
        super().__init__(message, details={"retryable": True})


@dataclass
class RestockFailure:
    sale_line_id: int
    product_id: int
    quantity: int
    reason: str

    def to_dict(self) -> dict:
        return {
            "sale_line_id": self.sale_line_id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "reason": self.reason,
        }


@dataclass
class PartialRestockFailure:
    """
    Report of line items whose compensating restock could not be applied.

    Not raised: the status change it accompanies has already been committed.
    """
    sale_id: int
    failures: list[RestockFailure] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.failures)

    def to_dict(self) -> dict:
        return {
            "sale_id": self.sale_id,
            "message": f"{len(self.failures)} line item(s) could not be restocked",
            "items": [f.to_dict() for f in self.failures],
        }
