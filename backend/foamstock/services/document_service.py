# Overview: Human-readable document numbers (sale numbers, SKUs).

from __future__ import annotations

import secrets
import string
import time

from ..extensions import db
from ..models import Sale
from ..time_utils import utcnow


_ALPHABET = string.digits + string.ascii_uppercase
SALE_NUMBER_SUFFIX_LENGTH = 6
MAX_SALE_NUMBER_ATTEMPTS = 5


class DocumentNumberError(Exception):
    """Raised when a unique document number cannot be allocated."""
    pass


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def generate_sale_number(now=None) -> str:
    """SALE-YYYYMMDD-XXXXXX with a random base36 suffix (36^6 per day)."""
    now = now or utcnow()
    return f"SALE-{now:%Y%m%d}-{_random_suffix(SALE_NUMBER_SUFFIX_LENGTH)}"


def next_sale_number() -> str:
    """
    Allocate a sale number not already in use.

    The unique constraint on sales.sale_number is still the final guard;
    a race between this check and the insert surfaces as IntegrityError,
    and the sale engine retries the whole operation with a fresh number.
    """
    for _ in range(MAX_SALE_NUMBER_ATTEMPTS):
        candidate = generate_sale_number()
        taken = db.session.query(Sale.id).filter_by(sale_number=candidate).first()
        if not taken:
            return candidate
    raise DocumentNumberError("Could not allocate a unique sale number")


def generate_sku(category: str) -> str:
    """<CAT>-<6 random>-<last 4 digits of epoch ms>, uppercased."""
    prefix = (category or "oth")[:3].upper()
    stamp = str(int(time.time() * 1000))[-4:]
    return f"{prefix}-{_random_suffix(6)}-{stamp}"
