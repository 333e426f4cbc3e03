# Overview: Service-layer helpers for concurrency; row locking and whole-operation retry.

from __future__ import annotations

import time

from flask import current_app
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentStockConflict
from ..extensions import db


RETRYABLE_ERRORS = (OperationalError, StaleDataError)


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    Optimistic version_id columns catch the conflict there instead.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int | None = None, backoff_base: float = 0.1, retry_on: tuple = ()):
    """
    Execute a DB operation with retry on concurrency-related failures.

    The whole operation is re-run on OperationalError (deadlocks, locks),
    StaleDataError (optimistic locking conflicts) and any extra exception
    types in retry_on. The session is rolled back before each retry.

    When attempts are exhausted the failure is surfaced as
    ConcurrentStockConflict so the client can retry the request.
    """
    if attempts is None:
        attempts = current_app.config.get("SALE_RETRY_ATTEMPTS", 3)
    retryable = RETRYABLE_ERRORS + tuple(retry_on)

    for attempt in range(attempts):
        try:
            return func()
        except retryable as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                current_app.logger.warning("Giving up after %d attempts: %s", attempts, exc)
                raise ConcurrentStockConflict() from exc
            current_app.logger.warning("Concurrent update detected, retrying (attempt %d): %s", attempt + 1, exc)
            time.sleep(backoff_base * (2 ** attempt))
