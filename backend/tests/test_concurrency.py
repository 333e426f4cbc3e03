"""
Retry and unit-of-work tests.

Verifies:
- Transient store conflicts are retried as a whole operation
- Exhausted retries surface as a retryable ConcurrentStockConflict
- A unit of work commits together or not at all
- A competing writer on the same product row forces a re-read, never a lost update
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from foamstock import create_app
from foamstock.config import TestConfig
from foamstock.errors import ConcurrentStockConflict, InsufficientStock, ValidationError
from foamstock.extensions import db
from foamstock.models import Customer, Product, Sale
from foamstock.services import products_service, sales_service, stock_service, supplier_service
from foamstock.services.auth_service import create_user
from foamstock.services.concurrency import run_with_retry
from foamstock.services.unit_of_work import SqlAlchemyUnitOfWork


def _locked_error():
    return OperationalError("UPDATE products", {}, Exception("database is locked"))


class TestRunWithRetry:

    def test_retries_then_succeeds(self, db_session):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            if calls["n"] == 1:
                raise _locked_error()
            return "done"

        assert run_with_retry(op, attempts=3, backoff_base=0) == "done"
        assert calls["n"] == 2

    def test_exhausted_retries_raise_conflict(self, db_session):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise StaleDataError("version mismatch")

        with pytest.raises(ConcurrentStockConflict) as excinfo:
            run_with_retry(op, attempts=3, backoff_base=0)

        assert calls["n"] == 3
        assert excinfo.value.status_code == 409
        assert excinfo.value.details == {"retryable": True}

    def test_attempts_default_from_config(self, app, db_session):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise _locked_error()

        with pytest.raises(ConcurrentStockConflict):
            run_with_retry(op, backoff_base=0)

        assert calls["n"] == app.config["SALE_RETRY_ATTEMPTS"]

    def test_business_errors_are_not_retried(self, db_session):
        calls = {"n": 0}

        def op():
            calls["n"] += 1
            raise ValidationError("bad input")

        with pytest.raises(ValidationError):
            run_with_retry(op, attempts=3, backoff_base=0)

        assert calls["n"] == 1


class TestUnitOfWork:

    def test_commit_on_success(self, db_session):
        with SqlAlchemyUnitOfWork() as uow:
            uow.add(Customer(name="A", phone="1"))
            uow.add(Customer(name="B", phone="2"))

        assert uow.committed
        assert db.session.query(Customer).count() == 2

    def test_rollback_discards_all_staged_writes(self, db_session):
        with pytest.raises(RuntimeError):
            with SqlAlchemyUnitOfWork() as uow:
                uow.add(Customer(name="A", phone="1"))
                uow.flush()
                raise RuntimeError("boom")

        assert not uow.committed
        assert db.session.query(Customer).count() == 0


# =============================================================================
# COMPETING WRITERS (file-backed SQLite, second connection)
# =============================================================================


@pytest.fixture
def file_app(tmp_path):
    """App on a file database so a second engine connection sees committed rows."""

    class FileConfig(TestConfig):
        SQLALCHEMY_DATABASE_URI = f"sqlite:///{tmp_path / 'conflict.sqlite3'}"

    app = create_app(FileConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()
        db.engine.dispose()


@pytest.fixture
def stocked_product(file_app):
    supplier = supplier_service.create_supplier({
        "name": "Mouka Direct",
        "company": "Mouka Ltd",
        "contact_person": "Ife Ojo",
        "email": "sales@mouka.test",
        "phone": "08040000000",
    })
    product = products_service.create_product({
        "name": "Contested Pillow",
        "category": "pillow",
        "supplier_id": supplier.id,
        "unit_cost_cents": 100,
        "selling_price_cents": 150,
    })
    stock_service.set_stock(product.inventory_record.id, 10, actor_user_id=None)
    return product


def _write_stock_elsewhere(product_id: int, stock: int) -> None:
    """Commit a stock change on a separate connection, as another request would."""
    with db.engine.begin() as conn:
        conn.execute(
            text("UPDATE products SET current_stock = :stock, version_id = version_id + 1 WHERE id = :id"),
            {"stock": stock, "id": product_id},
        )


class TestCompetingWriters:

    def test_adjustment_reruns_against_fresh_stock(self, stocked_product, monkeypatch):
        product_id = stocked_product.id
        record_id = stocked_product.inventory_record.id
        real_apply = stock_service.apply_stock_delta
        calls = {"n": 0}

        def interleaved(product, delta, movement_type, **kwargs):
            calls["n"] += 1
            if calls["n"] == 1:
                _write_stock_elsewhere(product.id, 5)
            return real_apply(product, delta, movement_type, **kwargs)

        monkeypatch.setattr(stock_service, "apply_stock_delta", interleaved)

        record, movement = stock_service.adjust_stock(record_id, -3, actor_user_id=None, reason="Damaged")

        assert calls["n"] == 2
        assert (movement.stock_before, movement.stock_after) == (5, 2)
        assert movement.requested_delta == -3
        assert db.session.get(Product, product_id).current_stock == 2

    def test_revision_cannot_pass_a_stale_stock_check(self, stocked_product, monkeypatch):
        product_id = stocked_product.id
        seller = create_user("Tunde", "Sales", "sales@foamstock.test", "Password123!", "salesperson")
        sale = sales_service.create_sale(
            items=[{"product_id": product_id, "quantity": 3}],
            sold_by_user_id=seller.id,
        )
        sale_id = sale.id
        real_apply = sales_service.apply_stock_delta
        written = {"done": False}

        def interleaved(product, delta, movement_type, **kwargs):
            if movement_type == "sale_revision" and not written["done"]:
                written["done"] = True
                # Another sale took 6 of the remaining 7 meanwhile
                _write_stock_elsewhere(product.id, 1)
            return real_apply(product, delta, movement_type, **kwargs)

        monkeypatch.setattr(sales_service, "apply_stock_delta", interleaved)

        # Against the stale count (7 + 3 restored) quantity 5 would fit; against the real one (1 + 3) it does not
        with pytest.raises((InsufficientStock, ConcurrentStockConflict)):
            sales_service.revise_sale_items(
                sale_id, [{"product_id": product_id, "quantity": 5}], actor_user_id=seller.id
            )

        db.session.rollback()
        assert db.session.get(Product, product_id).current_stock == 1
        assert [line.quantity for line in db.session.get(Sale, sale_id).lines] == [3]
