"""
Stock ledger tests.

Verifies:
- Derived status is never stored and follows stock vs. min level
- Manual adjustments clamp at zero and append an audit movement
- Absolute set validates input and stamps last_restocked_at
- Bulk update isolates row failures
"""

import pytest

from foamstock.errors import NotFound, ValidationError
from foamstock.extensions import db
from foamstock.models import Product, StockMovement, derive_stock_status
from foamstock.services import products_service, stock_service


class TestDeriveStockStatus:

    @pytest.mark.parametrize("current,minimum,active,expected", [
        (0, 5, True, "out_of_stock"),
        (5, 5, True, "low_stock"),
        (6, 5, True, "in_stock"),
        (50, 5, False, "discontinued"),
    ])
    def test_status(self, current, minimum, active, expected):
        assert derive_stock_status(current, minimum, active) == expected


class TestAdjustStock:

    def test_adjust_appends_movement(self, owner, make_product):
        product = make_product(stock=10)
        record_id = product.inventory_record.id

        record, movement = stock_service.adjust_stock(record_id, -4, actor_user_id=owner.id, reason="Damaged")

        assert record.current_stock == 6
        assert movement.movement_type == "adjustment"
        assert (movement.stock_before, movement.stock_after, movement.delta) == (10, 6, -4)
        assert movement.requested_delta == -4
        assert movement.reason == "Damaged"
        assert movement.actor_user_id == owner.id

    def test_adjust_clamps_at_zero(self, owner, make_product):
        product = make_product(stock=3)

        record, movement = stock_service.adjust_stock(
            product.inventory_record.id, -10, actor_user_id=owner.id
        )

        assert record.current_stock == 0
        assert movement.delta == -3
        assert movement.requested_delta == -10
        assert (movement.stock_before, movement.stock_after) == (3, 0)
        assert movement.reason == "Manual adjustment"
        assert stock_service.get_stock_summary(record.id) == {
            "current_stock": 0,
            "status": "out_of_stock",
            "alerts_enabled": True,
        }

    def test_adjust_increase_marks_restocked(self, owner, make_product):
        product = make_product(stock=0)
        record, _ = stock_service.adjust_stock(product.inventory_record.id, 8, actor_user_id=owner.id)
        assert record.last_restocked_at is not None
        assert db.session.get(Product, product.id).last_restocked_at is not None

    @pytest.mark.parametrize("bad", ["5", 2.5, None, True])
    def test_adjust_requires_integer(self, owner, make_product, bad):
        product = make_product(stock=3)
        with pytest.raises(ValidationError):
            stock_service.adjust_stock(product.inventory_record.id, bad, actor_user_id=owner.id)

    def test_unknown_record(self, owner):
        with pytest.raises(NotFound):
            stock_service.adjust_stock(123456, 1, actor_user_id=owner.id)


class TestSetStock:

    def test_set_absolute(self, owner, make_product):
        product = make_product(stock=3)

        record, movement = stock_service.set_stock(
            product.inventory_record.id, 12, actor_user_id=owner.id, notes="Weekly count"
        )

        assert record.current_stock == 12
        assert movement.movement_type == "set"
        assert movement.delta == 9
        assert record.notes == "Weekly count"

    def test_set_rejects_negative(self, owner, make_product):
        product = make_product(stock=3)
        with pytest.raises(ValidationError):
            stock_service.set_stock(product.inventory_record.id, -1, actor_user_id=owner.id)
        assert db.session.get(Product, product.id).current_stock == 3


class TestListingAndAlerts:

    def test_low_stock_filters(self, make_product):
        low = make_product(stock=2, min_stock_level=5)
        empty = make_product(stock=0)
        healthy = make_product(stock=50)

        low_ids = {r.product_id for r in stock_service.list_inventory(low_stock=True)}
        assert low_ids == {low.id, empty.id}

        in_stock = stock_service.list_inventory(status="in_stock")
        assert [r.product_id for r in in_stock] == [healthy.id]

        alerts = {r.product_id for r in stock_service.low_stock_alerts()}
        assert alerts == {low.id, empty.id}

    def test_list_is_ordered_by_stock(self, make_product):
        a = make_product(stock=9)
        b = make_product(stock=1)
        records = stock_service.list_inventory()
        assert [r.product_id for r in records] == [b.id, a.id]

    def test_discontinued_product_status(self, make_product):
        product = make_product(stock=9)
        products_service.delete_product(product.id)
        assert stock_service.stock_status_for(db.session.get(Product, product.id)) == "discontinued"


class TestBulkUpdate:

    def test_row_failure_does_not_affect_others(self, owner, make_product):
        a = make_product(stock=1)
        b = make_product(stock=1)

        results = stock_service.bulk_update(
            [
                {"product_id": a.id, "new_stock": 20},
                {"product_id": b.id, "new_stock": -5},
                {"product_id": 999999, "new_stock": 3},
            ],
            actor_user_id=owner.id,
        )

        assert [r["success"] for r in results] == [True, False, False]
        assert db.session.get(Product, a.id).current_stock == 20
        assert db.session.get(Product, b.id).current_stock == 1

    def test_requires_rows(self, owner):
        with pytest.raises(ValidationError):
            stock_service.bulk_update([], actor_user_id=owner.id)


def test_movement_history_newest_first(owner, make_product):
    product = make_product(stock=5)
    record_id = product.inventory_record.id
    stock_service.adjust_stock(record_id, 1, actor_user_id=owner.id)
    stock_service.adjust_stock(record_id, 2, actor_user_id=owner.id)

    history = stock_service.list_movements(record_id)

    assert [m.delta for m in history][:3] == [2, 1, 5]
    assert db.session.query(StockMovement).filter_by(product_id=product.id).count() == 3
