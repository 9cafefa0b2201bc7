"""
Tests for moving average costing.

The costing functions work on Item objects in memory, so these
tests need no database.
"""

from decimal import Decimal

import pytest

from recycle_erp.exceptions import InsufficientStockError, InvalidQuantityError
from recycle_erp.models.enums import PackingType
from recycle_erp.models.item import Item
from recycle_erp.services import costing


def make_item(stock_qty="0", avg_cost="0"):
    return Item(
        code="CRM-A",
        name="Cream A",
        category="Graded",
        packing_type=PackingType.BALE,
        stock_qty=Decimal(stock_qty),
        avg_cost=Decimal(avg_cost),
    )


class TestReceiveStock:

    def test_moving_average(self):
        item = make_item("100", "10")
        costing.receive_stock(item, Decimal("50"), Decimal("16"))
        assert item.avg_cost == Decimal("12.000000")
        assert item.stock_qty == Decimal("150.0000")

    def test_first_receipt_sets_cost(self):
        item = make_item()
        costing.receive_stock(item, Decimal("20"), Decimal("7.5"))
        assert item.avg_cost == Decimal("7.500000")
        assert item.stock_qty == Decimal("20.0000")

    @pytest.mark.parametrize("qty", [Decimal("0"), Decimal("-5")])
    def test_non_positive_quantity_rejected(self, qty):
        item = make_item("100", "10")
        with pytest.raises(InvalidQuantityError):
            costing.receive_stock(item, qty, Decimal("16"))
        assert item.stock_qty == Decimal("100")
        assert item.avg_cost == Decimal("10")

    def test_negative_cost_waste_line(self):
        item = make_item("10", "-2")
        costing.receive_stock(item, Decimal("10"), Decimal("-4"))
        assert item.avg_cost == Decimal("-3.000000")

    def test_receipt_into_oversold_item_takes_incoming_cost(self):
        item = make_item("-5", "10")
        costing.receive_stock(item, Decimal("20"), Decimal("14"))
        assert item.stock_qty == Decimal("15.0000")
        assert item.avg_cost == Decimal("14.000000")


class TestIssueStock:

    def test_issue_keeps_average(self):
        item = make_item("100", "12")
        cogs = costing.issue_stock(item, Decimal("30"))
        assert cogs == Decimal("360.0000")
        assert item.stock_qty == Decimal("70.0000")
        assert item.avg_cost == Decimal("12")

    def test_insufficient_stock_leaves_item_unchanged(self):
        item = make_item("10", "12")
        with pytest.raises(InsufficientStockError) as exc:
            costing.issue_stock(item, Decimal("11"))
        assert exc.value.requested == Decimal("11")
        assert exc.value.available == Decimal("10")
        assert item.stock_qty == Decimal("10")
        assert item.avg_cost == Decimal("12")

    def test_override_allows_negative_stock(self):
        item = make_item("10", "12")
        costing.issue_stock(item, Decimal("11"), allow_negative=True)
        assert item.stock_qty == Decimal("-1.0000")

    def test_negative_average_gives_negative_cogs(self):
        item = make_item("10", "-3")
        assert costing.issue_stock(item, Decimal("4")) == Decimal("-12.0000")


class TestAlign:

    def test_sets_quantity_value_and_returns_delta(self):
        item = make_item("10", "5")
        delta = costing.align(item, Decimal("8"), Decimal("60"))
        assert delta == Decimal("10.0000")
        assert item.stock_qty == Decimal("8.0000")
        assert item.avg_cost == Decimal("7.500000")

    def test_zero_quantity_zeroes_cost(self):
        item = make_item("10", "5")
        delta = costing.align(item, Decimal("0"), Decimal("0"))
        assert delta == Decimal("-50.0000")
        assert item.avg_cost == Decimal("0")

    def test_negative_target_rejected(self):
        item = make_item("10", "5")
        with pytest.raises(InvalidQuantityError):
            costing.align(item, Decimal("-1"), Decimal("0"))
        assert item.stock_qty == Decimal("10")
