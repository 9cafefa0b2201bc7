"""
Moving weighted average costing.

These functions change an Item in memory and nothing else. Callers
lock the item first (services.locking) and post the matching ledger
legs in the same database transaction.

A receipt reprices the whole stock:

    avg = (avg * stock + cost * qty) / (stock + qty)

An issue leaves the average alone and carries it to COGS, except a
direct sale, which issues at the batch cost and reprices what is left
(issue_at_cost). Average cost may be negative for waste lines whose
disposal costs money.
"""

from decimal import Decimal

from recycle_erp.exceptions import InsufficientStockError, InvalidQuantityError
from recycle_erp.models.item import Item
from recycle_erp.services.currency import ZERO, money, quantity, to_decimal, unit_cost


def receive_stock(item: Item, qty, incoming_unit_cost) -> Item:
    qty = to_decimal(qty)
    if qty <= 0:
        raise InvalidQuantityError(qty, item.code)

    cost = to_decimal(incoming_unit_cost)
    on_hand = Decimal(item.stock_qty)
    new_qty = on_hand + qty

    if on_hand < 0 or new_qty <= 0:
        # Backfilling an oversold item: the incoming lot sets the price
        item.avg_cost = unit_cost(cost)
    else:
        value = Decimal(item.avg_cost) * on_hand + cost * qty
        item.avg_cost = unit_cost(value / new_qty)

    item.stock_qty = quantity(new_qty)
    return item


def ensure_available(item: Item, qty, allow_negative: bool = False) -> None:
    """Raise what issue_stock would raise, without touching the item."""
    qty = to_decimal(qty)
    if qty <= 0:
        raise InvalidQuantityError(qty, item.code)
    available = Decimal(item.stock_qty)
    if qty > available and not allow_negative:
        raise InsufficientStockError(item.code, qty, available)


def issue_stock(item: Item, qty, allow_negative: bool = False) -> Decimal:
    """
    Take qty out of stock at the current average cost.

    Returns the COGS value (base currency). On failure the item is
    unchanged.
    """
    ensure_available(item, qty, allow_negative)
    qty = to_decimal(qty)
    item.stock_qty = quantity(Decimal(item.stock_qty) - qty)
    return money(qty * Decimal(item.avg_cost))


def issue_value(item: Item, qty, value) -> Decimal:
    """Value issue_at_cost would take, without taking it."""
    ensure_available(item, qty)
    if to_decimal(qty) == Decimal(item.stock_qty):
        return money(Decimal(item.stock_qty) * Decimal(item.avg_cost))
    return money(value)


def issue_at_cost(item: Item, qty, value) -> Decimal:
    """
    Take qty out of stock at a given total cost instead of the average.

    The units left behind carry the remaining value, so their average
    moves. Emptying the item takes all of its value whatever `value`
    says. Returns the value taken.
    """
    taken = issue_value(item, qty, value)
    qty = to_decimal(qty)
    before = Decimal(item.stock_qty) * Decimal(item.avg_cost)
    remaining = Decimal(item.stock_qty) - qty
    item.stock_qty = quantity(remaining)
    item.avg_cost = unit_cost((before - taken) / remaining) if remaining else ZERO
    return taken


def alignment_delta(item: Item, target_qty, target_value) -> Decimal:
    """Change in stock value align() would make, without making it."""
    target_qty = to_decimal(target_qty)
    if target_qty < 0:
        raise InvalidQuantityError(
            target_qty, item.code, "target quantity cannot be negative"
        )
    before = money(Decimal(item.stock_qty) * Decimal(item.avg_cost))
    return money(target_value) - before


def align(item: Item, target_qty, target_value) -> Decimal:
    """
    Set stock to a counted quantity and value.

    Returns the change in stock value. A zero target quantity leaves
    the item at zero cost.
    """
    delta = alignment_delta(item, target_qty, target_value)
    target_qty = to_decimal(target_qty)
    target_value = money(target_value)
    item.stock_qty = quantity(target_qty)
    item.avg_cost = unit_cost(target_value / target_qty) if target_qty else ZERO
    return delta
