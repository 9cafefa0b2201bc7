"""Pydantic schemas for items, opening stock and stock alignment."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from recycle_erp.models.enums import ItemKind, PackingType


# --- Request Schemas ---

class ItemCreate(BaseModel):
    code: str = Field(min_length=1, max_length=30)
    name: str = Field(min_length=1, max_length=100)
    category: str = Field(min_length=1, max_length=100)
    section: str | None = Field(default=None, max_length=100)
    packing_type: PackingType
    kind: ItemKind = ItemKind.FINISHED
    weight_per_unit: Decimal = Field(default=Decimal("1"), gt=0)
    sale_price: Decimal | None = None


class OpeningStockCreate(BaseModel):
    """
    Stock on hand when the books are opened.

    unit_cost may be negative for waste lines that cost money to
    dispose of.
    """
    qty: Decimal = Field(gt=0)
    unit_cost: Decimal
    entry_date: date = Field(default_factory=date.today)
    actor: str = Field(default="system", max_length=100)


class StockAlignRequest(BaseModel):
    """Set an item to a counted quantity and value."""
    target_qty: Decimal
    target_value: Decimal
    reason: str = Field(min_length=1, max_length=200)
    reference: str | None = Field(default=None, max_length=40)
    entry_date: date = Field(default_factory=date.today)
    actor: str = Field(default="system", max_length=100)


# --- Response Schemas ---

class ItemResponse(BaseModel):
    id: int
    code: str
    name: str
    category: str
    section: str | None
    packing_type: PackingType
    kind: ItemKind
    avg_cost: Decimal
    stock_qty: Decimal
    stock_value: Decimal
    weight_per_unit: Decimal
    sale_price: Decimal | None
    next_serial: int
    created_at: datetime

    model_config = {"from_attributes": True}
