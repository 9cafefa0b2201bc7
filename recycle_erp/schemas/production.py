"""Pydantic schemas for bale opening and production output."""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field


class BaleOpeningCreate(BaseModel):
    """Raw material bales opened onto the sorting lines."""
    item_id: int
    qty: Decimal = Field(gt=0)
    reference: str | None = Field(default=None, max_length=40)
    entry_date: date = Field(default_factory=date.today)
    actor: str = Field(default="system", max_length=100)


class ProductionOutputCreate(BaseModel):
    """
    Graded output booked into finished goods.

    unit_cost may be negative for waste. wip_consumed is the value
    drawn out of Work in Progress; it defaults to the output value and
    is capped at what WIP holds.
    """
    item_id: int
    qty: Decimal = Field(gt=0)
    unit_cost: Decimal
    weight_produced: Decimal | None = Field(default=None, ge=0)
    wip_consumed: Decimal | None = Field(default=None, ge=0)
    reference: str | None = Field(default=None, max_length=40)
    entry_date: date = Field(default_factory=date.today)
    actor: str = Field(default="system", max_length=100)


class BaleOpeningResponse(BaseModel):
    item_id: int
    qty: Decimal
    value: Decimal
    transaction_id: str | None


class ProductionEntryResponse(BaseModel):
    id: int
    production_date: date
    item_id: int
    qty_produced: Decimal
    weight_produced: Decimal
    unit_cost: Decimal
    serial_start: int | None
    serial_end: int | None
    transaction_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
