"""
Production entry model.

One row per graded output booked off the sorting lines. Unitized
packings (bales, sacks, boxes, bags) get a contiguous serial range.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Integer, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from recycle_erp.models.base import Base


class ProductionEntry(Base):
    __tablename__ = "production_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    production_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id"), nullable=False, index=True
    )
    qty_produced: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    weight_produced: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    unit_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    serial_start: Mapped[int | None] = mapped_column(Integer, nullable=True)
    serial_end: Mapped[int | None] = mapped_column(Integer, nullable=True)
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
