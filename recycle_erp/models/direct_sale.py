"""
Direct sale model.

Raw material sold straight out of a purchase batch, without going
through the sorting lines. The cost of the sale is the batch's landed
cost per kg, not an item's average cost.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, Numeric, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from recycle_erp.models.base import Base


class DirectSale(Base):
    __tablename__ = "direct_sales"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_no: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    sale_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    customer_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id"), nullable=False, index=True
    )
    # Raw item the kilos are issued from; None when the batch was not
    # received into stock
    item_id: Mapped[int | None] = mapped_column(
        ForeignKey("items.id"), nullable=True
    )
    weight_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    rate: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    net_total: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    cost_per_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    cost_of_sale: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def __repr__(self) -> str:
        return f"<DirectSale {self.invoice_no} {self.weight_kg}kg>"
