"""
Sales invoice models.

An invoice is created Unposted, reviewed (rates and the exchange rate
may still be corrected), then posted: stock is issued, COGS and revenue
hit the ledger and the invoice freezes. A posted invoice is only ever
undone by a reversal.

Amounts on the invoice and its lines are in the invoice currency;
exchange_rate is invoice-currency units per base unit.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recycle_erp.models.base import Base
from recycle_erp.models.enums import InvoiceStatus, CostType


VALID_TRANSITIONS: dict[InvoiceStatus, set[InvoiceStatus]] = {
    InvoiceStatus.UNPOSTED: {InvoiceStatus.POSTED},
    InvoiceStatus.POSTED: {InvoiceStatus.REVERSED},
    InvoiceStatus.REVERSED: set(),  # Terminal state
}


class SalesInvoice(Base):
    __tablename__ = "sales_invoices"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_no: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    invoice_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    status: Mapped[InvoiceStatus] = mapped_column(
        SAEnum(
            InvoiceStatus,
            name="invoice_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=InvoiceStatus.UNPOSTED,
    )
    customer_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    # Cash or bank account debited instead of the customer on a cash sale
    payment_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    container_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    discount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    surcharge: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    gross_total: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    net_total: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    posted_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )
    reversed_at: Mapped[datetime | None] = mapped_column(
        DateTime, nullable=True
    )

    items: Mapped[list["SalesInvoiceItem"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="SalesInvoiceItem.id",
    )
    additional_costs: Mapped[list["InvoiceAdditionalCost"]] = relationship(
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceAdditionalCost.id",
    )

    def can_transition_to(self, new_status: InvoiceStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<SalesInvoice {self.invoice_no} "
            f"{self.net_total} {self.currency} ({self.status.value})>"
        )


class SalesInvoiceItem(Base):
    __tablename__ = "sales_invoice_items"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("sales_invoices.id"), nullable=False, index=True
    )
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id"), nullable=False
    )
    qty: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    rate: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    total: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    total_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    # Average cost per unit captured when the invoice was posted
    unit_cost: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 6), nullable=True
    )

    invoice: Mapped["SalesInvoice"] = relationship(back_populates="items")


class InvoiceAdditionalCost(Base):
    """Pass-through cost billed to the customer and owed to a provider."""

    __tablename__ = "invoice_additional_costs"

    id: Mapped[int] = mapped_column(primary_key=True)
    invoice_id: Mapped[int] = mapped_column(
        ForeignKey("sales_invoices.id"), nullable=False, index=True
    )
    cost_type: Mapped[CostType] = mapped_column(
        SAEnum(CostType, name="cost_type_enum"),
        nullable=False,
    )
    # Falls back to Accounts Payable when no provider is named
    provider_account_id: Mapped[int | None] = mapped_column(
        ForeignKey("accounts.id"), nullable=True
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )

    invoice: Mapped["SalesInvoice"] = relationship(
        back_populates="additional_costs"
    )
