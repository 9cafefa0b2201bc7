"""
Ledger entry model.

Each entry is one leg of a double-entry transaction. Legs are
grouped by transaction_id; within a group the base-currency debits
equal the base-currency credits. Entries are immutable: a mistake
is undone by a reversal, never by editing or deleting rows.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recycle_erp.models.base import Base
from recycle_erp.models.enums import TransactionType


class LedgerEntry(Base):
    """
    One debit-or-credit leg.

    Exactly one of debit/credit is nonzero. currency, exchange_rate
    and fcy_amount record the document-currency view of the leg;
    debit and credit are always base currency.
    """

    __tablename__ = "ledger_entries"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        String(64), nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum"),
        nullable=False,
    )
    account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    entry_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    # 1 base unit = exchange_rate units of currency
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False, default=Decimal("1")
    )
    fcy_amount: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    debit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    credit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    narration: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    account: Mapped["Account"] = relationship(back_populates="entries")

    def to_snapshot(self) -> dict:
        """JSON-safe copy of the leg, used when archiving."""
        return {
            "id": self.id,
            "transaction_id": self.transaction_id,
            "transaction_type": self.transaction_type.value,
            "account_id": self.account_id,
            "entry_date": self.entry_date.isoformat(),
            "currency": self.currency,
            "exchange_rate": str(self.exchange_rate),
            "fcy_amount": str(self.fcy_amount),
            "debit": str(self.debit),
            "credit": str(self.credit),
            "narration": self.narration,
        }

    def __repr__(self) -> str:
        side = f"DR {self.debit}" if self.debit else f"CR {self.credit}"
        return f"<LedgerEntry {self.transaction_id} {side}>"
