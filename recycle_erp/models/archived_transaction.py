"""
Archived transaction model.

Snapshot of a transaction taken at the moment it is reversed: the
original legs, who reversed it, when and why. Archive rows are
written once and never changed.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Numeric, JSON
from sqlalchemy.orm import Mapped, mapped_column

from recycle_erp.models.base import Base


class ArchivedTransaction(Base):
    __tablename__ = "archived_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    original_transaction_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    reversal_transaction_id: Mapped[str] = mapped_column(
        String(64), nullable=False
    )
    reason: Mapped[str] = mapped_column(String(255), nullable=False)
    archived_by: Mapped[str] = mapped_column(String(100), nullable=False)
    archived_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    # Sum of the original debits, base currency
    total_value: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    entries: Mapped[list] = mapped_column(JSON, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<ArchivedTransaction {self.original_transaction_id} "
            f"by {self.archived_by}>"
        )
