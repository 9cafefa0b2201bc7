"""
Ledger transaction header.

One row per committed transaction id. The legs live in
ledger_entries; the header adds business context (type, actor,
date) and links an original to its reversal. A reversal never
edits the original legs: it posts new, opposite legs under its own
transaction id and flips the original header to REVERSED.
"""

from datetime import date, datetime

from sqlalchemy import String, Date, DateTime, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from recycle_erp.models.base import Base
from recycle_erp.models.enums import (
    SourceDocument,
    TransactionStatus,
    TransactionType,
)


# Valid state transitions for a posting. DRAFT/BALANCED/REJECTED are
# walked in memory by the ledger service; only the last two persist.
VALID_TRANSITIONS: dict[TransactionStatus, set[TransactionStatus]] = {
    TransactionStatus.DRAFT: {
        TransactionStatus.BALANCED,
        TransactionStatus.REJECTED,
    },
    TransactionStatus.BALANCED: {TransactionStatus.COMMITTED},
    TransactionStatus.REJECTED: set(),
    TransactionStatus.COMMITTED: {TransactionStatus.REVERSED},
    TransactionStatus.REVERSED: set(),
}


class LedgerTransaction(Base):
    __tablename__ = "ledger_transactions"

    id: Mapped[int] = mapped_column(primary_key=True)
    transaction_id: Mapped[str] = mapped_column(
        String(64), unique=True, nullable=False, index=True
    )
    transaction_type: Mapped[TransactionType] = mapped_column(
        SAEnum(TransactionType, name="transaction_type_enum"),
        nullable=False,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SAEnum(
            TransactionStatus,
            name="transaction_status_enum",
            create_constraint=True,
        ),
        nullable=False,
        default=TransactionStatus.COMMITTED,
    )
    entry_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    narration: Mapped[str] = mapped_column(String(255), nullable=False)
    created_by: Mapped[str] = mapped_column(
        String(100), nullable=False, default="system"
    )
    reversal_of: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    reversed_by: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    # Set when a document (invoice, purchase, production...) posted it
    source_document: Mapped[SourceDocument | None] = mapped_column(
        SAEnum(SourceDocument, name="source_document_enum"),
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    def can_transition_to(self, new_status: TransactionStatus) -> bool:
        return new_status in VALID_TRANSITIONS.get(self.status, set())

    def __repr__(self) -> str:
        return (
            f"<LedgerTransaction {self.transaction_id} "
            f"{self.transaction_type.value} ({self.status.value})>"
        )
