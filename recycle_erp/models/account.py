"""
Ledger account model (chart of accounts).

Cash, bank, customer receivables, supplier payables, inventory,
revenue and expense lines are all accounts. The running balance is
kept in base currency and changed only by the ledger service.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    String, Boolean, DateTime, Integer, Numeric,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recycle_erp.models.base import Base
from recycle_erp.models.enums import AccountType


class Account(Base):
    """
    A single account in the chart of accounts.

    Once created an account is never deleted, only deactivated
    via is_active=False. The balance is signed by the account's
    normal side: assets and expenses grow on debit, liabilities,
    equity and revenue grow on credit.
    """

    __tablename__ = "accounts"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(20), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    account_type: Mapped[AccountType] = mapped_column(
        SAEnum(AccountType, name="account_type_enum"),
        nullable=False,
    )
    balance: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    # Bumped on every UPDATE; a writer holding a stale row fails
    # instead of overwriting another posting's balance change.
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    entries: Mapped[list["LedgerEntry"]] = relationship(
        back_populates="account"
    )

    def signed_amount(self, debit: Decimal, credit: Decimal) -> Decimal:
        """Balance change caused by a leg posted to this account."""
        if self.account_type.is_debit_normal:
            return debit - credit
        return credit - debit

    def __repr__(self) -> str:
        return f"<Account {self.code} ({self.account_type.value})>"
