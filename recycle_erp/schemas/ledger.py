"""
Pydantic schemas for ledger operations.

These define the API contract and the shape services accept. They are
separate from the database models because the API shape and the
storage shape differ: a leg arrives as debit/credit in base currency
plus its document-currency view, and is validated when it is built,
not when it is posted.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from recycle_erp.config import get_settings
from recycle_erp.models.enums import (
    AccountType,
    SourceDocument,
    TransactionType,
    TransactionStatus,
)


# --- Request Schemas ---

class LegCreate(BaseModel):
    """A single debit or credit leg, amounts in base currency."""
    account_id: int
    debit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    credit: Decimal = Field(default=Decimal("0"), ge=0, decimal_places=4)
    currency: str = Field(
        default_factory=lambda: get_settings().BASE_CURRENCY,
        min_length=3,
        max_length=3,
    )
    exchange_rate: Decimal = Field(default=Decimal("1"), gt=0)
    fcy_amount: Decimal | None = None
    narration: str = Field(min_length=1, max_length=255)

    @model_validator(mode="after")
    def exactly_one_side(self) -> "LegCreate":
        if (self.debit == 0) == (self.credit == 0):
            raise ValueError(
                "exactly one of debit or credit must be nonzero"
            )
        return self

    @property
    def amount(self) -> Decimal:
        return self.debit or self.credit


class PostTransactionRequest(BaseModel):
    """
    A complete transaction: a group of legs that must balance.

    transaction_id is supplied by the caller so a retried post with the
    same id is idempotent.
    """
    transaction_id: str = Field(min_length=1, max_length=64)
    transaction_type: TransactionType
    entry_date: date = Field(default_factory=date.today)
    narration: str = Field(default="", max_length=255)
    actor: str = Field(default="system", max_length=100)
    legs: list[LegCreate] = Field(min_length=2)


class ReverseTransactionRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=255)
    actor: str = Field(min_length=1, max_length=100)


class AccountCreate(BaseModel):
    """Request to create a new ledger account."""
    code: str = Field(min_length=1, max_length=20)
    name: str = Field(min_length=1, max_length=100)
    account_type: AccountType


class OpeningBalanceCreate(BaseModel):
    """
    Opening balance for an account.

    A positive amount increases the account on its normal side; the
    counter leg goes to Owner's Capital.
    """
    account_id: int
    amount: Decimal = Field(decimal_places=4)
    entry_date: date = Field(default_factory=date.today)
    actor: str = Field(default="system", max_length=100)

    @field_validator("amount")
    @classmethod
    def amount_must_be_nonzero(cls, v: Decimal) -> Decimal:
        if v == 0:
            raise ValueError("opening balance must be nonzero")
        return v


# --- Response Schemas ---

class LedgerEntryResponse(BaseModel):
    id: int
    transaction_id: str
    transaction_type: TransactionType
    account_id: int
    entry_date: date
    currency: str
    exchange_rate: Decimal
    fcy_amount: Decimal
    debit: Decimal
    credit: Decimal
    narration: str
    created_at: datetime

    model_config = {"from_attributes": True}


class PostTransactionResponse(BaseModel):
    transaction_id: str
    status: TransactionStatus
    entries: list[LedgerEntryResponse]
    total_amount: Decimal


class TransactionResponse(BaseModel):
    transaction_id: str
    transaction_type: TransactionType
    status: TransactionStatus
    entry_date: date
    narration: str
    created_by: str
    reversal_of: str | None
    reversed_by: str | None
    source_document: SourceDocument | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class ArchivedTransactionResponse(BaseModel):
    original_transaction_id: str
    reversal_transaction_id: str
    reason: str
    archived_by: str
    archived_at: datetime
    total_value: Decimal
    entries: list[dict]

    model_config = {"from_attributes": True}


class AccountBalanceResponse(BaseModel):
    account_id: int
    account_code: str
    account_type: AccountType
    balance: Decimal
    derived_balance: Decimal
    currency: str


class AccountResponse(BaseModel):
    id: int
    code: str
    name: str
    account_type: AccountType
    balance: Decimal
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class IntegrityReport(BaseModel):
    is_balanced: bool
    total_debits: Decimal
    total_credits: Decimal
    difference: Decimal
    unbalanced_transactions: list[str]
    balance_mismatches: list[str]
