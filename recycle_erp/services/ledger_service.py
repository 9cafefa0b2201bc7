"""
Ledger service: the only writer of ledger entries and account balances.

The rules it enforces:
1. Every leg has exactly one nonzero side
2. Every transaction balances (debits = credits, base currency)
3. Accounts must exist and be active
4. Entries are append-only; mistakes are undone by a reversal

A posting walks DRAFT -> BALANCED -> COMMITTED, or DRAFT -> REJECTED.
prepare() does all the validation and touches nothing; commit()
writes the legs and moves the balances. Callers that also move stock
(invoices, purchases, production) prepare the ledger side first, so a
rejected posting leaves the session exactly as it found it. The
caller owns the database transaction and commits once.
"""

import json
import logging
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from recycle_erp.config import get_settings
from recycle_erp.exceptions import (
    AccountNotFoundError,
    AlreadyReversedError,
    DuplicateCodeError,
    DocumentOwnedTransactionError,
    DuplicateTransactionError,
    InactiveAccountError,
    PostingError,
    TransactionNotFoundError,
    UnbalancedTransactionError,
)
from recycle_erp.models.account import Account
from recycle_erp.models.archived_transaction import ArchivedTransaction
from recycle_erp.models.audit_log import AuditLog
from recycle_erp.models.enums import (
    SourceDocument,
    TransactionStatus,
    TransactionType,
)
from recycle_erp.models.ledger_entry import LedgerEntry
from recycle_erp.models.transaction import LedgerTransaction, VALID_TRANSITIONS
from recycle_erp.schemas.ledger import (
    AccountCreate,
    LegCreate,
    PostTransactionRequest,
    ReverseTransactionRequest,
)
from recycle_erp.services.chart_of_accounts import DEFAULT_ACCOUNTS
from recycle_erp.services.currency import ZERO, money, to_foreign, unit_cost
from recycle_erp.services.locking import flush, lock_accounts

logger = logging.getLogger(__name__)


def debit_leg(account_id: int, amount, narration: str, **view) -> LegCreate | None:
    """
    Leg that debits `amount` (base), or credits it when negative.

    Returns None for a zero amount. Negative values come from waste
    lines carried at a negative average cost.
    """
    amount = money(amount)
    if amount == 0:
        return None
    if amount > 0:
        return LegCreate(account_id=account_id, debit=amount, narration=narration, **view)
    return LegCreate(account_id=account_id, credit=-amount, narration=narration, **view)


def credit_leg(account_id: int, amount, narration: str, **view) -> LegCreate | None:
    """Mirror of debit_leg."""
    return debit_leg(account_id, -money(amount), narration, **view)


def posting_request(
    transaction_id: str,
    transaction_type: TransactionType,
    legs,
    narration: str = "",
    actor: str = "system",
    entry_date=None,
) -> PostTransactionRequest | None:
    """
    Build a request from legs produced by debit_leg/credit_leg.

    Zero legs are dropped; returns None when nothing is left to post.
    """
    legs = [leg for leg in legs if leg is not None]
    if not legs:
        return None
    fields = {}
    if entry_date is not None:
        fields["entry_date"] = entry_date
    return PostTransactionRequest(
        transaction_id=transaction_id,
        transaction_type=transaction_type,
        narration=narration[:255],
        actor=actor,
        legs=legs,
        **fields,
    )


@dataclass
class PostingDraft:
    """A validated, not yet written posting."""
    request: PostTransactionRequest
    accounts: dict[int, Account]
    total_debits: Decimal = ZERO
    total_credits: Decimal = ZERO
    status: TransactionStatus = TransactionStatus.DRAFT
    header: LedgerTransaction | None = None
    entries: list[LedgerEntry] = field(default_factory=list)

    @property
    def transaction_id(self) -> str:
        return self.request.transaction_id

    def advance(self, new_status: TransactionStatus) -> None:
        if new_status not in VALID_TRANSITIONS[self.status]:
            raise PostingError(
                f"Transaction {self.transaction_id} cannot move from "
                f"{self.status.value} to {new_status.value}"
            )
        self.status = new_status


class LedgerService:
    """
    All ledger operations pass through this service.

    The service takes a database session as a constructor
    argument. This means the caller controls the transaction
    boundary: they decide when to commit or rollback.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Chart of accounts ---

    def create_account(self, request: AccountCreate) -> Account:
        """
        Create a new ledger account.

        Raises DuplicateCodeError if the account code already exists.
        """
        existing = self.db.execute(
            select(Account).where(Account.code == request.code)
        ).scalar_one_or_none()

        if existing:
            raise DuplicateCodeError("Account", request.code)

        account = Account(
            code=request.code,
            name=request.name,
            account_type=request.account_type,
        )
        self.db.add(account)
        self.db.flush()
        return account

    def seed_chart_of_accounts(self) -> list[Account]:
        """Create any default account that is missing. Safe to rerun."""
        existing = set(self.db.execute(select(Account.code)).scalars().all())
        for code, name, account_type in DEFAULT_ACCOUNTS:
            if code not in existing:
                self.db.add(Account(code=code, name=name, account_type=account_type))
        self.db.flush()
        return list(self.db.execute(
            select(Account).order_by(Account.code)
        ).scalars().all())

    def get_account(self, account_id: int) -> Account:
        account = self.db.get(Account, account_id)
        if not account:
            raise AccountNotFoundError(account_id)
        return account

    def get_account_by_code(self, code: str) -> Account:
        account = self.db.execute(
            select(Account).where(Account.code == code)
        ).scalar_one_or_none()
        if not account:
            raise AccountNotFoundError(code)
        return account

    def deactivate_account(self, account_id: int) -> Account:
        """Accounts are never deleted; they stop accepting postings."""
        account = self.get_account(account_id)
        account.is_active = False
        flush(self.db, f"account {account.code}")
        return account

    # --- Posting ---

    def prepare(
        self,
        request: PostTransactionRequest,
        allow_inactive: bool = False,
    ) -> PostingDraft:
        """
        Validate a posting without writing anything.

        Locks the referenced accounts, checks they exist and are
        active, and checks the legs balance. Returns a BALANCED draft
        or raises; a rejected draft is logged at WARNING.
        """
        if self.find_transaction(request.transaction_id) is not None:
            raise DuplicateTransactionError(request.transaction_id)

        accounts = lock_accounts(
            self.db, [leg.account_id for leg in request.legs]
        )
        draft = PostingDraft(request=request, accounts=accounts)

        try:
            if not allow_inactive:
                for account in accounts.values():
                    if not account.is_active:
                        raise InactiveAccountError(account.code)

            draft.total_debits = money(sum((leg.debit for leg in request.legs), ZERO))
            draft.total_credits = money(sum((leg.credit for leg in request.legs), ZERO))
            if draft.total_debits != draft.total_credits:
                raise UnbalancedTransactionError(
                    request.transaction_id,
                    draft.total_debits,
                    draft.total_credits,
                )
        except PostingError as e:
            draft.advance(TransactionStatus.REJECTED)
            logger.warning(
                "posting rejected",
                extra={
                    "transaction_id": request.transaction_id,
                    "transaction_type": request.transaction_type.value,
                    "error_code": e.code,
                    "reason": str(e),
                },
            )
            raise

        draft.advance(TransactionStatus.BALANCED)
        return draft

    def commit(
        self,
        draft: PostingDraft,
        reversal_of: str | None = None,
        source_document: SourceDocument | None = None,
    ) -> list[LedgerEntry]:
        """
        Write a BALANCED draft: header, legs and balance updates.

        source_document marks the transaction as owned by a document;
        reverse() then refuses it unless the document asks.

        The session is flushed, not committed.
        """
        request = draft.request
        draft.advance(TransactionStatus.COMMITTED)
        base_currency = get_settings().BASE_CURRENCY

        header = LedgerTransaction(
            transaction_id=request.transaction_id,
            transaction_type=request.transaction_type,
            status=TransactionStatus.COMMITTED,
            entry_date=request.entry_date,
            narration=request.narration,
            created_by=request.actor,
            reversal_of=reversal_of,
            source_document=source_document,
        )
        self.db.add(header)

        entries = []
        for leg in request.legs:
            debit, credit = money(leg.debit), money(leg.credit)
            fcy_amount = leg.fcy_amount
            if fcy_amount is None:
                fcy_amount = (
                    leg.amount if leg.currency == base_currency
                    else to_foreign(leg.amount, leg.exchange_rate)
                )
            entry = LedgerEntry(
                transaction_id=request.transaction_id,
                transaction_type=request.transaction_type,
                account_id=leg.account_id,
                entry_date=request.entry_date,
                currency=leg.currency,
                exchange_rate=unit_cost(leg.exchange_rate),
                fcy_amount=money(fcy_amount),
                debit=debit,
                credit=credit,
                narration=leg.narration,
            )
            self.db.add(entry)
            entries.append(entry)

            account = draft.accounts[leg.account_id]
            account.balance = money(
                Decimal(account.balance) + account.signed_amount(debit, credit)
            )

        self.audit(
            "TRANSACTION_COMMITTED",
            request.transaction_id,
            request.actor,
            {
                "transaction_type": request.transaction_type.value,
                "legs": len(entries),
                "total": draft.total_debits,
                "reversal_of": reversal_of,
            },
        )
        flush(self.db, f"posting {request.transaction_id}")

        draft.header = header
        draft.entries = entries
        logger.info(
            "transaction committed",
            extra={
                "transaction_id": request.transaction_id,
                "transaction_type": request.transaction_type.value,
                "legs": len(entries),
                "total_debits": draft.total_debits,
                "total_credits": draft.total_credits,
            },
        )
        return entries

    def post(self, request: PostTransactionRequest) -> list[LedgerEntry]:
        """
        Post a balanced set of legs as a single transaction.

        If the transaction_id has been committed before, the existing
        legs are returned and nothing is written: a retry after an
        ambiguous failure cannot double-post. If any check fails,
        nothing is written.
        """
        if self.find_transaction(request.transaction_id) is not None:
            return self.get_entries_by_transaction(request.transaction_id)
        return self.commit(self.prepare(request))

    def reverse(
        self,
        transaction_id: str,
        request: ReverseTransactionRequest,
        allow_document: bool = False,
    ) -> ArchivedTransaction:
        """
        Undo a committed transaction.

        Archives a snapshot of the original legs, then posts the same
        legs with debit and credit swapped under REV-<id>. The original
        legs stay in the ledger untouched; the original header moves to
        REVERSED. Reversing into a since-deactivated account is allowed.

        A transaction a document posted is refused with
        DocumentOwnedTransactionError: undoing only its legs would leave
        the document and its stock behind. The owning service passes
        allow_document=True.
        """
        header = self.db.execute(
            select(LedgerTransaction)
            .where(LedgerTransaction.transaction_id == transaction_id)
            .with_for_update()
        ).scalar_one_or_none()
        entries = self.get_entries_by_transaction(transaction_id)
        if header is None or not entries:
            raise TransactionNotFoundError(transaction_id)

        document = header.source_document
        if document is not None and not allow_document:
            raise DocumentOwnedTransactionError(
                transaction_id, document.value, document.reversal_path
            )
        if header.reversed_by or not header.can_transition_to(
            TransactionStatus.REVERSED
        ):
            raise AlreadyReversedError(transaction_id, header.reversed_by)
        archived = self.db.execute(
            select(ArchivedTransaction).where(
                ArchivedTransaction.original_transaction_id == transaction_id
            )
        ).scalar_one_or_none()
        if archived:
            raise AlreadyReversedError(
                transaction_id, archived.reversal_transaction_id
            )

        reversal_id = f"REV-{transaction_id}"
        reversal = PostTransactionRequest(
            transaction_id=reversal_id,
            transaction_type=TransactionType.REVERSAL,
            entry_date=header.entry_date,
            narration=f"Reversal of {transaction_id}: {request.reason}",
            actor=request.actor,
            legs=[
                LegCreate(
                    account_id=e.account_id,
                    debit=money(e.credit),
                    credit=money(e.debit),
                    currency=e.currency,
                    exchange_rate=e.exchange_rate,
                    fcy_amount=e.fcy_amount,
                    narration=f"Reversal: {e.narration}"[:255],
                )
                for e in entries
            ],
        )
        draft = self.prepare(reversal, allow_inactive=True)

        archive = ArchivedTransaction(
            original_transaction_id=transaction_id,
            reversal_transaction_id=reversal_id,
            reason=request.reason,
            archived_by=request.actor,
            total_value=draft.total_debits,
            entries=[e.to_snapshot() for e in entries],
        )
        self.db.add(archive)

        self.commit(draft, reversal_of=transaction_id, source_document=document)
        header.status = TransactionStatus.REVERSED
        header.reversed_by = reversal_id

        self.audit(
            "TRANSACTION_REVERSED",
            transaction_id,
            request.actor,
            {"reversal_transaction_id": reversal_id, "reason": request.reason},
        )
        flush(self.db, f"reversal of {transaction_id}")
        logger.info(
            "transaction reversed",
            extra={
                "transaction_id": transaction_id,
                "reversal_transaction_id": reversal_id,
                "actor": request.actor,
            },
        )
        return archive

    # --- Queries ---

    def get_transaction(self, transaction_id: str) -> LedgerTransaction:
        header = self.find_transaction(transaction_id)
        if header is None:
            raise TransactionNotFoundError(transaction_id)
        return header

    def get_archive(self, transaction_id: str) -> ArchivedTransaction | None:
        return self.db.execute(
            select(ArchivedTransaction).where(
                ArchivedTransaction.original_transaction_id == transaction_id
            )
        ).scalar_one_or_none()

    def get_account_balance(self, account_id: int) -> Decimal:
        """Stored running balance, base currency."""
        return Decimal(self.get_account(account_id).balance)

    def recompute_balance(self, account_id: int) -> Decimal:
        """
        Derive an account's balance from its ledger entries.

        For ASSET and EXPENSE accounts: balance = debits - credits
        For LIABILITY, EQUITY, and REVENUE: balance = credits - debits
        """
        account = self.get_account(account_id)
        rows = self.db.execute(
            select(LedgerEntry.debit, LedgerEntry.credit)
            .where(LedgerEntry.account_id == account_id)
        ).all()
        total = sum(
            (account.signed_amount(Decimal(d), Decimal(c)) for d, c in rows),
            ZERO,
        )
        return money(total)

    def check_integrity(self) -> dict:
        """
        Scan the whole ledger.

        Reports global debit/credit totals, every transaction id whose
        legs do not balance, and every account whose stored balance
        differs from the one derived from its entries.
        """
        rows = self.db.execute(
            select(LedgerEntry.transaction_id, LedgerEntry.debit, LedgerEntry.credit)
        ).all()

        per_transaction: dict[str, Decimal] = {}
        total_debits = total_credits = ZERO
        for transaction_id, debit, credit in rows:
            debit, credit = Decimal(debit), Decimal(credit)
            total_debits += debit
            total_credits += credit
            per_transaction[transaction_id] = (
                per_transaction.get(transaction_id, ZERO) + debit - credit
            )

        unbalanced = sorted(
            tid for tid, diff in per_transaction.items() if money(diff) != 0
        )

        mismatches = []
        for account in self.db.execute(
            select(Account).order_by(Account.code)
        ).scalars():
            if money(account.balance) != self.recompute_balance(account.id):
                mismatches.append(account.code)

        difference = money(total_debits - total_credits)
        return {
            "is_balanced": difference == 0 and not unbalanced and not mismatches,
            "total_debits": money(total_debits),
            "total_credits": money(total_credits),
            "difference": difference,
            "unbalanced_transactions": unbalanced,
            "balance_mismatches": mismatches,
        }

    def get_entries_by_account(self, account_id: int) -> list[LedgerEntry]:
        """Return all entries for an account, newest first."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.account_id == account_id)
            .order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
        ).scalars().all()
        return list(entries)

    def get_entries_by_transaction(self, transaction_id: str) -> list[LedgerEntry]:
        """Return all entries for a transaction, in posting order."""
        entries = self.db.execute(
            select(LedgerEntry)
            .where(LedgerEntry.transaction_id == transaction_id)
            .order_by(LedgerEntry.id)
        ).scalars().all()
        return list(entries)

    def find_transaction(self, transaction_id: str) -> LedgerTransaction | None:
        return self.db.execute(
            select(LedgerTransaction).where(
                LedgerTransaction.transaction_id == transaction_id
            )
        ).scalar_one_or_none()

    def audit(
        self, event_type: str, reference: str | None, actor: str, details: dict
    ) -> None:
        """Append an audit row; flushed with the posting it belongs to."""
        self.db.add(AuditLog(
            event_type=event_type,
            reference=reference,
            actor=actor,
            details=json.dumps(details, default=str),
        ))
