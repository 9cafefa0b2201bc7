"""
Comprehensive tests for the LedgerService.

Tests cover:
- Account creation, uniqueness, seeding and deactivation
- Balanced posting and running balances per account type
- Unbalanced posting rejection (nothing written)
- Idempotency (duplicate transaction_id)
- Inactive and missing account rejection
- Reversal round trip and archive snapshot
- Document-owned transactions refused by a plain reversal
- Stale writes from a second session
- Whole-ledger integrity scan
"""

from decimal import Decimal

import pytest
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from recycle_erp.exceptions import (
    AccountNotFoundError,
    AlreadyReversedError,
    ConcurrentModificationError,
    DocumentOwnedTransactionError,
    DuplicateCodeError,
    DuplicateTransactionError,
    InactiveAccountError,
    TransactionNotFoundError,
    UnbalancedTransactionError,
)
from recycle_erp.models.audit_log import AuditLog
from recycle_erp.models.account import Account
from recycle_erp.models.enums import (
    AccountType,
    SourceDocument,
    TransactionStatus,
    TransactionType,
)
from recycle_erp.models.ledger_entry import LedgerEntry
from recycle_erp.services.ledger_service import LedgerService, credit_leg, debit_leg
from recycle_erp.services.locking import flush
from recycle_erp.schemas.ledger import (
    AccountCreate,
    LegCreate,
    PostTransactionRequest,
    ReverseTransactionRequest,
)


# --- Helpers to reduce repetition ---

def make_account(service, code, name, account_type):
    """Create a ledger account and return it."""
    return service.create_account(AccountCreate(
        code=code,
        name=name,
        account_type=account_type,
    ))


def transfer(transaction_id, debit_account, credit_account, amount,
             transaction_type=TransactionType.JOURNAL_VOUCHER):
    amount = Decimal(amount)
    return PostTransactionRequest(
        transaction_id=transaction_id,
        transaction_type=transaction_type,
        narration="test posting",
        legs=[
            LegCreate(account_id=debit_account.id, debit=amount, narration="dr"),
            LegCreate(account_id=credit_account.id, credit=amount, narration="cr"),
        ],
    )


def entry_count(db_session):
    return db_session.execute(select(func.count(LedgerEntry.id))).scalar()


# --- Account Tests ---

class TestAccounts:

    def test_create_account_succeeds(self, db_session):
        service = LedgerService(db_session)
        account = make_account(service, "110", "Petty Cash", AccountType.ASSET)
        db_session.commit()

        assert account.id is not None
        assert account.balance == Decimal("0")
        assert account.is_active is True

    def test_duplicate_code_rejected(self, db_session):
        service = LedgerService(db_session)
        make_account(service, "110", "Petty Cash", AccountType.ASSET)
        db_session.commit()

        with pytest.raises(DuplicateCodeError, match="already exists"):
            make_account(service, "110", "Petty Cash Again", AccountType.ASSET)

    def test_seed_is_idempotent(self, db_session):
        service = LedgerService(db_session)
        first = service.seed_chart_of_accounts()
        db_session.commit()
        second = service.seed_chart_of_accounts()
        db_session.commit()

        assert len(first) == len(second) == 13
        codes = [a.code for a in second]
        assert "103" in codes and "501" in codes

    def test_deactivated_account_rejects_postings(self, db_session, accounts):
        service = LedgerService(db_session)
        service.deactivate_account(accounts["102"].id)
        db_session.commit()

        with pytest.raises(InactiveAccountError, match="not active"):
            service.post(transfer("JV-1", accounts["102"], accounts["301"], "10"))
        assert entry_count(db_session) == 0


# --- Leg validation ---

class TestLegs:

    def test_leg_with_both_sides_rejected(self):
        with pytest.raises(ValidationError):
            LegCreate(account_id=1, debit=Decimal("1"), credit=Decimal("1"), narration="x")

    def test_leg_with_no_side_rejected(self):
        with pytest.raises(ValidationError):
            LegCreate(account_id=1, narration="x")

    def test_signed_helpers_flip_negative_amounts(self):
        leg = debit_leg(1, Decimal("-12.5"), "waste")
        assert leg.credit == Decimal("12.5000") and leg.debit == 0
        leg = credit_leg(1, Decimal("-3"), "waste")
        assert leg.debit == Decimal("3.0000") and leg.credit == 0
        assert debit_leg(1, Decimal("0"), "nothing") is None


# --- Posting Tests ---

class TestPost:

    def test_balanced_transaction_updates_balances(self, db_session, accounts):
        service = LedgerService(db_session)
        entries = service.post(transfer(
            "RV-1", accounts["101"], accounts["103"], "250.50",
            TransactionType.RECEIPT_VOUCHER,
        ))
        db_session.commit()

        assert len(entries) == 2
        assert service.get_account_balance(accounts["101"].id) == Decimal("250.50")
        assert service.get_account_balance(accounts["103"].id) == Decimal("-250.50")
        header = service.get_transaction("RV-1")
        assert header.status == TransactionStatus.COMMITTED
        assert header.transaction_type == TransactionType.RECEIPT_VOUCHER

    def test_credit_normal_accounts_grow_on_credit(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "1000"))
        service.post(transfer("JV-2", accounts["103"], accounts["401"], "400"))
        db_session.commit()

        assert service.get_account_balance(accounts["301"].id) == Decimal("1000")
        assert service.get_account_balance(accounts["401"].id) == Decimal("400")

    def test_unbalanced_transaction_writes_nothing(self, db_session, accounts):
        service = LedgerService(db_session)

        with pytest.raises(UnbalancedTransactionError, match="does not balance") as exc:
            service.post(PostTransactionRequest(
                transaction_id="JV-BAD",
                transaction_type=TransactionType.JOURNAL_VOUCHER,
                legs=[
                    LegCreate(account_id=accounts["101"].id, debit=Decimal("100"), narration="dr"),
                    LegCreate(account_id=accounts["301"].id, credit=Decimal("99"), narration="cr"),
                ],
            ))
        db_session.rollback()

        assert exc.value.debits == Decimal("100")
        assert exc.value.credits == Decimal("99")
        assert entry_count(db_session) == 0
        assert service.get_account_balance(accounts["101"].id) == Decimal("0")
        assert service.get_account_balance(accounts["301"].id) == Decimal("0")
        assert service.find_transaction("JV-BAD") is None

    def test_missing_account_rejected(self, db_session):
        service = LedgerService(db_session)
        with pytest.raises(AccountNotFoundError, match="not found"):
            service.post(PostTransactionRequest(
                transaction_id="JV-1",
                transaction_type=TransactionType.JOURNAL_VOUCHER,
                legs=[
                    LegCreate(account_id=999, debit=Decimal("1"), narration="dr"),
                    LegCreate(account_id=998, credit=Decimal("1"), narration="cr"),
                ],
            ))

    def test_repost_same_id_is_idempotent(self, db_session, accounts):
        service = LedgerService(db_session)
        first = service.post(transfer("JV-1", accounts["101"], accounts["301"], "75"))
        db_session.commit()
        second = service.post(transfer("JV-1", accounts["101"], accounts["301"], "75"))
        db_session.commit()

        assert [e.id for e in first] == [e.id for e in second]
        assert entry_count(db_session) == 2
        assert service.get_account_balance(accounts["101"].id) == Decimal("75")

    def test_prepare_rejects_used_id(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "75"))
        db_session.commit()

        with pytest.raises(DuplicateTransactionError):
            service.prepare(transfer("JV-1", accounts["101"], accounts["301"], "75"))

    def test_foreign_currency_view_recorded(self, db_session, accounts):
        service = LedgerService(db_session)
        entries = service.post(PostTransactionRequest(
            transaction_id="RV-AED",
            transaction_type=TransactionType.RECEIPT_VOUCHER,
            legs=[
                LegCreate(
                    account_id=accounts["102"].id, debit=Decimal("100"),
                    currency="AED", exchange_rate=Decimal("3.6725"), narration="dr",
                ),
                LegCreate(account_id=accounts["103"].id, credit=Decimal("100"), narration="cr"),
            ],
        ))
        db_session.commit()

        assert entries[0].currency == "AED"
        assert entries[0].fcy_amount == Decimal("367.25")
        assert entries[1].fcy_amount == Decimal("100")

    def test_commit_writes_audit_row(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "5"))
        db_session.commit()

        rows = db_session.execute(
            select(AuditLog).where(AuditLog.reference == "JV-1")
        ).scalars().all()
        assert [r.event_type for r in rows] == ["TRANSACTION_COMMITTED"]


# --- Reversal Tests ---

class TestReverse:

    def test_round_trip_restores_balances(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-0", accounts["101"], accounts["301"], "1000"))
        db_session.commit()
        before = {
            code: service.get_account_balance(accounts[code].id)
            for code in ("101", "301", "501")
        }

        service.post(PostTransactionRequest(
            transaction_id="EV-1",
            transaction_type=TransactionType.EXPENSE_VOUCHER,
            legs=[
                LegCreate(account_id=accounts["501"].id, debit=Decimal("120.25"), narration="dr"),
                LegCreate(account_id=accounts["101"].id, credit=Decimal("120.25"), narration="cr"),
            ],
        ))
        db_session.commit()
        original = [e.to_snapshot() for e in service.get_entries_by_transaction("EV-1")]

        archive = service.reverse(
            "EV-1", ReverseTransactionRequest(reason="posted twice", actor="auditor")
        )
        db_session.commit()

        after = {
            code: service.get_account_balance(accounts[code].id)
            for code in ("101", "301", "501")
        }
        assert after == before
        assert archive.entries == original
        assert archive.reversal_transaction_id == "REV-EV-1"
        assert archive.archived_by == "auditor"
        assert archive.total_value == Decimal("120.25")

        header = service.get_transaction("EV-1")
        assert header.status == TransactionStatus.REVERSED
        assert header.reversed_by == "REV-EV-1"
        assert service.get_transaction("REV-EV-1").reversal_of == "EV-1"
        # original legs are kept
        assert len(service.get_entries_by_transaction("EV-1")) == 2

    def test_unknown_transaction(self, db_session, accounts):
        service = LedgerService(db_session)
        with pytest.raises(TransactionNotFoundError):
            service.reverse("NOPE", ReverseTransactionRequest(reason="x", actor="y"))

    def test_second_reversal_rejected(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "10"))
        service.reverse("JV-1", ReverseTransactionRequest(reason="x", actor="y"))
        db_session.commit()

        with pytest.raises(AlreadyReversedError) as exc:
            service.reverse("JV-1", ReverseTransactionRequest(reason="x", actor="y"))
        assert exc.value.reversed_by == "REV-JV-1"

    def test_reversal_into_deactivated_account(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["102"], accounts["301"], "10"))
        service.deactivate_account(accounts["102"].id)
        db_session.commit()

        service.reverse("JV-1", ReverseTransactionRequest(reason="closing bank", actor="y"))
        db_session.commit()
        assert service.get_account_balance(accounts["102"].id) == Decimal("0")

    def test_document_transaction_refused(self, db_session, accounts):
        service = LedgerService(db_session)
        draft = service.prepare(transfer(
            "PI-B-1", accounts["104"], accounts["201"], "500",
            transaction_type=TransactionType.PURCHASE_INVOICE,
        ))
        service.commit(draft, source_document=SourceDocument.PURCHASE)
        db_session.commit()
        count = entry_count(db_session)

        with pytest.raises(DocumentOwnedTransactionError) as exc:
            service.reverse("PI-B-1", ReverseTransactionRequest(reason="x", actor="y"))
        db_session.rollback()

        assert exc.value.http_status == 409
        assert "Purchase" in str(exc.value)
        assert service.get_transaction("PI-B-1").status == TransactionStatus.COMMITTED
        assert service.get_archive("PI-B-1") is None
        assert entry_count(db_session) == count
        assert service.get_account_balance(accounts["104"].id) == Decimal("500")

    def test_owning_document_can_reverse(self, db_session, accounts):
        service = LedgerService(db_session)
        draft = service.prepare(transfer(
            "SI-1", accounts["103"], accounts["401"], "80",
            transaction_type=TransactionType.SALES_INVOICE,
        ))
        service.commit(draft, source_document=SourceDocument.SALES_INVOICE)
        db_session.commit()

        service.reverse(
            "SI-1", ReverseTransactionRequest(reason="x", actor="y"),
            allow_document=True,
        )
        db_session.commit()

        assert service.get_account_balance(accounts["103"].id) == Decimal("0")
        reversal = service.get_transaction("REV-SI-1")
        assert reversal.source_document == SourceDocument.SALES_INVOICE
        # the compensating legs belong to the document as well
        with pytest.raises(DocumentOwnedTransactionError):
            service.reverse("REV-SI-1", ReverseTransactionRequest(reason="x", actor="y"))

    def test_journal_without_document_reverses_freely(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "10"))
        db_session.commit()

        assert service.get_transaction("JV-1").source_document is None
        service.reverse("JV-1", ReverseTransactionRequest(reason="x", actor="y"))
        db_session.commit()
        assert service.get_transaction("JV-1").status == TransactionStatus.REVERSED


# --- Concurrency ---

class TestConcurrency:

    def test_stale_write_raises_concurrent_modification(self, db_session, accounts):
        cash = accounts["101"]
        version = cash.version_id

        # a second writer changes the row after we read it
        other = Session(bind=db_session.get_bind())
        try:
            theirs = other.get(Account, cash.id)
            theirs.name = "Cash - Till"
            other.commit()
        finally:
            other.close()

        cash.name = "Cash - Safe"
        with pytest.raises(ConcurrentModificationError) as exc:
            flush(db_session, "account 101")
        db_session.rollback()

        assert exc.value.http_status == 409
        assert "account 101" in str(exc.value)
        refreshed = db_session.get(Account, cash.id)
        assert refreshed.name == "Cash - Till"
        assert refreshed.version_id == version + 1

    def test_stale_balance_update_is_not_lost(self, db_session, accounts):
        cash = accounts["101"]
        version = cash.version_id

        other = Session(bind=db_session.get_bind())
        try:
            LedgerService(other).post(
                transfer("JV-OTHER", other.get(Account, cash.id),
                         other.get(Account, accounts["301"].id), "40")
            )
            other.commit()
        finally:
            other.close()

        cash.balance = Decimal("999")
        with pytest.raises(ConcurrentModificationError):
            flush(db_session, "account 101")
        db_session.rollback()

        service = LedgerService(db_session)
        assert service.get_account_balance(cash.id) == Decimal("40")
        assert db_session.get(Account, cash.id).version_id == version + 1
        assert service.check_integrity()["is_balanced"] is True


# --- Integrity ---

class TestIntegrity:

    def test_clean_ledger_is_balanced(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "500"))
        service.post(transfer("JV-2", accounts["501"], accounts["101"], "20.125"))
        service.reverse("JV-2", ReverseTransactionRequest(reason="x", actor="y"))
        db_session.commit()

        report = service.check_integrity()
        assert report["is_balanced"] is True
        assert report["total_debits"] == report["total_credits"]
        assert report["unbalanced_transactions"] == []
        assert report["balance_mismatches"] == []
        for account in accounts.values():
            assert service.recompute_balance(account.id) == service.get_account_balance(account.id)

    def test_drifted_balance_reported(self, db_session, accounts):
        service = LedgerService(db_session)
        service.post(transfer("JV-1", accounts["101"], accounts["301"], "500"))
        accounts["101"].balance = Decimal("499")
        db_session.commit()

        report = service.check_integrity()
        assert report["is_balanced"] is False
        assert report["balance_mismatches"] == ["101"]
