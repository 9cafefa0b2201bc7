"""
Ledger API endpoints.

These endpoints expose the ledger operations to HTTP clients.
The API layer is thin: it handles HTTP concerns (status codes,
response formatting, commit/rollback) and delegates all business
logic to the LedgerService.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recycle_erp.api.errors import to_http_exception
from recycle_erp.config import get_settings
from recycle_erp.models.base import get_db
from recycle_erp.services.ledger_service import LedgerService
from recycle_erp.services.opening_balance_service import OpeningBalanceService
from recycle_erp.schemas.ledger import (
    AccountBalanceResponse,
    AccountCreate,
    AccountResponse,
    ArchivedTransactionResponse,
    IntegrityReport,
    LedgerEntryResponse,
    OpeningBalanceCreate,
    PostTransactionRequest,
    PostTransactionResponse,
    ReverseTransactionRequest,
    TransactionResponse,
)

router = APIRouter(prefix="/ledger", tags=["Ledger"])


@router.post("/accounts", response_model=AccountResponse, status_code=201)
def create_account(
    request: AccountCreate,
    db: Session = Depends(get_db),
):
    """Add an account to the chart of accounts."""
    service = LedgerService(db)
    try:
        account = service.create_account(request)
        db.commit()
        return account
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/accounts/seed", response_model=list[AccountResponse])
def seed_chart_of_accounts(db: Session = Depends(get_db)):
    """Create the default chart of accounts. Safe to call again."""
    service = LedgerService(db)
    accounts = service.seed_chart_of_accounts()
    db.commit()
    return accounts


@router.post("/accounts/{account_id}/deactivate", response_model=AccountResponse)
def deactivate_account(account_id: int, db: Session = Depends(get_db)):
    service = LedgerService(db)
    try:
        account = service.deactivate_account(account_id)
        db.commit()
        return account
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get(
    "/accounts/{account_id}/balance",
    response_model=AccountBalanceResponse,
)
def get_account_balance(account_id: int, db: Session = Depends(get_db)):
    """
    Stored running balance alongside the balance derived from entries.

    The two always agree; a difference shows up in /ledger/integrity.
    """
    service = LedgerService(db)
    try:
        account = service.get_account(account_id)
        derived = service.recompute_balance(account_id)
    except ValueError as e:
        raise to_http_exception(db, e)

    return AccountBalanceResponse(
        account_id=account.id,
        account_code=account.code,
        account_type=account.account_type,
        balance=account.balance,
        derived_balance=derived,
        currency=get_settings().BASE_CURRENCY,
    )


@router.get(
    "/accounts/{account_id}/entries",
    response_model=list[LedgerEntryResponse],
)
def get_account_entries(account_id: int, db: Session = Depends(get_db)):
    """Get all ledger entries for an account, newest first."""
    service = LedgerService(db)
    try:
        service.get_account(account_id)
    except ValueError as e:
        raise to_http_exception(db, e)
    return service.get_entries_by_account(account_id)


@router.post(
    "/transactions",
    response_model=PostTransactionResponse,
    status_code=201,
)
def post_transaction(
    request: PostTransactionRequest,
    db: Session = Depends(get_db),
):
    """
    Post a balanced set of legs (journal, receipt, payment, expense,
    transfer).

    If the transaction_id has been used before, the existing entries
    are returned (idempotency).
    """
    service = LedgerService(db)
    try:
        entries = service.post(request)
        db.commit()
        header = service.get_transaction(request.transaction_id)
    except ValueError as e:
        raise to_http_exception(db, e)

    return PostTransactionResponse(
        transaction_id=request.transaction_id,
        status=header.status,
        entries=[LedgerEntryResponse.model_validate(e) for e in entries],
        total_amount=sum(e.debit for e in entries),
    )


@router.get("/transactions/{transaction_id}", response_model=TransactionResponse)
def get_transaction(transaction_id: str, db: Session = Depends(get_db)):
    service = LedgerService(db)
    try:
        return service.get_transaction(transaction_id)
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get(
    "/transactions/{transaction_id}/entries",
    response_model=list[LedgerEntryResponse],
)
def get_transaction_entries(transaction_id: str, db: Session = Depends(get_db)):
    service = LedgerService(db)
    try:
        service.get_transaction(transaction_id)
    except ValueError as e:
        raise to_http_exception(db, e)
    return service.get_entries_by_transaction(transaction_id)


@router.post(
    "/transactions/{transaction_id}/reverse",
    response_model=ArchivedTransactionResponse,
    status_code=201,
)
def reverse_transaction(
    transaction_id: str,
    request: ReverseTransactionRequest,
    db: Session = Depends(get_db),
):
    """
    Archive a transaction and post its equal-and-opposite legs.

    Transactions posted by a document (invoice, purchase, production,
    opening stock, alignment) answer 409; undo those through the
    document.
    """
    service = LedgerService(db)
    try:
        archive = service.reverse(transaction_id, request)
        db.commit()
        return archive
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("/integrity", response_model=IntegrityReport)
def check_integrity(db: Session = Depends(get_db)):
    """Scan the whole ledger for unbalanced transactions and drifted balances."""
    return LedgerService(db).check_integrity()


@router.post("/opening-balances", status_code=201)
def post_opening_balance(
    request: OpeningBalanceCreate,
    db: Session = Depends(get_db),
):
    service = OpeningBalanceService(db)
    try:
        transaction_id = service.open_account(request)
        db.commit()
    except ValueError as e:
        raise to_http_exception(db, e)
    return {"transaction_id": transaction_id}
