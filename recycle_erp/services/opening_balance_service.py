"""
Opening balances (OB).

Every opening balance is posted against Owner's Capital. Transaction
ids are derived from the account or item code, so each account and
each item can be opened once; a second attempt is rejected as a
duplicate rather than silently returning the first posting.
"""

import logging
from decimal import Decimal

from sqlalchemy.orm import Session

from recycle_erp.exceptions import DuplicateTransactionError, InvalidLegError
from recycle_erp.models.enums import SourceDocument, TransactionType
from recycle_erp.models.item import Item
from recycle_erp.schemas.inventory import OpeningStockCreate
from recycle_erp.schemas.ledger import OpeningBalanceCreate
from recycle_erp.services import chart_of_accounts as coa
from recycle_erp.services import costing
from recycle_erp.services.currency import money
from recycle_erp.services.ledger_service import (
    LedgerService,
    credit_leg,
    debit_leg,
    posting_request,
)
from recycle_erp.services.locking import flush, lock_items

logger = logging.getLogger(__name__)


class OpeningBalanceService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def open_account(self, request: OpeningBalanceCreate) -> str:
        """
        Post an account's opening balance. Returns the transaction id.

        A positive amount increases the account on its normal side.
        """
        account = self.ledger.get_account(request.account_id)
        capital = self.ledger.get_account_by_code(coa.OWNERS_CAPITAL)
        transaction_id = f"OB-{account.code}"
        if account.id == capital.id:
            raise InvalidLegError(
                transaction_id,
                "Owner's Capital is the counter account for opening balances",
                account.id,
            )

        amount = money(request.amount)
        if not account.account_type.is_debit_normal:
            amount = -amount
        narration = f"Opening balance {account.code} {account.name}"
        posting = posting_request(
            transaction_id,
            TransactionType.OPENING_BALANCE,
            [
                debit_leg(account.id, amount, narration),
                credit_leg(capital.id, amount, narration),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.entry_date,
        )
        self.ledger.commit(self.ledger.prepare(posting))
        return transaction_id

    def open_stock(self, item_id: int, request: OpeningStockCreate) -> Item:
        """
        Receive an item's opening stock and post its value.

        Dr the item's inventory account / Cr Owner's Capital, sides
        swapped when a waste line opens at a negative value.
        """
        item = lock_items(self.db, [item_id])[item_id]
        transaction_id = f"OB-STK-{item.code}"
        if self.ledger.find_transaction(transaction_id) is not None:
            raise DuplicateTransactionError(transaction_id)

        inventory = self.ledger.get_account_by_code(coa.inventory_code(item))
        capital = self.ledger.get_account_by_code(coa.OWNERS_CAPITAL)
        value = money(Decimal(request.qty) * Decimal(request.unit_cost))
        narration = f"Opening stock {item.code}: {request.qty} @ {request.unit_cost}"
        posting = posting_request(
            transaction_id,
            TransactionType.OPENING_BALANCE,
            [
                debit_leg(inventory.id, value, narration),
                credit_leg(capital.id, value, narration),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.entry_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        costing.receive_stock(item, request.qty, request.unit_cost)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.OPENING_STOCK)
        flush(self.db, f"item {item.code}")
        logger.info(
            "opening stock received",
            extra={"item_code": item.code, "qty": request.qty, "value": value},
        )
        return item
