"""
Inventory service: items and stock alignment.

Stock and average cost change only through services.costing; this
service adds the ledger side of an alignment (ADJ), booked between
the item's inventory account (raw or finished) and Owner's Capital.
"""

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.orm import Session

from recycle_erp.exceptions import DuplicateCodeError, ItemNotFoundError
from recycle_erp.models.enums import SourceDocument, TransactionType
from recycle_erp.models.item import Item
from recycle_erp.schemas.inventory import ItemCreate, StockAlignRequest
from recycle_erp.services import chart_of_accounts as coa
from recycle_erp.services import costing
from recycle_erp.services.ledger_service import (
    LedgerService,
    credit_leg,
    debit_leg,
    posting_request,
)
from recycle_erp.services.locking import flush, lock_items

logger = logging.getLogger(__name__)


class InventoryService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def create_item(self, request: ItemCreate) -> Item:
        existing = self.db.execute(
            select(Item).where(Item.code == request.code)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateCodeError("Item", request.code)

        item = Item(
            code=request.code,
            name=request.name,
            category=request.category,
            section=request.section,
            packing_type=request.packing_type,
            kind=request.kind,
            weight_per_unit=request.weight_per_unit,
            sale_price=request.sale_price,
        )
        self.db.add(item)
        self.db.flush()
        return item

    def get_item(self, item_id: int) -> Item:
        item = self.db.get(Item, item_id)
        if not item:
            raise ItemNotFoundError(item_id)
        return item

    def list_items(self) -> list[Item]:
        return list(self.db.execute(
            select(Item).order_by(Item.code)
        ).scalars().all())

    def align_stock(self, item_id: int, request: StockAlignRequest) -> Item:
        """
        Bring an item to a counted quantity and value.

        The value difference is posted as an ADJ transaction; a gain
        debits inventory, a loss credits it.
        """
        item = lock_items(self.db, [item_id])[item_id]
        inventory = self.ledger.get_account_by_code(coa.inventory_code(item))
        capital = self.ledger.get_account_by_code(coa.OWNERS_CAPITAL)

        delta = costing.alignment_delta(item, request.target_qty, request.target_value)

        reference = request.reference or uuid.uuid4().hex[:8].upper()
        narration = f"Stock alignment {item.code}: {request.reason}"
        posting = posting_request(
            f"ADJ-{item.code}-{reference}",
            TransactionType.INVENTORY_ADJUSTMENT,
            [
                debit_leg(inventory.id, delta, narration),
                credit_leg(capital.id, delta, narration),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.entry_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        costing.align(item, request.target_qty, request.target_value)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.STOCK_ALIGNMENT)
        self.ledger.audit(
            "STOCK_ALIGNED",
            item.code,
            request.actor,
            {
                "target_qty": request.target_qty,
                "target_value": request.target_value,
                "value_change": delta,
                "reason": request.reason,
            },
        )
        flush(self.db, f"item {item.code}")
        logger.info(
            "stock aligned",
            extra={"item_code": item.code, "value_change": delta},
        )
        return item
