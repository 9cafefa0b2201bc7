"""
Production: bale opening (OO) and graded output (PROD).

Opening bales moves an item's value out of its inventory account into
Work in Progress at average cost. Booking output moves value from WIP
into the produced item's inventory account at the production unit
cost; whatever WIP cannot cover (or is left over) is a production gain
or loss.
"""

import logging
import uuid
from decimal import Decimal

from sqlalchemy.orm import Session

from recycle_erp.exceptions import InvalidQuantityError
from recycle_erp.models.enums import SourceDocument, TransactionType
from recycle_erp.models.production import ProductionEntry
from recycle_erp.schemas.production import BaleOpeningCreate, ProductionOutputCreate
from recycle_erp.services import chart_of_accounts as coa
from recycle_erp.services import costing
from recycle_erp.services.currency import ZERO, money, quantity
from recycle_erp.services.ledger_service import (
    LedgerService,
    credit_leg,
    debit_leg,
    posting_request,
)
from recycle_erp.services.locking import flush, lock_accounts, lock_items

logger = logging.getLogger(__name__)


def _reference(reference: str | None) -> str:
    return reference or uuid.uuid4().hex[:10].upper()


class ProductionService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def open_bales(self, request: BaleOpeningCreate) -> dict:
        """Issue raw stock to the lines: Dr WIP / Cr the item's inventory account."""
        item = lock_items(self.db, [request.item_id])[request.item_id]
        costing.ensure_available(item, request.qty)

        value = money(request.qty * Decimal(item.avg_cost))
        wip = self.ledger.get_account_by_code(coa.WORK_IN_PROGRESS)
        inventory = self.ledger.get_account_by_code(coa.inventory_code(item))
        transaction_id = f"OO-{_reference(request.reference)}"
        narration = f"Bale opening {item.code}: {request.qty}"
        posting = posting_request(
            transaction_id,
            TransactionType.ORIGINAL_OPENING,
            [
                debit_leg(wip.id, value, narration),
                credit_leg(inventory.id, value, narration),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.entry_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        costing.issue_stock(item, request.qty)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.BALE_OPENING)
        flush(self.db, f"item {item.code}")
        logger.info(
            "bales opened",
            extra={"item_code": item.code, "qty": request.qty, "value": value},
        )
        return {
            "item_id": item.id,
            "qty": request.qty,
            "value": value,
            "transaction_id": transaction_id if draft else None,
        }

    def record_output(self, request: ProductionOutputCreate) -> ProductionEntry:
        """
        Receive graded output into stock and post it.

        Dr item's inventory account    qty * unit_cost (signed)
        Cr Work in Progress            value consumed
        Cr Production Gain             the rest (a debit when negative)
        """
        item = lock_items(self.db, [request.item_id])[request.item_id]
        wip = self.ledger.get_account_by_code(coa.WORK_IN_PROGRESS)
        wip = lock_accounts(self.db, [wip.id])[wip.id]
        inventory = self.ledger.get_account_by_code(coa.inventory_code(item))
        gain = self.ledger.get_account_by_code(coa.PRODUCTION_GAIN)

        serial_start = serial_end = None
        if item.packing_type.is_unitized:
            if request.qty != request.qty.to_integral_value():
                raise InvalidQuantityError(
                    request.qty, item.code,
                    f"{item.packing_type.value} output must be a whole number of units",
                )
            serial_start = item.next_serial
            serial_end = serial_start + int(request.qty) - 1

        value = money(request.qty * request.unit_cost)
        requested = request.wip_consumed
        if requested is None:
            requested = max(value, ZERO)
        consumed = money(min(requested, max(Decimal(wip.balance), ZERO)))
        remainder = value - consumed

        transaction_id = f"PROD-{_reference(request.reference)}"
        narration = f"Production {item.code}: {request.qty} @ {request.unit_cost}"
        posting = posting_request(
            transaction_id,
            TransactionType.PRODUCTION,
            [
                debit_leg(inventory.id, value, narration),
                credit_leg(wip.id, consumed, f"{narration}: WIP consumed"),
                credit_leg(gain.id, remainder, f"{narration}: production gain"),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.entry_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        costing.receive_stock(item, request.qty, request.unit_cost)
        if serial_end is not None:
            item.next_serial = serial_end + 1
        weight = request.weight_produced
        if weight is None:
            weight = request.qty * Decimal(item.weight_per_unit)
        entry = ProductionEntry(
            production_date=request.entry_date,
            item_id=item.id,
            qty_produced=quantity(request.qty),
            weight_produced=quantity(weight),
            unit_cost=request.unit_cost,
            serial_start=serial_start,
            serial_end=serial_end,
            transaction_id=transaction_id if draft else None,
        )
        self.db.add(entry)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.PRODUCTION)
        flush(self.db, f"item {item.code}")
        logger.info(
            "production recorded",
            extra={
                "item_code": item.code,
                "qty": request.qty,
                "value": value,
                "wip_consumed": consumed,
            },
        )
        return entry
