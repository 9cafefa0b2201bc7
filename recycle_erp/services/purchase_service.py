"""
Purchase service: raw material purchases (PI) and bundle purchases (BUN).

A purchase is costed, received and posted in one step:

1. Material cost per line, purchase currency -> base
2. Freight, clearing and commission allocated by weight (or to the
   line they are tagged to) by the landed cost allocator
3. Item-linked lines received into stock at their landed unit cost
4. Dr each line's inventory account for its landed cost (Raw
   Materials for lines not tracked in stock), Cr the supplier for
   material, Cr each provider for its cost

Every check runs before the first item or account is changed.
"""

import logging
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from recycle_erp.exceptions import (
    BundlePurchaseNotFoundError,
    DuplicateCodeError,
    InvalidQuantityError,
    PurchaseNotFoundError,
)
from recycle_erp.models.enums import PackingType, SourceDocument, TransactionType
from recycle_erp.models.purchase import (
    BundlePurchase,
    BundlePurchaseLine,
    Purchase,
    PurchaseAdditionalCost,
    PurchaseLine,
)
from recycle_erp.schemas.purchase import BundlePurchaseCreate, PurchaseCreate
from recycle_erp.services import chart_of_accounts as coa
from recycle_erp.services import costing
from recycle_erp.services.currency import money, to_base, unit_cost
from recycle_erp.services.landed_cost import (
    CostInput,
    LineInput,
    allocate_landed_cost,
)
from recycle_erp.services.ledger_service import (
    LedgerService,
    credit_leg,
    debit_leg,
    posting_request,
)
from recycle_erp.services.locking import flush, lock_items

logger = logging.getLogger(__name__)


class PurchaseService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    def create_purchase(self, request: PurchaseCreate) -> Purchase:
        existing = self.db.execute(
            select(Purchase).where(Purchase.batch_number == request.batch_number)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateCodeError("Purchase", request.batch_number)

        # --- Cost the purchase ---
        materials_fcy = [
            money(line.weight_kg * line.cost_per_kg) for line in request.lines
        ]
        materials_base = [
            to_base(fcy, request.exchange_rate, f"purchase {request.batch_number}")
            for fcy in materials_fcy
        ]
        landed = allocate_landed_cost(
            [
                LineInput(weight_kg=line.weight_kg, material_cost=base)
                for line, base in zip(request.lines, materials_base)
            ],
            [
                CostInput(
                    amount=cost.amount,
                    exchange_rate=cost.exchange_rate,
                    line_index=cost.line_index,
                )
                for cost in request.additional_costs
            ],
        )

        # --- Plan stock receipts ---
        items = lock_items(
            self.db,
            [line.item_id for line in request.lines if line.item_id is not None],
        )

        receipts = []
        for line, allocation in zip(request.lines, landed.lines):
            if line.item_id is None:
                continue
            item = items[line.item_id]
            # Kg items are stocked by weight, unitized ones by count
            received = (
                line.weight_kg if item.packing_type is PackingType.KG else line.qty
            )
            if received <= 0:
                raise InvalidQuantityError(
                    received, item.code, "purchase line received no stock"
                )
            receipts.append(
                (item, received, unit_cost(allocation.landed_cost / received))
            )

        # --- Plan the ledger side ---
        transaction_id = f"PI-{request.batch_number}"
        narration = f"Purchase {request.batch_number}"
        if request.container_number:
            narration = f"{narration} container {request.container_number}"
        # Lines not tracked in stock are still raw material
        landed_by_account: dict[str, Decimal] = {}
        for line, allocation in zip(request.lines, landed.lines):
            code = (
                coa.INVENTORY_RAW if line.item_id is None
                else coa.inventory_code(items[line.item_id])
            )
            landed_by_account[code] = (
                landed_by_account.get(code, Decimal("0")) + allocation.landed_cost
            )
        legs = [
            debit_leg(self.ledger.get_account_by_code(code).id, value, narration)
            for code, value in sorted(landed_by_account.items())
        ]
        legs.append(credit_leg(
            request.supplier_account_id,
            landed.material_cost,
            f"{narration}: material",
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            fcy_amount=money(sum(materials_fcy, Decimal("0"))),
        ))
        for cost, base in zip(request.additional_costs, landed.additional_costs):
            legs.append(credit_leg(
                cost.provider_account_id,
                base,
                f"{narration}: {cost.cost_type.value}",
                currency=cost.currency,
                exchange_rate=cost.exchange_rate,
                fcy_amount=money(cost.amount),
            ))
        posting = posting_request(
            transaction_id,
            TransactionType.PURCHASE_INVOICE,
            legs,
            narration=narration,
            actor=request.actor,
            entry_date=request.purchase_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        # --- Apply ---
        for item, received, cost in receipts:
            costing.receive_stock(item, received, cost)

        purchase = Purchase(
            batch_number=request.batch_number,
            purchase_date=request.purchase_date,
            supplier_account_id=request.supplier_account_id,
            container_number=request.container_number,
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            weight_purchased=landed.weight_purchased,
            total_material_cost_fcy=money(sum(materials_fcy, Decimal("0"))),
            total_material_cost=landed.material_cost,
            total_additional_cost=landed.total_additional_cost,
            total_landed_cost=landed.total_landed_cost,
            landed_cost_per_kg=landed.landed_cost_per_kg,
            transaction_id=transaction_id if draft else None,
        )
        for position, (line, fcy, allocation) in enumerate(
            zip(request.lines, materials_fcy, landed.lines)
        ):
            purchase.lines.append(PurchaseLine(
                position=position,
                original_type=line.original_type,
                product_name=line.product_name,
                item_id=line.item_id,
                qty=line.qty,
                weight_kg=line.weight_kg,
                cost_per_kg_fcy=line.cost_per_kg,
                material_cost_fcy=fcy,
                material_cost=allocation.material_cost,
                allocated_cost=allocation.allocated_cost,
                landed_cost=allocation.landed_cost,
                landed_cost_per_kg=allocation.landed_cost_per_kg,
            ))
        for cost, base in zip(request.additional_costs, landed.additional_costs):
            purchase.additional_costs.append(PurchaseAdditionalCost(
                cost_type=cost.cost_type,
                provider_account_id=cost.provider_account_id,
                currency=cost.currency,
                exchange_rate=cost.exchange_rate,
                amount_fcy=cost.amount,
                amount_base=base,
                line_position=cost.line_index,
            ))
        self.db.add(purchase)

        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.PURCHASE)
        flush(self.db, f"purchase {request.batch_number}")
        logger.info(
            "purchase recorded",
            extra={
                "batch_number": request.batch_number,
                "landed_cost": landed.total_landed_cost,
                "landed_cost_per_kg": landed.landed_cost_per_kg,
            },
        )
        return purchase

    def get_purchase(self, purchase_id: int) -> Purchase:
        purchase = self.db.get(Purchase, purchase_id)
        if not purchase:
            raise PurchaseNotFoundError(purchase_id)
        return purchase

    def get_by_batch(self, batch_number: str) -> Purchase:
        purchase = self.db.execute(
            select(Purchase).where(Purchase.batch_number == batch_number)
        ).scalar_one_or_none()
        if not purchase:
            raise PurchaseNotFoundError(batch_number)
        return purchase

    def create_bundle_purchase(self, request: BundlePurchaseCreate) -> BundlePurchase:
        """
        Record graded goods bought ready to sell.

        Each line is received into its item at material cost plus its
        share of the additional costs (spread by weight, or tagged to a
        line). Dr each item's inventory account, Cr the supplier for
        material, Cr each provider for its cost.
        """
        existing = self.db.execute(
            select(BundlePurchase)
            .where(BundlePurchase.batch_number == request.batch_number)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateCodeError("Bundle purchase", request.batch_number)

        items = lock_items(self.db, [line.item_id for line in request.items])
        context = f"bundle purchase {request.batch_number}"
        materials_fcy = [money(line.qty * line.rate) for line in request.items]
        materials_base = [
            to_base(fcy, request.exchange_rate, context) for fcy in materials_fcy
        ]
        landed = allocate_landed_cost(
            [
                LineInput(
                    weight_kg=line.qty * Decimal(items[line.item_id].weight_per_unit),
                    material_cost=base,
                )
                for line, base in zip(request.items, materials_base)
            ],
            [
                CostInput(
                    amount=cost.amount,
                    exchange_rate=cost.exchange_rate,
                    line_index=cost.line_index,
                )
                for cost in request.additional_costs
            ],
        )
        receipts = [
            (items[line.item_id], line.qty,
             unit_cost(allocation.landed_cost / line.qty))
            for line, allocation in zip(request.items, landed.lines)
        ]

        transaction_id = f"BUN-{request.batch_number}"
        narration = f"Bundle purchase {request.batch_number}"
        if request.container_number:
            narration = f"{narration} container {request.container_number}"
        landed_by_account: dict[str, Decimal] = {}
        for (item, _, _), allocation in zip(receipts, landed.lines):
            code = coa.inventory_code(item)
            landed_by_account[code] = (
                landed_by_account.get(code, Decimal("0")) + allocation.landed_cost
            )
        legs = [
            debit_leg(self.ledger.get_account_by_code(code).id, value, narration)
            for code, value in sorted(landed_by_account.items())
        ]
        legs.append(credit_leg(
            request.supplier_account_id,
            landed.material_cost,
            f"{narration}: material",
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            fcy_amount=money(sum(materials_fcy, Decimal("0"))),
        ))
        for cost, base in zip(request.additional_costs, landed.additional_costs):
            legs.append(credit_leg(
                cost.provider_account_id,
                base,
                f"{narration}: {cost.cost_type.value} (capitalized)",
                currency=cost.currency,
                exchange_rate=cost.exchange_rate,
                fcy_amount=money(cost.amount),
            ))
        posting = posting_request(
            transaction_id,
            TransactionType.PURCHASE_INVOICE,
            legs,
            narration=narration,
            actor=request.actor,
            entry_date=request.purchase_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        # --- Apply ---
        for item, qty, cost in receipts:
            costing.receive_stock(item, qty, cost)

        bundle = BundlePurchase(
            batch_number=request.batch_number,
            purchase_date=request.purchase_date,
            supplier_account_id=request.supplier_account_id,
            container_number=request.container_number,
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            total_material_cost_fcy=money(sum(materials_fcy, Decimal("0"))),
            total_material_cost=landed.material_cost,
            total_additional_cost=landed.total_additional_cost,
            total_landed_cost=landed.total_landed_cost,
            transaction_id=transaction_id if draft else None,
        )
        for position, (line, fcy, allocation, receipt) in enumerate(
            zip(request.items, materials_fcy, landed.lines, receipts)
        ):
            bundle.lines.append(BundlePurchaseLine(
                position=position,
                item_id=line.item_id,
                qty=line.qty,
                rate_fcy=line.rate,
                material_cost_fcy=fcy,
                material_cost=allocation.material_cost,
                allocated_cost=allocation.allocated_cost,
                landed_cost=allocation.landed_cost,
                unit_cost=receipt[2],
            ))
        self.db.add(bundle)

        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.BUNDLE_PURCHASE)
        flush(self.db, f"bundle purchase {request.batch_number}")
        logger.info(
            "bundle purchase recorded",
            extra={
                "batch_number": request.batch_number,
                "landed_cost": landed.total_landed_cost,
                "lines": len(bundle.lines),
            },
        )
        return bundle

    def get_bundle_purchase(self, bundle_id: int) -> BundlePurchase:
        bundle = self.db.get(BundlePurchase, bundle_id)
        if not bundle:
            raise BundlePurchaseNotFoundError(bundle_id)
        return bundle
