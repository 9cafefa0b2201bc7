"""
Sales invoice workflow: Unposted -> Posted -> Reversed.

Posting an invoice issues stock, books revenue and COGS and freezes the
invoice. It runs in two phases:

    plan   - validate rates, recompute totals, check stock, build and
             validate the ledger legs (locks items and accounts)
    apply  - issue stock, write the legs, save review corrections,
             mark the invoice Posted

Nothing is changed until the plan phase has passed, so a rejected
posting leaves the invoice Unposted with stock and ledger untouched.
The caller commits the session once.

Direct sales of raw material from a purchase batch (DS) are recorded
here too; they post in one step and have no review stage.

Legs of a sale (base currency):

    Dr Receivable (or Cash/Bank)     net total
    Dr Sales Discount                discount
    Cr Sales Revenue                 sales portion
    Cr provider / Accounts Payable   each pass-through cost
    Dr Cost of Goods Sold            qty * average cost
    Cr inventory (per item account)  qty * average cost
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from recycle_erp.exceptions import (
    DirectSaleNotFoundError,
    DuplicateCodeError,
    ERPError,
    InvalidQuantityError,
    InvalidRateError,
    InvoiceNotFoundError,
    InvoiceStateError,
    ItemNotFoundError,
    PurchaseNotFoundError,
)
from recycle_erp.models.direct_sale import DirectSale
from recycle_erp.models.enums import (
    InvoiceStatus,
    PackingType,
    SourceDocument,
    TransactionType,
)
from recycle_erp.models.item import Item
from recycle_erp.models.purchase import Purchase
from recycle_erp.models.sales_invoice import (
    InvoiceAdditionalCost,
    SalesInvoice,
    SalesInvoiceItem,
)
from recycle_erp.schemas.invoice import (
    DirectSaleCreate,
    InvoiceReviewRequest,
    PostInvoiceRequest,
    ReverseInvoiceRequest,
    SalesInvoiceCreate,
)
from recycle_erp.schemas.ledger import ReverseTransactionRequest
from recycle_erp.services import chart_of_accounts as coa
from recycle_erp.services import costing
from recycle_erp.services.currency import (
    ZERO,
    convert,
    money,
    quantity,
    to_base,
    to_decimal,
)
from recycle_erp.services.ledger_service import (
    LedgerService,
    credit_leg,
    debit_leg,
    posting_request,
)
from recycle_erp.services.locking import flush, lock_items

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InvoiceTotals:
    gross_total: Decimal
    net_total: Decimal
    additional_costs: Decimal  # in invoice currency


def compute_invoice_totals(
    lines,
    discount=ZERO,
    surcharge=ZERO,
    costs=(),
    exchange_rate=Decimal("1"),
) -> InvoiceTotals:
    """
    gross = sum(qty * rate); net = gross - discount + surcharge + costs.

    lines are (qty, rate) pairs in invoice currency; costs are
    (amount, exchange_rate) pairs in their own currency and are
    converted into the invoice currency.
    """
    gross = money(sum((money(to_decimal(q) * to_decimal(r)) for q, r in lines), ZERO))
    extra = money(sum(
        (convert(amount, rate, exchange_rate, "invoice additional cost")
         for amount, rate in costs),
        ZERO,
    ))
    net = money(gross - to_decimal(discount) + to_decimal(surcharge) + extra)
    return InvoiceTotals(gross_total=gross, net_total=net, additional_costs=extra)


class InvoiceService:

    def __init__(self, db: Session):
        self.db = db
        self.ledger = LedgerService(db)

    # --- Drafting ---

    def create_invoice(self, request: SalesInvoiceCreate) -> SalesInvoice:
        """Create an Unposted invoice. Stock and ledger are not touched."""
        existing = self.db.execute(
            select(SalesInvoice).where(SalesInvoice.invoice_no == request.invoice_no)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateCodeError("Sales invoice", request.invoice_no)

        self.ledger.get_account(request.customer_account_id)
        if request.payment_account_id is not None:
            self.ledger.get_account(request.payment_account_id)

        invoice = SalesInvoice(
            invoice_no=request.invoice_no,
            invoice_date=request.invoice_date,
            status=InvoiceStatus.UNPOSTED,
            customer_account_id=request.customer_account_id,
            payment_account_id=request.payment_account_id,
            container_number=request.container_number,
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            discount=money(request.discount),
            surcharge=money(request.surcharge),
        )
        for line in request.items:
            item = self.db.get(Item, line.item_id)
            if not item:
                raise ItemNotFoundError(line.item_id)
            total_kg = line.total_kg
            if total_kg is None:
                total_kg = line.qty * Decimal(item.weight_per_unit)
            invoice.items.append(SalesInvoiceItem(
                item_id=item.id,
                qty=quantity(line.qty),
                rate=money(line.rate),
                total=money(line.qty * line.rate),
                total_kg=quantity(total_kg),
            ))
        for cost in request.additional_costs:
            invoice.additional_costs.append(InvoiceAdditionalCost(
                cost_type=cost.cost_type,
                provider_account_id=cost.provider_account_id,
                amount=money(cost.amount),
                currency=cost.currency,
                exchange_rate=cost.exchange_rate,
            ))

        totals = compute_invoice_totals(
            [(line.qty, line.rate) for line in request.items],
            request.discount,
            request.surcharge,
            [(c.amount, c.exchange_rate) for c in request.additional_costs],
            request.exchange_rate,
        )
        invoice.gross_total = totals.gross_total
        invoice.net_total = totals.net_total

        self.db.add(invoice)
        self.db.flush()
        return invoice

    def get_invoice(self, invoice_id: int) -> SalesInvoice:
        invoice = self.db.get(SalesInvoice, invoice_id)
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def list_unposted(self) -> list[SalesInvoice]:
        return list(self.db.execute(
            select(SalesInvoice)
            .where(SalesInvoice.status == InvoiceStatus.UNPOSTED)
            .order_by(SalesInvoice.invoice_date, SalesInvoice.id)
        ).scalars().all())

    def update_items(
        self, invoice_id: int, request: InvoiceReviewRequest
    ) -> SalesInvoice:
        """Save review corrections on an Unposted invoice."""
        invoice = self._lock_invoice(invoice_id)
        if invoice.status != InvoiceStatus.UNPOSTED:
            raise InvoiceStateError(invoice.invoice_no, invoice.status.value, "edit")

        review = self._review(invoice, request)
        totals = compute_invoice_totals(
            [(q, r) for _, q, r in review.lines],
            review.discount,
            review.surcharge,
            [(c.amount, c.exchange_rate) for c in invoice.additional_costs],
            review.exchange_rate,
        )
        self._save_review(invoice, review, totals)
        self.db.flush()
        return invoice

    # --- Posting ---

    def post_invoice(
        self, invoice_id: int, request: PostInvoiceRequest | None = None
    ) -> SalesInvoice:
        """
        Post an Unposted invoice.

        Raises InvoiceStateError if it is not Unposted, InvalidRateError
        for a line rate or exchange rate <= 0, InsufficientStockError
        when a line needs more than is on hand (unless
        allow_negative_stock), and any posting error from the ledger.
        """
        request = request or PostInvoiceRequest()
        invoice = self._lock_invoice(invoice_id)
        if invoice.status != InvoiceStatus.UNPOSTED:
            raise InvoiceStateError(invoice.invoice_no, invoice.status.value, "post")

        # --- Plan ---
        review = self._review(invoice, request)
        for line, qty, rate in review.lines:
            if rate <= 0:
                raise InvalidRateError(
                    rate, f"invoice {invoice.invoice_no} line {line.id}"
                )
        rate = review.exchange_rate
        totals = compute_invoice_totals(
            [(q, r) for _, q, r in review.lines],
            review.discount,
            review.surcharge,
            [(c.amount, c.exchange_rate) for c in invoice.additional_costs],
            rate,
        )

        items = lock_items(self.db, [line.item_id for line in invoice.items])
        needed: dict[int, Decimal] = {}
        for line, qty, _ in review.lines:
            needed[line.item_id] = needed.get(line.item_id, ZERO) + qty
        oversold = []
        for item_id, qty in needed.items():
            item = items[item_id]
            costing.ensure_available(item, qty, request.allow_negative_stock)
            if qty > Decimal(item.stock_qty):
                oversold.append((item, qty, Decimal(item.stock_qty)))

        # Raw and finished stock are relieved from their own accounts
        cogs_by_account: dict[str, Decimal] = {}
        for line, qty, _ in review.lines:
            item = items[line.item_id]
            code = coa.inventory_code(item)
            cogs_by_account[code] = (
                cogs_by_account.get(code, ZERO) + qty * Decimal(item.avg_cost)
            )
        cogs_by_account = {code: money(v) for code, v in cogs_by_account.items()}
        cogs = sum(cogs_by_account.values(), ZERO)

        transaction_id = f"SI-{invoice.invoice_no}"
        posting = posting_request(
            transaction_id,
            TransactionType.SALES_INVOICE,
            self._sale_legs(invoice, totals, review, cogs_by_account),
            narration=f"Sales invoice {invoice.invoice_no}",
            actor=request.actor,
            entry_date=invoice.invoice_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        # --- Apply ---
        for line, qty, _ in review.lines:
            line.unit_cost = Decimal(items[line.item_id].avg_cost)
            costing.issue_stock(
                items[line.item_id], qty, allow_negative=request.allow_negative_stock
            )
        self._save_review(invoice, review, totals)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.SALES_INVOICE)

        for item, qty, available in oversold:
            logger.warning(
                "negative stock override",
                extra={
                    "invoice_no": invoice.invoice_no,
                    "item_code": item.code,
                    "requested": qty,
                    "available": available,
                    "actor": request.actor,
                },
            )
            self.ledger.audit(
                "NEGATIVE_STOCK_OVERRIDE",
                transaction_id,
                request.actor,
                {"item_code": item.code, "requested": qty, "available": available},
            )

        invoice.status = InvoiceStatus.POSTED
        invoice.posted_at = datetime.utcnow()
        invoice.transaction_id = transaction_id if draft else None
        flush(self.db, f"invoice {invoice.invoice_no}")
        logger.info(
            "invoice posted",
            extra={
                "invoice_no": invoice.invoice_no,
                "transaction_id": invoice.transaction_id,
                "net_total": totals.net_total,
                "cogs": cogs,
            },
        )
        return invoice

    def reverse_invoice(
        self, invoice_id: int, request: ReverseInvoiceRequest
    ) -> SalesInvoice:
        """
        Undo a Posted invoice.

        Reverses its ledger transaction (archive plus compensating
        legs) and takes the issued stock back at the unit cost each
        line was sold at.
        """
        invoice = self._lock_invoice(invoice_id)
        if not invoice.can_transition_to(InvoiceStatus.REVERSED):
            raise InvoiceStateError(
                invoice.invoice_no, invoice.status.value, "reverse"
            )

        items = lock_items(self.db, [line.item_id for line in invoice.items])
        if invoice.transaction_id:
            self.ledger.reverse(
                invoice.transaction_id,
                ReverseTransactionRequest(reason=request.reason, actor=request.actor),
                allow_document=True,
            )
        for line in invoice.items:
            costing.receive_stock(
                items[line.item_id],
                Decimal(line.qty),
                Decimal(line.unit_cost if line.unit_cost is not None else 0),
            )

        invoice.status = InvoiceStatus.REVERSED
        invoice.reversed_at = datetime.utcnow()
        flush(self.db, f"invoice {invoice.invoice_no}")
        logger.info(
            "invoice reversed",
            extra={"invoice_no": invoice.invoice_no, "actor": request.actor},
        )
        return invoice

    # --- Direct sales ---

    def record_direct_sale(self, request: DirectSaleCreate) -> DirectSale:
        """
        Sell raw material straight from a purchase batch (DS).

            Dr customer                 weight * rate
            Cr Sales Revenue            weight * rate
            Dr COGS - Direct Sales      weight * batch landed cost per kg
            Cr Inventory                the same (Raw Materials when the
                                        batch is not stocked)

        With an item_id the kilos leave that item at the batch cost, so
        the item and its inventory account move by the same value.
        """
        existing = self.db.execute(
            select(DirectSale).where(DirectSale.invoice_no == request.invoice_no)
        ).scalar_one_or_none()
        if existing:
            raise DuplicateCodeError("Direct sale", request.invoice_no)
        context = f"direct sale {request.invoice_no}"
        if request.rate <= 0:
            raise InvalidRateError(request.rate, context)

        purchase = self.db.execute(
            select(Purchase).where(Purchase.batch_number == request.batch_number)
        ).scalar_one_or_none()
        if not purchase:
            raise PurchaseNotFoundError(request.batch_number)
        self.ledger.get_account(request.customer_account_id)

        net_total = money(request.weight_kg * request.rate)
        net_base = to_base(net_total, request.exchange_rate, context)
        cost_per_kg = Decimal(purchase.landed_cost_per_kg)
        cost_of_sale = money(request.weight_kg * cost_per_kg)

        item = None
        inventory_code = coa.INVENTORY_RAW
        if request.item_id is not None:
            item = lock_items(self.db, [request.item_id])[request.item_id]
            if item.packing_type is not PackingType.KG:
                raise InvalidQuantityError(
                    request.weight_kg, item.code,
                    "direct sales issue items stocked by weight only",
                )
            cost_of_sale = costing.issue_value(item, request.weight_kg, cost_of_sale)
            inventory_code = coa.inventory_code(item)

        narration = f"Direct sale {request.invoice_no}"
        revenue = self.ledger.get_account_by_code(coa.SALES_REVENUE)
        direct_cogs = self.ledger.get_account_by_code(coa.COST_OF_DIRECT_SALES)
        inventory = self.ledger.get_account_by_code(inventory_code)
        transaction_id = f"DS-{request.invoice_no}"
        posting = posting_request(
            transaction_id,
            TransactionType.SALES_INVOICE,
            [
                debit_leg(
                    request.customer_account_id, net_base, narration,
                    currency=request.currency,
                    exchange_rate=request.exchange_rate,
                    fcy_amount=net_total,
                ),
                credit_leg(revenue.id, net_base, f"{narration}: revenue"),
                debit_leg(
                    direct_cogs.id, cost_of_sale,
                    f"{narration}: cost ({request.weight_kg}kg)",
                ),
                credit_leg(inventory.id, cost_of_sale, f"{narration}: inventory"),
            ],
            narration=narration,
            actor=request.actor,
            entry_date=request.sale_date,
        )
        draft = self.ledger.prepare(posting) if posting else None

        # --- Apply ---
        if item is not None:
            costing.issue_at_cost(item, request.weight_kg, cost_of_sale)
        sale = DirectSale(
            invoice_no=request.invoice_no,
            sale_date=request.sale_date,
            customer_account_id=request.customer_account_id,
            purchase_id=purchase.id,
            item_id=request.item_id,
            weight_kg=quantity(request.weight_kg),
            rate=money(request.rate),
            currency=request.currency,
            exchange_rate=request.exchange_rate,
            net_total=net_total,
            cost_per_kg=cost_per_kg,
            cost_of_sale=cost_of_sale,
            transaction_id=transaction_id if draft else None,
        )
        self.db.add(sale)
        if draft:
            self.ledger.commit(draft, source_document=SourceDocument.DIRECT_SALE)
        flush(self.db, context)
        logger.info(
            "direct sale recorded",
            extra={
                "invoice_no": request.invoice_no,
                "batch_number": request.batch_number,
                "weight_kg": request.weight_kg,
                "net_total": net_total,
                "cost_of_sale": cost_of_sale,
            },
        )
        return sale

    def get_direct_sale(self, sale_id: int) -> DirectSale:
        sale = self.db.get(DirectSale, sale_id)
        if not sale:
            raise DirectSaleNotFoundError(sale_id)
        return sale

    # --- Internals ---

    def _lock_invoice(self, invoice_id: int) -> SalesInvoice:
        invoice = self.db.execute(
            select(SalesInvoice)
            .where(SalesInvoice.id == invoice_id)
            .with_for_update()
        ).scalar_one_or_none()
        if not invoice:
            raise InvoiceNotFoundError(invoice_id)
        return invoice

    def _review(self, invoice: SalesInvoice, request: InvoiceReviewRequest) -> "_Review":
        """Overlay review corrections on the invoice without saving them."""
        overrides = {o.line_id: o for o in request.items}
        known = {line.id for line in invoice.items}
        for line_id in overrides:
            if line_id not in known:
                raise ERPError(
                    f"Invoice {invoice.invoice_no} has no line {line_id}"
                )

        lines = []
        for line in invoice.items:
            o = overrides.get(line.id)
            qty = Decimal(line.qty) if o is None or o.qty is None else o.qty
            rate = Decimal(line.rate) if o is None or o.rate is None else o.rate
            lines.append((line, qty, rate))

        def pick(value, current):
            return Decimal(current) if value is None else value

        return _Review(
            lines=lines,
            exchange_rate=pick(request.exchange_rate, invoice.exchange_rate),
            discount=pick(request.discount, invoice.discount),
            surcharge=pick(request.surcharge, invoice.surcharge),
        )

    def _save_review(self, invoice, review: "_Review", totals: InvoiceTotals) -> None:
        for line, qty, rate in review.lines:
            line.qty = quantity(qty)
            line.rate = money(rate)
            line.total = money(qty * rate)
        invoice.exchange_rate = review.exchange_rate
        invoice.discount = money(review.discount)
        invoice.surcharge = money(review.surcharge)
        invoice.gross_total = totals.gross_total
        invoice.net_total = totals.net_total

    def _sale_legs(
        self, invoice, totals: InvoiceTotals, review: "_Review", cogs_by_account
    ):
        rate = review.exchange_rate
        context = f"invoice {invoice.invoice_no}"
        view = {"currency": invoice.currency, "exchange_rate": rate}
        narration = f"Sales invoice {invoice.invoice_no}"

        net_base = to_base(totals.net_total, rate, context)
        discount_base = to_base(review.discount, rate, context)
        costs_base = [
            to_base(c.amount, c.exchange_rate, f"{context} {c.cost_type.value}")
            for c in invoice.additional_costs
        ]
        # Revenue takes the residual so conversion rounding cannot
        # unbalance the sale.
        revenue_base = net_base + discount_base - sum(costs_base, ZERO)

        receivable_id = invoice.payment_account_id or invoice.customer_account_id
        discount_account = self.ledger.get_account_by_code(coa.SALES_DISCOUNT)
        revenue_account = self.ledger.get_account_by_code(coa.SALES_REVENUE)
        cogs_account = self.ledger.get_account_by_code(coa.COST_OF_GOODS_SOLD)

        legs = [
            debit_leg(receivable_id, net_base, narration,
                      fcy_amount=totals.net_total, **view),
            debit_leg(discount_account.id, discount_base, f"{narration}: discount",
                      fcy_amount=money(review.discount), **view),
            credit_leg(revenue_account.id, revenue_base, f"{narration}: sales", **view),
        ]
        for cost, base in zip(invoice.additional_costs, costs_base):
            provider_id = cost.provider_account_id
            if provider_id is None:
                provider_id = self.ledger.get_account_by_code(coa.ACCOUNTS_PAYABLE).id
            legs.append(credit_leg(
                provider_id,
                base,
                f"{narration}: {cost.cost_type.value}",
                currency=cost.currency,
                exchange_rate=cost.exchange_rate,
                fcy_amount=money(cost.amount),
            ))
        legs.append(debit_leg(
            cogs_account.id,
            sum(cogs_by_account.values(), ZERO),
            f"{narration}: cost of sales",
        ))
        for code, value in sorted(cogs_by_account.items()):
            inventory_account = self.ledger.get_account_by_code(code)
            legs.append(credit_leg(
                inventory_account.id, value, f"{narration}: cost of sales"
            ))
        return legs


@dataclass
class _Review:
    lines: list  # (SalesInvoiceItem, qty, rate)
    exchange_rate: Decimal
    discount: Decimal
    surcharge: Decimal
