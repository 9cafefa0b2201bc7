"""
Pydantic schemas for sales invoices.

Line rates and the invoice exchange rate are validated when the
invoice is posted, not when it is drafted: an Unposted invoice may
still carry a zero rate that is filled in during review.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field

from recycle_erp.config import get_settings
from recycle_erp.models.enums import CostType, InvoiceStatus


def _base_currency() -> str:
    return get_settings().BASE_CURRENCY


# --- Request Schemas ---

class InvoiceItemCreate(BaseModel):
    item_id: int
    qty: Decimal = Field(gt=0)
    rate: Decimal = Decimal("0")
    # Defaults to qty * item weight_per_unit
    total_kg: Decimal | None = Field(default=None, ge=0)


class InvoiceCostCreate(BaseModel):
    """A pass-through cost billed to the customer, owed to a provider."""
    cost_type: CostType
    provider_account_id: int | None = None
    amount: Decimal = Field(ge=0)
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")


class SalesInvoiceCreate(BaseModel):
    invoice_no: str = Field(min_length=1, max_length=50)
    invoice_date: date = Field(default_factory=date.today)
    customer_account_id: int
    payment_account_id: int | None = None
    container_number: str | None = Field(default=None, max_length=50)
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")
    discount: Decimal = Field(default=Decimal("0"), ge=0)
    surcharge: Decimal = Field(default=Decimal("0"), ge=0)
    items: list[InvoiceItemCreate] = Field(min_length=1)
    additional_costs: list[InvoiceCostCreate] = Field(default_factory=list)


class InvoiceItemReview(BaseModel):
    """Correction to one line made while the invoice is reviewed."""
    line_id: int
    qty: Decimal | None = Field(default=None, gt=0)
    rate: Decimal | None = None


class InvoiceReviewRequest(BaseModel):
    items: list[InvoiceItemReview] = Field(default_factory=list)
    exchange_rate: Decimal | None = None
    discount: Decimal | None = Field(default=None, ge=0)
    surcharge: Decimal | None = Field(default=None, ge=0)


class PostInvoiceRequest(InvoiceReviewRequest):
    """
    Post an Unposted invoice.

    Review corrections sent with the request are saved only if the
    posting succeeds. allow_negative_stock lets an oversell through;
    the override is logged and audited.
    """
    allow_negative_stock: bool = False
    actor: str = Field(default="system", max_length=100)


class ReverseInvoiceRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=200)
    actor: str = Field(min_length=1, max_length=100)


class DirectSaleCreate(BaseModel):
    """
    Raw material sold straight from a purchase batch.

    rate is per kg in the sale currency. item_id names the raw item the
    batch was received into; leave it out when the batch is not stocked.
    """
    invoice_no: str = Field(min_length=1, max_length=50)
    sale_date: date = Field(default_factory=date.today)
    customer_account_id: int
    batch_number: str = Field(min_length=1, max_length=50)
    item_id: int | None = None
    weight_kg: Decimal = Field(gt=0)
    rate: Decimal
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")
    actor: str = Field(default="system", max_length=100)


# --- Response Schemas ---

class InvoiceItemResponse(BaseModel):
    id: int
    item_id: int
    qty: Decimal
    rate: Decimal
    total: Decimal
    total_kg: Decimal
    unit_cost: Decimal | None

    model_config = {"from_attributes": True}


class InvoiceCostResponse(BaseModel):
    id: int
    cost_type: CostType
    provider_account_id: int | None
    amount: Decimal
    currency: str
    exchange_rate: Decimal

    model_config = {"from_attributes": True}


class SalesInvoiceResponse(BaseModel):
    id: int
    invoice_no: str
    invoice_date: date
    status: InvoiceStatus
    customer_account_id: int
    payment_account_id: int | None
    container_number: str | None
    currency: str
    exchange_rate: Decimal
    discount: Decimal
    surcharge: Decimal
    gross_total: Decimal
    net_total: Decimal
    transaction_id: str | None
    created_at: datetime
    posted_at: datetime | None
    reversed_at: datetime | None
    items: list[InvoiceItemResponse]
    additional_costs: list[InvoiceCostResponse]

    model_config = {"from_attributes": True}


class DirectSaleResponse(BaseModel):
    id: int
    invoice_no: str
    sale_date: date
    customer_account_id: int
    purchase_id: int
    item_id: int | None
    weight_kg: Decimal
    rate: Decimal
    currency: str
    exchange_rate: Decimal
    net_total: Decimal
    cost_per_kg: Decimal
    cost_of_sale: Decimal
    transaction_id: str | None
    created_at: datetime

    model_config = {"from_attributes": True}
