"""
Pydantic schemas for raw material purchases.

Exchange rates are not constrained here: a zero or negative rate
reaches the currency converter and comes back as InvalidRateError
naming the offending cost.
"""

from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from recycle_erp.config import get_settings
from recycle_erp.models.enums import CostType


def _base_currency() -> str:
    return get_settings().BASE_CURRENCY


# --- Request Schemas ---

class PurchaseLineCreate(BaseModel):
    original_type: str = Field(min_length=1, max_length=100)
    product_name: str | None = Field(default=None, max_length=100)
    item_id: int | None = None
    qty: Decimal = Field(default=Decimal("0"), ge=0)
    weight_kg: Decimal = Field(ge=0)
    cost_per_kg: Decimal = Field(ge=0)


class PurchaseCostCreate(BaseModel):
    cost_type: CostType
    provider_account_id: int
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")
    amount: Decimal = Field(ge=0)
    # Index into PurchaseCreate.lines; None spreads the cost by weight
    line_index: int | None = Field(default=None, ge=0)


class PurchaseCreate(BaseModel):
    batch_number: str = Field(min_length=1, max_length=50)
    purchase_date: date = Field(default_factory=date.today)
    supplier_account_id: int
    container_number: str | None = Field(default=None, max_length=50)
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")
    lines: list[PurchaseLineCreate] = Field(min_length=1)
    additional_costs: list[PurchaseCostCreate] = Field(default_factory=list)
    actor: str = Field(default="system", max_length=100)

    @model_validator(mode="after")
    def cost_tags_point_at_lines(self) -> "PurchaseCreate":
        for cost in self.additional_costs:
            if cost.line_index is not None and cost.line_index >= len(self.lines):
                raise ValueError(
                    f"line_index {cost.line_index} out of range "
                    f"for {len(self.lines)} lines"
                )
        return self


class BundleLineCreate(BaseModel):
    item_id: int
    qty: Decimal = Field(gt=0)
    # Price per unit in the purchase currency
    rate: Decimal = Field(ge=0)


class BundlePurchaseCreate(BaseModel):
    """
    Graded goods bought ready to sell.

    Untagged costs are spread over the lines by weight (qty times the
    item's weight per unit).
    """
    batch_number: str = Field(min_length=1, max_length=50)
    purchase_date: date = Field(default_factory=date.today)
    supplier_account_id: int
    container_number: str | None = Field(default=None, max_length=50)
    currency: str = Field(default_factory=_base_currency, min_length=3, max_length=3)
    exchange_rate: Decimal = Decimal("1")
    items: list[BundleLineCreate] = Field(min_length=1)
    additional_costs: list[PurchaseCostCreate] = Field(default_factory=list)
    actor: str = Field(default="system", max_length=100)

    @model_validator(mode="after")
    def cost_tags_point_at_lines(self) -> "BundlePurchaseCreate":
        for cost in self.additional_costs:
            if cost.line_index is not None and cost.line_index >= len(self.items):
                raise ValueError(
                    f"line_index {cost.line_index} out of range "
                    f"for {len(self.items)} lines"
                )
        return self


# --- Response Schemas ---

class PurchaseLineResponse(BaseModel):
    position: int
    original_type: str
    product_name: str | None
    item_id: int | None
    qty: Decimal
    weight_kg: Decimal
    cost_per_kg_fcy: Decimal
    material_cost_fcy: Decimal
    material_cost: Decimal
    allocated_cost: Decimal
    landed_cost: Decimal
    landed_cost_per_kg: Decimal

    model_config = {"from_attributes": True}


class PurchaseCostResponse(BaseModel):
    cost_type: CostType
    provider_account_id: int
    currency: str
    exchange_rate: Decimal
    amount_fcy: Decimal
    amount_base: Decimal
    line_position: int | None

    model_config = {"from_attributes": True}


class PurchaseResponse(BaseModel):
    id: int
    batch_number: str
    purchase_date: date
    supplier_account_id: int
    container_number: str | None
    currency: str
    exchange_rate: Decimal
    weight_purchased: Decimal
    total_material_cost_fcy: Decimal
    total_material_cost: Decimal
    total_additional_cost: Decimal
    total_landed_cost: Decimal
    landed_cost_per_kg: Decimal
    transaction_id: str | None
    created_at: datetime
    lines: list[PurchaseLineResponse]
    additional_costs: list[PurchaseCostResponse]

    model_config = {"from_attributes": True}


class BundleLineResponse(BaseModel):
    position: int
    item_id: int
    qty: Decimal
    rate_fcy: Decimal
    material_cost_fcy: Decimal
    material_cost: Decimal
    allocated_cost: Decimal
    landed_cost: Decimal
    unit_cost: Decimal

    model_config = {"from_attributes": True}


class BundlePurchaseResponse(BaseModel):
    id: int
    batch_number: str
    purchase_date: date
    supplier_account_id: int
    container_number: str | None
    currency: str
    exchange_rate: Decimal
    total_material_cost_fcy: Decimal
    total_material_cost: Decimal
    total_additional_cost: Decimal
    total_landed_cost: Decimal
    transaction_id: str | None
    created_at: datetime
    lines: list[BundleLineResponse]

    model_config = {"from_attributes": True}
