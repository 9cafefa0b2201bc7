"""
Raw material purchase models.

A purchase is one container from one supplier. It may carry several
original types (lines), each priced per kg in the purchase currency,
plus freight, clearing and commission charged by other providers in
their own currencies. All totals are stored in base currency once the
landed cost has been allocated.
"""

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import (
    String, Date, DateTime, Integer, Numeric, ForeignKey,
    Enum as SAEnum,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from recycle_erp.models.base import Base
from recycle_erp.models.enums import CostType


class Purchase(Base):
    __tablename__ = "purchases"

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    purchase_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    supplier_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    container_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    weight_purchased: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_material_cost_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_material_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_additional_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_landed_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    landed_cost_per_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lines: Mapped[list["PurchaseLine"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
        order_by="PurchaseLine.position",
    )
    additional_costs: Mapped[list["PurchaseAdditionalCost"]] = relationship(
        back_populates="purchase",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Purchase {self.batch_number} landed={self.total_landed_cost}>"


class PurchaseLine(Base):
    """One original type inside a purchase."""

    __tablename__ = "purchase_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    original_type: Mapped[str] = mapped_column(String(100), nullable=False)
    product_name: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )
    # Raw material SKU the line is received into, if tracked in stock
    item_id: Mapped[int | None] = mapped_column(
        ForeignKey("items.id"), nullable=True
    )
    qty: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    weight_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    cost_per_kg_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    material_cost_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    material_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    allocated_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    landed_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    landed_cost_per_kg: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )

    purchase: Mapped["Purchase"] = relationship(back_populates="lines")


class PurchaseAdditionalCost(Base):
    """Freight, clearing or commission billed by a provider."""

    __tablename__ = "purchase_additional_costs"

    id: Mapped[int] = mapped_column(primary_key=True)
    purchase_id: Mapped[int] = mapped_column(
        ForeignKey("purchases.id"), nullable=False, index=True
    )
    cost_type: Mapped[CostType] = mapped_column(
        SAEnum(CostType, name="cost_type_enum"),
        nullable=False,
    )
    provider_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    amount_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    amount_base: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    # Position of the line this cost belongs to; None spreads it by weight
    line_position: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    purchase: Mapped["Purchase"] = relationship(
        back_populates="additional_costs"
    )


class BundlePurchase(Base):
    """
    Graded goods bought ready to sell (BUN).

    Lines are priced per unit rather than per kg and received straight
    into stock; freight and other charges are capitalized into them.
    """

    __tablename__ = "bundle_purchases"

    id: Mapped[int] = mapped_column(primary_key=True)
    batch_number: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    purchase_date: Mapped[date] = mapped_column(
        Date, nullable=False, default=date.today
    )
    supplier_account_id: Mapped[int] = mapped_column(
        ForeignKey("accounts.id"), nullable=False, index=True
    )
    container_number: Mapped[str | None] = mapped_column(
        String(50), nullable=True
    )
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    exchange_rate: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )
    total_material_cost_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_material_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_additional_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    total_landed_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    transaction_id: Mapped[str | None] = mapped_column(
        String(64), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )

    lines: Mapped[list["BundlePurchaseLine"]] = relationship(
        back_populates="bundle",
        cascade="all, delete-orphan",
        order_by="BundlePurchaseLine.position",
    )

    def __repr__(self) -> str:
        return f"<BundlePurchase {self.batch_number} landed={self.total_landed_cost}>"


class BundlePurchaseLine(Base):
    __tablename__ = "bundle_purchase_lines"

    id: Mapped[int] = mapped_column(primary_key=True)
    bundle_id: Mapped[int] = mapped_column(
        ForeignKey("bundle_purchases.id"), nullable=False, index=True
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    item_id: Mapped[int] = mapped_column(
        ForeignKey("items.id"), nullable=False
    )
    qty: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    rate_fcy: Mapped[Decimal] = mapped_column(Numeric(19, 4), nullable=False)
    material_cost_fcy: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    material_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    allocated_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    landed_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False
    )
    # Landed cost per unit the line was received at
    unit_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False
    )

    bundle: Mapped["BundlePurchase"] = relationship(back_populates="lines")
