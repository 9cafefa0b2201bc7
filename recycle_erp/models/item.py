"""
Inventory item model.

An item is a stock-keeping unit: a raw-material original type bought
by the container, or a graded finished product coming off the sorting
lines. avg_cost and stock_qty are owned by the costing service.
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import String, DateTime, Integer, Numeric, Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from recycle_erp.models.base import Base
from recycle_erp.models.enums import ItemKind, PackingType


class Item(Base):
    """
    A stock-keeping unit with a moving weighted average cost.

    avg_cost is base currency per unit and may be negative for waste
    lines whose disposal costs money. stock_qty is in units of the
    packing type (bales, sacks, kg...).
    """

    __tablename__ = "items"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(
        String(30), unique=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    category: Mapped[str] = mapped_column(String(100), nullable=False)
    section: Mapped[str | None] = mapped_column(String(100), nullable=True)
    packing_type: Mapped[PackingType] = mapped_column(
        SAEnum(PackingType, name="packing_type_enum"),
        nullable=False,
    )
    # Raw originals are carried in Inventory - Raw Materials, graded
    # goods in Inventory - Finished Goods
    kind: Mapped[ItemKind] = mapped_column(
        SAEnum(ItemKind, name="item_kind_enum"),
        nullable=False,
        default=ItemKind.FINISHED,
    )
    avg_cost: Mapped[Decimal] = mapped_column(
        Numeric(19, 6), nullable=False, default=Decimal("0")
    )
    stock_qty: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("0")
    )
    weight_per_unit: Mapped[Decimal] = mapped_column(
        Numeric(19, 4), nullable=False, default=Decimal("1")
    )
    sale_price: Mapped[Decimal | None] = mapped_column(
        Numeric(19, 4), nullable=True
    )
    # Next serial number handed out to a produced bale/sack/box/bag
    next_serial: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.utcnow
    )
    version_id: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def stock_value(self) -> Decimal:
        return self.stock_qty * self.avg_cost

    def __repr__(self) -> str:
        return f"<Item {self.code} qty={self.stock_qty} avg={self.avg_cost}>"
