"""Inventory item endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recycle_erp.api.errors import to_http_exception
from recycle_erp.models.base import get_db
from recycle_erp.schemas.inventory import (
    ItemCreate,
    ItemResponse,
    OpeningStockCreate,
    StockAlignRequest,
)
from recycle_erp.services.inventory_service import InventoryService
from recycle_erp.services.opening_balance_service import OpeningBalanceService

router = APIRouter(prefix="/items", tags=["Items"])


@router.post("", response_model=ItemResponse, status_code=201)
def create_item(request: ItemCreate, db: Session = Depends(get_db)):
    service = InventoryService(db)
    try:
        item = service.create_item(request)
        db.commit()
        return item
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("", response_model=list[ItemResponse])
def list_items(db: Session = Depends(get_db)):
    return InventoryService(db).list_items()


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(item_id: int, db: Session = Depends(get_db)):
    try:
        return InventoryService(db).get_item(item_id)
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/{item_id}/opening-stock", response_model=ItemResponse, status_code=201)
def post_opening_stock(
    item_id: int,
    request: OpeningStockCreate,
    db: Session = Depends(get_db),
):
    """Receive opening stock and post its value against Owner's Capital."""
    service = OpeningBalanceService(db)
    try:
        item = service.open_stock(item_id, request)
        db.commit()
        return item
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/{item_id}/align", response_model=ItemResponse)
def align_stock(
    item_id: int,
    request: StockAlignRequest,
    db: Session = Depends(get_db),
):
    """Set an item to a counted quantity and value."""
    service = InventoryService(db)
    try:
        item = service.align_stock(item_id, request)
        db.commit()
        return item
    except ValueError as e:
        raise to_http_exception(db, e)
