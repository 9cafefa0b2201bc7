"""Raw material and bundle purchase endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recycle_erp.api.errors import to_http_exception
from recycle_erp.models.base import get_db
from recycle_erp.schemas.purchase import (
    BundlePurchaseCreate,
    BundlePurchaseResponse,
    PurchaseCreate,
    PurchaseResponse,
)
from recycle_erp.services.purchase_service import PurchaseService

router = APIRouter(prefix="/purchases", tags=["Purchases"])


@router.post("", response_model=PurchaseResponse, status_code=201)
def create_purchase(request: PurchaseCreate, db: Session = Depends(get_db)):
    """
    Record a purchase.

    Allocates landed cost, receives item-linked lines into stock and
    posts the PI transaction in one database transaction.
    """
    service = PurchaseService(db)
    try:
        purchase = service.create_purchase(request)
        db.commit()
        return purchase
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("/{purchase_id}", response_model=PurchaseResponse)
def get_purchase(purchase_id: int, db: Session = Depends(get_db)):
    try:
        return PurchaseService(db).get_purchase(purchase_id)
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/bundles", response_model=BundlePurchaseResponse, status_code=201)
def create_bundle_purchase(
    request: BundlePurchaseCreate, db: Session = Depends(get_db)
):
    """Record graded goods bought ready to sell (BUN)."""
    service = PurchaseService(db)
    try:
        bundle = service.create_bundle_purchase(request)
        db.commit()
        return bundle
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("/bundles/{bundle_id}", response_model=BundlePurchaseResponse)
def get_bundle_purchase(bundle_id: int, db: Session = Depends(get_db)):
    try:
        return PurchaseService(db).get_bundle_purchase(bundle_id)
    except ValueError as e:
        raise to_http_exception(db, e)
