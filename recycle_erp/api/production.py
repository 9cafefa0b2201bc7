"""Production endpoints: bale opening and graded output."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recycle_erp.api.errors import to_http_exception
from recycle_erp.models.base import get_db
from recycle_erp.schemas.production import (
    BaleOpeningCreate,
    BaleOpeningResponse,
    ProductionEntryResponse,
    ProductionOutputCreate,
)
from recycle_erp.services.production_service import ProductionService

router = APIRouter(prefix="/production", tags=["Production"])


@router.post("/bale-openings", response_model=BaleOpeningResponse, status_code=201)
def open_bales(request: BaleOpeningCreate, db: Session = Depends(get_db)):
    service = ProductionService(db)
    try:
        result = service.open_bales(request)
        db.commit()
        return result
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/outputs", response_model=ProductionEntryResponse, status_code=201)
def record_output(request: ProductionOutputCreate, db: Session = Depends(get_db)):
    service = ProductionService(db)
    try:
        entry = service.record_output(request)
        db.commit()
        return entry
    except ValueError as e:
        raise to_http_exception(db, e)
