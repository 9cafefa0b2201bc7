"""
Sales invoice endpoints.

POST /invoices/{id}/post answers only once the posting has been
committed; the invoice comes back Posted or the request fails and it
stays Unposted. After a timeout, GET the invoice before retrying.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from recycle_erp.api.errors import to_http_exception
from recycle_erp.models.base import get_db
from recycle_erp.schemas.invoice import (
    DirectSaleCreate,
    DirectSaleResponse,
    InvoiceReviewRequest,
    PostInvoiceRequest,
    ReverseInvoiceRequest,
    SalesInvoiceCreate,
    SalesInvoiceResponse,
)
from recycle_erp.services.invoice_service import InvoiceService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


@router.post("", response_model=SalesInvoiceResponse, status_code=201)
def create_invoice(request: SalesInvoiceCreate, db: Session = Depends(get_db)):
    service = InvoiceService(db)
    try:
        invoice = service.create_invoice(request)
        db.commit()
        return invoice
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("/unposted", response_model=list[SalesInvoiceResponse])
def list_unposted(db: Session = Depends(get_db)):
    return InvoiceService(db).list_unposted()


@router.get("/{invoice_id}", response_model=SalesInvoiceResponse)
def get_invoice(invoice_id: int, db: Session = Depends(get_db)):
    try:
        return InvoiceService(db).get_invoice(invoice_id)
    except ValueError as e:
        raise to_http_exception(db, e)


@router.patch("/{invoice_id}", response_model=SalesInvoiceResponse)
def review_invoice(
    invoice_id: int,
    request: InvoiceReviewRequest,
    db: Session = Depends(get_db),
):
    """Correct quantities, rates or the exchange rate before posting."""
    service = InvoiceService(db)
    try:
        invoice = service.update_items(invoice_id, request)
        db.commit()
        return invoice
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/{invoice_id}/post", response_model=SalesInvoiceResponse)
def post_invoice(
    invoice_id: int,
    request: PostInvoiceRequest | None = None,
    db: Session = Depends(get_db),
):
    service = InvoiceService(db)
    try:
        invoice = service.post_invoice(invoice_id, request)
        db.commit()
        return invoice
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/{invoice_id}/reverse", response_model=SalesInvoiceResponse)
def reverse_invoice(
    invoice_id: int,
    request: ReverseInvoiceRequest,
    db: Session = Depends(get_db),
):
    service = InvoiceService(db)
    try:
        invoice = service.reverse_invoice(invoice_id, request)
        db.commit()
        return invoice
    except ValueError as e:
        raise to_http_exception(db, e)


@router.post("/direct-sales", response_model=DirectSaleResponse, status_code=201)
def record_direct_sale(request: DirectSaleCreate, db: Session = Depends(get_db)):
    """Sell raw material straight from a purchase batch (DS)."""
    service = InvoiceService(db)
    try:
        sale = service.record_direct_sale(request)
        db.commit()
        return sale
    except ValueError as e:
        raise to_http_exception(db, e)


@router.get("/direct-sales/{sale_id}", response_model=DirectSaleResponse)
def get_direct_sale(sale_id: int, db: Session = Depends(get_db)):
    try:
        return InvoiceService(db).get_direct_sale(sale_id)
    except ValueError as e:
        raise to_http_exception(db, e)
