"""Business logic services."""

from recycle_erp.services.ledger_service import LedgerService
from recycle_erp.services.inventory_service import InventoryService
from recycle_erp.services.opening_balance_service import OpeningBalanceService
from recycle_erp.services.purchase_service import PurchaseService
from recycle_erp.services.invoice_service import InvoiceService
from recycle_erp.services.production_service import ProductionService

__all__ = [
    "LedgerService",
    "InventoryService",
    "OpeningBalanceService",
    "PurchaseService",
    "InvoiceService",
    "ProductionService",
]
