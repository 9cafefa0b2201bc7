"""
Database models package.

All models must be imported here so that Alembic can discover
them through Base.metadata when generating migrations.
"""

from recycle_erp.models.base import Base
from recycle_erp.models.enums import (
    AccountType,
    TransactionType,
    TransactionStatus,
    PackingType,
    InvoiceStatus,
    CostType,
    ItemKind,
    SourceDocument,
)
from recycle_erp.models.audit_log import AuditLog
from recycle_erp.models.account import Account
from recycle_erp.models.ledger_entry import LedgerEntry
from recycle_erp.models.transaction import LedgerTransaction
from recycle_erp.models.archived_transaction import ArchivedTransaction
from recycle_erp.models.item import Item
from recycle_erp.models.purchase import (
    Purchase,
    PurchaseLine,
    PurchaseAdditionalCost,
    BundlePurchase,
    BundlePurchaseLine,
)
from recycle_erp.models.sales_invoice import (
    SalesInvoice,
    SalesInvoiceItem,
    InvoiceAdditionalCost,
)
from recycle_erp.models.production import ProductionEntry
from recycle_erp.models.direct_sale import DirectSale

__all__ = [
    "Base",
    "AccountType",
    "TransactionType",
    "TransactionStatus",
    "PackingType",
    "InvoiceStatus",
    "CostType",
    "ItemKind",
    "SourceDocument",
    "AuditLog",
    "Account",
    "LedgerEntry",
    "LedgerTransaction",
    "ArchivedTransaction",
    "Item",
    "Purchase",
    "PurchaseLine",
    "PurchaseAdditionalCost",
    "BundlePurchase",
    "BundlePurchaseLine",
    "SalesInvoice",
    "SalesInvoiceItem",
    "InvoiceAdditionalCost",
    "ProductionEntry",
    "DirectSale",
]
