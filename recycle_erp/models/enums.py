"""
Shared enumerations for database models.

Python enums mapped to database enums, so an invalid account type or
transaction type is rejected by the database as well as by validation.
"""

import enum


class AccountType(str, enum.Enum):
    """The five fundamental accounting categories."""
    ASSET = "ASSET"
    LIABILITY = "LIABILITY"
    EQUITY = "EQUITY"
    REVENUE = "REVENUE"
    EXPENSE = "EXPENSE"

    @property
    def is_debit_normal(self) -> bool:
        """Assets and expenses grow on the debit side."""
        return self in (AccountType.ASSET, AccountType.EXPENSE)


class TransactionType(str, enum.Enum):
    """Business event that produced a group of ledger legs."""
    SALES_INVOICE = "SI"
    PURCHASE_INVOICE = "PI"
    RECEIPT_VOUCHER = "RV"
    PAYMENT_VOUCHER = "PV"
    EXPENSE_VOUCHER = "EV"
    INTERNAL_TRANSFER = "TR"
    JOURNAL_VOUCHER = "JV"
    PURCHASE_BILL = "PB"
    PRODUCTION = "PROD"
    OPENING_BALANCE = "OB"
    ORIGINAL_OPENING = "OO"
    INVENTORY_ADJUSTMENT = "ADJ"
    WRITE_OFF = "WO"
    REVERSAL = "REV"


class TransactionStatus(str, enum.Enum):
    """
    Lifecycle of a posting.

    DRAFT, BALANCED and REJECTED only exist in memory while a posting is
    validated; COMMITTED and REVERSED are what the header row stores.
    """
    DRAFT = "DRAFT"
    BALANCED = "BALANCED"
    REJECTED = "REJECTED"
    COMMITTED = "COMMITTED"
    REVERSED = "REVERSED"


class PackingType(str, enum.Enum):
    BALE = "Bale"
    SACK = "Sack"
    KG = "Kg"
    BOX = "Box"
    BAG = "Bag"

    @property
    def is_unitized(self) -> bool:
        """Packings that get a serial number per unit."""
        return self is not PackingType.KG


class InvoiceStatus(str, enum.Enum):
    UNPOSTED = "Unposted"
    POSTED = "Posted"
    REVERSED = "Reversed"


class CostType(str, enum.Enum):
    """Pass-through or capitalized cost attached to a document."""
    FREIGHT = "Freight"
    CLEARING = "Clearing"
    COMMISSION = "Commission"
    CUSTOMS = "Customs"
    OTHER = "Other"


class ItemKind(str, enum.Enum):
    """Which inventory account carries the item's value."""
    RAW = "Raw"
    FINISHED = "Finished"


class SourceDocument(str, enum.Enum):
    """
    Document that owns a ledger transaction.

    Transactions posted for a document moved stock as well as
    balances, so they are only undone through that document.
    """
    SALES_INVOICE = "SalesInvoice"
    DIRECT_SALE = "DirectSale"
    PURCHASE = "Purchase"
    BUNDLE_PURCHASE = "BundlePurchase"
    BALE_OPENING = "BaleOpening"
    PRODUCTION = "Production"
    OPENING_STOCK = "OpeningStock"
    STOCK_ALIGNMENT = "StockAlignment"

    @property
    def reversal_path(self) -> str:
        if self is SourceDocument.SALES_INVOICE:
            return "reverse the sales invoice (POST /invoices/{id}/reverse)"
        return "correct the stock with an alignment (POST /items/{id}/align)"
