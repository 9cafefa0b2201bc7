"""
Typed errors for the posting and costing core.

Every error carries a machine-readable ``code``, the HTTP status the API
layer answers with, and the context a caller needs to decide between a
retry and surfacing the problem to the user (transaction id, account,
item, amounts). None of these crash the process; they are raised to the
caller, which rolls back its session.

All errors derive from ValueError so code written against plain
ValueError validation keeps working.

    ERPError
    +-- CurrencyError
    |   +-- InvalidRateError
    +-- InventoryError
    |   +-- InvalidQuantityError
    |   +-- InsufficientStockError
    +-- DivisionByZeroError
    +-- PostingError
    |   +-- UnbalancedTransactionError
    |   +-- InvalidLegError
    |   +-- InactiveAccountError
    |   +-- DuplicateTransactionError
    |   +-- AlreadyReversedError
    |   +-- DocumentOwnedTransactionError
    +-- NotFoundError
    |   +-- TransactionNotFoundError
    |   +-- AccountNotFoundError
    |   +-- ItemNotFoundError
    |   +-- InvoiceNotFoundError
    |   +-- PurchaseNotFoundError
    |   +-- BundlePurchaseNotFoundError
    |   +-- DirectSaleNotFoundError
    +-- DuplicateCodeError
    +-- InvoiceStateError
    +-- ConcurrentModificationError
"""

from decimal import Decimal


class ERPError(ValueError):
    """Base class for every business error raised by recycle_erp."""

    code: str = "ERP_ERROR"
    http_status: int = 400


# --- Currency ---

class CurrencyError(ERPError):
    code = "CURRENCY_ERROR"


class InvalidRateError(CurrencyError):
    """Exchange rate or selling rate is zero or negative."""

    code = "INVALID_RATE"

    def __init__(self, rate, context: str | None = None):
        self.rate = rate
        self.context = context
        msg = f"Invalid rate {rate}: rate must be greater than zero"
        if context:
            msg = f"{msg} ({context})"
        super().__init__(msg)


# --- Inventory ---

class InventoryError(ERPError):
    code = "INVENTORY_ERROR"


class InvalidQuantityError(InventoryError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity, item_code: str | None = None, reason: str | None = None):
        self.quantity = quantity
        self.item_code = item_code
        msg = f"Invalid quantity {quantity}"
        if item_code:
            msg = f"{msg} for item {item_code}"
        msg = f"{msg}: {reason or 'quantity must be greater than zero'}"
        super().__init__(msg)


class InsufficientStockError(InventoryError):
    """Issuing more than is on hand. Callers may override explicitly."""

    code = "INSUFFICIENT_STOCK"
    http_status = 409

    def __init__(self, item_code: str, requested: Decimal, available: Decimal):
        self.item_code = item_code
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_code}: "
            f"requested={requested}, available={available}"
        )


class DivisionByZeroError(ERPError):
    """Landed cost requested for a purchase with zero weight."""

    code = "DIVISION_BY_ZERO"

    def __init__(self, what: str):
        self.what = what
        super().__init__(f"Cannot divide by zero: {what}")


# --- Posting ---

class PostingError(ERPError):
    code = "POSTING_ERROR"


class UnbalancedTransactionError(PostingError):
    code = "UNBALANCED_TRANSACTION"

    def __init__(self, transaction_id: str, debits: Decimal, credits: Decimal):
        self.transaction_id = transaction_id
        self.debits = debits
        self.credits = credits
        super().__init__(
            f"Transaction {transaction_id} does not balance: "
            f"debits={debits}, credits={credits}"
        )


class InvalidLegError(PostingError):
    code = "INVALID_LEG"

    def __init__(self, transaction_id: str, reason: str, account_id: int | None = None):
        self.transaction_id = transaction_id
        self.account_id = account_id
        super().__init__(f"Transaction {transaction_id}: {reason}")


class InactiveAccountError(PostingError):
    code = "ACCOUNT_INACTIVE"

    def __init__(self, account_code: str):
        self.account_code = account_code
        super().__init__(f"Account {account_code} is not active")


class DuplicateTransactionError(PostingError):
    code = "DUPLICATE_TRANSACTION"
    http_status = 409

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} has already been posted")


class AlreadyReversedError(PostingError):
    code = "ALREADY_REVERSED"
    http_status = 409

    def __init__(self, transaction_id: str, reversed_by: str | None = None):
        self.transaction_id = transaction_id
        self.reversed_by = reversed_by
        msg = f"Transaction {transaction_id} is already reversed"
        if reversed_by:
            msg = f"{msg} by {reversed_by}"
        super().__init__(msg)


class DocumentOwnedTransactionError(PostingError):
    """A document posted this transaction; undo it through the document."""

    code = "DOCUMENT_OWNED_TRANSACTION"
    http_status = 409

    def __init__(self, transaction_id: str, document, reversal_path: str):
        self.transaction_id = transaction_id
        self.document = document
        super().__init__(
            f"Transaction {transaction_id} belongs to a {document} document "
            f"and cannot be reversed on its own; {reversal_path}"
        )


# --- Lookups ---

class NotFoundError(ERPError):
    code = "NOT_FOUND"
    http_status = 404


class TransactionNotFoundError(NotFoundError):
    code = "TRANSACTION_NOT_FOUND"

    def __init__(self, transaction_id: str):
        self.transaction_id = transaction_id
        super().__init__(f"Transaction {transaction_id} not found")


class AccountNotFoundError(NotFoundError):
    code = "ACCOUNT_NOT_FOUND"

    def __init__(self, account_ref):
        self.account_ref = account_ref
        super().__init__(f"Account {account_ref} not found")


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_ref):
        self.item_ref = item_ref
        super().__init__(f"Item {item_ref} not found")


class InvoiceNotFoundError(NotFoundError):
    code = "INVOICE_NOT_FOUND"

    def __init__(self, invoice_ref):
        self.invoice_ref = invoice_ref
        super().__init__(f"Sales invoice {invoice_ref} not found")


class PurchaseNotFoundError(NotFoundError):
    code = "PURCHASE_NOT_FOUND"

    def __init__(self, purchase_ref):
        self.purchase_ref = purchase_ref
        super().__init__(f"Purchase {purchase_ref} not found")


class BundlePurchaseNotFoundError(NotFoundError):
    code = "BUNDLE_PURCHASE_NOT_FOUND"

    def __init__(self, bundle_ref):
        self.bundle_ref = bundle_ref
        super().__init__(f"Bundle purchase {bundle_ref} not found")


class DirectSaleNotFoundError(NotFoundError):
    code = "DIRECT_SALE_NOT_FOUND"

    def __init__(self, sale_ref):
        self.sale_ref = sale_ref
        super().__init__(f"Direct sale {sale_ref} not found")


# --- State ---

class DuplicateCodeError(ERPError):
    code = "DUPLICATE_CODE"
    http_status = 409

    def __init__(self, entity: str, value: str):
        self.entity = entity
        self.value = value
        super().__init__(f"{entity} with code '{value}' already exists")


class InvoiceStateError(ERPError):
    code = "INVALID_INVOICE_STATE"
    http_status = 409

    def __init__(self, invoice_no: str, status: str, action: str):
        self.invoice_no = invoice_no
        self.status = status
        super().__init__(
            f"Cannot {action} invoice {invoice_no} in status {status}"
        )


class ConcurrentModificationError(ERPError):
    """Another writer changed the row between our read and our write."""

    code = "CONCURRENT_MODIFICATION"
    http_status = 409

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(
            f"Concurrent modification detected: {detail}. "
            f"Re-read the current state before retrying."
        )
