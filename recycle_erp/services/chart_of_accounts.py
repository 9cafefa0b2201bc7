"""Default chart of accounts and the codes the posting flows rely on."""

from recycle_erp.models.enums import AccountType, ItemKind

CASH = "101"
BANK = "102"
ACCOUNTS_RECEIVABLE = "103"
INVENTORY_RAW = "104"
INVENTORY_FINISHED = "105"
WORK_IN_PROGRESS = "106"
ACCOUNTS_PAYABLE = "201"
OWNERS_CAPITAL = "301"
SALES_REVENUE = "401"
PRODUCTION_GAIN = "402"
COST_OF_GOODS_SOLD = "501"
SALES_DISCOUNT = "502"
COST_OF_DIRECT_SALES = "503"

DEFAULT_ACCOUNTS: list[tuple[str, str, AccountType]] = [
    (CASH, "Cash", AccountType.ASSET),
    (BANK, "Bank Account", AccountType.ASSET),
    (ACCOUNTS_RECEIVABLE, "Accounts Receivable", AccountType.ASSET),
    (INVENTORY_RAW, "Inventory - Raw Materials", AccountType.ASSET),
    (INVENTORY_FINISHED, "Inventory - Finished Goods", AccountType.ASSET),
    (WORK_IN_PROGRESS, "Work in Progress", AccountType.ASSET),
    (ACCOUNTS_PAYABLE, "Accounts Payable", AccountType.LIABILITY),
    (OWNERS_CAPITAL, "Owner's Capital", AccountType.EQUITY),
    (SALES_REVENUE, "Sales Revenue", AccountType.REVENUE),
    (PRODUCTION_GAIN, "Production Gain", AccountType.REVENUE),
    (COST_OF_GOODS_SOLD, "Cost of Goods Sold", AccountType.EXPENSE),
    (SALES_DISCOUNT, "Sales Discount", AccountType.EXPENSE),
    (COST_OF_DIRECT_SALES, "Cost of Goods Sold - Direct Sales", AccountType.EXPENSE),
]

INVENTORY_BY_KIND = {
    ItemKind.RAW: INVENTORY_RAW,
    ItemKind.FINISHED: INVENTORY_FINISHED,
}


def inventory_code(item) -> str:
    """Inventory account an item's stock value is carried in."""
    return INVENTORY_BY_KIND[item.kind]
