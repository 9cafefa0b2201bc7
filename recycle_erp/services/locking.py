"""
Row locking for the posting paths.

Accounts and items touched by a posting are read with
SELECT ... FOR UPDATE so two postings on the same row serialize at
the database. Both tables also carry a version counter; a writer that
still ends up holding a stale row fails at flush time instead of
overwriting the other writer's change.

Load every row a posting needs in one call, before mutating any of
them: populate_existing refreshes rows already in the session, which
would discard unflushed changes.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from recycle_erp.exceptions import (
    AccountNotFoundError,
    ConcurrentModificationError,
    ItemNotFoundError,
)
from recycle_erp.models.account import Account
from recycle_erp.models.item import Item


def lock_accounts(db: Session, account_ids) -> dict[int, Account]:
    """Lock and return accounts by id. Missing ids raise AccountNotFoundError."""
    ids = sorted(set(account_ids))
    accounts = db.execute(
        select(Account)
        .where(Account.id.in_(ids))
        .order_by(Account.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().all()
    by_id = {a.id: a for a in accounts}

    missing = [i for i in ids if i not in by_id]
    if missing:
        raise AccountNotFoundError(missing[0] if len(missing) == 1 else missing)
    return by_id


def lock_items(db: Session, item_ids) -> dict[int, Item]:
    """Lock and return items by id. Missing ids raise ItemNotFoundError."""
    ids = sorted(set(item_ids))
    items = db.execute(
        select(Item)
        .where(Item.id.in_(ids))
        .order_by(Item.id)
        .with_for_update()
        .execution_options(populate_existing=True)
    ).scalars().all()
    by_id = {i.id: i for i in items}

    missing = [i for i in ids if i not in by_id]
    if missing:
        raise ItemNotFoundError(missing[0] if len(missing) == 1 else missing)
    return by_id


def flush(db: Session, what: str) -> None:
    """Flush pending changes, turning a version clash into a typed error."""
    try:
        db.flush()
    except StaleDataError as e:
        raise ConcurrentModificationError(what) from e
