"""
futureshop.services.purchase_service — Coins-for-Ownership Exchange
====================================================================

A purchase is one transaction:

  1. Reject if the user already owns the item        → ``AlreadyOwned``
  2. Reject if the item is missing or inactive       → ``ItemNotFound``
  3. Conditionally debit the price                   → ``InsufficientFunds``
  4. Write the ledger row and the ownership row

Step 3 is a single ``UPDATE … WHERE future_coins >= price``.  The database
evaluates the guard against the committed balance while holding the row
lock, so two concurrent purchases can never spend the same coins: the
second one matches zero rows and is rejected.

Any rejection or fault after step 3 rolls the debit back with everything
else.  The engine never retries; callers decide what to show the user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from futureshop.database.engine import get_session
from futureshop.database.models import Item, LedgerReason, User, UserItem
from futureshop.errors import (
    AccountNotFound,
    AlreadyOwned,
    InsufficientFunds,
    ItemNotFound,
)
from futureshop.services.account_service import (
    ensure_account_quietly,
    read_balance,
    record_ledger,
    validate_user_id,
)
from futureshop.services.catalog_service import validate_item_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PurchaseResult:
    """Outcome of a successful purchase."""

    item_id: int
    price: int
    future_coins: int  # balance after the debit


def _debit(session: Session, user_id: str, price: int) -> int:
    """Atomically subtract *price*; return the new balance.

    Raises :class:`InsufficientFunds` (or :class:`AccountNotFound`) when the
    guarded UPDATE matches no row.
    """
    result = session.execute(
        update(User)
        .where(User.id == user_id, User.future_coins >= price)
        .values(future_coins=User.future_coins - price)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        balance = read_balance(session, user_id)
        if balance is None:
            raise AccountNotFound()
        raise InsufficientFunds(
            f"Not enough FutureCoins: the item costs {price}, you have {balance}."
        )
    return read_balance(session, user_id)


def _grant_ownership(session: Session, user_id: str, item_id: int) -> UserItem:
    """Insert the ownership row (unequipped)."""
    owned = UserItem(user_id=user_id, item_id=item_id, equipped=False)
    session.add(owned)
    session.flush()
    return owned


def purchase(engine: Engine, user_id: str, item_id: int) -> PurchaseResult:
    """Exchange the item's price in coins for ownership of *item_id*.

    Raises
    ------
    ValidationError
        Malformed *user_id* or *item_id*.
    AlreadyOwned
        The user already owns this item.
    ItemNotFound
        No active item with this id.
    AccountNotFound
        The account row is missing (bootstrap failed and nobody repaired it).
    InsufficientFunds
        Balance is below the price.
    TransientStoreError
        Connection or lock failure; nothing was changed.
    """
    user_id = validate_user_id(user_id)
    item_id = validate_item_id(item_id)
    ensure_account_quietly(engine, user_id)

    with get_session(engine) as session:
        already = session.scalar(
            select(UserItem.id).where(
                UserItem.user_id == user_id, UserItem.item_id == item_id
            )
        )
        if already is not None:
            logger.info("Purchase rejected: %s already owns item %d.", user_id, item_id)
            raise AlreadyOwned()

        item = session.get(Item, item_id)
        if item is None or not item.active:
            logger.info("Purchase rejected: item %d not found for %s.", item_id, user_id)
            raise ItemNotFound()

        try:
            new_balance = _debit(session, user_id, item.price)
        except InsufficientFunds:
            logger.info(
                "Purchase rejected: %s cannot afford item %d (%d coins).",
                user_id, item_id, item.price,
            )
            raise

        record_ledger(
            session,
            user_id=user_id,
            delta=-item.price,
            balance_after=new_balance,
            reason=LedgerReason.PURCHASE,
            item_id=item_id,
            metadata={"item_name": item.name, "category": item.category},
        )

        try:
            _grant_ownership(session, user_id, item_id)
        except IntegrityError as exc:
            # A concurrent purchase of the same item committed first.
            raise AlreadyOwned() from exc

        price = item.price

    logger.info(
        "User %s bought item %d for %d coins (balance %d).",
        user_id, item_id, price, new_balance,
    )
    return PurchaseResult(item_id=item_id, price=price, future_coins=new_balance)
