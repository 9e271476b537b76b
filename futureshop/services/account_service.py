"""
futureshop.services.account_service — Idempotent Account Bootstrap
===================================================================

Every economy operation starts by making sure the caller has a ``users``
row.  :func:`ensure_account` is the single contract for that:

* absent → create it with ``minimum_balance`` coins;
* present but below ``minimum_balance`` → top it up to exactly that;
* otherwise → no-op.

Concurrent first-time calls for the same uid are safe: the losing INSERT
hits the primary key inside a SAVEPOINT and is treated as a read.

:func:`ensure_account_quietly` is the pre-step the other services call.  A
bootstrap failure there is logged and swallowed; the operation continues
and reports a missing account itself if it really needs one.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, func, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from futureshop.constants import MAX_COIN_BALANCE, MAX_USER_ID_LENGTH
from futureshop.database.engine import get_session
from futureshop.database.models import CoinLedger, LedgerReason, User
from futureshop.errors import TransientStoreError, ValidationError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Shared helpers (also used by the purchase / equip / balance services)
# ---------------------------------------------------------------------------
def validate_user_id(user_id: object) -> str:
    """Return *user_id* stripped, or raise :class:`ValidationError`."""
    if not isinstance(user_id, str) or not user_id.strip():
        raise ValidationError("A user id is required.")
    user_id = user_id.strip()
    if len(user_id) > MAX_USER_ID_LENGTH:
        raise ValidationError("User id is too long.")
    return user_id


def lock_account(session: Session, user_id: str) -> bool:
    """Take the per-user write lock for the rest of the transaction.

    Touches ``updated_at`` so the row is locked on PostgreSQL and the
    database write lock is held on SQLite.  Returns ``False`` if the user
    row doesn't exist.
    """
    result = session.execute(
        update(User)
        .where(User.id == user_id)
        .values(updated_at=func.now())
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


def read_balance(session: Session, user_id: str) -> int | None:
    """Fresh balance straight from the database (bypasses the identity map)."""
    return session.scalar(select(User.future_coins).where(User.id == user_id))


def record_ledger(
    session: Session,
    *,
    user_id: str,
    delta: int,
    balance_after: int,
    reason: LedgerReason,
    item_id: int | None = None,
    metadata: dict | None = None,
) -> None:
    """Append a coin_ledger row within the current transaction."""
    session.add(CoinLedger(
        user_id=user_id,
        delta=delta,
        balance_after=balance_after,
        reason=reason.value,
        item_id=item_id,
        metadata_=metadata,
    ))


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def ensure_account(engine: Engine, user_id: str, minimum_balance: int = 0) -> int:
    """Guarantee a ``users`` row with at least *minimum_balance* coins.

    Returns the resulting balance.

    Raises
    ------
    ValidationError
        Empty / over-long *user_id* or a negative *minimum_balance*.
    TransientStoreError
        The database could not be reached or the lock wait timed out.
    """
    user_id = validate_user_id(user_id)
    if isinstance(minimum_balance, bool) or not isinstance(minimum_balance, int):
        raise ValidationError("Minimum balance must be an integer.")
    if minimum_balance < 0:
        raise ValidationError("Minimum balance cannot be negative.")
    if minimum_balance > MAX_COIN_BALANCE:
        raise ValidationError("Minimum balance is too large.")

    with get_session(engine) as session:
        balance = read_balance(session, user_id)

        if balance is None:
            try:
                with session.begin_nested():   # SAVEPOINT
                    session.add(User(id=user_id, future_coins=minimum_balance))
                    session.flush()
            except IntegrityError:
                # A concurrent request created the row first.  The SAVEPOINT
                # was rolled back; the outer txn is still alive.
                logger.debug("Account %s created concurrently; re-reading.", user_id)
                balance = read_balance(session, user_id)
            else:
                if minimum_balance:
                    record_ledger(
                        session,
                        user_id=user_id,
                        delta=minimum_balance,
                        balance_after=minimum_balance,
                        reason=LedgerReason.BOOTSTRAP_GRANT,
                    )
                logger.info(
                    "Created account %s with %d coins.", user_id, minimum_balance
                )
                return minimum_balance

        if balance is not None and balance >= minimum_balance:
            return balance

        # Below the minimum: re-read under the lock before topping up.
        lock_account(session, user_id)
        balance = read_balance(session, user_id) or 0
        if balance < minimum_balance:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(future_coins=minimum_balance)
                .execution_options(synchronize_session=False)
            )
            record_ledger(
                session,
                user_id=user_id,
                delta=minimum_balance - balance,
                balance_after=minimum_balance,
                reason=LedgerReason.BOOTSTRAP_GRANT,
            )
            logger.info(
                "Topped up account %s from %d to %d coins.",
                user_id, balance, minimum_balance,
            )
            balance = minimum_balance
        return balance


def ensure_account_quietly(
    engine: Engine, user_id: str, minimum_balance: int = 0
) -> int | None:
    """Run :func:`ensure_account`, logging instead of raising on store errors.

    Returns the balance, or ``None`` when the bootstrap failed.  A
    :class:`ValidationError` still propagates, since a malformed uid fails
    the operation anyway.
    """
    try:
        return ensure_account(engine, user_id, minimum_balance)
    except ValidationError:
        raise
    except (TransientStoreError, SQLAlchemyError):
        logger.warning(
            "Account bootstrap failed for %s; continuing without it.",
            user_id,
            exc_info=True,
        )
        return None
