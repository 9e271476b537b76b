"""
futureshop.services.balance_service — Balance Reads, Grants & Progress
=======================================================================

Direct balance changes outside the purchase path: reward grants, manual
corrections, and the XP + coins progress update sent when a user finishes
goals.  Every change writes a coin_ledger row in the same transaction.

Negative deltas use the same guarded UPDATE as purchases, so a deduction
can never drive a balance below zero; grants are capped the same way at
``MAX_COIN_BALANCE``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select, update
from sqlalchemy.orm import Session

from futureshop.constants import MAX_COIN_BALANCE, MAX_COIN_DELTA, MAX_LEVEL, apply_xp
from futureshop.database.engine import get_session
from futureshop.database.models import CoinLedger, LedgerReason, User
from futureshop.errors import AccountNotFound, InsufficientFunds, ValidationError
from futureshop.services.account_service import (
    ensure_account_quietly,
    lock_account,
    read_balance,
    record_ledger,
    validate_user_id,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ProgressResult:
    """Account state after :func:`apply_progress`."""

    user_id: str
    level: int
    xp: int
    future_coins: int
    leveled_up: bool


def _validate_amount(value: object, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{name} must be an integer.")
    if abs(value) > MAX_COIN_DELTA:
        raise ValidationError(f"{name} must be between -{MAX_COIN_DELTA} and {MAX_COIN_DELTA}.")
    return value


def _apply_delta(
    session: Session,
    user_id: str,
    delta: int,
    *,
    reason: LedgerReason,
    metadata: dict | None = None,
) -> int:
    """Apply *delta* inside the caller's transaction and ledger it.

    The balance stays within ``0..MAX_COIN_BALANCE``.  Returns the new
    balance.
    """
    stmt = update(User).where(User.id == user_id)
    if delta < 0:
        stmt = stmt.where(User.future_coins >= -delta)
    else:
        stmt = stmt.where(User.future_coins <= MAX_COIN_BALANCE - delta)
    result = session.execute(
        stmt.values(future_coins=User.future_coins + delta)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        balance = read_balance(session, user_id)
        if balance is None:
            raise AccountNotFound()
        if delta > 0:
            raise ValidationError(
                f"Balance cannot exceed {MAX_COIN_BALANCE}: you have {balance}."
            )
        raise InsufficientFunds(
            f"Not enough FutureCoins: cannot remove {-delta}, you have {balance}."
        )

    new_balance = read_balance(session, user_id)
    record_ledger(
        session,
        user_id=user_id,
        delta=delta,
        balance_after=new_balance,
        reason=reason,
        metadata=metadata,
    )
    return new_balance


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def get_balance(engine: Engine, user_id: str) -> int:
    """Current balance; 0 if the account doesn't exist yet."""
    user_id = validate_user_id(user_id)
    ensure_account_quietly(engine, user_id)
    with get_session(engine) as session:
        balance = read_balance(session, user_id)
    if balance is None:
        logger.warning("No account for %s after bootstrap; reporting 0 coins.", user_id)
        return 0
    return balance


def adjust_balance(
    engine: Engine,
    user_id: str,
    delta: int,
    *,
    reason: LedgerReason = LedgerReason.MANUAL_ADJUST,
    note: str = "",
) -> int:
    """Add *delta* (positive or negative) coins and return the new balance.

    Raises
    ------
    ValidationError
        Malformed *user_id*, a non-integer or out-of-range *delta*, or a
        grant that would push the balance past ``MAX_COIN_BALANCE``.
    InsufficientFunds
        *delta* would drive the balance below zero.
    AccountNotFound
        The account row is missing.
    """
    user_id = validate_user_id(user_id)
    delta = _validate_amount(delta, "Amount")
    if reason == LedgerReason.PURCHASE:
        raise ValidationError("Purchases must go through the purchase service.")
    ensure_account_quietly(engine, user_id)

    with get_session(engine) as session:
        if delta == 0:
            balance = read_balance(session, user_id)
            if balance is None:
                raise AccountNotFound()
            return balance
        new_balance = _apply_delta(
            session,
            user_id,
            delta,
            reason=reason,
            metadata={"note": note} if note else None,
        )

    logger.info(
        "Adjusted %s by %+d coins (%s) → %d.", user_id, delta, reason.value, new_balance
    )
    return new_balance


def apply_progress(
    engine: Engine,
    user_id: str,
    *,
    xp: int = 0,
    coins: int = 0,
) -> ProgressResult:
    """Add XP and coins earned from goal progress in one transaction.

    Every 100 XP becomes a level; the remainder is kept as progress.  Coins
    are ledgered as ``REWARD`` and may be negative only down to zero.
    """
    user_id = validate_user_id(user_id)
    xp = _validate_amount(xp, "XP")
    coins = _validate_amount(coins, "Coins")
    if xp < 0:
        raise ValidationError("XP cannot be negative.")
    ensure_account_quietly(engine, user_id)

    with get_session(engine) as session:
        if not lock_account(session, user_id):
            raise AccountNotFound()

        row = session.execute(
            select(User.level, User.xp).where(User.id == user_id)
        ).one()
        new_level, new_xp = apply_xp(row.level, row.xp, xp)
        if new_level > MAX_LEVEL:
            raise ValidationError("Level is already at its maximum.")
        if xp:
            session.execute(
                update(User)
                .where(User.id == user_id)
                .values(level=new_level, xp=new_xp)
                .execution_options(synchronize_session=False)
            )

        if coins:
            balance = _apply_delta(
                session,
                user_id,
                coins,
                reason=LedgerReason.REWARD,
                metadata={"xp": xp},
            )
        else:
            balance = read_balance(session, user_id)

    leveled_up = new_level > row.level
    if leveled_up:
        logger.info("User %s reached level %d.", user_id, new_level)
    return ProgressResult(
        user_id=user_id,
        level=new_level,
        xp=new_xp,
        future_coins=balance,
        leveled_up=leveled_up,
    )


def list_ledger(engine: Engine, user_id: str, limit: int = 50) -> list[CoinLedger]:
    """Most recent ledger rows for *user_id*, newest first."""
    user_id = validate_user_id(user_id)
    with get_session(engine) as session:
        return list(session.scalars(
            select(CoinLedger)
            .where(CoinLedger.user_id == user_id)
            .order_by(CoinLedger.timestamp.desc(), CoinLedger.id.desc())
            .limit(limit)
        ))
