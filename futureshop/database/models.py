"""
futureshop.database.models — SQLAlchemy 2.0 Data Models
========================================================

Tables:
- users            — Economy accounts keyed by the auth provider's uid
- item_categories  — Category taxonomy with the equip-exclusivity flag
- items            — Purchasable catalog
- user_items       — Ownership ledger with the equipped flag
- coin_ledger      — Append-only record of every balance change
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from futureshop.constants import MAX_USER_ID_LENGTH


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all FutureShop ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class LedgerReason(enum.StrEnum):
    """Why a balance changed.  One value per coin_ledger row."""
    BOOTSTRAP_GRANT = "BOOTSTRAP_GRANT"
    PURCHASE = "PURCHASE"
    MANUAL_ADJUST = "MANUAL_ADJUST"
    REWARD = "REWARD"


# ---------------------------------------------------------------------------
# Users — one economy account per authenticated user
# ---------------------------------------------------------------------------
class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(MAX_USER_ID_LENGTH), primary_key=True)
    future_coins: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    xp: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    items: Mapped[list[UserItem]] = relationship(back_populates="user")
    ledger: Mapped[list[CoinLedger]] = relationship(back_populates="user")

    __table_args__ = (
        CheckConstraint("future_coins >= 0", name="ck_users_future_coins_non_negative"),
        CheckConstraint("level >= 1", name="ck_users_level_positive"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id!r} coins={self.future_coins} lvl={self.level}>"


# ---------------------------------------------------------------------------
# ItemCategory — exclusivity is data, not a hard-coded category name
# ---------------------------------------------------------------------------
class ItemCategory(Base):
    """A catalog category.

    ``exclusive=True`` means a user may have at most one item of this
    category equipped at a time; equipping another one unequips the rest.
    Badges ship as the only non-exclusive category.
    """
    __tablename__ = "item_categories"

    name: Mapped[str] = mapped_column(String(50), primary_key=True)
    exclusive: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<ItemCategory name={self.name!r} exclusive={self.exclusive}>"


# ---------------------------------------------------------------------------
# Items — the purchasable catalog
# ---------------------------------------------------------------------------
class Item(Base):
    __tablename__ = "items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, default=None)
    image_url: Mapped[str | None] = mapped_column(String(255), default=None)
    category: Mapped[str] = mapped_column(
        String(50), ForeignKey("item_categories.name"), nullable=False
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    owners: Mapped[list[UserItem]] = relationship(back_populates="item")

    __table_args__ = (
        UniqueConstraint("name", "category", name="uq_items_name_category"),
        CheckConstraint("price >= 0", name="ck_items_price_non_negative"),
        Index("ix_items_active_category_price", "active", "category", "price"),
    )

    def __repr__(self) -> str:
        return f"<Item id={self.id} name={self.name!r} price={self.price}>"


# ---------------------------------------------------------------------------
# UserItem — ownership ledger
# ---------------------------------------------------------------------------
class UserItem(Base):
    """One row per (user, item).  Created by a purchase, mutated only by
    the equip toggle, never deleted."""
    __tablename__ = "user_items"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(MAX_USER_ID_LENGTH), ForeignKey("users.id"), nullable=False
    )
    item_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("items.id"), nullable=False
    )
    purchased_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    equipped: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    user: Mapped[User] = relationship(back_populates="items")
    item: Mapped[Item] = relationship(back_populates="owners")

    __table_args__ = (
        UniqueConstraint("user_id", "item_id", name="uq_user_items_user_item"),
        Index("ix_user_items_user_equipped", "user_id", "equipped"),
    )

    def __repr__(self) -> str:
        return (
            f"<UserItem user={self.user_id!r} item={self.item_id} "
            f"equipped={self.equipped}>"
        )


# ---------------------------------------------------------------------------
# CoinLedger — append-only balance journal
# ---------------------------------------------------------------------------
class CoinLedger(Base):
    """Every change to ``users.future_coins`` writes exactly one row here,
    in the same transaction as the balance update."""
    __tablename__ = "coin_ledger"

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(MAX_USER_ID_LENGTH), ForeignKey("users.id"), nullable=False
    )
    delta: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    reason: Mapped[str] = mapped_column(String(30), nullable=False)
    item_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("items.id"), nullable=True
    )
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSONB, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    user: Mapped[User] = relationship(back_populates="ledger")

    __table_args__ = (
        Index("ix_coin_ledger_user_time", "user_id", "timestamp"),
        Index("ix_coin_ledger_reason", "reason"),
    )

    def __repr__(self) -> str:
        return (
            f"<CoinLedger id={self.id} user={self.user_id!r} "
            f"delta={self.delta} reason={self.reason}>"
        )
