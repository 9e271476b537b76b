"""
futureshop.services.catalog_service — Catalog & Ownership Reads
================================================================

Read-only paths: the active catalog, single items, category exclusivity
and a user's owned items joined with their catalog fields.
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from futureshop.constants import DEFAULT_CATEGORY_EXCLUSIVE
from futureshop.database.engine import get_session
from futureshop.database.models import Item, ItemCategory, UserItem
from futureshop.errors import ItemNotFound, ValidationError
from futureshop.services.account_service import ensure_account_quietly, validate_user_id

logger = logging.getLogger(__name__)


def validate_item_id(item_id: object) -> int:
    """Return *item_id* if it is a positive integer, else raise."""
    if isinstance(item_id, bool) or not isinstance(item_id, int) or item_id <= 0:
        raise ValidationError("A valid item id is required.")
    return item_id


def is_exclusive(session: Session, category: str) -> bool:
    """Whether *category* allows only one equipped item per user."""
    exclusive = session.scalar(
        select(ItemCategory.exclusive).where(ItemCategory.name == category)
    )
    if exclusive is None:
        return DEFAULT_CATEGORY_EXCLUSIVE
    return exclusive


def list_active_items(engine: Engine) -> list[Item]:
    """All purchasable items, ordered by category then price."""
    with get_session(engine) as session:
        items = session.scalars(
            select(Item)
            .where(Item.active.is_(True))
            .order_by(Item.category, Item.price, Item.id)
        ).all()
        if not items:
            logger.warning("Catalog has no active items.")
        return list(items)


def get_item(engine: Engine, item_id: int) -> Item:
    """Fetch one catalog item (active or not).

    Raises
    ------
    ItemNotFound
        No item has this id.
    """
    item_id = validate_item_id(item_id)
    with get_session(engine) as session:
        item = session.get(Item, item_id)
        if item is None:
            raise ItemNotFound()
        return item


def list_user_items(engine: Engine, user_id: str) -> list[tuple[UserItem, Item]]:
    """Owned items with their catalog rows.

    Equipped items come first, then by category and name.
    """
    user_id = validate_user_id(user_id)
    ensure_account_quietly(engine, user_id)

    with get_session(engine) as session:
        rows = session.execute(
            select(UserItem, Item)
            .join(Item, UserItem.item_id == Item.id)
            .where(UserItem.user_id == user_id)
            .order_by(UserItem.equipped.desc(), Item.category, Item.name)
        ).all()
        return [(owned, item) for owned, item in rows]
