"""
futureshop.services.equip_service — Equip Toggle with Category Exclusivity
===========================================================================

Per (user, item) the ownership row moves between two states::

    owned-unequipped  ⇄  owned-equipped

Equipping an item in an *exclusive* category first unequips every other
item the user owns in that category.  Non-exclusive categories (badges)
allow any number of equipped items.  Exclusivity comes from
``item_categories.exclusive``.

The toggle takes the per-user lock before reading the current flag, so two
concurrent toggles for one user run one after the other and the second one
sees the first one's sweep.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import Engine, select, update

from futureshop.database.engine import get_session
from futureshop.database.models import Item, UserItem
from futureshop.errors import ItemNotFound, NotOwned
from futureshop.services.account_service import (
    ensure_account_quietly,
    lock_account,
    validate_user_id,
)
from futureshop.services.catalog_service import is_exclusive, validate_item_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EquipResult:
    """Outcome of a toggle."""

    item_id: int
    equipped: bool
    unequipped_item_ids: list[int] = field(default_factory=list)

    @property
    def message(self) -> str:
        return "Item equipped" if self.equipped else "Item unequipped"


def toggle_equip(engine: Engine, user_id: str, item_id: int) -> EquipResult:
    """Flip the equipped flag of an owned item.

    Raises
    ------
    ValidationError
        Malformed *user_id* or *item_id*.
    NotOwned
        The user doesn't own this item.
    ItemNotFound
        The catalog row is gone.
    TransientStoreError
        Connection or lock failure; nothing was changed.
    """
    user_id = validate_user_id(user_id)
    item_id = validate_item_id(item_id)
    ensure_account_quietly(engine, user_id)

    with get_session(engine) as session:
        lock_account(session, user_id)

        owned = session.scalar(
            select(UserItem)
            .where(UserItem.user_id == user_id, UserItem.item_id == item_id)
            .execution_options(populate_existing=True)
        )
        if owned is None:
            logger.info("Toggle rejected: %s does not own item %d.", user_id, item_id)
            raise NotOwned()

        item = session.get(Item, item_id)
        if item is None:
            raise ItemNotFound()

        new_value = not owned.equipped
        swept: list[int] = []

        if new_value and is_exclusive(session, item.category):
            swept = list(session.scalars(
                select(UserItem.item_id)
                .join(Item, UserItem.item_id == Item.id)
                .where(
                    UserItem.user_id == user_id,
                    UserItem.equipped.is_(True),
                    UserItem.item_id != item_id,
                    Item.category == item.category,
                )
            ))
            if swept:
                session.execute(
                    update(UserItem)
                    .where(
                        UserItem.user_id == user_id,
                        UserItem.item_id.in_(swept),
                    )
                    .values(equipped=False)
                    .execution_options(synchronize_session=False)
                )

        owned.equipped = new_value

    logger.info(
        "User %s %s item %d%s.",
        user_id,
        "equipped" if new_value else "unequipped",
        item_id,
        f" (unequipped {swept})" if swept else "",
    )
    return EquipResult(item_id=item_id, equipped=new_value, unequipped_item_ids=swept)
