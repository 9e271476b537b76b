"""
futureshop.database.seed — Default Catalog Seeder & Diagnostics
================================================================

The shop ships with a small default catalog so it is usable on first boot.

* :func:`seed_catalog` runs on every startup.  Categories are inserted when
  missing; items only when the ``items`` table is completely empty, so an
  operator-curated catalog is never touched.
* :func:`restore_default_catalog` is the manual repair path: it puts back
  any default item that went missing and re-activates deactivated ones.
  It never deletes rows, because ownership rows reference them.
* :func:`catalog_status` backs ``python -m futureshop status``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy import Engine, func, select
from sqlalchemy.orm import Session

from futureshop.constants import DEFAULT_CATEGORIES
from futureshop.database.engine import get_session
from futureshop.database.models import Item, ItemCategory

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Default catalog
# ---------------------------------------------------------------------------
DEFAULT_ITEMS: list[dict[str, object]] = [
    {
        "name": "Dark Theme",
        "description": "A sleek dark theme for the app",
        "category": "theme",
        "price": 150,
    },
    {
        "name": "Space Avatar",
        "description": "An astronaut avatar for your profile",
        "category": "avatar",
        "price": 200,
    },
    {
        "name": "Gold Badge Frame",
        "description": "A special frame for your profile badges",
        "category": "badge",
        "price": 250,
    },
    {
        "name": "Animated Celebrations",
        "description": "Special animations when you complete goals",
        "category": "feature",
        "price": 300,
    },
]


@dataclass(slots=True)
class CatalogStatus:
    """Snapshot of the catalog for operator diagnostics."""

    total_items: int
    active_items: int
    categories: dict[str, bool] = field(default_factory=dict)  # name → exclusive
    sample: list[tuple[str, str, int]] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.total_items == 0


# ---------------------------------------------------------------------------
# Seeders
# ---------------------------------------------------------------------------
def _ensure_categories(session: Session) -> int:
    """Insert default categories that don't exist yet.  Returns count added."""
    inserted = 0
    for name, (exclusive, sort_order) in DEFAULT_CATEGORIES.items():
        if session.get(ItemCategory, name) is None:
            session.add(ItemCategory(name=name, exclusive=exclusive, sort_order=sort_order))
            inserted += 1
    if inserted:
        session.flush()
    return inserted


def seed_catalog(engine: Engine) -> int:
    """Insert the default catalog if the ``items`` table is empty.

    Safe to call repeatedly.  Returns the number of items inserted.
    """
    with get_session(engine) as session:
        _ensure_categories(session)

        count = session.scalar(select(func.count()).select_from(Item)) or 0
        if count:
            logger.debug("Catalog already has %d items, skipping seed.", count)
            return 0

        for entry in DEFAULT_ITEMS:
            session.add(Item(active=True, **entry))

    logger.info("Seeded %d default shop items.", len(DEFAULT_ITEMS))
    return len(DEFAULT_ITEMS)


def restore_default_catalog(engine: Engine) -> int:
    """Re-insert missing default items and re-activate deactivated ones.

    Items are matched by ``(name, category)``.  Returns the number of rows
    inserted or re-activated.
    """
    changed = 0
    with get_session(engine) as session:
        _ensure_categories(session)

        for entry in DEFAULT_ITEMS:
            existing = session.scalar(
                select(Item).where(
                    Item.name == entry["name"], Item.category == entry["category"]
                )
            )
            if existing is None:
                session.add(Item(active=True, **entry))
                changed += 1
            elif not existing.active:
                existing.active = True
                changed += 1

    if changed:
        logger.info("Restored %d default shop items.", changed)
    return changed


# ---------------------------------------------------------------------------
# Diagnostics
# ---------------------------------------------------------------------------
def catalog_status(engine: Engine, sample_size: int = 5) -> CatalogStatus:
    """Summarise the catalog: counts, categories and the first few rows."""
    with Session(engine) as session:
        total = session.scalar(select(func.count()).select_from(Item)) or 0
        active = session.scalar(
            select(func.count()).select_from(Item).where(Item.active.is_(True))
        ) or 0
        categories = {
            c.name: c.exclusive
            for c in session.scalars(
                select(ItemCategory).order_by(ItemCategory.sort_order, ItemCategory.name)
            )
        }
        sample = [
            (row.name, row.category, row.price)
            for row in session.execute(
                select(Item.name, Item.category, Item.price)
                .order_by(Item.id)
                .limit(sample_size)
            )
        ]

    return CatalogStatus(
        total_items=total,
        active_items=active,
        categories=categories,
        sample=sample,
    )
