"""
futureshop.constants — Shared Constants & Helpers
==================================================

Single source of truth for catalog defaults and the leveling formula.
Import from here instead of duplicating in services, seeders and routes.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# Identity limits
# ---------------------------------------------------------------------------
MAX_USER_ID_LENGTH = 128  # Auth-provider uids are well under this


# ---------------------------------------------------------------------------
# Amount limits — balances, XP and levels are 32-bit INTEGER columns
# ---------------------------------------------------------------------------
MAX_COIN_BALANCE = 2**31 - 1
MAX_COIN_DELTA = 1_000_000  # largest single grant, deduction or XP award
MAX_LEVEL = 2**31 - 1


# ---------------------------------------------------------------------------
# Categories
# ---------------------------------------------------------------------------
BADGE_CATEGORY = "badge"

# name → (exclusive, sort_order).  Only non-exclusive categories may have
# several items equipped at once.
DEFAULT_CATEGORIES: dict[str, tuple[bool, int]] = {
    "theme": (True, 10),
    "avatar": (True, 20),
    BADGE_CATEGORY: (False, 30),
    "feature": (True, 40),
}

# Unknown categories behave like every shipped category except badges.
DEFAULT_CATEGORY_EXCLUSIVE = True


# ---------------------------------------------------------------------------
# Leveling formula — every XP_PER_LEVEL points is one level
# ---------------------------------------------------------------------------
XP_PER_LEVEL = 100


def apply_xp(level: int, xp: int, gained: int) -> tuple[int, int]:
    """Return ``(new_level, new_xp)`` after adding *gained* XP.

    XP is progress inside the current level; overflow converts into whole
    levels and the remainder is kept::

        >>> apply_xp(1, 80, 45)
        (2, 25)
    """
    total = xp + gained
    return level + total // XP_PER_LEVEL, total % XP_PER_LEVEL
