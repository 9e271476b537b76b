"""
futureshop.api.routes.users — Progress endpoint
================================================

Goal completion in the habit tracker reports XP and coins here.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import Engine

from futureshop.api.deps import CurrentUser, call_with_retry, get_engine, require_self
from futureshop.services import balance_service

router = APIRouter(prefix="/users", tags=["users"])


class StatsUpdate(BaseModel):
    xp_points_to_add: int = 0
    future_coins_to_add: int = 0


@router.put("/{user_id}/stats")
def update_stats(
    user_id: str,
    body: StatsUpdate,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    """Add XP (levelling up every 100) and coins in one transaction."""
    require_self(user_id, current_user)
    result = call_with_retry(
        balance_service.apply_progress,
        engine,
        user_id,
        xp=body.xp_points_to_add,
        coins=body.future_coins_to_add,
    )
    return {
        "user_id": result.user_id,
        "level": result.level,
        "xp_points": result.xp,
        "future_coins": result.future_coins,
        "leveledUp": result.leveled_up,
    }
