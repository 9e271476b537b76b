"""
futureshop.api.routes.items — Item shop endpoints
==================================================

Thin bindings over the economy services.  Business rejections raised by
the services (``ShopError``) are rendered by the handler registered in
:mod:`futureshop.api.main`.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy import Engine

from futureshop.api.deps import CurrentUser, call_with_retry, get_engine, require_self
from futureshop.database.models import CoinLedger, Item, LedgerReason, UserItem
from futureshop.services import (
    balance_service,
    catalog_service,
    equip_service,
    purchase_service,
)

router = APIRouter(prefix="/items", tags=["items"])


# ---------------------------------------------------------------------------
# Pydantic schemas
# ---------------------------------------------------------------------------
class CoinAdjustment(BaseModel):
    amount: int = 0
    reason: str = ""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _item_dict(item: Item) -> dict:
    return {
        "item_id": item.id,
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "category": item.category,
        "price": item.price,
        "is_active": item.active,
    }


def _owned_dict(owned: UserItem, item: Item) -> dict:
    return {
        "user_item_id": owned.id,
        "user_id": owned.user_id,
        "item_id": owned.item_id,
        "purchased_at": owned.purchased_at.isoformat() if owned.purchased_at else None,
        "is_equipped": owned.equipped,
        "name": item.name,
        "description": item.description,
        "image_url": item.image_url,
        "category": item.category,
        "price": item.price,
    }


def _ledger_dict(entry: CoinLedger) -> dict:
    return {
        "id": entry.id,
        "delta": entry.delta,
        "balance_after": entry.balance_after,
        "reason": entry.reason,
        "item_id": entry.item_id,
        "metadata": entry.metadata_,
        "timestamp": entry.timestamp.isoformat() if entry.timestamp else None,
    }


# ---------------------------------------------------------------------------
# GET /items
# ---------------------------------------------------------------------------
@router.get("")
def list_items(engine: Engine = Depends(get_engine)):
    """Active catalog ordered by category, then price."""
    items = call_with_retry(catalog_service.list_active_items, engine)
    return [_item_dict(i) for i in items]


# ---------------------------------------------------------------------------
# GET /items/user/{user_id}
# ---------------------------------------------------------------------------
@router.get("/user/{user_id}")
def list_owned_items(
    user_id: str,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    """Owned items joined with catalog fields, equipped first."""
    require_self(user_id, current_user)
    rows = call_with_retry(catalog_service.list_user_items, engine, user_id)
    return [_owned_dict(owned, item) for owned, item in rows]


# ---------------------------------------------------------------------------
# GET / PUT /items/coins/{user_id}
# ---------------------------------------------------------------------------
@router.get("/coins/{user_id}")
def get_coins(
    user_id: str,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    require_self(user_id, current_user)
    return {"futureCoins": call_with_retry(balance_service.get_balance, engine, user_id)}


@router.put("/coins/{user_id}")
def adjust_coins(
    user_id: str,
    body: CoinAdjustment,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    """Apply a positive or negative coin delta (reward grants)."""
    require_self(user_id, current_user)
    balance = call_with_retry(
        balance_service.adjust_balance,
        engine,
        user_id,
        body.amount,
        reason=LedgerReason.MANUAL_ADJUST,
        note=body.reason,
    )
    return {"futureCoins": balance}


# ---------------------------------------------------------------------------
# GET /items/ledger/{user_id}
# ---------------------------------------------------------------------------
@router.get("/ledger/{user_id}")
def get_ledger(
    user_id: str,
    current_user: CurrentUser,
    limit: int = Query(50, ge=1, le=200),
    engine: Engine = Depends(get_engine),
):
    """Recent balance changes, newest first."""
    require_self(user_id, current_user)
    entries = call_with_retry(balance_service.list_ledger, engine, user_id, limit)
    return {"entries": [_ledger_dict(e) for e in entries]}


# ---------------------------------------------------------------------------
# POST /items/purchase/{user_id}/{item_id}
# ---------------------------------------------------------------------------
@router.post("/purchase/{user_id}/{item_id}")
def purchase_item(
    user_id: str,
    item_id: int,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    require_self(user_id, current_user)
    result = call_with_retry(purchase_service.purchase, engine, user_id, item_id)
    return {
        "success": True,
        "message": "Item purchased successfully",
        "futureCoins": result.future_coins,
    }


# ---------------------------------------------------------------------------
# PUT /items/toggle/{user_id}/{item_id}
# ---------------------------------------------------------------------------
@router.put("/toggle/{user_id}/{item_id}")
def toggle_item(
    user_id: str,
    item_id: int,
    current_user: CurrentUser,
    engine: Engine = Depends(get_engine),
):
    require_self(user_id, current_user)
    result = call_with_retry(equip_service.toggle_equip, engine, user_id, item_id)
    return {
        "success": True,
        "message": result.message,
        "equipped": result.equipped,
    }


# ---------------------------------------------------------------------------
# GET /items/{item_id}
# ---------------------------------------------------------------------------
@router.get("/{item_id}")
def get_item(item_id: int, engine: Engine = Depends(get_engine)):
    return _item_dict(call_with_retry(catalog_service.get_item, engine, item_id))
