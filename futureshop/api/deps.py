"""
futureshop.api.deps — FastAPI dependency injection
===================================================
"""

from __future__ import annotations

import logging
import os
from collections.abc import Callable
from functools import lru_cache
from typing import Annotated, ParamSpec, TypeVar

import jwt
from fastapi import Depends, Header, HTTPException, status
from jwt.exceptions import InvalidTokenError
from sqlalchemy import Engine

from futureshop.config import ShopConfig, load_config
from futureshop.database.engine import create_db_engine
from futureshop.errors import TransientStoreError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")

_WEAK_SECRETS = frozenset({
    "futureshop-dev-secret-change-me",
    "change-me",
    "secret",
    "dev",
    "",
})

_MIN_SECRET_LENGTH = 32

JWT_ALGORITHM = "HS256"


def _load_jwt_secret() -> str:
    """Load and validate JWT_SECRET from the environment.

    Raises RuntimeError at import time if the secret is missing, blank,
    too short (< 32 chars), or a known weak default.
    """
    secret = os.getenv("JWT_SECRET", "")
    if not secret:
        raise RuntimeError(
            "JWT_SECRET environment variable is not set. "
            "Generate one with: python -c \"import secrets; print(secrets.token_urlsafe(64))\""
        )
    if secret in _WEAK_SECRETS:
        raise RuntimeError(
            f"JWT_SECRET is set to a known weak default ('{secret}'). "
            "Please set a strong, unique secret."
        )
    if len(secret) < _MIN_SECRET_LENGTH:
        raise RuntimeError(
            f"JWT_SECRET is too short ({len(secret)} chars). "
            f"Minimum length is {_MIN_SECRET_LENGTH} characters."
        )
    return secret


JWT_SECRET: str = _load_jwt_secret()


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> ShopConfig:
    return load_config()


def get_current_user_id(
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Validate the bearer JWT and return its ``sub`` (the user id)."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Missing token")
    token = authorization.split(" ", 1)[1]
    try:
        payload = jwt.decode(token, JWT_SECRET, algorithms=[JWT_ALGORITHM])
    except InvalidTokenError:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Invalid token")
    return str(sub)


CurrentUser = Annotated[str, Depends(get_current_user_id)]


def require_self(user_id: str, current_user: str) -> None:
    """A caller may only act on its own account."""
    if user_id != current_user:
        logger.info("Denied %s access to account %s.", current_user, user_id)
        raise HTTPException(status.HTTP_403_FORBIDDEN, "Unauthorized access")


def call_with_retry(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a service call, retrying once on :class:`TransientStoreError`.

    The services never retry on their own; this is the single place the
    HTTP layer decides to try again.
    """
    try:
        return func(*args, **kwargs)
    except TransientStoreError:
        logger.warning("Transient store error in %s; retrying once.", func.__name__)
        return func(*args, **kwargs)
