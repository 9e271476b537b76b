"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of futureshop.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import pytest  # noqa: E402
from sqlalchemy import Engine, create_engine  # noqa: E402

# ---------------------------------------------------------------------------
# SQLite has no JSONB; render it as TEXT.  BigInteger → INTEGER so the
# coin_ledger primary key autoincrements.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from futureshop.database.engine import create_db_engine  # noqa: E402
from futureshop.database.models import Base, Item, ItemCategory  # noqa: E402
from futureshop.services.account_service import ensure_account  # noqa: E402

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB type (idempotent)."""
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()


# ---------------------------------------------------------------------------
# Catalog used by most tests.  Ids are assigned in this order (1..7).
# ---------------------------------------------------------------------------
TEST_CATEGORIES = [
    ("theme", True),
    ("avatar", True),
    ("badge", False),
    ("feature", True),
]

TEST_ITEMS = [
    # (name, category, price, active)
    ("Dark Theme", "theme", 150, True),        # 1
    ("Light Theme", "theme", 100, True),       # 2
    ("Space Avatar", "avatar", 200, True),     # 3
    ("Gold Badge Frame", "badge", 250, True),  # 4
    ("Early Bird Badge", "badge", 50, True),   # 5
    ("Confetti", "feature", 60, True),         # 6
    ("Retired Theme", "theme", 10, False),     # 7
]


def make_memory_engine() -> Engine:
    """A fresh in-memory SQLite engine with all FutureShop tables.

    Uses StaticPool so every session shares the same in-memory database.
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def seed_test_categories(engine: Engine) -> None:
    with Session(engine) as session:
        for order, (name, exclusive) in enumerate(TEST_CATEGORIES):
            session.add(ItemCategory(name=name, exclusive=exclusive, sort_order=order))
        session.commit()


def seed_test_catalog(engine: Engine) -> None:
    seed_test_categories(engine)
    with Session(engine) as session:
        for name, category, price, active in TEST_ITEMS:
            session.add(Item(name=name, category=category, price=price, active=active))
        session.commit()


@pytest.fixture
def db_engine() -> Engine:
    """Empty schema, no catalog."""
    return make_memory_engine()


@pytest.fixture
def shop_engine(db_engine: Engine) -> Engine:
    """Schema plus the test catalog."""
    seed_test_catalog(db_engine)
    return db_engine


@pytest.fixture
def db_session(db_engine: Engine):
    """Provide a transactional session that rolls back after each test."""
    with Session(db_engine) as session:
        yield session
        session.rollback()


@pytest.fixture
def funded_user(shop_engine: Engine):
    """Factory: create *user_id* with *coins* and return the id."""
    def _make(user_id: str = "uid-alice", coins: int = 100) -> str:
        ensure_account(shop_engine, user_id, coins)
        return user_id
    return _make


def make_user_token(sub: str = "uid-alice") -> str:
    """Create a user JWT.  Usable as both a fixture helper and a factory."""
    import jwt

    from futureshop.api.deps import JWT_ALGORITHM, JWT_SECRET

    return jwt.encode({"sub": sub}, JWT_SECRET, algorithm=JWT_ALGORITHM)


def auth(sub: str = "uid-alice") -> dict:
    return {"Authorization": f"Bearer {make_user_token(sub)}"}


@pytest.fixture
def client(shop_engine: Engine):
    """TestClient whose handlers use the seeded in-memory engine."""
    from fastapi.testclient import TestClient

    from futureshop.api.deps import get_engine
    from futureshop.api.main import app

    app.dependency_overrides[get_engine] = lambda: shop_engine
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite from ``create_db_engine`` (BEGIN IMMEDIATE), with
    the test categories but no items.  For tests that race threads."""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'shop.db'}")
    Base.metadata.create_all(engine)
    seed_test_categories(engine)
    yield engine
    engine.dispose()
