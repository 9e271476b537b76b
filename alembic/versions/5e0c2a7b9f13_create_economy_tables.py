"""Create users, item_categories, items, user_items and coin_ledger

Revision ID: 5e0c2a7b9f13
Revises:
Create Date: 2026-10-17 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5e0c2a7b9f13"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(128), primary_key=True),
        sa.Column("future_coins", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("xp", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.CheckConstraint("future_coins >= 0", name="ck_users_future_coins_non_negative"),
        sa.CheckConstraint("level >= 1", name="ck_users_level_positive"),
    )

    op.create_table(
        "item_categories",
        sa.Column("name", sa.String(50), primary_key=True),
        sa.Column("exclusive", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("sort_order", sa.Integer(), server_default="0"),
    )

    op.create_table(
        "items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(255), nullable=True),
        sa.Column(
            "category",
            sa.String(50),
            sa.ForeignKey("item_categories.name"),
            nullable=False,
        ),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("name", "category", name="uq_items_name_category"),
        sa.CheckConstraint("price >= 0", name="ck_items_price_non_negative"),
    )
    op.create_index(
        "ix_items_active_category_price", "items", ["active", "category", "price"]
    )

    op.create_table(
        "user_items",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=False),
        sa.Column(
            "purchased_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
        sa.Column("equipped", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.UniqueConstraint("user_id", "item_id", name="uq_user_items_user_item"),
    )
    op.create_index(
        "ix_user_items_user_equipped", "user_items", ["user_id", "equipped"]
    )

    op.create_table(
        "coin_ledger",
        sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(128), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("delta", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column("reason", sa.String(30), nullable=False),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("items.id"), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), nullable=True),
        sa.Column(
            "timestamp",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_coin_ledger_user_time", "coin_ledger", ["user_id", "timestamp"])
    op.create_index("ix_coin_ledger_reason", "coin_ledger", ["reason"])


def downgrade() -> None:
    op.drop_index("ix_coin_ledger_reason", table_name="coin_ledger")
    op.drop_index("ix_coin_ledger_user_time", table_name="coin_ledger")
    op.drop_table("coin_ledger")
    op.drop_index("ix_user_items_user_equipped", table_name="user_items")
    op.drop_table("user_items")
    op.drop_index("ix_items_active_category_price", table_name="items")
    op.drop_table("items")
    op.drop_table("item_categories")
    op.drop_table("users")
