"""Create items and hashtags tables

Revision ID: 7a1c2e9d4b10
Revises:
Create Date: 2026-10-12 10:15:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "7a1c2e9d4b10"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create the item table and the per-user hashtag vocabulary.

    Skips tables that already exist (databases bootstrapped by create_all).
    """
    from sqlalchemy import inspect

    inspector = inspect(op.get_bind())
    tables = inspector.get_table_names()

    if "items" not in tables:
        op.create_table(
            "items",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(255), nullable=False),
            sa.Column("title", sa.Text, nullable=False),
            sa.Column("notes", sa.Text, nullable=False, server_default=""),
            sa.Column("created_at", sa.TIMESTAMP, nullable=False, server_default=sa.func.now()),
            sa.Column("updated_at", sa.TIMESTAMP, nullable=False, server_default=sa.func.now()),
        )
        op.create_index("idx_items_user_id", "items", ["user_id"])
        op.create_index("idx_items_user_updated", "items", ["user_id", "updated_at"])

    if "hashtags" not in tables:
        op.create_table(
            "hashtags",
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("user_id", sa.String(255), nullable=False),
            sa.Column("tag", sa.String(50), nullable=False),
            sa.Column("first_used", sa.TIMESTAMP, nullable=False, server_default=sa.func.now()),
            sa.Column("last_used", sa.TIMESTAMP, nullable=False, server_default=sa.func.now()),
            sa.Column("usage_count", sa.Integer, nullable=False, server_default="1"),
            sa.UniqueConstraint("user_id", "tag", name="uq_hashtags_user_tag"),
        )
        op.create_index("idx_hashtags_user_id", "hashtags", ["user_id"])
        op.create_index("idx_hashtags_user_last_used", "hashtags", ["user_id", "last_used"])


def downgrade() -> None:
    op.drop_index("idx_hashtags_user_last_used", table_name="hashtags")
    op.drop_index("idx_hashtags_user_id", table_name="hashtags")
    op.drop_table("hashtags")

    op.drop_index("idx_items_user_updated", table_name="items")
    op.drop_index("idx_items_user_id", table_name="items")
    op.drop_table("items")
