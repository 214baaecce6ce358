"""Enforce usage_count >= 1 and last_used >= first_used on hashtags

Revision ID: 8b2d3f0e5c21
Revises: 7a1c2e9d4b10
Create Date: 2026-10-14 16:40:00.000000

"""
from typing import Sequence, Union

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "8b2d3f0e5c21"
down_revision: Union[str, None] = "7a1c2e9d4b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("hashtags", schema=None) as batch_op:
        batch_op.create_check_constraint("ck_hashtags_usage_count_positive", "usage_count >= 1")
        batch_op.create_check_constraint("ck_hashtags_last_used_after_first", "last_used >= first_used")


def downgrade() -> None:
    with op.batch_alter_table("hashtags", schema=None) as batch_op:
        batch_op.drop_constraint("ck_hashtags_last_used_after_first", type_="check")
        batch_op.drop_constraint("ck_hashtags_usage_count_positive", type_="check")
