"""Initial schema for users, filter rows and known tokens.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-16 00:00:00.000000+00:00
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("user_id"),
    )

    op.create_table(
        "user_filters",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("filter_type", sa.String(32), nullable=False),
        sa.Column("filter_value", sa.String(100), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("idx_user_filters_user_id", "user_filters", ["user_id"])
    op.create_index("idx_user_filters_user_type", "user_filters", ["user_id", "filter_type"])

    op.create_table(
        "unique_tokens",
        sa.Column("token_mint", sa.String(64), nullable=False),
        sa.Column("token_symbol", sa.String(64), nullable=True),
        sa.Column("first_seen_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("token_mint"),
    )
    op.create_index("idx_unique_tokens_first_seen_at", "unique_tokens", ["first_seen_at"])


def downgrade() -> None:
    op.drop_index("idx_unique_tokens_first_seen_at", table_name="unique_tokens")
    op.drop_table("unique_tokens")
    op.drop_index("idx_user_filters_user_type", table_name="user_filters")
    op.drop_index("idx_user_filters_user_id", table_name="user_filters")
    op.drop_table("user_filters")
    op.drop_table("users")
