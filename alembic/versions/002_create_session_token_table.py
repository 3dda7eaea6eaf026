"""Create session token table

Revision ID: 002
Revises: 001
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "session_token",
        sa.Column("token", sa.String(length=256), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("last_used_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["user.id"]),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index(op.f("ix_session_token_user_id"), "session_token", ["user_id"], unique=False)
    op.create_index(op.f("ix_session_token_last_used_at"), "session_token", ["last_used_at"], unique=False)


def downgrade() -> None:
    op.drop_index(op.f("ix_session_token_last_used_at"), table_name="session_token")
    op.drop_index(op.f("ix_session_token_user_id"), table_name="session_token")
    op.drop_table("session_token")
