"""create chat_sessions table

Revision ID: 5c1e9a7d2b40
Revises:
Create Date: 2026-10-19

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5c1e9a7d2b40"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create chat_sessions with an inline JSON message log."""
    op.create_table(
        "chat_sessions",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("owner_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("memory_enabled", sa.Boolean(), nullable=False),
        sa.Column("context_window", sa.Integer(), nullable=False),
        sa.Column("messages", sa.JSON(), nullable=False),
        sa.Column("settings", sa.JSON(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        op.f("ix_chat_sessions_owner_id"),
        "chat_sessions",
        ["owner_id"],
        unique=False,
    )
    op.create_index(
        "ix_chat_sessions_owner_id_updated_at",
        "chat_sessions",
        ["owner_id", "updated_at"],
        unique=False,
    )
    op.create_index(
        "ix_chat_sessions_owner_id_expires_at",
        "chat_sessions",
        ["owner_id", "expires_at"],
        unique=False,
    )


def downgrade() -> None:
    """Drop chat_sessions."""
    op.drop_index("ix_chat_sessions_owner_id_expires_at", table_name="chat_sessions")
    op.drop_index("ix_chat_sessions_owner_id_updated_at", table_name="chat_sessions")
    op.drop_index(op.f("ix_chat_sessions_owner_id"), table_name="chat_sessions")
    op.drop_table("chat_sessions")
