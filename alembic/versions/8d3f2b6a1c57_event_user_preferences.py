"""Add event_user_preferences (per-event DM opt-out)

Revision ID: 8d3f2b6a1c57
Revises: 5c1e7a9d2b40
Create Date: 2026-10-19 16:40:27.902114

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8d3f2b6a1c57'
down_revision: str | Sequence[str] | None = '5c1e7a9d2b40'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "event_user_preferences",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "event_id", sa.String(36),
            sa.ForeignKey("events.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("user_id", sa.String(100), nullable=False),
        sa.Column("user_email", sa.String(320), nullable=True),
        sa.Column("allow_dms", sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.UniqueConstraint(
            "event_id", "user_id", name="uq_event_user_preferences_event_user"
        ),
    )
    op.create_index(
        "ix_event_user_preferences_user_id", "event_user_preferences", ["user_id"]
    )


def downgrade() -> None:
    op.drop_index("ix_event_user_preferences_user_id", table_name="event_user_preferences")
    op.drop_table("event_user_preferences")
