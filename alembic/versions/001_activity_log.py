"""Activity log table.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""
from __future__ import annotations

from typing import Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, tuple[str, ...], None] = None
depends_on: Union[str, tuple[str, ...], None] = None


def upgrade() -> None:
    op.create_table(
        "activity_log",
        sa.Column("log_name", sa.String(50), nullable=False, index=True, comment="access or default"),
        sa.Column("event", sa.String(255), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("subject_type", sa.String(100)),
        sa.Column("subject_id", sa.String(100)),
        sa.Column("causer_type", sa.String(100)),
        sa.Column("causer_id", sa.String(100), index=True),
        sa.Column("properties", postgresql.JSONB(astext_type=sa.Text())),
        sa.Column("id", postgresql.UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False, index=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_activity_log_subject", "activity_log", ["subject_type", "subject_id"])


def downgrade() -> None:
    op.drop_index("ix_activity_log_subject", table_name="activity_log")
    op.drop_table("activity_log")
