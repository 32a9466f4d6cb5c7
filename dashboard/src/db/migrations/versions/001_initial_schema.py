"""
Initial schema: telemetry and work-log tables.

Creates the rectifier telemetry table with an index on (slave_id,
timestamp) for the per-device window queries, and the work_data table for
facility work-log entries. Tables that already exist are left untouched,
since the rectifier gateway may have created the telemetry table itself.

Revision ID: 001
Revises: None
Create Date: 2026-10-13

CHANGELOG:
- 2026-10-14: Add work_data table (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# Revision identifiers used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TELEMETRY_TABLE = "정류기"
WORK_LOG_TABLE = "work_data"


def upgrade() -> None:
    """Create the telemetry and work-log tables if they are missing."""
    inspector = sa.inspect(op.get_bind())
    existing = set(inspector.get_table_names())

    if TELEMETRY_TABLE not in existing:
        op.create_table(
            TELEMETRY_TABLE,
            sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
            sa.Column("slave_id", sa.Integer(), nullable=False),
            sa.Column("voltage", sa.Double(), nullable=True),
            sa.Column("current", sa.Double(), nullable=True),
            sa.Column("status_code", sa.Text(), nullable=True),
            sa.Column(
                "timestamp",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
        )
        op.create_index(
            "ix_rectifier_slave_ts", TELEMETRY_TABLE, ["slave_id", "timestamp"]
        )

    if WORK_LOG_TABLE not in existing:
        op.create_table(
            WORK_LOG_TABLE,
            sa.Column("id", sa.BigInteger(), primary_key=True, autoincrement=True),
            sa.Column("title", sa.Text(), nullable=False),
            sa.Column("content", sa.Text(), nullable=False, server_default=""),
            sa.Column("status", sa.Text(), nullable=False, server_default="pending"),
            sa.Column("priority", sa.Text(), nullable=False, server_default="medium"),
            sa.Column("assigned_to", sa.Text(), nullable=True),
            sa.Column(
                "created_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column(
                "updated_at",
                sa.DateTime(timezone=True),
                nullable=False,
                server_default=sa.func.now(),
            ),
            sa.Column("due_date", sa.Date(), nullable=True),
            sa.CheckConstraint(
                "status IN ('pending', 'in_progress', 'completed', 'cancelled')",
                name="ck_work_data_status",
            ),
            sa.CheckConstraint(
                "priority IN ('low', 'medium', 'high', 'urgent')",
                name="ck_work_data_priority",
            ),
        )


def downgrade() -> None:
    """Drop the work-log table.

    Note: The telemetry table is owned by the gateway and is not dropped.
    """
    op.drop_table(WORK_LOG_TABLE)
