"""
Change notifications: NOTIFY triggers for telemetry and work-log tables.

Installs trigger functions that publish a JSON envelope
``{"event", "table", "new", "old"}`` through ``pg_notify`` so the dashboard
can LISTEN for changes (see dashboard/src/services/notifications.py).

- Telemetry inserts are published on ``rectifier_changes`` with the
  reading columns (id, slave_id, voltage, current, status_code, timestamp).
- Work-log inserts, updates and deletes are published on
  ``work_data_changes`` with the row id only; listeners refetch the list.

Payloads never carry whole rows: ``pg_notify`` rejects payloads of 8000
bytes or more, and the error aborts the triggering statement.

Revision ID: 002
Revises: 001
Create Date: 2026-10-13

CHANGELOG:
- 2026-10-19: Publish column subsets instead of row_to_json (STORY-014)
- 2026-10-14: Add work_data trigger (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

from collections.abc import Sequence

from alembic import op

# Revision identifiers used by Alembic.
revision: str = "002"
down_revision: str | None = "001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

TELEMETRY_CHANNEL = "rectifier_changes"
WORK_LOG_CHANNEL = "work_data_changes"

TELEMETRY_COLUMNS = ("id", "slave_id", "voltage", "current", "status_code", "timestamp")
WORK_LOG_COLUMNS = ("id",)


def _row_object(record: str, columns: Sequence[str]) -> str:
    """Return a json_build_object() call over *columns* of NEW or OLD."""
    pairs = ", ".join(f"'{column}', {record}.\"{column}\"" for column in columns)
    return f"json_build_object({pairs})"


def _notify_function_sql(function_name: str, channel: str, columns: Sequence[str]) -> str:
    """Return the CREATE FUNCTION statement for a NOTIFY trigger function."""
    return (
        f"CREATE OR REPLACE FUNCTION {function_name}() RETURNS trigger AS $$\n"
        f"BEGIN\n"
        f"    PERFORM pg_notify(\n"
        f"        '{channel}',\n"
        f"        json_build_object(\n"
        f"            'event', TG_OP,\n"
        f"            'table', TG_TABLE_NAME,\n"
        f"            'new', CASE WHEN TG_OP = 'DELETE' THEN NULL"
        f" ELSE {_row_object('NEW', columns)} END,\n"
        f"            'old', CASE WHEN TG_OP = 'INSERT' THEN NULL"
        f" ELSE {_row_object('OLD', columns)} END\n"
        f"        )::text\n"
        f"    );\n"
        f"    RETURN NULL;\n"
        f"END;\n"
        f"$$ LANGUAGE plpgsql"
    )


def upgrade() -> None:
    """Create the notify functions and attach them as AFTER triggers."""
    op.execute(
        _notify_function_sql("notify_rectifier_change", TELEMETRY_CHANNEL, TELEMETRY_COLUMNS)
    )
    op.execute(
        'CREATE TRIGGER rectifier_notify AFTER INSERT ON "정류기" '
        "FOR EACH ROW EXECUTE FUNCTION notify_rectifier_change()"
    )

    op.execute(
        _notify_function_sql("notify_work_data_change", WORK_LOG_CHANNEL, WORK_LOG_COLUMNS)
    )
    op.execute(
        "CREATE TRIGGER work_data_notify AFTER INSERT OR UPDATE OR DELETE ON work_data "
        "FOR EACH ROW EXECUTE FUNCTION notify_work_data_change()"
    )


def downgrade() -> None:
    """Drop the triggers and their functions."""
    op.execute("DROP TRIGGER IF EXISTS work_data_notify ON work_data")
    op.execute("DROP FUNCTION IF EXISTS notify_work_data_change()")
    op.execute('DROP TRIGGER IF EXISTS rectifier_notify ON "정류기"')
    op.execute("DROP FUNCTION IF EXISTS notify_rectifier_change()")
