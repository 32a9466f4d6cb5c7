"""
Unit tests for the database-backed TelemetryService.

Queries are compiled against the PostgreSQL dialect; the session factory and
change feed are mocked.

Tests verify:
- The telemetry window query filters by device and time, ascending, limited.
- The work-log query filters by status and orders by priority rank or
  due date (nulls last) where requested.
- Rows are converted into RectifierRow / WorkLogRow models.
- Telemetry subscriptions only deliver inserts of tracked devices, as
  RectifierRow instances.

CHANGELOG:
- 2026-10-14: Add work-log query tests (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

import logging
from datetime import UTC, date, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql

from dashboard.src.db.models import RectifierReading, WorkLog
from dashboard.src.models import ChangeEvent, RectifierRow, WorkLogPriority, WorkLogStatus
from dashboard.src.services.telemetry import (
    TelemetryService,
    readings_query,
    work_logs_query,
)

TS = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _sql(stmt) -> str:
    """Compile for PostgreSQL, with identifier quoting removed."""
    return str(stmt.compile(dialect=postgresql.dialect())).replace('"', "")


def _params(stmt) -> dict:
    return stmt.compile(dialect=postgresql.dialect()).params


def _mock_session_factory(rows: list) -> tuple[MagicMock, AsyncMock]:
    """Create a session factory whose sessions return *rows* from scalars()."""
    result = MagicMock()
    result.scalars.return_value.all.return_value = rows
    session = AsyncMock()
    session.execute = AsyncMock(return_value=result)
    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=None)
    return factory, session


def _mock_feed() -> MagicMock:
    feed = MagicMock()
    feed.subscribe = AsyncMock(return_value=MagicMock())
    return feed


def _insert(**new: object) -> ChangeEvent:
    return ChangeEvent(event="INSERT", table="정류기", new=new)


# ---------------------------------------------------------------------------
# Query builders
# ---------------------------------------------------------------------------


class TestReadingsQuery:
    def test_filters_by_device_and_time(self) -> None:
        stmt = readings_query([2, 1], TS, 1000)
        sql = _sql(stmt)

        assert "정류기" in sql
        assert "slave_id IN" in sql
        assert ">=" in sql
        params = _params(stmt)
        assert [2, 1] in params.values()
        assert TS in params.values()

    def test_ascending_by_time_and_limited(self) -> None:
        stmt = readings_query([3, 4], TS, 2000)
        sql = _sql(stmt)

        order_by = sql.split("ORDER BY", 1)[1]
        assert "timestamp ASC" in order_by
        assert "id ASC" in order_by
        assert "LIMIT" in sql
        assert 2000 in _params(stmt).values()


class TestWorkLogsQuery:
    def test_no_status_means_no_filter(self) -> None:
        sql = _sql(work_logs_query(None, "created_at"))

        assert "WHERE" not in sql
        assert "created_at DESC" in sql

    def test_status_filter(self) -> None:
        stmt = work_logs_query(WorkLogStatus.IN_PROGRESS, "updated_at")

        assert "WHERE" in _sql(stmt)
        assert "in_progress" in _params(stmt).values()

    def test_priority_orders_by_rank(self) -> None:
        stmt = work_logs_query(None, "priority")
        sql = _sql(stmt)

        assert "CASE" in sql
        assert sql.rstrip().endswith("DESC, work_data.id DESC")
        params = _params(stmt).values()
        assert "urgent" in params
        assert WorkLogPriority.URGENT.rank in params

    def test_due_date_sorts_nulls_last(self) -> None:
        sql = _sql(work_logs_query(None, "due_date"))

        assert "due_date DESC NULLS LAST" in sql

    def test_unknown_sort_column_rejected(self) -> None:
        with pytest.raises(ValueError, match="Invalid sort column"):
            work_logs_query(None, "title")


# ---------------------------------------------------------------------------
# Bulk fetches
# ---------------------------------------------------------------------------


class TestFetchReadings:
    @pytest.mark.asyncio
    async def test_rows_are_converted(self) -> None:
        readings = [
            RectifierReading(
                id=10, slave_id=1, voltage=48.1, current=None, status_code="200", timestamp=TS
            ),
        ]
        factory, session = _mock_session_factory(readings)
        service = TelemetryService(factory, _mock_feed())

        rows = await service.fetch_readings([1], TS, 1000)

        session.execute.assert_awaited_once()
        assert rows == [
            RectifierRow(
                id=10, slave_id=1, voltage=48.1, current=None, status_code="200", timestamp=TS
            )
        ]

    @pytest.mark.asyncio
    async def test_query_failure_propagates(self) -> None:
        factory, session = _mock_session_factory([])
        session.execute = AsyncMock(side_effect=OSError("connection refused"))
        service = TelemetryService(factory, _mock_feed())

        with pytest.raises(OSError, match="connection refused"):
            await service.fetch_readings([1], TS, 1000)


class TestFetchWorkLogs:
    @pytest.mark.asyncio
    async def test_rows_are_converted(self) -> None:
        entry = WorkLog(
            id=3,
            title="Replace fan",
            content="Fan 2 on rectifier 1",
            status="pending",
            priority="urgent",
            assigned_to=None,
            created_at=TS,
            updated_at=TS,
            due_date=date(2026, 10, 20),
        )
        factory, _ = _mock_session_factory([entry])
        service = TelemetryService(factory, _mock_feed())

        [row] = await service.fetch_work_logs(WorkLogStatus.PENDING, "priority")

        assert row.id == 3
        assert row.status is WorkLogStatus.PENDING
        assert row.priority is WorkLogPriority.URGENT
        assert row.due_date == date(2026, 10, 20)


# ---------------------------------------------------------------------------
# Subscriptions
# ---------------------------------------------------------------------------


class TestSubscribeReadings:
    @pytest.mark.asyncio
    async def test_subscribes_to_inserts_on_telemetry_channel(self) -> None:
        feed = _mock_feed()
        service = TelemetryService(MagicMock(), feed, telemetry_channel="telemetry")

        await service.subscribe_readings([2, 1], MagicMock())

        feed.subscribe.assert_awaited_once()
        assert feed.subscribe.call_args.args[0] == "telemetry"
        assert feed.subscribe.call_args.kwargs["events"] == {"INSERT"}

    @pytest.mark.asyncio
    async def test_predicate_tracks_only_given_devices(self) -> None:
        feed = _mock_feed()
        service = TelemetryService(MagicMock(), feed)
        await service.subscribe_readings([2, 1], MagicMock())
        predicate = feed.subscribe.call_args.kwargs["predicate"]

        assert predicate(_insert(slave_id=1)) is True
        assert predicate(_insert(slave_id=3)) is False
        assert predicate(ChangeEvent(event="INSERT", table="정류기", new=None)) is False

    @pytest.mark.asyncio
    async def test_delivers_rectifier_rows(self) -> None:
        feed = _mock_feed()
        callback = MagicMock()
        service = TelemetryService(MagicMock(), feed)
        await service.subscribe_readings([1], callback)
        deliver = feed.subscribe.call_args.args[1]

        deliver(
            _insert(
                id=11,
                slave_id=1,
                voltage=47.9,
                current=None,
                status_code="0x04",
                timestamp="2026-10-19T12:00:00+00:00",
            )
        )

        callback.assert_called_once()
        row = callback.call_args.args[0]
        assert isinstance(row, RectifierRow)
        assert row.voltage == 47.9
        assert row.current is None
        assert row.timestamp == TS

    @pytest.mark.asyncio
    async def test_invalid_row_is_dropped(self, caplog: pytest.LogCaptureFixture) -> None:
        feed = _mock_feed()
        callback = MagicMock()
        service = TelemetryService(MagicMock(), feed)
        await service.subscribe_readings([1], callback)
        deliver = feed.subscribe.call_args.args[1]

        with caplog.at_level(logging.WARNING):
            deliver(_insert(slave_id=1, voltage=48.0))

        callback.assert_not_called()
        assert "Dropping invalid telemetry row" in caplog.text


class TestSubscribeWorkLogs:
    @pytest.mark.asyncio
    async def test_forwards_every_change(self) -> None:
        feed = _mock_feed()
        callback = MagicMock()
        service = TelemetryService(MagicMock(), feed)

        await service.subscribe_work_logs(callback)

        feed.subscribe.assert_awaited_once_with("work_data_changes", callback)
