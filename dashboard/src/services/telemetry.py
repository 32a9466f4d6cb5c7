"""
Backend service for the dashboard views.

Wraps the two collaborators the views depend on:

- Bulk queries through the SQLAlchemy async session factory
  (telemetry windows and the filtered/sorted work-log list).
- Change subscriptions through the LISTEN/NOTIFY :class:`ChangeFeed`.

Operations:
- fetch_readings(device_ids, since, limit): Ascending telemetry window.
- subscribe_readings(device_ids, callback): Pushed telemetry inserts.
- fetch_work_logs(status, sort_by): Work-log list, newest/most urgent first.
- subscribe_work_logs(callback): Any work-log change.

CHANGELOG:
- 2026-10-14: Add work-log query and subscription (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from pydantic import ValidationError
from sqlalchemy import Select, case, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from dashboard.src.db.models import RectifierReading, WorkLog
from dashboard.src.models import (
    ChangeEvent,
    RectifierRow,
    WorkLogPriority,
    WorkLogRow,
    WorkLogStatus,
)
from dashboard.src.services.notifications import ChangeFeed, Subscription
from dashboard.src.work_logs import SORT_COLUMNS as WORK_LOG_SORT_COLUMNS

logger = logging.getLogger(__name__)

_PRIORITY_ORDER = case(
    {priority.value: priority.rank for priority in WorkLogPriority},
    value=WorkLog.priority,
    else_=-1,
)


def readings_query(
    device_ids: Sequence[int], since: datetime, limit: int
) -> Select[tuple[RectifierReading]]:
    """Build the telemetry window query, ascending by time."""
    return (
        select(RectifierReading)
        .where(
            RectifierReading.slave_id.in_(list(device_ids)),
            RectifierReading.timestamp >= since,
        )
        .order_by(RectifierReading.timestamp.asc(), RectifierReading.id.asc())
        .limit(limit)
    )


def work_logs_query(
    status: WorkLogStatus | None, sort_by: str
) -> Select[tuple[WorkLog]]:
    """Build the work-log list query, descending by *sort_by*.

    Raises:
        ValueError: If *sort_by* is not one of :data:`WORK_LOG_SORT_COLUMNS`.
    """
    if sort_by not in WORK_LOG_SORT_COLUMNS:
        raise ValueError(
            f"Invalid sort column '{sort_by}'. Must be one of: {list(WORK_LOG_SORT_COLUMNS)}."
        )

    stmt = select(WorkLog)
    if status is not None:
        stmt = stmt.where(WorkLog.status == status.value)

    if sort_by == "priority":
        order = _PRIORITY_ORDER.desc()
    elif sort_by == "due_date":
        order = WorkLog.due_date.desc().nulls_last()
    else:
        order = getattr(WorkLog, sort_by).desc()
    return stmt.order_by(order, WorkLog.id.desc())


class TelemetryService:
    """Database-backed source for the telemetry and work-log views.

    Args:
        session_factory: Async SQLAlchemy session factory.
        feed: LISTEN/NOTIFY change feed.
        telemetry_channel: NOTIFY channel of telemetry inserts.
        work_log_channel: NOTIFY channel of work-log changes.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        feed: ChangeFeed,
        *,
        telemetry_channel: str = "rectifier_changes",
        work_log_channel: str = "work_data_changes",
    ) -> None:
        self._session_factory = session_factory
        self._feed = feed
        self._telemetry_channel = telemetry_channel
        self._work_log_channel = work_log_channel

    # ------------------------------------------------------------------
    # Telemetry
    # ------------------------------------------------------------------

    async def fetch_readings(
        self,
        device_ids: Sequence[int],
        since: datetime,
        limit: int,
    ) -> list[RectifierRow]:
        """Return up to *limit* rows of *device_ids* since *since*, oldest first."""
        stmt = readings_query(device_ids, since, limit)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            readings = result.scalars().all()
        return [RectifierRow.model_validate(reading) for reading in readings]

    async def subscribe_readings(
        self,
        device_ids: Sequence[int],
        callback: Callable[[RectifierRow], None],
    ) -> Subscription:
        """Forward telemetry inserts of *device_ids* to *callback*."""
        tracked = frozenset(device_ids)

        def _matches(event: ChangeEvent) -> bool:
            return event.new is not None and event.new.get("slave_id") in tracked

        def _deliver(event: ChangeEvent) -> None:
            try:
                row = RectifierRow.model_validate(event.new)
            except ValidationError:
                logger.warning("Dropping invalid telemetry row: %s", event.new)
                return
            callback(row)

        return await self._feed.subscribe(
            self._telemetry_channel,
            _deliver,
            events={"INSERT"},
            predicate=_matches,
        )

    # ------------------------------------------------------------------
    # Work logs
    # ------------------------------------------------------------------

    async def fetch_work_logs(
        self,
        status: WorkLogStatus | None,
        sort_by: str,
    ) -> list[WorkLogRow]:
        """Return work-log entries, optionally filtered by *status*."""
        stmt = work_logs_query(status, sort_by)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            entries = result.scalars().all()
        return [WorkLogRow.model_validate(entry) for entry in entries]

    async def subscribe_work_logs(
        self,
        callback: Callable[[ChangeEvent], Any],
    ) -> Subscription:
        """Forward every work-log change to *callback*."""
        return await self._feed.subscribe(self._work_log_channel, callback)
