"""
Work-log list view.

Holds the filtered, sorted list of work-log entries and keeps it current by
refetching the whole list whenever the database reports a change on the
work-log table. Changing the filter or sort column refetches and, while
live, re-subscribes (the previous subscription is closed first).

An initial fetch failure puts the view into the error state; a failed
refetch after a change notification is only logged.

Every filter or sort change starts a new query generation. A fetch that
finishes after the query changed is discarded, so an older refetch can
never overwrite the list of the current query.

CHANGELOG:
- 2026-10-19: Discard fetches of superseded queries; per-status counts (STORY-014)
- 2026-10-14: Initial creation (STORY-009)

TODO:
- None
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Sequence
from typing import Any, Protocol

from pydantic import BaseModel

from dashboard.src.models import ChangeEvent, WorkLogRow, WorkLogStatus
from dashboard.src.view_model import Subscription

logger = logging.getLogger(__name__)

ALL_STATUSES = "all"
STATUS_FILTERS = (ALL_STATUSES, *(status.value for status in WorkLogStatus))
SORT_COLUMNS = ("created_at", "updated_at", "priority", "due_date")

_FALLBACK_ERROR = "Failed to fetch work logs"


class WorkLogSource(Protocol):
    async def fetch_work_logs(
        self, status: WorkLogStatus | None, sort_by: str
    ) -> list[WorkLogRow]: ...

    async def subscribe_work_logs(
        self, callback: Callable[[ChangeEvent], Any]
    ) -> Subscription: ...


class WorkLogSnapshot(BaseModel):
    """Read-only view of the work-log list.

    ``counts`` holds the number of listed entries per status plus ``total``.
    """

    status: str
    sort_by: str
    loading: bool
    error: str | None
    entries: list[WorkLogRow]
    counts: dict[str, int]


class WorkLogView:
    """Filtered, sorted work-log list kept current by change notifications.

    Args:
        source: Backend providing the work-log query and subscription.
        status_filter: ``all`` or a :class:`WorkLogStatus` value.
        sort_by: One of :data:`SORT_COLUMNS`.

    Raises:
        ValueError: If the filter or sort column is not supported.
    """

    def __init__(
        self,
        source: WorkLogSource,
        status_filter: str = ALL_STATUSES,
        sort_by: str = "created_at",
    ) -> None:
        _validate(status_filter, sort_by)
        self._source = source
        self.status_filter = status_filter
        self.sort_by = sort_by
        self._entries: list[WorkLogRow] = []
        self._subscription: Subscription | None = None
        self._generation = 0
        self.loading = False
        self.error: str | None = None

    @property
    def entries(self) -> Sequence[WorkLogRow]:
        return tuple(self._entries)

    @property
    def live(self) -> bool:
        return self._subscription is not None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Subscribe to work-log changes and run the initial fetch.

        A previous error is cleared, so a stop/start cycle recovers the view.
        """
        self.error = None
        await self._resubscribe()
        await self.refresh()

    async def stop(self) -> None:
        await self._release_subscription()

    async def __aenter__(self) -> WorkLogView:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.stop()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def refresh(self) -> bool:
        """Fetch the list for the current filter and sort column.

        A result that arrives after the query changed is dropped without
        touching the entries or the error state.

        Returns:
            bool: True on success; False if the fetch failed.
        """
        generation = self._generation
        self.loading = True
        try:
            entries = await self._fetch()
        except Exception as exc:
            if generation != self._generation:
                logger.warning("Superseded work-log fetch failed", exc_info=True)
                return False
            self.error = str(exc) or _FALLBACK_ERROR
            logger.error(
                "Work-log fetch failed (status=%s, sort_by=%s)",
                self.status_filter,
                self.sort_by,
                exc_info=True,
            )
            return False
        finally:
            if generation == self._generation:
                self.loading = False

        self._apply(generation, entries)
        return True

    async def set_query(
        self,
        status_filter: str | None = None,
        sort_by: str | None = None,
    ) -> bool:
        """Change the filter and/or sort column and refetch.

        Raises:
            ValueError: If the filter or sort column is not supported.
        """
        status_filter = status_filter or self.status_filter
        sort_by = sort_by or self.sort_by
        _validate(status_filter, sort_by)
        self.status_filter = status_filter
        self.sort_by = sort_by
        self._generation += 1
        if self.live:
            await self._resubscribe()
        return await self.refresh()

    def snapshot(self) -> WorkLogSnapshot:
        counts = Counter(entry.status.value for entry in self._entries)
        return WorkLogSnapshot(
            status=self.status_filter,
            sort_by=self.sort_by,
            loading=self.loading,
            error=self.error,
            entries=list(self._entries),
            counts={
                **{status.value: counts[status.value] for status in WorkLogStatus},
                "total": len(self._entries),
            },
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _fetch(self) -> list[WorkLogRow]:
        status = None
        if self.status_filter != ALL_STATUSES:
            status = WorkLogStatus(self.status_filter)
        return await self._source.fetch_work_logs(status, self.sort_by)

    def _apply(self, generation: int, entries: list[WorkLogRow]) -> None:
        if generation != self._generation:
            logger.debug(
                "Dropping work-log result of superseded query (generation %d, now %d)",
                generation,
                self._generation,
            )
            return
        self._entries = entries

    async def _on_change(self, event: ChangeEvent) -> None:
        logger.debug("Work-log %s on %s, refetching", event.event, event.table)
        generation = self._generation
        try:
            entries = await self._fetch()
        except Exception:
            logger.error("Failed to refetch work logs", exc_info=True)
            return
        self._apply(generation, entries)

    async def _resubscribe(self) -> None:
        await self._release_subscription()
        self._subscription = await self._source.subscribe_work_logs(self._on_change)

    async def _release_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()


def _validate(status_filter: str, sort_by: str) -> None:
    if status_filter not in STATUS_FILTERS:
        raise ValueError(
            f"Invalid status filter '{status_filter}'. Must be one of: {list(STATUS_FILTERS)}."
        )
    if sort_by not in SORT_COLUMNS:
        raise ValueError(
            f"Invalid sort column '{sort_by}'. Must be one of: {list(SORT_COLUMNS)}."
        )
