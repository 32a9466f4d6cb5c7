"""
PostgreSQL LISTEN/NOTIFY change feed.

The NOTIFY triggers installed by migration 002 publish a JSON envelope
(``{"event", "table", "new", "old"}``) for every change on the telemetry and
work-log tables. ``ChangeFeed.subscribe`` opens a dedicated asyncpg
connection, LISTENs on a channel and forwards matching events to a callback
until the returned :class:`Subscription` is closed.

Malformed payloads and callback failures are logged and dropped; the
subscription keeps listening.

CHANGELOG:
- 2026-10-14: Support coroutine callbacks for work-log refetches (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Callable, Collection
from typing import Any

import asyncpg
from pydantic import ValidationError

from dashboard.src.models import ChangeEvent

logger = logging.getLogger(__name__)

EventCallback = Callable[[ChangeEvent], Any]
EventPredicate = Callable[[ChangeEvent], bool]


class Subscription:
    """An open LISTEN on one channel.

    Created by :meth:`ChangeFeed.subscribe`; call :meth:`close` to stop
    delivery and release the connection. Closing twice is a no-op.
    """

    def __init__(
        self,
        connection: asyncpg.Connection,
        channel: str,
        listener: Callable[..., None],
    ) -> None:
        self._connection = connection
        self.channel = channel
        self._listener = listener
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Stop listening and close the dedicated connection."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._connection.remove_listener(self.channel, self._listener)
        finally:
            await self._connection.close()
        logger.info("Stopped listening on channel: %s", self.channel)


class ChangeFeed:
    """Factory for LISTEN subscriptions against one database.

    Args:
        dsn: asyncpg connection string (``postgresql://...``).

    Usage::

        feed = ChangeFeed("postgresql://user:pw@db/app")
        subscription = await feed.subscribe(
            "rectifier_changes", handle_event, events={"INSERT"}
        )
        ...
        await subscription.close()
    """

    def __init__(self, dsn: str) -> None:
        self._dsn = dsn
        self._tasks: set[asyncio.Task[Any]] = set()

    async def subscribe(
        self,
        channel: str,
        callback: EventCallback,
        *,
        events: Collection[str] | None = None,
        predicate: EventPredicate | None = None,
    ) -> Subscription:
        """LISTEN on *channel* and forward matching events to *callback*.

        Args:
            channel: NOTIFY channel name.
            callback: Called with each matching :class:`ChangeEvent`. If it
                returns an awaitable, the awaitable is scheduled as a task.
            events: Event types to forward (``INSERT``, ``UPDATE``,
                ``DELETE``); None forwards all.
            predicate: Extra filter applied to each event.

        Returns:
            Subscription: Handle to close the subscription.
        """

        def _listener(
            connection: asyncpg.Connection, pid: int, chan: str, payload: str
        ) -> None:
            self._dispatch(chan, payload, callback, events, predicate)

        connection = await asyncpg.connect(self._dsn)
        try:
            await connection.add_listener(channel, _listener)
        except Exception:
            await connection.close()
            raise
        logger.info("Listening on channel: %s", channel)
        return Subscription(connection, channel, _listener)

    def _dispatch(
        self,
        channel: str,
        payload: str,
        callback: EventCallback,
        events: Collection[str] | None,
        predicate: EventPredicate | None,
    ) -> None:
        try:
            event = ChangeEvent.model_validate_json(payload)
        except ValidationError:
            logger.warning(
                "Dropping malformed notification on %s: %.200s", channel, payload
            )
            return

        if events is not None and event.event not in events:
            return
        if predicate is not None and not predicate(event):
            return

        try:
            result = callback(event)
        except Exception:
            logger.error("Change callback failed on channel %s", channel, exc_info=True)
            return

        if inspect.isawaitable(result):
            task = asyncio.ensure_future(result)
            self._tasks.add(task)
            task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Change callback task failed",
                exc_info=task.exception(),
            )
