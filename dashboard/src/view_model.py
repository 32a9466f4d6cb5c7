"""
Live telemetry view model for a group of rectifiers.

One ``TelemetryViewModel`` backs one monitor screen (the hard or the soft
group). It keeps, per tracked device, a capped voltage series, a capped
current series and the latest :class:`DeviceStatus`, and reconciles two
inputs:

1. **Bulk loads**: a historical query over the selected time window that
   *replaces* the device's buffers.
2. **Incremental updates**: rows pushed by the change feed that are
   *appended* to the buffers and replace the device status.

Whichever of the two is applied last wins; no timestamp reconciliation is
done between an in-flight bulk load and updates that arrive meanwhile.
A failed bulk load puts the whole view into a single error state and leaves
all buffers as they were. The error stays until the view is started again.

Operations:
- load_history(device_id, time_range): Bulk load one device (or the whole
  group in shared-range mode).
- on_incoming_point(row): Apply one pushed row.
- set_time_range(device_id, time_range): Store the window and reload.
- refresh(): Bulk load every device concurrently.
- start()/stop(): Acquire/release the change subscription.
- snapshot(): Read-only view for the renderer.

CHANGELOG:
- 2026-10-19: Clear the error state on start (STORY-014)
- 2026-10-15: Carry forward channel values missing from pushed rows (STORY-011)
- 2026-10-13: Merge hard/soft monitors into one parametrised view model (STORY-008)
- 2026-10-12: Initial creation (STORY-007)

TODO:
- None
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Protocol

from pydantic import BaseModel

from dashboard.src.liveness import is_online
from dashboard.src.models import DeviceStatus, RectifierRow, Sample
from dashboard.src.series import SampleBuffer
from dashboard.src.time_range import DEFAULT_RANGE, resolve

logger = logging.getLogger(__name__)

_FALLBACK_ERROR = "Failed to fetch data"


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class Subscription(Protocol):
    """Handle of an open change subscription."""

    async def close(self) -> None: ...


class TelemetrySource(Protocol):
    """Backend the view model reads from.

    Implemented by :class:`dashboard.src.services.telemetry.TelemetryService`.
    """

    async def fetch_readings(
        self,
        device_ids: Sequence[int],
        since: datetime,
        limit: int,
    ) -> list[RectifierRow]: ...

    async def subscribe_readings(
        self,
        device_ids: Sequence[int],
        callback: Callable[[RectifierRow], None],
    ) -> Subscription: ...


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


class RangeMode(StrEnum):
    """Whether each device has its own time window or the group shares one."""

    PER_DEVICE = "per-device"
    SHARED = "shared"


@dataclass(frozen=True)
class MonitorConfig:
    """Parameters of one monitor group.

    Attributes:
        name: Monitor name used in logs and URLs (``hard``, ``soft``).
        title: Display prefix for device names.
        device_ids: Tracked slave ids, in display order.
        cap_per_series: Maximum retained samples per series.
        online_threshold: Staleness threshold for the online flag.
        range_mode: Per-device or shared time window.
        default_range: Window label used until the user picks another.
        query_limit: Row limit of a bulk load; defaults to cap_per_series.
    """

    name: str
    device_ids: tuple[int, ...]
    cap_per_series: int = 1000
    online_threshold: timedelta = timedelta(seconds=60)
    range_mode: RangeMode = RangeMode.PER_DEVICE
    default_range: str = DEFAULT_RANGE
    query_limit: int | None = None
    title: str = ""

    def __post_init__(self) -> None:
        if not self.device_ids:
            raise ValueError(f"Monitor '{self.name}' must track at least one device")
        if len(set(self.device_ids)) != len(self.device_ids):
            raise ValueError(f"Monitor '{self.name}' has duplicate device ids")
        if self.cap_per_series < 1:
            raise ValueError("cap_per_series must be >= 1")
        if self.online_threshold <= timedelta(0):
            raise ValueError("online_threshold must be positive")

    @property
    def row_limit(self) -> int:
        return self.query_limit if self.query_limit is not None else self.cap_per_series

    def display_name(self, device_id: int) -> str:
        """Return the operator-facing name, numbered by display order."""
        prefix = self.title or self.name.capitalize()
        return f"{prefix} {self.device_ids.index(device_id) + 1}"


# ---------------------------------------------------------------------------
# Snapshots
# ---------------------------------------------------------------------------


class DeviceSnapshot(BaseModel):
    """Read-only view of one device for the renderer."""

    device_id: int
    display_name: str
    time_range: str
    status: DeviceStatus | None
    voltage: list[Sample]
    current: list[Sample]


class MonitorSnapshot(BaseModel):
    """Read-only view of a whole monitor group."""

    name: str
    range_mode: RangeMode
    loading: bool
    error: str | None
    devices: list[DeviceSnapshot]


# ---------------------------------------------------------------------------
# View model
# ---------------------------------------------------------------------------


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


class TelemetryViewModel:
    """Per-device telemetry buffers merged from bulk loads and a change feed.

    The instance exclusively owns its buffers, status map and range
    settings. All mutation happens on the event loop through the public
    operations; buffer replacement never spans an ``await``.

    Args:
        config: Monitor group parameters.
        source: Backend providing bulk queries and the change subscription.
        clock: Returns the current time; injectable for tests.

    Usage::

        async with TelemetryViewModel(config, service) as view:
            await view.set_time_range(1, "1h")
            snapshot = view.snapshot()
    """

    def __init__(
        self,
        config: MonitorConfig,
        source: TelemetrySource,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.config = config
        self._source = source
        self._clock = clock
        cap = config.cap_per_series
        self._voltage: dict[int, SampleBuffer] = {
            device_id: SampleBuffer(cap) for device_id in config.device_ids
        }
        self._current: dict[int, SampleBuffer] = {
            device_id: SampleBuffer(cap) for device_id in config.device_ids
        }
        self._statuses: dict[int, DeviceStatus] = {}
        self._ranges: dict[int, str] = {
            device_id: config.default_range for device_id in config.device_ids
        }
        self._subscription: Subscription | None = None
        self.loading = False
        self.error: str | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def live(self) -> bool:
        """True while a change subscription is held."""
        return self._subscription is not None

    async def start(self) -> None:
        """Subscribe to pushed rows and run the initial bulk load.

        Any previously held subscription is closed before the new one is
        acquired, and a previous error is cleared so a restart can recover.
        """
        self.error = None
        await self._release_subscription()
        self._subscription = await self._source.subscribe_readings(
            self.config.device_ids, self.on_incoming_point
        )
        logger.info(
            "Monitor %s subscribed to devices %s",
            self.config.name,
            list(self.config.device_ids),
        )
        await self.refresh()

    async def stop(self) -> None:
        """Release the change subscription. Buffers are kept."""
        await self._release_subscription()

    async def __aenter__(self) -> TelemetryViewModel:
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.stop()

    async def _release_subscription(self) -> None:
        subscription, self._subscription = self._subscription, None
        if subscription is not None:
            await subscription.close()
            logger.info("Monitor %s unsubscribed", self.config.name)

    # ------------------------------------------------------------------
    # Bulk loads
    # ------------------------------------------------------------------

    async def refresh(self) -> None:
        """Bulk load every tracked device, concurrently.

        ``loading`` is set for the duration and cleared once every load has
        finished, successful or not.
        """
        self.loading = True
        try:
            if self.config.range_mode is RangeMode.SHARED:
                await self._load(self.config.device_ids, self._shared_range())
            else:
                await asyncio.gather(
                    *(
                        self._load((device_id,), self._ranges[device_id])
                        for device_id in self.config.device_ids
                    )
                )
        finally:
            self.loading = False

    async def load_history(self, device_id: int, time_range: str | None = None) -> bool:
        """Replace a device's buffers with the rows of a time window.

        In shared-range mode the whole group is loaded by one query.

        Args:
            device_id: Tracked slave id.
            time_range: Window label; defaults to the stored setting.

        Returns:
            bool: True on success, False if the query failed (the view is
            then in the error state).

        Raises:
            KeyError: If *device_id* is not tracked by this monitor.
        """
        self._require_tracked(device_id)
        label = time_range or self._ranges[device_id]
        if self.config.range_mode is RangeMode.SHARED:
            return await self._load(self.config.device_ids, label)
        return await self._load((device_id,), label)

    async def set_time_range(self, device_id: int | None, time_range: str) -> bool:
        """Store a new window and reload the affected device(s).

        Per-device mode reloads only *device_id*; the other devices keep
        their buffers. Shared mode updates the group window (*device_id*
        may be None) and reloads the group.

        Raises:
            KeyError: If *device_id* is required or given but not tracked.
        """
        if self.config.range_mode is RangeMode.SHARED:
            if device_id is not None:
                self._require_tracked(device_id)
            for tracked in self.config.device_ids:
                self._ranges[tracked] = time_range
            logger.info("Monitor %s window set to %s", self.config.name, time_range)
            return await self._load(self.config.device_ids, time_range)

        if device_id is None:
            raise KeyError(f"Monitor '{self.config.name}' needs a device id to set a window")
        self._require_tracked(device_id)
        self._ranges[device_id] = time_range
        logger.info(
            "Monitor %s device %s window set to %s",
            self.config.name,
            device_id,
            time_range,
        )
        return await self._load((device_id,), time_range)

    async def _load(self, device_ids: Sequence[int], time_range: str) -> bool:
        since = self._clock() - resolve(time_range)
        try:
            rows = await self._source.fetch_readings(
                device_ids, since, self.config.row_limit
            )
        except Exception as exc:
            self.error = str(exc) or _FALLBACK_ERROR
            logger.error(
                "Bulk load failed for monitor=%s devices=%s range=%s",
                self.config.name,
                list(device_ids),
                time_range,
                exc_info=True,
            )
            return False

        self._apply_history(device_ids, rows)
        logger.debug(
            "Bulk load: monitor=%s devices=%s range=%s rows=%d",
            self.config.name,
            list(device_ids),
            time_range,
            len(rows),
        )
        return True

    def _apply_history(self, device_ids: Iterable[int], rows: Sequence[RectifierRow]) -> None:
        """Swap in fresh buffers and statuses for *device_ids* in one step."""
        cap = self.config.cap_per_series
        voltage = {device_id: SampleBuffer(cap) for device_id in device_ids}
        current = {device_id: SampleBuffer(cap) for device_id in device_ids}
        latest: dict[int, RectifierRow] = {}

        for row in rows:
            if row.slave_id not in voltage:
                continue
            if row.voltage is not None:
                voltage[row.slave_id].append(Sample(row.timestamp, row.voltage))
            if row.current is not None:
                current[row.slave_id].append(Sample(row.timestamp, row.current))
            previous = latest.get(row.slave_id)
            if previous is None or row.timestamp >= previous.timestamp:
                latest[row.slave_id] = row

        self._voltage.update(voltage)
        self._current.update(current)
        for row in latest.values():
            self._statuses[row.slave_id] = self._derive_status(row)

    # ------------------------------------------------------------------
    # Incremental updates
    # ------------------------------------------------------------------

    def on_incoming_point(self, row: RectifierRow) -> None:
        """Apply one pushed row.

        Null voltage/current values are skipped individually. The device
        status is replaced from the row regardless of its timestamp.
        """
        device_id = row.slave_id
        if device_id not in self._voltage:
            logger.debug(
                "Monitor %s ignoring row for untracked device %s",
                self.config.name,
                device_id,
            )
            return

        if row.voltage is not None:
            self._voltage[device_id].append(Sample(row.timestamp, row.voltage))
        if row.current is not None:
            self._current[device_id].append(Sample(row.timestamp, row.current))
        self._statuses[device_id] = self._derive_status(row)

    def _derive_status(self, row: RectifierRow) -> DeviceStatus:
        previous = self._statuses.get(row.slave_id)
        voltage = row.voltage
        current = row.current
        if previous is not None:
            if voltage is None:
                voltage = previous.voltage
            if current is None:
                current = previous.current
        return DeviceStatus(
            device_id=row.slave_id,
            voltage=voltage,
            current=current,
            raw_status_code=row.status_code,
            timestamp=row.timestamp,
            is_online=is_online(row.timestamp, self._clock(), self.config.online_threshold),
        )

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def voltage_series(self, device_id: int) -> list[Sample]:
        self._require_tracked(device_id)
        return self._voltage[device_id].snapshot()

    def current_series(self, device_id: int) -> list[Sample]:
        self._require_tracked(device_id)
        return self._current[device_id].snapshot()

    def status(self, device_id: int) -> DeviceStatus | None:
        self._require_tracked(device_id)
        return self._statuses.get(device_id)

    def time_range(self, device_id: int) -> str:
        self._require_tracked(device_id)
        return self._ranges[device_id]

    def snapshot(self) -> MonitorSnapshot:
        """Return a read-only copy of the whole view.

        The online flag of each status is re-derived against the current
        time so an idle device turns offline without a new row.
        """
        now = self._clock()
        devices = []
        for device_id in self.config.device_ids:
            status = self._statuses.get(device_id)
            if status is not None:
                status = status.model_copy(
                    update={
                        "is_online": is_online(
                            status.timestamp, now, self.config.online_threshold
                        )
                    }
                )
            devices.append(
                DeviceSnapshot(
                    device_id=device_id,
                    display_name=self.config.display_name(device_id),
                    time_range=self._ranges[device_id],
                    status=status,
                    voltage=self._voltage[device_id].snapshot(),
                    current=self._current[device_id].snapshot(),
                )
            )
        return MonitorSnapshot(
            name=self.config.name,
            range_mode=self.config.range_mode,
            loading=self.loading,
            error=self.error,
            devices=devices,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _shared_range(self) -> str:
        return self._ranges[self.config.device_ids[0]]

    def _require_tracked(self, device_id: int) -> None:
        if device_id not in self._ranges:
            raise KeyError(
                f"Device {device_id} is not tracked by monitor '{self.config.name}'"
            )
