"""
Monitor endpoints: live telemetry snapshots and time-window selection.

GET returns the read-only snapshot of a monitor group (series, latest status
per device, loading flag). When the group is in the error state the error
message is returned instead of data (HTTP 503). PUT changes a time window
and returns the snapshot after the reload.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-012)

TODO:
- None
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from dashboard.src.api.deps import get_monitor, get_monitors
from dashboard.src.time_range import TIME_RANGES, is_valid_range
from dashboard.src.view_model import (
    MonitorSnapshot,
    RangeMode,
    TelemetryViewModel,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["monitors"])


# ---------------------------------------------------------------------------
# Pydantic request/response models
# ---------------------------------------------------------------------------


class MonitorOut(BaseModel):
    """Summary of a monitor group.

    Attributes:
        name: Monitor name.
        range_mode: ``per-device`` or ``shared``.
        device_ids: Tracked slave ids in display order.
    """

    name: str
    range_mode: RangeMode
    device_ids: list[int]


class TimeRangeUpdate(BaseModel):
    """Request body for changing a time window.

    Attributes:
        time_range: New window label.
        device_id: Device to change; required for per-device monitors.
    """

    time_range: str
    device_id: int | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _render(monitor: TelemetryViewModel) -> MonitorSnapshot:
    """Return the snapshot, or raise 503 with the view's error message."""
    if monitor.error is not None:
        raise HTTPException(status_code=503, detail=monitor.error)
    return monitor.snapshot()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------


@router.get("/monitors", response_model=list[MonitorOut])
async def list_monitors(
    monitors: Annotated[dict[str, TelemetryViewModel], Depends(get_monitors)],
) -> list[MonitorOut]:
    """List the configured monitor groups."""
    return [
        MonitorOut(
            name=name,
            range_mode=monitor.config.range_mode,
            device_ids=list(monitor.config.device_ids),
        )
        for name, monitor in monitors.items()
    ]


@router.get("/monitors/{name}", response_model=MonitorSnapshot)
async def get_monitor_snapshot(
    monitor: Annotated[TelemetryViewModel, Depends(get_monitor)],
) -> MonitorSnapshot:
    """Return the live snapshot of a monitor group.

    Raises:
        HTTPException: 404 if the monitor does not exist.
        HTTPException: 503 if the monitor is in the error state.
    """
    return _render(monitor)


@router.put("/monitors/{name}/range", response_model=MonitorSnapshot)
async def set_monitor_range(
    body: TimeRangeUpdate,
    monitor: Annotated[TelemetryViewModel, Depends(get_monitor)],
) -> MonitorSnapshot:
    """Change a time window and reload the affected device(s).

    Raises:
        HTTPException: 404 if the monitor or device does not exist.
        HTTPException: 422 if the window label is unknown, or a per-device
            monitor is addressed without a device id.
        HTTPException: 503 if the reload failed.
    """
    if not is_valid_range(body.time_range):
        raise HTTPException(
            status_code=422,
            detail=f"Invalid time range '{body.time_range}'. Must be one of: {list(TIME_RANGES)}.",
        )
    if monitor.config.range_mode is RangeMode.PER_DEVICE and body.device_id is None:
        raise HTTPException(
            status_code=422,
            detail=f"Monitor '{monitor.config.name}' needs a device_id.",
        )
    if body.device_id is not None and body.device_id not in monitor.config.device_ids:
        raise HTTPException(
            status_code=404,
            detail=f"Device {body.device_id} is not tracked by monitor '{monitor.config.name}'.",
        )

    await monitor.set_time_range(body.device_id, body.time_range)
    logger.debug(
        "Range change: monitor=%s device_id=%s range=%s",
        monitor.config.name,
        body.device_id,
        body.time_range,
    )
    return _render(monitor)
