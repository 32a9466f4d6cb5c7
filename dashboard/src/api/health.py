"""
Health check endpoint for the dashboard API.

GET /health always answers HTTP 200 with ``"status": "ok"`` while the
process is serving, plus the state of every live view:

- ``live``: subscribed and no failed load.
- ``error``: a bulk load failed; the view answers 503 until it is started again.
- ``stopped``: the change subscription is not held.

CHANGELOG:
- 2026-10-17: Report per-view state (STORY-013)
- 2026-10-16: Initial creation (STORY-012)

TODO:
- None
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from dashboard.src.api.deps import get_monitors, get_work_log_view
from dashboard.src.view_model import TelemetryViewModel
from dashboard.src.work_logs import WorkLogView

router = APIRouter(tags=["health"])


def _view_state(view: TelemetryViewModel | WorkLogView) -> str:
    if view.error is not None:
        return "error"
    return "live" if view.live else "stopped"


@router.get("/health")
async def health(
    monitors: Annotated[dict[str, TelemetryViewModel], Depends(get_monitors)],
    work_logs: Annotated[WorkLogView, Depends(get_work_log_view)],
) -> dict:
    """Return the process status and the state of each view."""
    views = {name: _view_state(monitor) for name, monitor in monitors.items()}
    views["work_logs"] = _view_state(work_logs)
    return {"status": "ok", "views": views}
