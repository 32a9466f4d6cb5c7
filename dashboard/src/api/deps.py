"""
FastAPI dependency injection providers.

Resolves the view instances created in the application lifespan and
stored on ``app.state``.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-012)
"""

from fastapi import HTTPException, Request

from dashboard.src.view_model import TelemetryViewModel
from dashboard.src.work_logs import WorkLogView


def get_monitors(request: Request) -> dict[str, TelemetryViewModel]:
    """Return all monitor view models keyed by name."""
    return request.app.state.monitors


def get_monitor(request: Request, name: str) -> TelemetryViewModel:
    """Return the monitor view model for the ``name`` path parameter.

    Raises:
        HTTPException: 404 if no monitor has that name.
    """
    monitor = get_monitors(request).get(name)
    if monitor is None:
        raise HTTPException(status_code=404, detail=f"Unknown monitor '{name}'.")
    return monitor


def get_work_log_view(request: Request) -> WorkLogView:
    """Return the work-log list view."""
    return request.app.state.work_logs
