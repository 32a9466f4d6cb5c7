"""
GET /v1/work-logs endpoint for the facility work-log list.

Returns the work-log entries for a status filter and sort column. Changing
either parameter updates the shared list view, which refetches and
re-subscribes to change notifications.

CHANGELOG:
- 2026-10-16: Initial creation (STORY-012)

TODO:
- None
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query

from dashboard.src.api.deps import get_work_log_view
from dashboard.src.work_logs import (
    ALL_STATUSES,
    SORT_COLUMNS,
    STATUS_FILTERS,
    WorkLogSnapshot,
    WorkLogView,
)

router = APIRouter(prefix="/v1", tags=["work-logs"])


@router.get("/work-logs", response_model=WorkLogSnapshot)
async def list_work_logs(
    view: Annotated[WorkLogView, Depends(get_work_log_view)],
    status: Annotated[
        str,
        Query(description="Status filter: all, pending, in_progress, completed, cancelled."),
    ] = ALL_STATUSES,
    sort_by: Annotated[
        str,
        Query(description="Sort column: created_at, updated_at, priority, due_date."),
    ] = "created_at",
) -> WorkLogSnapshot:
    """Return work-log entries, newest (or most urgent) first.

    Raises:
        HTTPException: 422 if the filter or sort column is invalid.
        HTTPException: 503 if the list could not be fetched.
    """
    if status not in STATUS_FILTERS:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid status '{status}'. Must be one of: {list(STATUS_FILTERS)}.",
        )
    if sort_by not in SORT_COLUMNS:
        raise HTTPException(
            status_code=422,
            detail=f"Invalid sort_by '{sort_by}'. Must be one of: {list(SORT_COLUMNS)}.",
        )

    if (status, sort_by) != (view.status_filter, view.sort_by):
        await view.set_query(status_filter=status, sort_by=sort_by)

    if view.error is not None:
        raise HTTPException(status_code=503, detail=view.error)
    return view.snapshot()
