"""
Pydantic models for rectifier telemetry and work-log rows.

Defines the row shapes read from the database (``RectifierRow``,
``WorkLogRow``), the change-notification envelope (``ChangeEvent``), and the
view-side types the dashboard hands to its renderer (``Sample``,
``DeviceStatus``).

CHANGELOG:
- 2026-10-14: Add WorkLogRow and ChangeEvent (STORY-009)
- 2026-10-12: Initial creation (STORY-005)

TODO:
- None
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, computed_field

from dashboard.src.status_codes import StatusClassification, classify


@dataclass(frozen=True)
class Sample:
    """One telemetry point of a single series."""

    timestamp: datetime
    value: float


class RectifierRow(BaseModel):
    """A single telemetry row as stored by the rectifier gateway.

    Built either from a ``RectifierReading`` ORM instance or from the JSON
    ``new`` record of a change notification.

    Attributes:
        id: Row identifier.
        slave_id: Modbus slave id of the rectifier unit.
        voltage: Output voltage in volts, None if not reported.
        current: Output current in amperes, None if not reported.
        status_code: Raw status string, see :mod:`dashboard.src.status_codes`.
        timestamp: Measurement time.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    slave_id: int
    voltage: float | None = None
    current: float | None = None
    status_code: str | None = None
    timestamp: datetime


class DeviceStatus(BaseModel):
    """Latest known snapshot of one rectifier.

    Replaced as a whole whenever a new record for the device is applied.

    Attributes:
        device_id: Slave id of the rectifier.
        voltage: Latest voltage reading, None until one has been seen.
        current: Latest current reading, None until one has been seen.
        raw_status_code: Status string of the latest record.
        timestamp: Timestamp of the latest record.
        is_online: Whether the latest record is younger than the group's
            staleness threshold.
    """

    model_config = ConfigDict(frozen=True)

    device_id: int
    voltage: float | None
    current: float | None
    raw_status_code: str | None
    timestamp: datetime
    is_online: bool

    @computed_field  # type: ignore[prop-decorator]
    @property
    def condition(self) -> StatusClassification:
        """Decoded status of ``raw_status_code``."""
        return classify(self.raw_status_code)


class WorkLogStatus(StrEnum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class WorkLogPriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort rank, higher is more urgent."""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    WorkLogPriority.LOW: 0,
    WorkLogPriority.MEDIUM: 1,
    WorkLogPriority.HIGH: 2,
    WorkLogPriority.URGENT: 3,
}


class WorkLogRow(BaseModel):
    """A facility work-log entry.

    Attributes:
        id: Row identifier.
        title: Short title.
        content: Free-text body.
        status: Workflow state.
        priority: Urgency.
        assigned_to: Assignee name, if any.
        created_at: Creation time.
        updated_at: Last modification time.
        due_date: Due date, if any.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    content: str
    status: WorkLogStatus
    priority: WorkLogPriority
    assigned_to: str | None = None
    created_at: datetime
    updated_at: datetime
    due_date: date | None = None


class ChangeEvent(BaseModel):
    """Envelope published by the database NOTIFY triggers.

    Attributes:
        event: ``INSERT``, ``UPDATE`` or ``DELETE``.
        table: Name of the table that changed.
        new: The row after the change (None for deletes).
        old: The row before the change (None for inserts).
    """

    event: str
    table: str
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None
