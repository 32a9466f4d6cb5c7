"""
SQLAlchemy ORM models for the dashboard database.

Defines ``RectifierReading`` (telemetry rows written by the rectifier
gateway) and ``WorkLog`` (facility work-log entries). Table names match the
tables already provisioned in the hosted database.

CHANGELOG:
- 2026-10-14: Add WorkLog model (STORY-009)
- 2026-10-13: Initial creation (STORY-010)

TODO:
- None
"""

import datetime

from sqlalchemy import BigInteger, Date, DateTime, Double, Index, Integer, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

TELEMETRY_TABLE = "정류기"
WORK_LOG_TABLE = "work_data"


class Base(DeclarativeBase):
    """SQLAlchemy declarative base for all dashboard ORM models."""

    pass


class RectifierReading(Base):
    """One voltage/current/status reading of a rectifier unit.

    Attributes:
        id: Surrogate primary key.
        slave_id: Modbus slave id of the rectifier.
        voltage: Output voltage in volts (nullable).
        current: Output current in amperes (nullable).
        status_code: Raw status string (nullable).
        timestamp: Measurement time in UTC.
    """

    __tablename__ = TELEMETRY_TABLE
    __table_args__ = (Index("ix_rectifier_slave_ts", "slave_id", "timestamp"),)

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    slave_id: Mapped[int] = mapped_column(Integer, nullable=False)
    voltage: Mapped[float | None] = mapped_column(Double, nullable=True)
    current: Mapped[float | None] = mapped_column(Double, nullable=True)
    status_code: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )

    def __repr__(self) -> str:
        """Return string representation of the RectifierReading."""
        return (
            f"RectifierReading(slave_id={self.slave_id!r}, "
            f"timestamp={self.timestamp!r}, voltage={self.voltage!r})"
        )


class WorkLog(Base):
    """A work-log entry for the rectifier facility.

    Attributes:
        id: Surrogate primary key.
        title: Short title.
        content: Free-text body.
        status: pending, in_progress, completed or cancelled.
        priority: low, medium, high or urgent.
        assigned_to: Assignee (nullable).
        created_at: Creation time.
        updated_at: Last modification time.
        due_date: Due date (nullable).
    """

    __tablename__ = WORK_LOG_TABLE

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False, server_default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, server_default="pending")
    priority: Mapped[str] = mapped_column(Text, nullable=False, server_default="medium")
    assigned_to: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    due_date: Mapped[datetime.date | None] = mapped_column(Date, nullable=True)

    def __repr__(self) -> str:
        """Return string representation of the WorkLog."""
        return f"WorkLog(id={self.id!r}, title={self.title!r}, status={self.status!r})"
