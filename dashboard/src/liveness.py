"""
Online/offline derivation from sample recency.

A device is online while its latest sample is younger than the group's
staleness threshold. A sample exactly as old as the threshold is offline.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with aware ones."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def is_online(last_seen: datetime, now: datetime, threshold: timedelta) -> bool:
    """Return True if *last_seen* is strictly within *threshold* of *now*.

    Args:
        last_seen: Timestamp of the device's latest sample.
        now: Reference time.
        threshold: Staleness threshold of the device's group.

    Returns:
        bool: ``now - last_seen < threshold``.
    """
    return _as_utc(now) - _as_utc(last_seen) < threshold
