"""
Symbolic time windows for historical telemetry queries.

Maps the window labels offered by the dashboard selectors ("1m" ... "1d")
to the lookback duration used by the next bulk load. Unrecognised labels
fall back to the 30-minute default instead of raising, since the label set
is controlled by the UI.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-002)

TODO:
- None
"""

from __future__ import annotations

from datetime import timedelta

TIME_RANGES: dict[str, timedelta] = {
    "1m": timedelta(minutes=1),
    "5m": timedelta(minutes=5),
    "10m": timedelta(minutes=10),
    "30m": timedelta(minutes=30),
    "1h": timedelta(minutes=60),
    "1d": timedelta(minutes=1440),
}

DEFAULT_RANGE = "30m"
DEFAULT_LOOKBACK = TIME_RANGES[DEFAULT_RANGE]


def resolve(label: str | None) -> timedelta:
    """Return the lookback duration for a window label.

    Args:
        label: One of the keys of :data:`TIME_RANGES`.

    Returns:
        timedelta: The matching duration, or :data:`DEFAULT_LOOKBACK`
        (30 minutes) for unknown or missing labels.
    """
    if label is None:
        return DEFAULT_LOOKBACK
    return TIME_RANGES.get(label, DEFAULT_LOOKBACK)


def is_valid_range(label: str | None) -> bool:
    """Return True if *label* is one of the supported window labels."""
    return label in TIME_RANGES
