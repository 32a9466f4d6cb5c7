"""
Unit tests for online/offline derivation.

Tests verify:
- A sample younger than the threshold is online.
- A sample exactly as old as the threshold is offline.
- Naive timestamps compare as UTC.

CHANGELOG:
- 2026-10-12: Initial creation (STORY-004)

TODO:
- None
"""

from datetime import UTC, datetime, timedelta

import pytest

from dashboard.src.liveness import is_online

NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=UTC)


class TestHardThreshold:
    """60-second threshold used by the hard group."""

    @pytest.mark.parametrize(("age_s", "expected"), [(0, True), (59, True), (60, False), (61, False)])
    def test_boundary(self, age_s: int, expected: bool) -> None:
        last_seen = NOW - timedelta(seconds=age_s)
        assert is_online(last_seen, NOW, timedelta(seconds=60)) is expected


class TestSoftThreshold:
    """120-second threshold used by the soft group."""

    def test_ninety_seconds_is_online(self) -> None:
        assert is_online(NOW - timedelta(seconds=90), NOW, timedelta(seconds=120)) is True

    def test_exactly_threshold_is_offline(self) -> None:
        assert is_online(NOW - timedelta(seconds=120), NOW, timedelta(seconds=120)) is False


class TestTimezones:
    def test_naive_timestamp_is_treated_as_utc(self) -> None:
        naive = datetime(2026, 10, 19, 11, 59, 30)
        assert is_online(naive, NOW, timedelta(seconds=60)) is True

    def test_future_timestamp_is_online(self) -> None:
        """Clock skew on the gateway must not flag a device offline."""
        assert is_online(NOW + timedelta(seconds=5), NOW, timedelta(seconds=60)) is True
