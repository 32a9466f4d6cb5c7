"""
Unit tests for dashboard configuration (DashboardSettings).

Tests verify:
- Defaults match the deployed monitor layout.
- DATABASE_URL is required and must be a PostgreSQL URL.
- Device id lists, caps, thresholds and the default window are validated.
- monitor_configs() builds a per-device hard group and a shared soft group.

CHANGELOG:
- 2026-10-13: Add per-group caps and thresholds (STORY-008)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from dashboard.src.config import DashboardSettings
from dashboard.src.view_model import RangeMode


class TestDefaults:
    def test_defaults_applied_when_optional_vars_missing(self, database_url: str) -> None:
        settings = DashboardSettings()

        assert settings.database_url == database_url
        assert settings.hard_device_ids == [2, 1]
        assert settings.soft_device_ids == [3, 4]
        assert settings.hard_series_cap == 1000
        assert settings.soft_series_cap == 2000
        assert settings.hard_online_threshold_s == 60.0
        assert settings.soft_online_threshold_s == 120.0
        assert settings.default_time_range == "30m"
        assert settings.telemetry_channel == "rectifier_changes"
        assert settings.work_log_channel == "work_data_changes"
        assert settings.log_level == "INFO"

    def test_loads_overrides_from_env(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HARD_DEVICE_IDS", "[5, 6, 7]")
        monkeypatch.setenv("SOFT_SERIES_CAP", "500")
        monkeypatch.setenv("DEFAULT_TIME_RANGE", "1h")
        monkeypatch.setenv("LOG_LEVEL", "debug")

        settings = DashboardSettings()

        assert settings.hard_device_ids == [5, 6, 7]
        assert settings.soft_series_cap == 500
        assert settings.default_time_range == "1h"
        assert settings.log_level == "DEBUG"


class TestValidation:
    def test_missing_database_url_raises(self) -> None:
        with pytest.raises(ValidationError) as exc_info:
            DashboardSettings()
        assert "database_url" in str(exc_info.value).lower()

    def test_non_postgres_url_rejected(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///dashboard.db")

        with pytest.raises(ValidationError, match="postgresql"):
            DashboardSettings()

    def test_empty_device_ids_rejected(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SOFT_DEVICE_IDS", "[]")

        with pytest.raises(ValidationError, match="must not be empty"):
            DashboardSettings()

    def test_duplicate_device_ids_rejected(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HARD_DEVICE_IDS", "[1, 1]")

        with pytest.raises(ValidationError, match="duplicates"):
            DashboardSettings()

    def test_zero_cap_rejected(self, database_url: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HARD_SERIES_CAP", "0")

        with pytest.raises(ValidationError, match="Series cap"):
            DashboardSettings()

    def test_non_positive_threshold_rejected(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SOFT_ONLINE_THRESHOLD_S", "0")

        with pytest.raises(ValidationError, match="Online threshold"):
            DashboardSettings()

    def test_unknown_default_range_rejected(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEFAULT_TIME_RANGE", "2h")

        with pytest.raises(ValidationError, match="DEFAULT_TIME_RANGE"):
            DashboardSettings()

    def test_unknown_log_level_rejected(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("LOG_LEVEL", "VERBOSE")

        with pytest.raises(ValidationError, match="LOG_LEVEL"):
            DashboardSettings()


class TestMonitorConfigs:
    def test_hard_group(self, database_url: str) -> None:
        hard = DashboardSettings().monitor_configs()["hard"]

        assert hard.device_ids == (2, 1)
        assert hard.cap_per_series == 1000
        assert hard.online_threshold == timedelta(seconds=60)
        assert hard.range_mode is RangeMode.PER_DEVICE
        assert hard.display_name(2) == "Hard 1"

    def test_soft_group(self, database_url: str) -> None:
        soft = DashboardSettings().monitor_configs()["soft"]

        assert soft.device_ids == (3, 4)
        assert soft.cap_per_series == 2000
        assert soft.row_limit == 2000
        assert soft.online_threshold == timedelta(seconds=120)
        assert soft.range_mode is RangeMode.SHARED

    def test_default_range_propagates(
        self, database_url: str, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("DEFAULT_TIME_RANGE", "5m")

        configs = DashboardSettings().monitor_configs()

        assert configs["hard"].default_range == "5m"
        assert configs["soft"].default_range == "5m"
