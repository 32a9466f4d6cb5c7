"""
Dashboard configuration loaded from environment variables.

Uses Pydantic BaseSettings for automatic env var loading and validation.
Only DATABASE_URL is required; the monitor groups default to the deployed
layout (hard: slaves 2 and 1, soft: slaves 3 and 4).

CHANGELOG:
- 2026-10-13: Add per-group caps and thresholds (STORY-008)
- 2026-10-12: Initial creation (STORY-001)

TODO:
- None
"""

from datetime import timedelta

from pydantic import field_validator
from pydantic_settings import BaseSettings

from dashboard.src.time_range import TIME_RANGES
from dashboard.src.view_model import MonitorConfig, RangeMode

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DashboardSettings(BaseSettings):
    """Dashboard configuration.

    Attributes:
        database_url: SQLAlchemy URL of the hosted PostgreSQL database
            (``postgresql+asyncpg://...``).
        hard_device_ids: Slave ids of the hard group, in display order.
        soft_device_ids: Slave ids of the soft group, in display order.
        hard_series_cap: Samples kept per series for the hard group.
        soft_series_cap: Samples kept per series for the soft group; also
            the row limit of the group's combined bulk load.
        hard_online_threshold_s: Staleness threshold of the hard group.
        soft_online_threshold_s: Staleness threshold of the soft group.
        default_time_range: Window label used at startup.
        telemetry_channel: NOTIFY channel of telemetry inserts.
        work_log_channel: NOTIFY channel of work-log changes.
        log_level: Root log level.
    """

    database_url: str
    hard_device_ids: list[int] = [2, 1]
    soft_device_ids: list[int] = [3, 4]
    hard_series_cap: int = 1000
    soft_series_cap: int = 2000
    hard_online_threshold_s: float = 60.0
    soft_online_threshold_s: float = 120.0
    default_time_range: str = "30m"
    telemetry_channel: str = "rectifier_changes"
    work_log_channel: str = "work_data_changes"
    log_level: str = "INFO"

    @field_validator("database_url")
    @classmethod
    def database_url_must_be_postgres(cls, v: str) -> str:
        """Validate that the URL points at PostgreSQL."""
        if not v.startswith("postgresql"):
            raise ValueError(
                f"DATABASE_URL must be a postgresql URL (got scheme '{v.split(':', 1)[0]}')"
            )
        return v

    @field_validator("hard_device_ids", "soft_device_ids")
    @classmethod
    def device_ids_must_be_unique(cls, v: list[int]) -> list[int]:
        """Validate that a group tracks at least one device, without repeats."""
        if not v:
            raise ValueError("Device id list must not be empty")
        if len(set(v)) != len(v):
            raise ValueError("Device id list must not contain duplicates")
        return v

    @field_validator("hard_series_cap", "soft_series_cap")
    @classmethod
    def series_cap_must_be_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("Series cap must be >= 1")
        return v

    @field_validator("hard_online_threshold_s", "soft_online_threshold_s")
    @classmethod
    def threshold_must_be_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("Online threshold must be > 0 seconds")
        return v

    @field_validator("default_time_range")
    @classmethod
    def default_time_range_must_be_known(cls, v: str) -> str:
        if v not in TIME_RANGES:
            raise ValueError(
                f"DEFAULT_TIME_RANGE must be one of {list(TIME_RANGES)} (got '{v}')"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = v.upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {list(_LOG_LEVELS)}")
        return level

    def monitor_configs(self) -> dict[str, MonitorConfig]:
        """Build the monitor group configurations.

        The hard group gives each rectifier its own time window; the soft
        group shares one window and loads both devices in one query.
        """
        return {
            "hard": MonitorConfig(
                name="hard",
                title="Hard",
                device_ids=tuple(self.hard_device_ids),
                cap_per_series=self.hard_series_cap,
                online_threshold=timedelta(seconds=self.hard_online_threshold_s),
                range_mode=RangeMode.PER_DEVICE,
                default_range=self.default_time_range,
            ),
            "soft": MonitorConfig(
                name="soft",
                title="Soft",
                device_ids=tuple(self.soft_device_ids),
                cap_per_series=self.soft_series_cap,
                online_threshold=timedelta(seconds=self.soft_online_threshold_s),
                range_mode=RangeMode.SHARED,
                default_range=self.default_time_range,
            ),
        }

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}
