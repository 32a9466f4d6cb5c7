"""
FastAPI application entry point for the rectifier dashboard.

The lifespan builds one live view per screen (the hard and soft telemetry
monitors and the work-log list), starts their change subscriptions and
initial bulk loads, and releases every subscription on shutdown. The views
are stored on ``app.state`` for the route handlers.

``create_app`` accepts a prebuilt backend service; without one the lifespan
wires the production backend (async SQLAlchemy engine + LISTEN/NOTIFY feed)
from DashboardSettings and installs structured JSON logging.

CHANGELOG:
- 2026-10-17: Register work-log router (STORY-012)
- 2026-10-16: Initial creation (STORY-012)
"""

import json
import logging
import sys
from collections.abc import AsyncGenerator
from contextlib import AsyncExitStack, asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from sqlalchemy.engine import make_url

from dashboard.src.api.health import router as health_router
from dashboard.src.api.monitors import router as monitors_router
from dashboard.src.api.work_logs import router as work_logs_router
from dashboard.src.config import DashboardSettings
from dashboard.src.db.session import asyncpg_dsn, create_engine, create_session_factory
from dashboard.src.services.notifications import ChangeFeed
from dashboard.src.services.telemetry import TelemetryService
from dashboard.src.view_model import TelemetryViewModel
from dashboard.src.work_logs import WorkLogView

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Structured JSON logging setup
# ---------------------------------------------------------------------------


def configure_logging(level: str = "INFO") -> None:
    """Configure structured JSON logging on the root logger (stderr)."""

    class _JsonFormatter(logging.Formatter):
        """Minimal JSON log formatter."""

        def format(self, record: logging.LogRecord) -> str:
            log_entry = {
                "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
                "level": record.levelname,
                "logger": record.name,
                "msg": record.getMessage(),
            }
            if record.exc_info and record.exc_info[1] is not None:
                log_entry["exception"] = self.formatException(record.exc_info)
            return json.dumps(log_entry, ensure_ascii=False)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(_JsonFormatter())
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def log_config_summary(settings: DashboardSettings) -> None:
    """Log a config summary at startup, masking the database password."""
    logger.info(
        "Dashboard starting with config: database_url=%s, "
        "hard_device_ids=%s, soft_device_ids=%s, "
        "hard_series_cap=%s, soft_series_cap=%s, "
        "hard_online_threshold_s=%s, soft_online_threshold_s=%s, "
        "default_time_range=%s, telemetry_channel=%s, work_log_channel=%s",
        make_url(settings.database_url).render_as_string(hide_password=True),
        settings.hard_device_ids,
        settings.soft_device_ids,
        settings.hard_series_cap,
        settings.soft_series_cap,
        settings.hard_online_threshold_s,
        settings.soft_online_threshold_s,
        settings.default_time_range,
        settings.telemetry_channel,
        settings.work_log_channel,
    )


# ---------------------------------------------------------------------------
# Application factory
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build, start and tear down the live views.

    Startup:
        - Loads DashboardSettings (raises ValidationError if invalid).
        - Wires the production backend unless a service was injected.
        - Starts every view (subscription + initial bulk load).

    Shutdown:
        - Closes every subscription, then disposes the engine.
    """
    settings = DashboardSettings()
    service = app.state.service
    engine = None

    if service is None:
        configure_logging(settings.log_level)
        engine = create_engine(settings.database_url)
        service = TelemetryService(
            create_session_factory(engine),
            ChangeFeed(asyncpg_dsn(settings.database_url)),
            telemetry_channel=settings.telemetry_channel,
            work_log_channel=settings.work_log_channel,
        )
    log_config_summary(settings)

    monitors = {
        name: TelemetryViewModel(config, service)
        for name, config in settings.monitor_configs().items()
    }
    work_logs = WorkLogView(service)

    try:
        async with AsyncExitStack() as stack:
            for monitor in monitors.values():
                await stack.enter_async_context(monitor)
            await stack.enter_async_context(work_logs)

            app.state.monitors = monitors
            app.state.work_logs = work_logs
            logger.info("Views started, rectifier dashboard ready")
            yield
            logger.info("Rectifier dashboard shutting down")
    finally:
        if engine is not None:
            await engine.dispose()


def create_app(service: TelemetryService | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        service: Backend for the views. None wires the production backend
            at startup.

    Returns:
        FastAPI: The configured application.
    """
    app = FastAPI(
        title="Rectifier Dashboard API",
        description="Live rectifier telemetry and facility work log.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.service = service

    app.include_router(health_router)
    app.include_router(monitors_router)
    app.include_router(work_logs_router)

    @app.get("/")
    async def root() -> dict:
        """Root health check endpoint."""
        return {"status": "ok"}

    return app


app = create_app()
