# app/main.py
"""
Maintenance service API.

Hosts the admin maintenance endpoints and, unless disabled, the daily
maintenance scheduler on a background thread.
"""

import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI

from app.config import get_settings
from app.database import SessionLocal
from app.logging_config import configure_logging
from app.routers import admin_maintenance_router
from app.services.maintenance import MaintenanceScheduler, build_orchestrator, run_maintenance_exclusive

logger = logging.getLogger(__name__)


def create_scheduler() -> MaintenanceScheduler:
    """Daily scheduler running the settings-wired orchestrator under the runner lock."""
    settings = get_settings()
    orchestrator = build_orchestrator(SessionLocal)

    return MaintenanceScheduler(
        run_cycle=lambda cancel_event: run_maintenance_exclusive(orchestrator, cancel_event=cancel_event),
        run_hour=settings.MAINTENANCE_RUN_HOUR_UTC,
        retry_delay=timedelta(seconds=settings.MAINTENANCE_RETRY_DELAY_SECONDS),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the maintenance scheduler on startup, stop it on shutdown."""
    settings = get_settings()
    configure_logging(json_format=settings.LOG_JSON, level=settings.LOG_LEVEL)
    logger.info(f"Maintenance service starting up (environment: {settings.ENVIRONMENT})")

    scheduler = None
    if settings.MAINTENANCE_SCHEDULER_ENABLED:
        scheduler = create_scheduler()
        scheduler.start()
    else:
        logger.info("Maintenance scheduler disabled by configuration")
    app.state.maintenance_scheduler = scheduler

    yield

    logger.info("Maintenance service shutting down...")
    if scheduler is not None:
        scheduler.stop()


app = FastAPI(title="Data Maintenance Service", lifespan=lifespan)

app.include_router(admin_maintenance_router)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------

@app.get("/health")
def health() -> dict:
    return {"status": "ok", "service": "data-maintenance"}
