# app/routers/admin_maintenance.py
"""
Admin endpoints for data maintenance.

POST /v1/admin/maintenance/run     - Run one maintenance cycle now
GET  /v1/admin/maintenance/config  - Current retention configuration
PUT  /v1/admin/maintenance/config  - Update retention configuration
GET  /v1/admin/maintenance/preview - Preview what the next cycle would move/purge
GET  /v1/admin/maintenance/status  - Scheduler state and last result
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session, sessionmaker

from app.auth import require_admin_key
from app.database import get_db, get_session_factory
from app.services.maintenance import (
    MaintenanceInProgressError,
    MaintenanceOrchestrator,
    build_orchestrator,
    ensure_configuration,
    get_maintenance_preview,
    is_maintenance_running,
    run_maintenance_exclusive,
    update_configuration,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/admin/maintenance", tags=["admin-maintenance"])


# -----------------------------------------------------------------------------
# Response Models
# -----------------------------------------------------------------------------


class MaintenanceResultResponse(BaseModel):
    """Outcome of one maintenance cycle."""

    archived: dict[str, int]
    purged: dict[str, int]
    total_archived: int
    total_purged: int
    log_files_deleted: int
    bytes_freed: int
    success: bool
    error_message: str | None = None
    cancelled: bool = False
    triggered_by: str
    started_at: datetime | None = None
    finished_at: datetime | None = None


class ConfigurationResponse(BaseModel):
    """Stored retention configuration."""

    is_archival_enabled: bool
    job_retention_months: int
    job_execution_retention_months: int
    audit_log_retention_days: int
    archive_retention_years: int
    log_retention_days: int
    archival_batch_size: int
    notes: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


class ConfigurationUpdateRequest(BaseModel):
    """Partial update of the retention configuration. Omitted fields are unchanged."""

    is_archival_enabled: bool | None = Field(None, description="Enable database archival and purge")
    job_retention_months: int | None = Field(None, ge=1, le=120, description="Months jobs stay live")
    job_execution_retention_months: int | None = Field(
        None, ge=1, le=120, description="Months job and schedule executions stay live"
    )
    audit_log_retention_days: int | None = Field(None, ge=1, le=3650, description="Days audit logs stay live")
    archive_retention_years: int | None = Field(None, ge=1, le=50, description="Years archive rows are kept")
    log_retention_days: int | None = Field(None, ge=1, le=3650, description="Days log files are kept")
    archival_batch_size: int | None = Field(None, ge=1, le=50000, description="Rows per batch transaction")
    notes: str | None = Field(None, max_length=500)


class PreviewResponse(BaseModel):
    """Counts of rows the next cycle would archive or purge."""

    as_of: datetime
    archival_enabled: bool
    archive_cutoffs: dict[str, datetime]
    purge_cutoff: datetime
    pending_archive: dict[str, int]
    pending_purge: dict[str, int]


class SchedulerStatusResponse(BaseModel):
    """Scheduler state."""

    scheduler_enabled: bool
    running: bool
    state: str | None = None
    run_hour_utc: int | None = None
    next_run_at: datetime | None = None
    last_run_started_at: datetime | None = None
    last_error: str | None = None
    cycles_completed: int = 0
    last_result: MaintenanceResultResponse | None = None


# -----------------------------------------------------------------------------
# Dependencies
# -----------------------------------------------------------------------------


def get_orchestrator(
    session_factory: sessionmaker = Depends(get_session_factory),
) -> MaintenanceOrchestrator:
    return build_orchestrator(session_factory)


def _configuration_response(row) -> ConfigurationResponse:
    return ConfigurationResponse(
        is_archival_enabled=row.is_archival_enabled,
        job_retention_months=row.job_retention_months,
        job_execution_retention_months=row.job_execution_retention_months,
        audit_log_retention_days=row.audit_log_retention_days,
        archive_retention_years=row.archive_retention_years,
        log_retention_days=row.log_retention_days,
        archival_batch_size=row.archival_batch_size,
        notes=row.notes,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# -----------------------------------------------------------------------------
# Endpoints
# -----------------------------------------------------------------------------


@router.post("/run", response_model=MaintenanceResultResponse)
def trigger_maintenance(
    orchestrator: MaintenanceOrchestrator = Depends(get_orchestrator),
    _: None = Depends(require_admin_key),
):
    """
    Run one maintenance cycle synchronously.

    Returns 200 with the result on success and 500 with the same body when
    the cycle failed. Returns 409 if a cycle is already running.
    """
    logger.info("Manual maintenance triggered via admin endpoint")

    try:
        result = run_maintenance_exclusive(orchestrator, triggered_by="admin")
    except MaintenanceInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    body = MaintenanceResultResponse(**result.to_dict())
    if not result.success:
        return JSONResponse(status_code=500, content=jsonable_encoder(body))
    return body


@router.get("/config", response_model=ConfigurationResponse)
def get_configuration(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ConfigurationResponse:
    """
    Get the retention configuration, creating the default row if missing.
    """
    return _configuration_response(ensure_configuration(db))


@router.put("/config", response_model=ConfigurationResponse)
def put_configuration(
    request: ConfigurationUpdateRequest,
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> ConfigurationResponse:
    """
    Update the retention configuration.

    Takes effect from the next maintenance cycle.
    """
    try:
        row = update_configuration(db, **request.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    return _configuration_response(row)


@router.get("/preview", response_model=PreviewResponse)
def preview_maintenance(
    db: Session = Depends(get_db),
    _: None = Depends(require_admin_key),
) -> PreviewResponse:
    """
    Preview how many rows the next cycle would archive and purge.

    Makes no changes.
    """
    return PreviewResponse(**get_maintenance_preview(db))


@router.get("/status", response_model=SchedulerStatusResponse)
def get_maintenance_status(
    request: Request,
    _: None = Depends(require_admin_key),
) -> SchedulerStatusResponse:
    """
    Get the in-process scheduler state and the last scheduled result.
    """
    scheduler = getattr(request.app.state, "maintenance_scheduler", None)
    if scheduler is None:
        return SchedulerStatusResponse(scheduler_enabled=False, running=is_maintenance_running())

    last_result = scheduler.last_result
    return SchedulerStatusResponse(
        scheduler_enabled=True,
        running=is_maintenance_running(),
        last_result=MaintenanceResultResponse(**last_result.to_dict()) if last_result else None,
        **scheduler.status(),
    )
