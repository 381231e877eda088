# app/services/maintenance/config_service.py
"""
Retention configuration service.

The maintenance cycle reads one immutable snapshot of the retention settings
per run. The settings are stored in the single-row maintenance_configuration
table; when no row exists, built-in defaults apply.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Optional, Union

from sqlalchemy.orm import Session

from app.models import MaintenanceConfiguration
from app.services.maintenance.record_kinds import RecordKind, get_kind
from app.utils.clock import subtract_months

logger = logging.getLogger(__name__)


class RetentionUnit(str, Enum):
    """Unit of a live retention period."""
    MONTHS = "months"
    DAYS = "days"


@dataclass(frozen=True)
class RetentionPeriod:
    """How long a record stays in its live table."""
    amount: int
    unit: RetentionUnit

    def cutoff(self, now: datetime) -> datetime:
        """
        Timestamp below which records are eligible for migration.

        Zero or negative amounts give a cutoff at or after `now`; that is
        honoured as-is.
        """
        if self.unit == RetentionUnit.MONTHS:
            return subtract_months(now, self.amount)
        return now - timedelta(days=self.amount)

    def __str__(self) -> str:
        return f"{self.amount} {self.unit.value}"


@dataclass(frozen=True)
class RetentionConfiguration:
    """Immutable snapshot of the retention settings for one maintenance cycle."""
    enabled: bool = True
    job_retention_months: int = 12
    execution_retention_months: int = 12
    audit_log_retention_days: int = 90
    archive_retention_years: int = 7
    log_retention_days: int = 30
    batch_size: int = 5000

    def live_retention(self, kind: Union[RecordKind, str]) -> RetentionPeriod:
        """
        Retention period for the live table of the given record kind.

        Accepts a RecordKind or a registered kind name; unknown names raise KeyError.
        """
        if isinstance(kind, str):
            kind = get_kind(kind)
        return RetentionPeriod(getattr(self, kind.retention_field), RetentionUnit(kind.retention_unit))

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_CONFIGURATION = RetentionConfiguration()

# Ranges enforced when operators edit the configuration. The engine itself
# trusts whatever is stored.
CONFIGURATION_LIMITS = {
    "job_retention_months": (1, 120),
    "job_execution_retention_months": (1, 120),
    "audit_log_retention_days": (1, 3650),
    "archive_retention_years": (1, 50),
    "log_retention_days": (1, 3650),
    "archival_batch_size": (1, 50000),
}


def get_configuration_row(db: Session) -> Optional[MaintenanceConfiguration]:
    """Return the active (non-deleted) configuration row, if any."""
    return (
        db.query(MaintenanceConfiguration)
        .filter(MaintenanceConfiguration.is_deleted == False)  # noqa: E712
        .order_by(MaintenanceConfiguration.id.asc())
        .first()
    )


def snapshot_from_row(row: Optional[MaintenanceConfiguration]) -> RetentionConfiguration:
    """Build a snapshot from a configuration row, or the defaults when missing."""
    if row is None:
        return DEFAULT_CONFIGURATION

    return RetentionConfiguration(
        enabled=row.is_archival_enabled,
        job_retention_months=row.job_retention_months,
        execution_retention_months=row.job_execution_retention_months,
        audit_log_retention_days=row.audit_log_retention_days,
        archive_retention_years=row.archive_retention_years,
        log_retention_days=row.log_retention_days,
        batch_size=row.archival_batch_size,
    )


def get_retention_configuration(db: Session) -> RetentionConfiguration:
    """
    Fetch the retention configuration snapshot for one maintenance cycle.

    Database errors propagate to the caller.
    """
    row = get_configuration_row(db)
    if row is None:
        logger.info("No maintenance configuration stored, using defaults")
    return snapshot_from_row(row)


def ensure_configuration(db: Session) -> MaintenanceConfiguration:
    """Create the configuration row with default values if it does not exist."""
    row = get_configuration_row(db)
    if row:
        return row

    row = MaintenanceConfiguration()
    db.add(row)
    db.commit()
    db.refresh(row)

    logger.info("Created default maintenance configuration")
    return row


def update_configuration(
    db: Session,
    is_archival_enabled: Optional[bool] = None,
    job_retention_months: Optional[int] = None,
    job_execution_retention_months: Optional[int] = None,
    audit_log_retention_days: Optional[int] = None,
    archive_retention_years: Optional[int] = None,
    log_retention_days: Optional[int] = None,
    archival_batch_size: Optional[int] = None,
    notes: Optional[str] = None,
) -> MaintenanceConfiguration:
    """
    Update the stored retention configuration.

    Only updates fields that are explicitly provided (not None).
    Raises ValueError if a value is outside its allowed range.
    """
    numeric = {
        "job_retention_months": job_retention_months,
        "job_execution_retention_months": job_execution_retention_months,
        "audit_log_retention_days": audit_log_retention_days,
        "archive_retention_years": archive_retention_years,
        "log_retention_days": log_retention_days,
        "archival_batch_size": archival_batch_size,
    }
    for name, value in numeric.items():
        if value is None:
            continue
        low, high = CONFIGURATION_LIMITS[name]
        if not low <= value <= high:
            raise ValueError(f"{name} must be between {low} and {high} (got {value})")

    row = ensure_configuration(db)

    for name, value in numeric.items():
        if value is not None:
            setattr(row, name, value)
    if is_archival_enabled is not None:
        row.is_archival_enabled = is_archival_enabled
    if notes is not None:
        row.notes = notes

    db.add(row)
    db.commit()
    db.refresh(row)

    logger.info(f"Updated maintenance configuration: {snapshot_from_row(row).to_dict()}")
    return row
