# app/services/maintenance/preview.py
"""
Read-only preview of what the next maintenance cycle would do.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from app.services.maintenance.config_service import get_retention_configuration
from app.services.maintenance.purger import archive_purge_cutoff
from app.services.maintenance.record_kinds import RECORD_KINDS, RecordKind
from app.services.maintenance.store import MaintenanceStore
from app.utils.clock import utcnow


def get_maintenance_preview(
    db: Session,
    now: Optional[datetime] = None,
    kinds: tuple[RecordKind, ...] = RECORD_KINDS,
) -> dict:
    """
    Count live rows that would be archived and archive rows that would be
    purged if a cycle ran at `now`. Makes no changes.

    Useful for admin dashboard display.
    """
    now = now or utcnow()
    config = get_retention_configuration(db)
    store = MaintenanceStore(db)
    purge_cutoff = archive_purge_cutoff(now, config.archive_retention_years)

    pending_archive = {}
    archive_cutoffs = {}
    pending_purge = {}
    for kind in kinds:
        cutoff = config.live_retention(kind).cutoff(now)
        archive_cutoffs[kind.name] = cutoff
        pending_archive[kind.name] = store.count_eligible(kind, cutoff)
        pending_purge[kind.name] = store.count_expired_archives(kind, purge_cutoff)

    return {
        "as_of": now,
        "archival_enabled": config.enabled,
        "archive_cutoffs": archive_cutoffs,
        "purge_cutoff": purge_cutoff,
        "pending_archive": pending_archive,
        "pending_purge": pending_purge,
    }
