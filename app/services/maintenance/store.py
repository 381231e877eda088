# app/services/maintenance/store.py
"""
Transaction-scoped storage handle for maintenance batches.

Every batch runs inside its own session and transaction:

    with batch_transaction(SessionLocal) as store:
        rows = store.fetch_eligible(kind, cutoff, limit)
        store.insert_archives(...)
        store.delete_live(kind, ids)

Leaving the block commits; an exception rolls the whole batch back.
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from datetime import datetime

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.services.maintenance.record_kinds import RecordKind

logger = logging.getLogger(__name__)


class MaintenanceStore:
    """Batch queries and writes against one open transaction."""

    def __init__(self, session: Session):
        self.session = session

    # -- live tables ---------------------------------------------------------

    def _eligible_query(self, kind: RecordKind, cutoff: datetime):
        live = kind.live_model
        return self.session.query(live).filter(
            live.is_deleted == False,  # noqa: E712
            kind.eligibility_attr < cutoff,
        )

    def fetch_eligible(self, kind: RecordKind, cutoff: datetime, limit: int) -> list:
        """Lowest-id non-deleted live rows older than `cutoff`."""
        return (
            self._eligible_query(kind, cutoff)
            .order_by(kind.live_model.id.asc())
            .limit(limit)
            .all()
        )

    def count_eligible(self, kind: RecordKind, cutoff: datetime) -> int:
        live = kind.live_model
        return (
            self.session.query(func.count(live.id))
            .filter(
                live.is_deleted == False,  # noqa: E712
                kind.eligibility_attr < cutoff,
            )
            .scalar()
        ) or 0

    def delete_live(self, kind: RecordKind, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        live = kind.live_model
        return (
            self.session.query(live)
            .filter(live.id.in_(list(ids)))
            .delete(synchronize_session=False)
        )

    # -- archive tables ------------------------------------------------------

    def insert_archives(self, rows: Sequence) -> None:
        self.session.add_all(rows)
        self.session.flush()

    def fetch_expired_archive_ids(self, kind: RecordKind, cutoff: datetime, limit: int) -> list[int]:
        """Lowest-id archive rows archived strictly before `cutoff`."""
        archive = kind.archive_model
        return [
            row.id
            for row in (
                self.session.query(archive.id)
                .filter(archive.archived_at < cutoff)
                .order_by(archive.id.asc())
                .limit(limit)
                .all()
            )
        ]

    def count_expired_archives(self, kind: RecordKind, cutoff: datetime) -> int:
        archive = kind.archive_model
        return (
            self.session.query(func.count(archive.id))
            .filter(archive.archived_at < cutoff)
            .scalar()
        ) or 0

    def delete_archives(self, kind: RecordKind, ids: Sequence[int]) -> int:
        if not ids:
            return 0
        archive = kind.archive_model
        return (
            self.session.query(archive)
            .filter(archive.id.in_(list(ids)))
            .delete(synchronize_session=False)
        )


@contextmanager
def batch_transaction(session_factory: Callable[[], Session]) -> Iterator[MaintenanceStore]:
    """
    Open a session and transaction for exactly one batch.

    Commits when the block exits normally, rolls back and re-raises otherwise.
    """
    session = session_factory()
    try:
        with session.begin():
            yield MaintenanceStore(session)
    finally:
        session.close()
