# app/services/maintenance/log_sweeper.py
"""
Log retention sweeper.

Deletes flat log files older than the log retention window. Independent of
the database: it only needs a file-system handle.

Candidate directories are the logs/ folder in the base directory and in the
one and two levels above it, so the same code works whether the process runs
from the project root, a build output folder, or a nested deploy directory.
"""

import logging
import os
import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Optional

from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

LOG_FILE_EXTENSIONS = (".log", ".txt")
LOG_DIRECTORY_NAME = "logs"


@dataclass
class SweepResult:
    """Result of one log sweep."""
    files_deleted: int = 0
    bytes_freed: int = 0
    directories_scanned: int = 0
    failures: list[str] = field(default_factory=list)

    @property
    def megabytes_freed(self) -> float:
        return self.bytes_freed / (1024 * 1024)


class LocalFileSystem:
    """File-system handle backed by the local disk."""

    def is_dir(self, path: Path) -> bool:
        return path.is_dir()

    def list_files(self, directory: Path, extensions: Iterable[str]) -> list[Path]:
        wanted = {ext.lower() for ext in extensions}
        return sorted(
            entry
            for entry in directory.iterdir()
            if entry.is_file() and entry.suffix.lower() in wanted
        )

    def modified_at(self, path: Path) -> datetime:
        """Last-modified time as naive UTC."""
        return datetime.fromtimestamp(path.stat().st_mtime, UTC).replace(tzinfo=None)

    def size(self, path: Path) -> int:
        return path.stat().st_size

    def delete(self, path: Path) -> None:
        path.unlink()


def candidate_log_directories(base_dir: Path) -> list[Path]:
    """<base>/logs, <base>/../logs and <base>/../../logs, without duplicates."""
    seen = set()
    directories = []
    for parent in (base_dir, base_dir / "..", base_dir / ".." / ".."):
        candidate = (parent / LOG_DIRECTORY_NAME).resolve()
        if candidate not in seen:
            seen.add(candidate)
            directories.append(candidate)
    return directories


class LogSweeper:
    """Deletes stale log files from the candidate log directories."""

    def __init__(
        self,
        base_dir: Optional[str | Path] = None,
        filesystem: Optional[LocalFileSystem] = None,
        extensions: tuple[str, ...] = LOG_FILE_EXTENSIONS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.base_dir = Path(base_dir) if base_dir else Path(os.getcwd())
        self.filesystem = filesystem or LocalFileSystem()
        self.extensions = extensions
        self.clock = clock

    def sweep(self, retention_days: int, cancel_event: Optional[threading.Event] = None) -> SweepResult:
        """
        Delete log files last modified before now - retention_days.

        Never raises: a file that cannot be deleted is logged and skipped, and
        any other failure ends the sweep with whatever was deleted so far.
        """
        result = SweepResult()
        cutoff = self.clock() - timedelta(days=retention_days)

        logger.info(
            f"Cleaning up log files older than {cutoff.isoformat()} ({retention_days} days retention)",
            extra={"event": "log_sweep_start", "cutoff": cutoff.isoformat()},
        )

        try:
            for directory in candidate_log_directories(self.base_dir):
                if not self.filesystem.is_dir(directory):
                    continue

                logger.info(f"Scanning log directory: {directory}")
                result.directories_scanned += 1

                for path in self.filesystem.list_files(directory, self.extensions):
                    if cancel_event is not None and cancel_event.is_set():
                        logger.info("Log cleanup cancelled")
                        return result
                    self._sweep_file(path, cutoff, result)

        except Exception as e:
            logger.warning(f"Error during log file cleanup (non-fatal): {e}", exc_info=True)

        logger.info(
            f"Log cleanup completed. Deleted {result.files_deleted} files, freed {result.megabytes_freed:.2f} MB",
            extra={
                "event": "log_sweep_complete",
                "files_deleted": result.files_deleted,
                "bytes_freed": result.bytes_freed,
            },
        )
        return result

    def _sweep_file(self, path: Path, cutoff: datetime, result: SweepResult) -> None:
        try:
            if self.filesystem.modified_at(path) >= cutoff:
                return
            size = self.filesystem.size(path)
            self.filesystem.delete(path)
        except Exception as e:
            logger.warning(f"Failed to delete log file {path.name}: {e}")
            result.failures.append(f"{path}: {e}")
            return

        result.files_deleted += 1
        result.bytes_freed += size
        logger.debug(f"Deleted log file: {path.name} ({size} bytes)")
