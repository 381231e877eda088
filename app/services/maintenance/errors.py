# app/services/maintenance/errors.py
"""Exceptions raised by the maintenance engine."""


class MaintenanceError(Exception):
    """Base class for maintenance failures."""

    pass


class BatchStepError(MaintenanceError):
    """
    A batch commit failed inside a migration or purge step.

    Batches committed before the failure stay committed; `processed` is how
    many rows those batches moved or deleted for `kind`.
    """

    def __init__(self, step: str, kind: str, processed: int, cause: BaseException):
        self.step = step
        self.kind = kind
        self.processed = processed
        self.cause = cause
        super().__init__(f"{step} of {kind} failed after {processed} records: {cause}")


class MaintenanceInProgressError(MaintenanceError):
    """Raised when a maintenance cycle is requested while another is running."""

    pass
