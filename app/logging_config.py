"""
Structured JSON logging for maintenance observability.

Provides a single-line JSON formatter for production, a plain formatter for
local development, and a step context manager that times each maintenance
step and correlates its log lines.
"""

import json
import logging
import sys
import time
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, datetime

# Context variable for step correlation
step_var: ContextVar[str | None] = ContextVar("step", default=None)

# Extra fields copied from a log record into the JSON payload
EXTRA_FIELDS = (
    "event",
    "step",
    "kind",
    "batch_size",
    "total",
    "cutoff",
    "duration_ms",
    "files_deleted",
    "bytes_freed",
    "triggered_by",
)


# -----------------------------------------------------------------------------
# JSON Formatter
# -----------------------------------------------------------------------------


class JSONFormatter(logging.Formatter):
    """
    Format log records as single-line JSON.

    Output format:
    {"timestamp": "...", "level": "INFO", "message": "...", "step": "...", ...}
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(UTC).replace(tzinfo=None).isoformat() + "Z",
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        step = step_var.get()
        if step:
            log_data["step"] = step

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key in EXTRA_FIELDS:
            if hasattr(record, key):
                log_data[key] = getattr(record, key)

        return json.dumps(log_data, default=str)


def configure_logging(json_format: bool = True, level: str = "INFO") -> None:
    """
    Configure root logging for the service or the CLI.

    Args:
        json_format: If True, use JSON format. If False, use human-readable format.
        level: Log level (DEBUG, INFO, WARNING, ERROR)
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s"))

    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


# -----------------------------------------------------------------------------
# Context Managers
# -----------------------------------------------------------------------------


@contextmanager
def log_step(step: str):
    """
    Context manager for step-level logging.

    Logs step start and end with duration. Failures are logged and re-raised.

    Usage:
        with log_step("archive"):
            # ... step logic ...
    """
    token = step_var.set(step)
    start_time = time.time()
    logger = logging.getLogger("maintenance")

    logger.info(f"Step {step} started", extra={"event": "step_start", "step": step})

    try:
        yield
        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Step {step} completed",
            extra={
                "event": "step_complete",
                "step": step,
                "duration_ms": duration_ms,
            },
        )
    except Exception as e:
        duration_ms = int((time.time() - start_time) * 1000)
        logger.error(
            f"Step {step} failed: {e}",
            extra={
                "event": "step_failed",
                "step": step,
                "duration_ms": duration_ms,
            },
        )
        raise
    finally:
        step_var.reset(token)
