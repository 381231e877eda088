# app/services/maintenance/scheduler.py
"""
Daily maintenance scheduler.

State machine:

    idle -> waiting(next_run_at) -> running -> idle -> ...
    any state --stop()--> stopped

The loop computes the next daily run (02:00 UTC by default), sleeps until
then, and runs one cycle synchronously, so a second cycle can never start
while one is in progress. If a cycle raises, the error is logged and the
loop waits a fixed retry delay (1 hour) instead of the daily schedule, so
the process stays alive and keeps retrying.

Time and sleeping go through an injected clock so the schedule can be tested
without real delays.
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Optional, Protocol

from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

DEFAULT_RUN_HOUR_UTC = 2
DEFAULT_RETRY_DELAY = timedelta(hours=1)


class SchedulerState(str, Enum):
    """Lifecycle states of the maintenance scheduler."""
    IDLE = "idle"
    WAITING = "waiting"
    RUNNING = "running"
    STOPPED = "stopped"


class Clock(Protocol):
    def now(self) -> datetime: ...

    def sleep(self, seconds: float, cancel_event: threading.Event) -> bool:
        """Sleep up to `seconds`. Returns True if woken by cancellation."""
        ...


class SystemClock:
    """Wall clock (naive UTC) with a sleep that wakes up on cancellation."""

    def now(self) -> datetime:
        return utcnow()

    def sleep(self, seconds: float, cancel_event: threading.Event) -> bool:
        return cancel_event.wait(timeout=max(seconds, 0))


def compute_next_run(now: datetime, run_hour: int = DEFAULT_RUN_HOUR_UTC) -> datetime:
    """Today at run_hour:00 if that is still ahead, otherwise tomorrow."""
    today_run = now.replace(hour=run_hour, minute=0, second=0, microsecond=0)
    if now < today_run:
        return today_run
    return today_run + timedelta(days=1)


class MaintenanceScheduler:
    """
    Runs a maintenance cycle once a day until stopped.

    Usage:
        scheduler = MaintenanceScheduler(run_cycle=lambda cancel: orchestrator.run(cancel))
        scheduler.start()      # background thread
        ...
        scheduler.stop()
    """

    def __init__(
        self,
        run_cycle: Callable[[threading.Event], Any],
        clock: Optional[Clock] = None,
        run_hour: int = DEFAULT_RUN_HOUR_UTC,
        retry_delay: timedelta = DEFAULT_RETRY_DELAY,
    ):
        if not 0 <= run_hour <= 23:
            raise ValueError(f"run_hour must be between 0 and 23 (got {run_hour})")

        self.run_cycle = run_cycle
        self.clock = clock or SystemClock()
        self.run_hour = run_hour
        self.retry_delay = retry_delay

        self.state = SchedulerState.IDLE
        self.next_run_at: datetime | None = None
        self.last_run_started_at: datetime | None = None
        self.last_result: Any = None
        self.last_error: str | None = None
        self.cycles_completed = 0

        self._cancel_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    def run(self) -> None:
        """Blocking scheduler loop. Returns once stop() has been called."""
        logger.info(f"Maintenance scheduler started. Will run daily at {self.run_hour:02d}:00 UTC.")

        delay = self._delay_until_next_run()
        while not self._cancel_event.is_set():
            self.state = SchedulerState.WAITING
            if self.clock.sleep(delay.total_seconds(), self._cancel_event):
                break

            try:
                self.state = SchedulerState.RUNNING
                self.last_run_started_at = self.clock.now()
                self.last_result = self.run_cycle(self._cancel_event)
                self.last_error = None
                # A cycle that returned early on stop() did not complete
                if not self._cancel_event.is_set():
                    self.cycles_completed += 1
                self.state = SchedulerState.IDLE
                delay = self._delay_until_next_run()

            except Exception as e:
                self.last_error = str(e)
                self.state = SchedulerState.IDLE
                self.next_run_at = self.clock.now() + self.retry_delay
                logger.error(
                    f"Error in maintenance scheduler. Will retry in {self.retry_delay}: {e}",
                    exc_info=True,
                )
                delay = self.retry_delay

        self.state = SchedulerState.STOPPED
        logger.info("Maintenance scheduler is stopping.")

    def start(self) -> None:
        """Run the loop on a daemon thread."""
        if self._thread and self._thread.is_alive():
            return

        self._cancel_event.clear()
        self._thread = threading.Thread(target=self.run, name="maintenance-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = 30) -> None:
        """Signal cancellation and wait for the loop to exit."""
        self._cancel_event.set()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=timeout)
        if self._thread is None:
            self.state = SchedulerState.STOPPED

    def status(self) -> dict:
        return {
            "state": self.state.value,
            "run_hour_utc": self.run_hour,
            "next_run_at": self.next_run_at,
            "last_run_started_at": self.last_run_started_at,
            "last_error": self.last_error,
            "cycles_completed": self.cycles_completed,
        }

    def _delay_until_next_run(self) -> timedelta:
        now = self.clock.now()
        self.next_run_at = compute_next_run(now, self.run_hour)
        logger.info(
            f"Next maintenance run scheduled for {self.next_run_at.isoformat()} (in {self.next_run_at - now})"
        )
        return self.next_run_at - now
