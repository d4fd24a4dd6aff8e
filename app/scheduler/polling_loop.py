"""
app/scheduler/polling_loop.py

Fixed-delay ticker driving the submission pipeline until stopped.

Each iteration runs one poll cycle and then waits for the configured
interval. The wait is an `Event.wait`, so `stop()` interrupts the sleep
phase immediately; a cycle that is already running always finishes with
a commit or a rollback before the loop exits.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from app.domain.ingestion import PollCycleSummary

logger = logging.getLogger(__name__)


class PollingLoop:
    def __init__(
        self,
        *,
        run_cycle: Callable[[], PollCycleSummary],
        interval_seconds: float,
        on_shutdown: Callable[[], None] | None = None,
        stop_event: threading.Event | None = None,
        wait: Callable[[float], bool] | None = None,
    ) -> None:
        self._run_cycle = run_cycle
        self._interval_seconds = max(0.0, interval_seconds)
        self._on_shutdown = on_shutdown
        self._stop_event = stop_event or threading.Event()
        # Returns True when the loop should stop; defaults to the stop event.
        self._wait = wait or self._stop_event.wait
        self.cycles_run = 0

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Request shutdown; observed at the next sleep or before the next cycle."""
        self._stop_event.set()

    def run_forever(self) -> None:
        """
        Poll until `stop()` is called or the wait function reports a stop.

        Cycle failures are logged and never end the loop.
        """

        logger.info("Submission polling loop started interval_seconds=%s", self._interval_seconds)
        try:
            while not self._stop_event.is_set():
                self.run_once()
                if self._wait(self._interval_seconds):
                    break
        finally:
            logger.info("Submission polling loop stopping after cycles=%s", self.cycles_run)
            if self._on_shutdown is not None:
                self._on_shutdown()

    def run_once(self) -> PollCycleSummary | None:
        self.cycles_run += 1
        try:
            summary = self._run_cycle()
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error while processing new submissions: %s", exc)
            return None

        logger.info(
            "Submission cycle finished outcome=%s fetched=%s inserted=%s skipped=%s cleared=%s",
            summary.outcome,
            summary.rows_fetched,
            summary.rows_inserted,
            summary.rows_skipped,
            summary.source_cleared,
        )
        return summary
