"""Periodic driver for a Reporter.

The Reporter itself has no notion of time; ``ScheduledReporter`` runs
``report()`` every ``period_seconds`` on one background daemon thread. A
failing cycle (including ConnectivityError) is routed to the error handler and
the loop keeps going; the next cycle simply reports a fresh snapshot.
"""
from __future__ import annotations

import logging
import threading
import time
from typing import Any

from ..error_handling import ErrorCategory, ErrorSeverity, safe_execute
from ..utils.exceptions import ConnectivityError
from ..version import get_version
from .reporter import Reporter, ReportResult

logger = logging.getLogger(__name__)

THREAD_NAME = "esmetrics-reporter"


class ScheduledReporter:
    def __init__(self, reporter: Reporter, period_seconds: float) -> None:
        if period_seconds <= 0:
            raise ValueError("period_seconds must be > 0")
        self.reporter = reporter
        self.period = float(period_seconds)
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self.last_result: ReportResult | None = None
        self.cycles_failed = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        with self._lock:
            if self.running:
                return
            self._stop.clear()
            self._thread = threading.Thread(target=self._loop, name=THREAD_NAME, daemon=True)
            self._thread.start()
        logger.info("esmetrics %s scheduled reporter started (period=%.1fs, index=%s)",
                    get_version(), self.period, self.reporter.config.index)

    def _loop(self) -> None:
        next_run = time.monotonic() + self.period
        while not self._stop.wait(max(0.0, next_run - time.monotonic())):
            self._run_cycle()
            next_run += self.period
            # missed slots are skipped, not replayed
            now = time.monotonic()
            if next_run < now:
                next_run = now + self.period

    def _report(self) -> ReportResult | None:
        try:
            return self.reporter.report()
        except ConnectivityError:
            # already routed by the reporter
            return None

    def _run_cycle(self) -> ReportResult | None:
        result = safe_execute(
            self._report,
            category=ErrorCategory.SCHEDULER,
            severity=ErrorSeverity.HIGH,
            component="reporting.scheduler",
            context={"index": self.reporter.config.index},
        )
        if result is None:
            self.cycles_failed += 1
            return None
        self.last_result = result
        return result

    def report_now(self) -> ReportResult:
        """Run one cycle on the caller's thread; exceptions propagate."""
        result = self.reporter.report()
        self.last_result = result
        return result

    def stop(self, timeout: float = 5.0, final_report: bool = False) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None:
            thread.join(timeout=timeout)
            if thread.is_alive():
                logger.warning("scheduled reporter thread did not stop within %.1fs", timeout)
        self._thread = None
        if final_report:
            self._run_cycle()
        logger.info("scheduled reporter stopped")

    def __enter__(self) -> ScheduledReporter:
        self.start()
        return self

    def __exit__(self, *exc: Any) -> None:
        self.stop()


__all__ = ["ScheduledReporter", "THREAD_NAME"]
