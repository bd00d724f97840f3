import threading
import time

import pytest

from esmetrics.config import ReporterConfig
from esmetrics.error_handling import ErrorCategory
from esmetrics.reporting import Reporter, ScheduledReporter
from esmetrics.reporting.scheduler import THREAD_NAME
from esmetrics.utils.exceptions import ConnectivityError


class _CountingReporter(Reporter):
    def __init__(self, *args, fail_first: Exception | None = None, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.runs = 0
        self.threads = set()
        self.fail_first = fail_first
        self.ran = threading.Event()

    def report(self, now=None):
        self.runs += 1
        self.threads.add(threading.current_thread().name)
        try:
            if self.fail_first is not None and self.runs == 1:
                raise self.fail_first
            return super().report(now)
        finally:
            if self.runs >= 2:
                self.ran.set()


def _reporter(registry, backend, **kwargs) -> _CountingReporter:
    registry.counter("c").inc()
    return _CountingReporter(ReporterConfig(registry=registry), backend, **kwargs)


def test_rejects_non_positive_period(registry, backend) -> None:
    with pytest.raises(ValueError):
        ScheduledReporter(_reporter(registry, backend), 0)


def test_runs_periodically_on_named_daemon_thread(registry, backend) -> None:
    reporter = _reporter(registry, backend)
    scheduler = ScheduledReporter(reporter, period_seconds=0.02)
    scheduler.start()
    try:
        assert scheduler.running
        assert scheduler._thread.daemon
        assert reporter.ran.wait(2.0)
    finally:
        scheduler.stop(timeout=1.0)
    assert not scheduler.running
    assert reporter.threads == {THREAD_NAME}
    assert scheduler.last_result is not None and scheduler.last_result.ok


def test_start_is_idempotent(registry, backend) -> None:
    scheduler = ScheduledReporter(_reporter(registry, backend), period_seconds=10)
    scheduler.start()
    first = scheduler._thread
    scheduler.start()
    assert scheduler._thread is first
    scheduler.stop(timeout=1.0)


def test_failed_cycle_does_not_stop_the_loop(registry, backend, error_handler) -> None:
    reporter = _reporter(registry, backend, fail_first=RuntimeError("boom"))
    with ScheduledReporter(reporter, period_seconds=0.02) as scheduler:
        assert reporter.ran.wait(2.0)
    assert scheduler.cycles_failed == 1
    (err,) = error_handler.get_recent_errors(category=ErrorCategory.SCHEDULER)
    assert err.message == "boom"
    assert err.component == "reporting.scheduler"
    assert err.context == {"index": "esmetrics"}
    assert scheduler.last_result is not None


def test_connectivity_failure_is_not_routed_twice(registry, backend, error_handler) -> None:
    reporter = _reporter(registry, backend, fail_first=ConnectivityError("down"))
    with ScheduledReporter(reporter, period_seconds=0.02) as scheduler:
        assert reporter.ran.wait(2.0)
    assert scheduler.cycles_failed == 1
    assert error_handler.get_recent_errors(category=ErrorCategory.SCHEDULER) == []


def test_report_now_runs_on_caller_thread(registry, backend) -> None:
    reporter = _reporter(registry, backend)
    scheduler = ScheduledReporter(reporter, period_seconds=60)
    result = scheduler.report_now()
    assert result.ok
    assert reporter.threads == {threading.current_thread().name}
    assert scheduler.last_result is result


def test_stop_with_final_report(registry, backend) -> None:
    reporter = _reporter(registry, backend)
    scheduler = ScheduledReporter(reporter, period_seconds=60)
    scheduler.start()
    started = time.monotonic()
    scheduler.stop(timeout=1.0, final_report=True)
    assert time.monotonic() - started < 1.0
    assert reporter.runs == 1
