"""
Central error routing for the esmetrics reporting pipeline.

The pipeline isolates record-level failures itself (a gauge that raises, a
rejected batch, a percolate request that errors) and hands each one to the
handler here, which logs it once and keeps it in a bounded history with
per-category tallies. Cycle-level failures go through the same path and are
then re-raised by the caller.
"""

from __future__ import annotations

import logging
import threading
import traceback
from collections import Counter, deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .config import env_adapter


class ErrorCategory(Enum):
    """Which stage of a reporting cycle failed."""

    CONNECTIVITY = "connectivity"
    TEMPLATE = "template"
    BULK_WRITE = "bulk_write"
    PERCOLATION = "percolation"
    NOTIFIER = "notifier"
    COLLECTION = "collection"
    CONFIGURATION = "configuration"
    SCHEDULER = "scheduler"
    UNKNOWN = "unknown"


class ErrorSeverity(Enum):
    LOW = "low"          # self-healing next cycle
    MEDIUM = "medium"    # one record or request affected
    HIGH = "high"        # whole cycle affected
    CRITICAL = "critical"


_LOG_LEVELS = {
    ErrorSeverity.LOW: logging.INFO,
    ErrorSeverity.MEDIUM: logging.WARNING,
    ErrorSeverity.HIGH: logging.ERROR,
    ErrorSeverity.CRITICAL: logging.CRITICAL,
}


@dataclass
class ErrorInfo:
    exception: Exception
    category: ErrorCategory
    severity: ErrorSeverity
    component: str = ""
    function_name: str = ""
    message: str = ""
    context: dict[str, Any] = field(default_factory=dict)
    traceback_str: str = ""
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))
    thread_name: str = ""

    @property
    def location(self) -> str:
        return f"{self.component}.{self.function_name}" if self.function_name else self.component


class ReporterErrorHandler:
    """Thread-safe error log with a bounded history.

    Args:
        log_file: Optional file receiving warning and above records
        max_errors: History size; the oldest entries are dropped first
    """

    def __init__(self, log_file: str | None = None, max_errors: int = 1000):
        self.logger = logging.getLogger("esmetrics.errors")
        self._history: deque[ErrorInfo] = deque(maxlen=max_errors)
        self._by_type: Counter[str] = Counter()
        self._by_category: Counter[ErrorCategory] = Counter()
        self._by_severity: Counter[ErrorSeverity] = Counter()
        self._lock = threading.Lock()
        if log_file:
            self._attach_file(log_file)

    def _attach_file(self, log_file: str) -> None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(log_file, encoding="utf-8")
        fh.setLevel(logging.WARNING)
        fh.setFormatter(logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
        self.logger.addHandler(fh)

    def handle_error(
        self,
        exception: Exception,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
        severity: ErrorSeverity = ErrorSeverity.MEDIUM,
        component: str = "",
        function_name: str = "",
        message: str = "",
        context: dict[str, Any] | None = None,
        should_log: bool = True,
        should_reraise: bool = False,
    ) -> ErrorInfo:
        """Record ``exception``; log it unless ``should_log`` is False.

        Returns the stored ErrorInfo, or re-raises ``exception`` when
        ``should_reraise`` is set.
        """
        info = ErrorInfo(
            exception=exception,
            category=category,
            severity=severity,
            component=component,
            function_name=function_name,
            message=message or str(exception),
            context=dict(context or {}),
            traceback_str=traceback.format_exc(),
            thread_name=threading.current_thread().name,
        )
        with self._lock:
            self._history.append(info)
            self._by_type[type(exception).__name__] += 1
            self._by_category[category] += 1
            self._by_severity[severity] += 1
        if should_log:
            self._log(info)
        if should_reraise:
            raise exception
        return info

    def _log(self, info: ErrorInfo) -> None:
        line = f"[{info.category.value.upper()}] {info.location}: {info.message}"
        if info.context:
            line += f" | Context: {info.context}"
        level = _LOG_LEVELS[info.severity]
        # stack traces only for failures that cost a whole cycle
        exc_info = info.exception if level >= logging.ERROR else None
        self.logger.log(level, line, exc_info=exc_info)

    def get_recent_errors(self, count: int = 50, category: ErrorCategory | None = None) -> list[ErrorInfo]:
        with self._lock:
            errors = [e for e in self._history if category is None or e.category == category]
        return errors[-count:]

    def get_error_summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "total_errors": len(self._history),
                "by_type": dict(self._by_type),
                "by_category": {c.value: n for c, n in self._by_category.items()},
                "by_severity": {s.value: n for s, n in self._by_severity.items()},
            }

    def clear_errors(self) -> None:
        with self._lock:
            self._history.clear()
            self._by_type.clear()
            self._by_category.clear()
            self._by_severity.clear()


_handler: ReporterErrorHandler | None = None
_handler_lock = threading.Lock()


def get_error_handler() -> ReporterErrorHandler:
    """Process-wide handler, created on first use.

    ESM_ERROR_LOG names an optional file receiving warning and above records.
    """
    global _handler
    if _handler is None:
        with _handler_lock:
            if _handler is None:
                _handler = ReporterErrorHandler(log_file=env_adapter.get_str("ESM_ERROR_LOG", "") or None)
    return _handler


def initialize_error_handler(log_file: str | None = None, max_errors: int = 1000) -> ReporterErrorHandler:
    """Replace the process-wide handler with a fresh one."""
    global _handler
    with _handler_lock:
        _handler = ReporterErrorHandler(log_file=log_file, max_errors=max_errors)
    return _handler


def safe_execute(
    func: Callable[..., Any],
    *args: Any,
    category: ErrorCategory = ErrorCategory.UNKNOWN,
    severity: ErrorSeverity = ErrorSeverity.MEDIUM,
    component: str = "",
    default_return: Any = None,
    context: dict[str, Any] | None = None,
    **kwargs: Any,
) -> Any:
    """Call ``func``; on error route it and return ``default_return``."""
    try:
        return func(*args, **kwargs)
    except Exception as e:
        get_error_handler().handle_error(
            e,
            category=category,
            severity=severity,
            component=component or getattr(func, "__module__", "unknown").rsplit(".", 1)[-1],
            function_name=getattr(func, "__name__", "unknown"),
            context=context,
        )
        return default_return


def handle_collection_error(e: Exception, metric_name: str, kind: str) -> ErrorInfo:
    """A single metric could not be read; the rest of the snapshot continues."""
    return get_error_handler().handle_error(
        e, ErrorCategory.COLLECTION, ErrorSeverity.MEDIUM,
        component="reporting.snapshot", function_name="collect",
        message=f"Failed to read {kind} {metric_name!r}; skipped for this cycle",
        context={"metric": metric_name, "kind": kind},
    )


def handle_percolation_error(e: Exception, metric_name: str, index: str) -> ErrorInfo:
    """A percolate request failed for one record; other records are unaffected."""
    return get_error_handler().handle_error(
        e, ErrorCategory.PERCOLATION, ErrorSeverity.MEDIUM,
        component="reporting.percolation", function_name="evaluate",
        message=f"Percolation failed for {metric_name!r}",
        context={"metric": metric_name, "index": index},
    )


def handle_connectivity_error(e: Exception, component: str, function_name: str, context: dict[str, Any] | None = None) -> ErrorInfo:
    """The backend is unreachable; the current cycle is abandoned."""
    return get_error_handler().handle_error(
        e, ErrorCategory.CONNECTIVITY, ErrorSeverity.HIGH,
        component=component, function_name=function_name,
        message=f"Backend unavailable: {e}",
        context=context,
    )


__all__ = [
    "ErrorCategory",
    "ErrorSeverity",
    "ErrorInfo",
    "ReporterErrorHandler",
    "get_error_handler",
    "initialize_error_handler",
    "safe_execute",
    "handle_collection_error",
    "handle_percolation_error",
    "handle_connectivity_error",
]
