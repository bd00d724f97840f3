"""Percolation-driven alerting.

Standing queries live as documents with a ``query`` (percolator) field in the
metric indices, keyed by a caller-chosen id. After each cycle's bulk write,
every accepted record whose name starts with the configured prefix is
percolated against the index it was written to, and the notifier is called
once per matching query.

Evaluation is recomputed from the current value each cycle. There is no
memory of earlier matches: a metric that keeps satisfying a query is notified
every cycle, and nothing tracks threshold crossings.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from ..error_handling import ErrorCategory, ErrorSeverity, get_error_handler, handle_percolation_error
from .index_names import IndexTarget
from .records import MetricRecord

logger = logging.getLogger(__name__)


@runtime_checkable
class Notifier(Protocol):
    """Receives one call per (record, matching query) per cycle.

    Runs inline with the reporting cycle, so implementations must not block
    indefinitely.
    """
    def notify(self, record: MetricRecord, query_id: str) -> None: ...


class _CallableNotifier:
    def __init__(self, fn: Callable[[MetricRecord, str], Any]):
        self._fn = fn

    def notify(self, record: MetricRecord, query_id: str) -> None:
        self._fn(record, query_id)


def as_notifier(obj: Notifier | Callable[[MetricRecord, str], Any]) -> Notifier:
    if isinstance(obj, Notifier):
        return obj
    if callable(obj):
        return _CallableNotifier(obj)
    raise TypeError(f"{type(obj).__name__} is not a notifier")


@dataclass(frozen=True)
class PercolationMatch:
    query_id: str
    record: MetricRecord


@dataclass
class PercolationResult:
    evaluated: int = 0
    matches: list[PercolationMatch] = field(default_factory=list)
    failures: int = 0


class PercolationEvaluator:
    def __init__(self, backend: Any, prefix: str, notifier: Notifier | Callable[[MetricRecord, str], Any], additional_fields: dict[str, Any] | None = None) -> None:
        self.backend = backend
        self.prefix = prefix
        self.notifier = as_notifier(notifier)
        self.additional_fields = dict(additional_fields or {})

    def selects(self, record: MetricRecord) -> bool:
        return record.name.startswith(self.prefix)

    def evaluate(self, records: Iterable[MetricRecord], target: IndexTarget) -> PercolationResult:
        """Percolate the just-written ``records`` against ``target`` and notify matches.

        Per-record request failures and notifier exceptions are routed to the
        error handler and do not affect the other records.
        """
        index = target.name
        result = PercolationResult()
        for record in records:
            if not self.selects(record):
                continue
            result.evaluated += 1
            try:
                query_ids = self.backend.percolate(index, record.to_document(self.additional_fields))
            except Exception as e:
                handle_percolation_error(e, record.name, index)
                result.failures += 1
                continue
            for query_id in query_ids:
                result.matches.append(PercolationMatch(query_id, record))
                self._notify(record, query_id)
        if result.evaluated:
            logger.debug("percolated %d record(s) against %s: %d match(es), %d failure(s)",
                         result.evaluated, index, len(result.matches), result.failures)
        return result

    def _notify(self, record: MetricRecord, query_id: str) -> None:
        try:
            self.notifier.notify(record, query_id)
        except Exception as e:
            get_error_handler().handle_error(
                e,
                category=ErrorCategory.NOTIFIER,
                severity=ErrorSeverity.MEDIUM,
                component="reporting.percolation",
                function_name="notify",
                message=f"Notifier failed for {record.name!r} / {query_id!r}",
                context={"metric": record.name, "query_id": query_id},
            )


def register_standing_query(backend: Any, target: IndexTarget | str, query_id: str, query: dict[str, Any]) -> None:
    """Store ``query`` (a query DSL dict) under ``query_id`` in ``target``.

    Queries are per index: with date partitioning they must be registered in
    every partition they should watch.
    """
    index = target.name if isinstance(target, IndexTarget) else target
    backend.put_standing_query(index, query_id, query)
    logger.info("registered standing query %s on %s", query_id, index)


__all__ = [
    "Notifier",
    "as_notifier",
    "PercolationMatch",
    "PercolationResult",
    "PercolationEvaluator",
    "register_standing_query",
]
