"""Reporter: one synchronous reporting cycle per ``report()`` call.

Cycle: collect snapshot -> resolve index -> ensure template -> bulk write ->
percolate (optional). The only state carried between cycles is the template
confirmation flag inside ``TemplateManager``; everything else is rebuilt from
the registry each time, so concurrent calls (a forced report racing the
scheduled one) are safe.

Failure handling per cycle:
  * backend unreachable / timeout -> routed, counted, re-raised as ConnectivityError
  * documents rejected            -> ``ReportResult.ok`` is False, failures listed
  * template request refused      -> routed, write still attempted, re-checked next cycle
  * percolation / notifier errors -> routed per record, write outcome unaffected
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from elasticsearch import ApiError

from ..config.reporter_config import ReporterConfig
from ..error_handling import ErrorCategory, ErrorSeverity, get_error_handler, handle_connectivity_error
from ..storage.es_backend import ElasticsearchBackend
from ..utils.exceptions import ConnectivityError
from ..utils.timeutils import utc_now
from .bulk_writer import BulkDocumentWriter, WriteResult
from .index_names import IndexTarget, resolve
from .instrumentation import ReporterInstrumentation
from .percolation import PercolationEvaluator, PercolationMatch, PercolationResult
from .records import Units
from .snapshot import SnapshotCollector
from .templates import TemplateManager

logger = logging.getLogger(__name__)


@dataclass
class ReportResult:
    target: IndexTarget
    write: WriteResult
    percolation: PercolationResult | None
    duration: float

    @property
    def index(self) -> str:
        return self.target.name

    @property
    def collected(self) -> int:
        return self.write.attempted

    @property
    def matches(self) -> list[PercolationMatch]:
        return list(self.percolation.matches) if self.percolation else []

    @property
    def ok(self) -> bool:
        return self.write.ok


class Reporter:
    def __init__(
        self,
        config: ReporterConfig,
        backend: Any,
        instrumentation: ReporterInstrumentation | None = None,
        templates: TemplateManager | None = None,
        owns_backend: bool = False,
    ) -> None:
        self.config = config
        self.backend = backend
        self._owns_backend = owns_backend
        self.instrumentation = instrumentation or ReporterInstrumentation()
        self.collector = SnapshotCollector(
            config.registry,
            prefix=config.prefix,
            units=Units(rate=config.rate_unit, duration=config.duration_unit),
            metric_filter=config.metric_filter,
        )
        self.templates = templates or TemplateManager(check_patterns=config.template_pattern_check)
        self.writer = BulkDocumentWriter(backend, config.bulk_size, config.additional_fields)
        self.percolator: PercolationEvaluator | None = None
        if config.percolation_enabled:
            self.percolator = PercolationEvaluator(
                backend, config.percolation_prefix, config.notifier, dict(config.additional_fields),
            )

    @classmethod
    def from_config(cls, config: ReporterConfig, backend: Any = None, **kwargs: Any) -> Reporter:
        """Build a reporter, creating an Elasticsearch backend from ``config`` if none is given."""
        owns = backend is None
        if backend is None:
            backend = ElasticsearchBackend(hosts=config.hosts, timeout=config.timeout)
        return cls(config, backend, owns_backend=owns, **kwargs)

    def target_for(self, now: datetime) -> IndexTarget:
        return resolve(self.config.index, self.config.index_date_format, now)

    def report(self, now: datetime | None = None) -> ReportResult:
        """Run one complete cycle; blocks until write and percolation are done.

        Raises ConnectivityError if the backend cannot be reached.
        """
        now = now or utc_now()
        inst = self.instrumentation
        inst.cycles.inc()
        start = time.perf_counter()
        try:
            records = list(self.collector.collect(now))
            target = self.target_for(now)
            self._ensure_template(target)
            write = self.writer.write(records, target)
            inst.observe_write(write.written, len(write.failures))
            percolation = None
            if self.percolator is not None and write.accepted:
                percolation = self.percolator.evaluate(write.accepted, target)
                inst.observe_percolation(len(percolation.matches), percolation.failures)
        except ConnectivityError as e:
            inst.failures.labels(reason="connectivity").inc()
            handle_connectivity_error(e, "reporting.reporter", "report", {"index": self.config.index})
            raise
        finally:
            inst.duration.observe(time.perf_counter() - start)
        result = ReportResult(target, write, percolation, time.perf_counter() - start)
        logger.debug("report cycle -> %s: %d collected, %d written, %d failed, %d match(es) in %.3fs",
                     result.index, result.collected, write.written, len(write.failures),
                     len(result.matches), result.duration)
        return result

    def _ensure_template(self, target: IndexTarget) -> None:
        try:
            if self.templates.ensure_template(self.backend, target.base_name):
                self.instrumentation.template_confirmed.set(1)
        except ApiError as e:
            self.instrumentation.failures.labels(reason="template").inc()
            get_error_handler().handle_error(
                e,
                category=ErrorCategory.TEMPLATE,
                severity=ErrorSeverity.MEDIUM,
                component="reporting.templates",
                function_name="ensure_template",
                message=f"Template check for {target.base_name}* failed; writing without it",
                context={"index": target.name},
            )

    def close(self) -> None:
        if self._owns_backend:
            self.backend.close()

    def __enter__(self) -> Reporter:
        return self

    def __exit__(self, *exc: Any) -> None:
        self.close()


__all__ = ["Reporter", "ReportResult"]
