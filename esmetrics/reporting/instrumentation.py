"""Self-instrumentation of the reporter.

Prometheus metrics describing the reporter's own health (cycles, documents,
failures, percolation matches). Each Reporter gets its own CollectorRegistry
unless one is passed in, so several reporters (and test runs) never collide on
metric names. Expose it with ``prometheus_client.start_http_server(port,
registry=reporter.instrumentation.registry)`` or merge it into an existing
exporter.
"""
from __future__ import annotations

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram


class ReporterInstrumentation:
    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry if registry is not None else CollectorRegistry()
        self.cycles = Counter("esmetrics_report_cycles_total", "Reporting cycles started", registry=self.registry)
        self.failures = Counter("esmetrics_report_failures_total", "Reporting cycles failed or degraded", ["reason"], registry=self.registry)
        self.documents_written = Counter("esmetrics_documents_written_total", "Documents acknowledged by the backend", registry=self.registry)
        self.documents_failed = Counter("esmetrics_documents_failed_total", "Documents rejected by the backend", registry=self.registry)
        self.percolation_matches = Counter("esmetrics_percolation_matches_total", "Standing query matches notified", registry=self.registry)
        self.duration = Histogram("esmetrics_report_duration_seconds", "Reporting cycle latency seconds", registry=self.registry)
        self.template_confirmed = Gauge("esmetrics_template_confirmed", "1 once the index template is confirmed", registry=self.registry)

    def observe_write(self, written: int, failed: int) -> None:
        if written:
            self.documents_written.inc(written)
        if failed:
            self.documents_failed.inc(failed)
            self.failures.labels(reason="partial_write").inc()

    def observe_percolation(self, matches: int, failures: int) -> None:
        if matches:
            self.percolation_matches.inc(matches)
        if failures:
            self.failures.labels(reason="percolation").inc()

    def value(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Current sample value (0.0 when absent); handy for tests and status pages."""
        v = self.registry.get_sample_value(name, labels or {})
        return 0.0 if v is None else v


__all__ = ["ReporterInstrumentation"]
