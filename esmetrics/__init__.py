"""esmetrics: periodic metrics reporting into Elasticsearch.

Typical wiring::

    registry = MetricRegistry()
    config = ReporterConfig(registry=registry, prefix="app")
    reporter = Reporter.from_config(config)
    scheduler = ScheduledReporter(reporter, period_seconds=60)
    scheduler.start()
"""
from .config import ReporterConfig
from .metrics import MetricRegistry, TimeUnit
from .reporting import Reporter, ReportResult, ScheduledReporter, register_standing_query
from .utils.exceptions import ConfigError, ConnectivityError, EsMetricsError
from .version import __version__

__all__ = [
    "ReporterConfig",
    "MetricRegistry",
    "TimeUnit",
    "Reporter",
    "ReportResult",
    "ScheduledReporter",
    "register_standing_query",
    "EsMetricsError",
    "ConfigError",
    "ConnectivityError",
    "__version__",
]
