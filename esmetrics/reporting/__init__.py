"""Reporting pipeline: snapshot -> index -> template -> bulk write -> percolation."""
from .bulk_writer import BulkDocumentWriter, DocumentFailure, WriteResult
from .index_names import IndexTarget, resolve
from .instrumentation import ReporterInstrumentation
from .percolation import (
    Notifier,
    PercolationEvaluator,
    PercolationMatch,
    PercolationResult,
    register_standing_query,
)
from .records import MetricRecord, Units, serialize
from .reporter import Reporter, ReportResult
from .scheduler import ScheduledReporter
from .snapshot import SnapshotCollector
from .templates import TEMPLATE_NAME, TemplateManager, build_template

__all__ = [
    "BulkDocumentWriter",
    "DocumentFailure",
    "WriteResult",
    "IndexTarget",
    "resolve",
    "ReporterInstrumentation",
    "Notifier",
    "PercolationEvaluator",
    "PercolationMatch",
    "PercolationResult",
    "register_standing_query",
    "MetricRecord",
    "Units",
    "serialize",
    "Reporter",
    "ReportResult",
    "ScheduledReporter",
    "SnapshotCollector",
    "TEMPLATE_NAME",
    "TemplateManager",
    "build_template",
]
