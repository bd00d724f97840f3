"""Host-side metrics registry consumed read-only by the reporter."""
from .filters import ALL, MetricFilter
from .registry import (
    Counter,
    Gauge,
    Histogram,
    Meter,
    MetricKind,
    MetricRegistry,
    Snapshot,
    Timer,
    name,
)
from .units import TimeUnit

__all__ = [
    "ALL",
    "MetricFilter",
    "Counter",
    "Gauge",
    "Histogram",
    "Meter",
    "MetricKind",
    "MetricRegistry",
    "Snapshot",
    "Timer",
    "TimeUnit",
    "name",
]
