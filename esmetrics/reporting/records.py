"""Metric records and their per-kind serializers.

A ``MetricRecord`` is the immutable, normalized reading of one registry metric
at one reporting instant. Serialization is a closed table keyed by
``MetricKind``: one function per kind turns a live metric into an ordered
field mapping. Adding a kind means adding one table entry.
"""
from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any

from ..metrics.registry import MetricKind
from ..metrics.units import TimeUnit, duration_factor, rate_factor

__all__ = ["MetricKind", "MetricRecord", "Units", "SERIALIZERS", "serialize"]


@dataclass(frozen=True)
class MetricRecord:
    kind: MetricKind
    name: str
    timestamp: str
    fields: Mapping[str, Any]

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    def to_document(self, extra: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Document body as stored in the backend."""
        doc: dict[str, Any] = {"name": self.name, "timestamp": self.timestamp, "type": self.kind.value}
        if extra:
            doc.update(extra)
        doc.update(self.fields)
        return doc


@dataclass(frozen=True)
class Units:
    rate: TimeUnit = TimeUnit.SECONDS
    duration: TimeUnit = TimeUnit.MILLISECONDS

    @property
    def rate_factor(self) -> float:
        return rate_factor(self.rate)

    @property
    def duration_factor(self) -> float:
        return duration_factor(self.duration)

    @property
    def rate_label(self) -> str:
        return f"events/{self.rate.singular}"

    @property
    def call_rate_label(self) -> str:
        return f"calls/{self.rate.singular}"


def _counter(metric: Any, units: Units) -> dict[str, Any]:
    return {"count": metric.get_count()}


def _gauge(metric: Any, units: Units) -> dict[str, Any]:
    return {"value": metric.get_value()}


def _distribution(snapshot: Any, factor: float | None) -> dict[str, Any]:
    # factor None keeps raw values (histograms report in their own units)
    def conv(v: float) -> float:
        return v if factor is None else v * factor
    return {
        "max": conv(snapshot.get_max()),
        "mean": conv(snapshot.get_mean()),
        "min": conv(snapshot.get_min()),
        "p50": conv(snapshot.get_median()),
        "p75": conv(snapshot.get_value(0.75)),
        "p95": conv(snapshot.get_value(0.95)),
        "p98": conv(snapshot.get_value(0.98)),
        "p99": conv(snapshot.get_value(0.99)),
        "p999": conv(snapshot.get_value(0.999)),
        "stddev": conv(snapshot.get_stddev()),
    }


def _rates(metric: Any, units: Units) -> dict[str, Any]:
    f = units.rate_factor
    return {
        "m1_rate": metric.get_one_minute_rate() * f,
        "m5_rate": metric.get_five_minute_rate() * f,
        "m15_rate": metric.get_fifteen_minute_rate() * f,
        "mean_rate": metric.get_mean_rate() * f,
    }


def _histogram(metric: Any, units: Units) -> dict[str, Any]:
    out: dict[str, Any] = {"count": metric.get_count()}
    out.update(_distribution(metric.get_snapshot(), None))
    return out


def _meter(metric: Any, units: Units) -> dict[str, Any]:
    out: dict[str, Any] = {"count": metric.get_count()}
    out.update(_rates(metric, units))
    out["units"] = units.rate_label
    return out


def _timer(metric: Any, units: Units) -> dict[str, Any]:
    out: dict[str, Any] = {"count": metric.get_count()}
    out.update(_distribution(metric.get_snapshot(), units.duration_factor))
    out.update(_rates(metric, units))
    out["duration_units"] = units.duration.label
    out["rate_units"] = units.call_rate_label
    return out


SERIALIZERS: dict[MetricKind, Callable[[Any, Units], dict[str, Any]]] = {
    MetricKind.COUNTER: _counter,
    MetricKind.GAUGE: _gauge,
    MetricKind.HISTOGRAM: _histogram,
    MetricKind.METER: _meter,
    MetricKind.TIMER: _timer,
}


def serialize(kind: MetricKind, metric: Any, units: Units) -> dict[str, Any]:
    return SERIALIZERS[kind](metric, units)
