"""Snapshot collection: registry -> MetricRecords for one reporting instant.

The registry is only read. Each metric is serialized independently so a metric
whose value cannot be read (typically a user supplied gauge callable that
raises, or returns something the Elasticsearch client cannot encode) is
skipped and routed to the error handler while the remaining metrics are still
collected.
"""
from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from datetime import datetime
from typing import Any

from elasticsearch.serializer import JsonSerializer

from ..error_handling import handle_collection_error
from ..metrics.filters import ALL
from ..metrics.registry import MetricKind, name as join_name
from ..utils.exceptions import CollectionError
from ..utils.timeutils import isoformat_z, utc_now
from .records import MetricRecord, Units, serialize

logger = logging.getLogger(__name__)

# same encoder the client applies to bulk bodies
_encoder = JsonSerializer()


class SnapshotCollector:
    def __init__(
        self,
        registry: Any,
        prefix: str | None = None,
        units: Units | None = None,
        metric_filter: Callable[[str, Any], bool] = ALL,
    ) -> None:
        self.registry = registry
        self.prefix = prefix or None
        self.units = units or Units()
        self.metric_filter = metric_filter

    def record_name(self, registry_name: str) -> str:
        return join_name(self.prefix, registry_name)

    def collect(self, now: datetime | None = None) -> Iterator[MetricRecord]:
        """Yield one record per live metric accepted by the filter.

        The registry's entries are copied up front; metrics registered while
        the generator is being consumed belong to the next cycle. All records
        share the same timestamp.
        """
        timestamp = isoformat_z(now or utc_now())
        entries = self.registry.items()
        skipped = 0
        for registry_name, metric in entries:
            if not self.metric_filter(registry_name, metric):
                continue
            record = self._read(registry_name, metric, timestamp)
            if record is None:
                skipped += 1
                continue
            yield record
        if skipped:
            logger.debug("snapshot skipped %d unreadable metric(s) of %d", skipped, len(entries))

    def _read(self, registry_name: str, metric: Any, timestamp: str) -> MetricRecord | None:
        kind = getattr(metric, "kind", None)
        full_name = self.record_name(registry_name)
        try:
            if not isinstance(kind, MetricKind):
                raise CollectionError(f"{type(metric).__name__} has no metric kind")
            fields = serialize(kind, metric, self.units)
            _encoder.dumps(fields)
        except Exception as e:
            handle_collection_error(e, full_name, getattr(kind, "value", type(metric).__name__))
            return None
        return MetricRecord(kind=kind, name=full_name, timestamp=timestamp, fields=fields)


__all__ = ["SnapshotCollector"]
