"""Index template bootstrap.

Metric indices get their mappings from a legacy index template named
``metrics_template`` matching ``<base>*``. The template is installed only when
nothing already covers the base name: an operator may have created their own
(different shard counts, extra fields) and it is never overwritten.

Once confirmed, the reporter stops checking; the flag is guarded by a lock so
a forced report racing the scheduled one issues at most one install.
"""
from __future__ import annotations

import logging
import threading
from fnmatch import fnmatchcase
from typing import Any

from ..metrics.registry import MetricKind
from ..storage.es_backend import PERCOLATOR_FIELD

logger = logging.getLogger(__name__)

TEMPLATE_NAME = "metrics_template"

_DISTRIBUTION_FIELDS = ("max", "mean", "min", "p50", "p75", "p95", "p98", "p99", "p999", "stddev")
_RATE_FIELDS = ("m1_rate", "m5_rate", "m15_rate", "mean_rate")

_KIND_FIELDS: dict[MetricKind, dict[str, dict[str, str]]] = {
    MetricKind.COUNTER: {"count": {"type": "long"}},
    # gauge values may be numbers or strings; leave "value" to dynamic mapping
    MetricKind.GAUGE: {},
    MetricKind.HISTOGRAM: {
        "count": {"type": "long"},
        **{f: {"type": "double"} for f in _DISTRIBUTION_FIELDS},
    },
    MetricKind.METER: {
        "count": {"type": "long"},
        **{f: {"type": "double"} for f in _RATE_FIELDS},
        "units": {"type": "keyword"},
    },
    MetricKind.TIMER: {
        "count": {"type": "long"},
        **{f: {"type": "double"} for f in _DISTRIBUTION_FIELDS + _RATE_FIELDS},
        "duration_units": {"type": "keyword"},
        "rate_units": {"type": "keyword"},
    },
}


def kind_mappings() -> dict[str, dict[str, Any]]:
    """Per-kind field mappings, keyed by kind name."""
    return {kind.value: dict(props) for kind, props in _KIND_FIELDS.items()}


def build_template(base_name: str) -> dict[str, Any]:
    """Body for ``indices.put_template`` covering every metric kind.

    Indices are typeless, so the per-kind properties are merged into one
    mapping; the ``type`` keyword carries the kind and ``_meta.kinds`` keeps
    the per-kind breakdown.
    """
    properties: dict[str, Any] = {
        "name": {"type": "keyword"},
        "timestamp": {"type": "date", "format": "strict_date_optional_time||epoch_millis"},
        "type": {"type": "keyword"},
        PERCOLATOR_FIELD: {"type": "percolator"},
    }
    for props in _KIND_FIELDS.values():
        properties.update(props)
    return {
        "index_patterns": [f"{base_name}*"],
        "order": 0,
        "mappings": {
            "_meta": {"kinds": {k: sorted(v) for k, v in kind_mappings().items()}},
            "properties": properties,
        },
    }


class TemplateManager:
    def __init__(self, name: str = TEMPLATE_NAME, check_patterns: bool = True) -> None:
        self.name = name
        self.check_patterns = check_patterns
        self._confirmed = False
        self._lock = threading.Lock()

    @property
    def confirmed(self) -> bool:
        return self._confirmed

    def ensure_template(self, backend: Any, base_name: str) -> bool:
        """Make sure a template covers ``base_name``; True once confirmed.

        Connectivity errors propagate and leave the flag unset so the next
        cycle checks again.
        """
        if self._confirmed:
            return True
        with self._lock:
            if self._confirmed:
                return True
            self._confirmed = self._check_or_install(backend, base_name)
            return self._confirmed

    def _check_or_install(self, backend: Any, base_name: str) -> bool:
        if backend.template_exists(self.name):
            logger.debug("template %s already present; leaving it untouched", self.name)
            return True
        if self.check_patterns:
            for tname, patterns in backend.template_patterns().items():
                # catch-all templates usually carry cluster settings, not metric mappings
                if any(p != "*" and fnmatchcase(base_name, p) for p in patterns):
                    logger.info("template %s (patterns %s) already covers %s; not installing %s",
                                tname, patterns, base_name, self.name)
                    return True
        if backend.create_template(self.name, build_template(base_name)):
            logger.info("installed index template %s for %s*", self.name, base_name)
        else:
            logger.debug("template %s created concurrently by another reporter", self.name)
        return True


__all__ = ["TEMPLATE_NAME", "TemplateManager", "build_template", "kind_mappings"]
