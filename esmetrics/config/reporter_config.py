"""Immutable reporter configuration.

``ReporterConfig`` is built once before the Reporter and validated in
``__post_init__``; invalid values raise ``ConfigError`` at construction rather
than surfacing as a failed cycle later.

Construction paths:
  * keyword arguments (tests, embedding applications)
  * ``ReporterConfig.from_env(registry, **overrides)`` - ESM_* variables
  * ``ReporterConfig.from_mapping(registry, data, **overrides)`` - a dict as
    returned by ``esmetrics.config.loader.load_config_file``

Environment variables (see ``from_env``):
  ESM_HOSTS                comma separated backend URLs
  ESM_INDEX                index base name
  ESM_INDEX_DATE_FORMAT    strftime suffix format; empty disables partitioning
  ESM_PREFIX               metric name prefix
  ESM_RATE_UNIT            seconds|minutes|...
  ESM_DURATION_UNIT        milliseconds|seconds|...
  ESM_BULK_SIZE            documents per bulk request
  ESM_TIMEOUT              per request timeout in seconds
  ESM_PERCOLATION_PREFIX   metric name prefix selecting records to percolate
  ESM_TEMPLATE_PATTERN_CHECK  0 installs metrics_template even if another template
                           already matches the index base name
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any

from ..metrics.filters import ALL
from ..metrics.units import TimeUnit
from ..utils.exceptions import ConfigError
from . import env_adapter

logger = logging.getLogger(__name__)

DEFAULT_HOSTS = ("http://localhost:9200",)
DEFAULT_INDEX = "esmetrics"
DEFAULT_INDEX_DATE_FORMAT = "%Y-%m"
DEFAULT_BULK_SIZE = 2500
DEFAULT_TIMEOUT = 10.0

_INVALID_INDEX_CHARS = re.compile(r'[\\/*?"<>| ,#:]')


@dataclass(frozen=True)
class ReporterConfig:
    registry: Any
    hosts: tuple[str, ...] = DEFAULT_HOSTS
    index: str = DEFAULT_INDEX
    index_date_format: str | None = DEFAULT_INDEX_DATE_FORMAT
    prefix: str | None = None
    rate_unit: TimeUnit = TimeUnit.SECONDS
    duration_unit: TimeUnit = TimeUnit.MILLISECONDS
    metric_filter: Callable[[str, Any], bool] = ALL
    percolation_prefix: str | None = None
    notifier: Any = None
    bulk_size: int = DEFAULT_BULK_SIZE
    timeout: float = DEFAULT_TIMEOUT
    template_pattern_check: bool = True
    additional_fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.registry is None or not callable(getattr(self.registry, "items", None)):
            raise ConfigError("registry is required and must expose items()")

        hosts = (self.hosts,) if isinstance(self.hosts, str) else tuple(self.hosts or ())
        hosts = tuple(h.strip() for h in hosts if h and h.strip())
        if not hosts:
            raise ConfigError("at least one backend host is required")
        object.__setattr__(self, "hosts", hosts)

        index = (self.index or "").strip()
        if not index:
            raise ConfigError("index base name is required")
        if index != index.lower() or _INVALID_INDEX_CHARS.search(index) or index[0] in "-_+":
            raise ConfigError(f"invalid index base name: {self.index!r}")
        object.__setattr__(self, "index", index)

        if self.index_date_format is not None and not str(self.index_date_format).strip():
            object.__setattr__(self, "index_date_format", None)

        try:
            object.__setattr__(self, "rate_unit", TimeUnit.parse(self.rate_unit))
            object.__setattr__(self, "duration_unit", TimeUnit.parse(self.duration_unit))
        except ValueError as e:
            raise ConfigError(str(e)) from e

        if not callable(self.metric_filter):
            raise ConfigError("metric_filter must be callable (name, metric) -> bool")

        if self.notifier is not None and not (callable(self.notifier) or callable(getattr(self.notifier, "notify", None))):
            raise ConfigError("notifier must be callable or expose notify(record, query_id)")
        if bool(self.percolation_prefix) != (self.notifier is not None):
            logger.warning("percolation needs both percolation_prefix and notifier; percolation disabled")

        try:
            bulk_size = int(self.bulk_size)
            timeout = float(self.timeout)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"invalid numeric option: {e}") from e
        if bulk_size < 1:
            raise ConfigError("bulk_size must be >= 1")
        if timeout <= 0:
            raise ConfigError("timeout must be > 0")
        object.__setattr__(self, "bulk_size", bulk_size)
        object.__setattr__(self, "timeout", timeout)

        extra = dict(self.additional_fields or {})
        reserved = {"name", "timestamp", "type"} & set(extra)
        if reserved:
            raise ConfigError(f"additional_fields may not override {sorted(reserved)}")
        object.__setattr__(self, "additional_fields", MappingProxyType(extra))

    @property
    def percolation_enabled(self) -> bool:
        return bool(self.percolation_prefix) and self.notifier is not None

    def with_overrides(self, **changes: Any) -> ReporterConfig:
        """Return a validated copy with ``changes`` applied."""
        return replace(self, **changes)

    @classmethod
    def from_mapping(cls, registry: Any, data: Mapping[str, Any], **overrides: Any) -> ReporterConfig:
        known = {f.name for f in fields(cls)} - {"registry", "metric_filter", "notifier"}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"unknown configuration keys: {sorted(unknown)}")
        kwargs: dict[str, Any] = {k: v for k, v in data.items() if k in known}
        if isinstance(kwargs.get("hosts"), list):
            kwargs["hosts"] = tuple(kwargs["hosts"])
        kwargs.update(overrides)
        return cls(registry=registry, **kwargs)

    @classmethod
    def from_env(cls, registry: Any, **overrides: Any) -> ReporterConfig:
        """Build from ESM_* environment variables; keyword overrides win."""
        env: dict[str, Any] = {
            "hosts": tuple(env_adapter.get_csv("ESM_HOSTS", list(DEFAULT_HOSTS))),
            "index": env_adapter.get_str("ESM_INDEX", DEFAULT_INDEX),
            "index_date_format": env_adapter.get_str("ESM_INDEX_DATE_FORMAT", DEFAULT_INDEX_DATE_FORMAT),
            "prefix": env_adapter.get_str("ESM_PREFIX", "") or None,
            "rate_unit": env_adapter.get_str("ESM_RATE_UNIT", "seconds"),
            "duration_unit": env_adapter.get_str("ESM_DURATION_UNIT", "milliseconds"),
            "bulk_size": env_adapter.get_int("ESM_BULK_SIZE", DEFAULT_BULK_SIZE),
            "timeout": env_adapter.get_float("ESM_TIMEOUT", DEFAULT_TIMEOUT),
            "percolation_prefix": env_adapter.get_str("ESM_PERCOLATION_PREFIX", "") or None,
            "template_pattern_check": env_adapter.get_bool("ESM_TEMPLATE_PATTERN_CHECK", True),
        }
        env.update(overrides)
        return cls(registry=registry, **env)


__all__ = ["ReporterConfig", "DEFAULT_INDEX", "DEFAULT_INDEX_DATE_FORMAT", "DEFAULT_BULK_SIZE"]
