"""Metric filter predicates.

A filter is any callable ``(name, metric) -> bool``; ``name`` is the registry
name (without the reporter prefix). Metrics for which the filter returns
False produce no record at all.
"""
from __future__ import annotations

from collections.abc import Callable
from fnmatch import fnmatchcase
from typing import Any

from .registry import MetricKind

MetricFilter = Callable[[str, Any], bool]


def ALL(name: str, metric: Any) -> bool:  # noqa: N802 - mirrors a constant
    return True


def starts_with(prefix: str) -> MetricFilter:
    def _f(name: str, metric: Any) -> bool:
        return name.startswith(prefix)
    return _f


def matching(*patterns: str) -> MetricFilter:
    """Accept names matching any of the shell-style ``patterns``."""
    def _f(name: str, metric: Any) -> bool:
        return any(fnmatchcase(name, p) for p in patterns)
    return _f


def of_kind(*kinds: MetricKind | str) -> MetricFilter:
    wanted = {MetricKind(k) for k in kinds}

    def _f(name: str, metric: Any) -> bool:
        return getattr(metric, "kind", None) in wanted
    return _f


def all_of(*filters: MetricFilter) -> MetricFilter:
    def _f(name: str, metric: Any) -> bool:
        return all(f(name, metric) for f in filters)
    return _f


__all__ = ["MetricFilter", "ALL", "starts_with", "matching", "of_kind", "all_of"]
