"""esmetrics exception hierarchy.

A small exception tree for categorizing failures of the reporting pipeline.
Cycle-level failures (connectivity) propagate to the caller of
``Reporter.report()``; record-level failures are isolated and surfaced in the
cycle result instead.
"""
from __future__ import annotations


class EsMetricsError(Exception):
    """Base class for all esmetrics exceptions."""


class ConfigError(EsMetricsError):
    """Invalid or incomplete reporter configuration."""


class ConnectivityError(EsMetricsError):
    """Backend unreachable or a request timed out; fails the whole cycle."""


class StorageError(EsMetricsError):
    """Persistence layer failures."""


class PartialWriteError(StorageError):
    """One or more documents were rejected during a bulk submission."""

    def __init__(self, message: str, failures: list | None = None):
        super().__init__(message)
        self.failures = list(failures or [])


class PercolationError(EsMetricsError):
    """A percolate-match request failed for a single record."""


class CollectionError(EsMetricsError):
    """A single metric's value could not be read from the registry."""


__all__ = [
    "EsMetricsError",
    "ConfigError",
    "ConnectivityError",
    "StorageError",
    "PartialWriteError",
    "PercolationError",
    "CollectionError",
]
