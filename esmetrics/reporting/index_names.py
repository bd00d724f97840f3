"""Destination index naming.

``<base>`` when partitioning is disabled, otherwise ``<base>-<formatted now>``
with the default format giving ``<base>-YYYY-MM``. Pure: the same instant and
configuration always give the same target.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from ..utils.timeutils import ensure_utc

DEFAULT_DATE_FORMAT = "%Y-%m"


@dataclass(frozen=True)
class IndexTarget:
    base_name: str
    date_suffix: str | None = None

    @property
    def name(self) -> str:
        if self.date_suffix:
            return f"{self.base_name}-{self.date_suffix}"
        return self.base_name

    def __str__(self) -> str:
        return self.name


def resolve(base_name: str, date_format: str | None, now: datetime) -> IndexTarget:
    """Compute the index for ``now`` (interpreted in UTC)."""
    if not date_format:
        return IndexTarget(base_name)
    return IndexTarget(base_name, ensure_utc(now).strftime(date_format))


__all__ = ["DEFAULT_DATE_FORMAT", "IndexTarget", "resolve"]
