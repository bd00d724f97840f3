"""Time unit conversion for rates and durations.

Meters and timers measure in seconds internally: rates are events/second and
timer durations are seconds. Reports convert both to the configured units.
"""
from __future__ import annotations

from enum import Enum


class TimeUnit(Enum):
    NANOSECONDS = 1e-9
    MICROSECONDS = 1e-6
    MILLISECONDS = 1e-3
    SECONDS = 1.0
    MINUTES = 60.0
    HOURS = 3600.0
    DAYS = 86400.0

    @property
    def seconds(self) -> float:
        return self.value

    @property
    def label(self) -> str:
        """Plural lower-case name, e.g. 'milliseconds'."""
        return self.name.lower()

    @property
    def singular(self) -> str:
        """Singular lower-case name, e.g. 'second' (used in 'events/second')."""
        return self.label[:-1]

    @classmethod
    def parse(cls, value: TimeUnit | str) -> TimeUnit:
        if isinstance(value, TimeUnit):
            return value
        key = str(value).strip().upper()
        if key and not key.endswith("S"):
            key += "S"
        try:
            return cls[key]
        except KeyError:
            raise ValueError(f"Unknown time unit: {value!r}") from None


def rate_factor(unit: TimeUnit) -> float:
    """Multiply an events/second rate by this to express it per ``unit``."""
    return unit.seconds


def duration_factor(unit: TimeUnit) -> float:
    """Multiply a duration in seconds by this to express it in ``unit``."""
    return 1.0 / unit.seconds


__all__ = ["TimeUnit", "rate_factor", "duration_factor"]
