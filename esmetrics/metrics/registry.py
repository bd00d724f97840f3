"""In-process metrics registry.

Host applications own and mutate these metrics; the reporting pipeline only
reads them through the snapshot accessors (``get_count``, ``get_value``,
``get_snapshot``, the ``*_rate`` methods). Every metric guards its own state
with a lock so a reporting thread can read while application threads update.

Kinds form a closed set (``MetricKind``); each metric class carries its kind
as a class attribute so serializers can dispatch on it without isinstance
ladders.
"""
from __future__ import annotations

import math
import random
import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any

__all__ = [
    "MetricKind",
    "Counter",
    "Gauge",
    "Histogram",
    "Meter",
    "Timer",
    "Snapshot",
    "MetricRegistry",
    "name",
]


class MetricKind(str, Enum):
    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    METER = "meter"
    TIMER = "timer"


def name(*parts: Any) -> str:
    """Join non-empty parts into a dotted metric name: name('a', None, 'b') -> 'a.b'."""
    return ".".join(str(p) for p in parts if p is not None and str(p) != "")


class Counter:
    kind = MetricKind.COUNTER

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._count = 0

    def inc(self, n: int = 1) -> None:
        with self._lock:
            self._count += n

    def dec(self, n: int = 1) -> None:
        with self._lock:
            self._count -= n

    def get_count(self) -> int:
        with self._lock:
            return self._count


class Gauge:
    """Point-in-time value.

    Either wraps a callable (evaluated on every read, which may raise) or holds
    a value assigned with ``set_value``. Values are passed through unchanged,
    so strings are fine.
    """
    kind = MetricKind.GAUGE

    def __init__(self, fn: Callable[[], Any] | None = None, value: Any = None) -> None:
        self._fn = fn
        self._value = value
        self._lock = threading.Lock()

    def set_value(self, value: Any) -> None:
        with self._lock:
            self._value = value

    def get_value(self) -> Any:
        if self._fn is not None:
            return self._fn()
        with self._lock:
            return self._value


class Snapshot:
    """Immutable sorted view over sampled values."""

    def __init__(self, values: list[float]):
        self._values = sorted(values)

    def __len__(self) -> int:
        return len(self._values)

    def get_values(self) -> list[float]:
        return list(self._values)

    def get_value(self, quantile: float) -> float:
        if not 0.0 <= quantile <= 1.0:
            raise ValueError(f"{quantile} is not in [0..1]")
        vals = self._values
        if not vals:
            return 0.0
        pos = quantile * (len(vals) + 1)
        index = int(pos)
        if index < 1:
            return vals[0]
        if index >= len(vals):
            return vals[-1]
        lower = vals[index - 1]
        upper = vals[index]
        return lower + (pos - math.floor(pos)) * (upper - lower)

    def get_median(self) -> float:
        return self.get_value(0.5)

    def get_min(self) -> float:
        return self._values[0] if self._values else 0

    def get_max(self) -> float:
        return self._values[-1] if self._values else 0

    def get_mean(self) -> float:
        if not self._values:
            return 0.0
        return sum(self._values) / len(self._values)

    def get_stddev(self) -> float:
        # sample standard deviation
        n = len(self._values)
        if n <= 1:
            return 0.0
        mean = self.get_mean()
        return math.sqrt(sum((v - mean) ** 2 for v in self._values) / (n - 1))


class _UniformReservoir:
    """Vitter's algorithm R: uniform sample of at most ``size`` values."""

    def __init__(self, size: int = 1028, rng: random.Random | None = None):
        self._size = size
        self._values: list[float] = []
        self._seen = 0
        self._rng = rng or random.Random()

    def update(self, value: float) -> None:
        self._seen += 1
        if len(self._values) < self._size:
            self._values.append(value)
            return
        r = self._rng.randrange(self._seen)
        if r < self._size:
            self._values[r] = value

    def snapshot(self) -> Snapshot:
        return Snapshot(self._values)


class Histogram:
    kind = MetricKind.HISTOGRAM

    def __init__(self, reservoir_size: int = 1028) -> None:
        self._lock = threading.Lock()
        self._count = 0
        self._reservoir = _UniformReservoir(reservoir_size)

    def update(self, value: float) -> None:
        with self._lock:
            self._count += 1
            self._reservoir.update(value)

    def get_count(self) -> int:
        with self._lock:
            return self._count

    def get_snapshot(self) -> Snapshot:
        with self._lock:
            return self._reservoir.snapshot()


class _EWMA:
    """Exponentially weighted moving average ticked every ``interval`` seconds."""

    def __init__(self, minutes: float, interval: float):
        self._alpha = 1.0 - math.exp(-interval / 60.0 / minutes)
        self._interval = interval
        self._uncounted = 0
        self._rate = 0.0
        self._initialized = False

    def update(self, n: int) -> None:
        self._uncounted += n

    def tick(self) -> None:
        instant = self._uncounted / self._interval
        self._uncounted = 0
        if self._initialized:
            self._rate += self._alpha * (instant - self._rate)
        else:
            self._rate = instant
            self._initialized = True

    def rate(self) -> float:
        """Events per second."""
        return self._rate


class Meter:
    """Event throughput: mean rate plus 1/5/15 minute moving averages."""
    kind = MetricKind.METER

    TICK_INTERVAL = 5.0

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._count = 0
        self._start = clock()
        self._last_tick = self._start
        self._m1 = _EWMA(1, self.TICK_INTERVAL)
        self._m5 = _EWMA(5, self.TICK_INTERVAL)
        self._m15 = _EWMA(15, self.TICK_INTERVAL)

    def _tick_if_necessary(self) -> None:
        now = self._clock()
        age = now - self._last_tick
        if age < self.TICK_INTERVAL:
            return
        ticks = int(age // self.TICK_INTERVAL)
        self._last_tick += ticks * self.TICK_INTERVAL
        for _ in range(ticks):
            self._m1.tick()
            self._m5.tick()
            self._m15.tick()

    def mark(self, n: int = 1) -> None:
        with self._lock:
            self._tick_if_necessary()
            self._count += n
            self._m1.update(n)
            self._m5.update(n)
            self._m15.update(n)

    def get_count(self) -> int:
        with self._lock:
            return self._count

    def get_mean_rate(self) -> float:
        with self._lock:
            if self._count == 0:
                return 0.0
            elapsed = self._clock() - self._start
            return self._count / elapsed if elapsed > 0 else 0.0

    def get_one_minute_rate(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m1.rate()

    def get_five_minute_rate(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m5.rate()

    def get_fifteen_minute_rate(self) -> float:
        with self._lock:
            self._tick_if_necessary()
            return self._m15.rate()


class Timer:
    """Meter of calls plus a histogram of their durations in seconds."""
    kind = MetricKind.TIMER

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._meter = Meter()
        self._histogram = Histogram()

    def update(self, seconds: float) -> None:
        if seconds < 0:
            return
        self._histogram.update(seconds)
        self._meter.mark()

    @contextmanager
    def time(self) -> Iterator[None]:
        start = self._clock()
        try:
            yield
        finally:
            self.update(self._clock() - start)

    def get_count(self) -> int:
        return self._histogram.get_count()

    def get_snapshot(self) -> Snapshot:
        return self._histogram.get_snapshot()

    def get_mean_rate(self) -> float:
        return self._meter.get_mean_rate()

    def get_one_minute_rate(self) -> float:
        return self._meter.get_one_minute_rate()

    def get_five_minute_rate(self) -> float:
        return self._meter.get_five_minute_rate()

    def get_fifteen_minute_rate(self) -> float:
        return self._meter.get_fifteen_minute_rate()


_FACTORIES: dict[MetricKind, Callable[[], Any]] = {
    MetricKind.COUNTER: Counter,
    MetricKind.HISTOGRAM: Histogram,
    MetricKind.METER: Meter,
    MetricKind.TIMER: Timer,
}


class MetricRegistry:
    """Named collection of live metrics owned by the host application."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._metrics: dict[str, Any] = {}

    def register(self, metric_name: str, metric: Any) -> Any:
        if not isinstance(getattr(metric, "kind", None), MetricKind):
            raise TypeError(f"{type(metric).__name__} is not a registry metric")
        with self._lock:
            if metric_name in self._metrics:
                raise ValueError(f"A metric named {metric_name} already exists")
            self._metrics[metric_name] = metric
        return metric

    def remove(self, metric_name: str) -> bool:
        with self._lock:
            return self._metrics.pop(metric_name, None) is not None

    def _get_or_add(self, metric_name: str, kind: MetricKind, factory: Callable[[], Any]) -> Any:
        with self._lock:
            existing = self._metrics.get(metric_name)
            if existing is not None:
                if existing.kind is not kind:
                    raise ValueError(f"{metric_name} is already used for a different type of metric")
                return existing
            metric = factory()
            self._metrics[metric_name] = metric
            return metric

    def counter(self, metric_name: str) -> Counter:
        return self._get_or_add(metric_name, MetricKind.COUNTER, _FACTORIES[MetricKind.COUNTER])

    def histogram(self, metric_name: str) -> Histogram:
        return self._get_or_add(metric_name, MetricKind.HISTOGRAM, _FACTORIES[MetricKind.HISTOGRAM])

    def meter(self, metric_name: str) -> Meter:
        return self._get_or_add(metric_name, MetricKind.METER, _FACTORIES[MetricKind.METER])

    def timer(self, metric_name: str) -> Timer:
        return self._get_or_add(metric_name, MetricKind.TIMER, _FACTORIES[MetricKind.TIMER])

    def gauge(self, metric_name: str, fn: Callable[[], Any] | None = None) -> Gauge:
        return self._get_or_add(metric_name, MetricKind.GAUGE, lambda: Gauge(fn))

    def items(self) -> list[tuple[str, Any]]:
        """Point-in-time copy of (name, metric) pairs sorted by name."""
        with self._lock:
            return sorted(self._metrics.items())

    def names(self) -> list[str]:
        with self._lock:
            return sorted(self._metrics)

    def __len__(self) -> int:
        with self._lock:
            return len(self._metrics)

    def __contains__(self, metric_name: object) -> bool:
        with self._lock:
            return metric_name in self._metrics
