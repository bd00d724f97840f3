from __future__ import annotations

import datetime as dt

import pytest

from esmetrics.error_handling import initialize_error_handler
from esmetrics.metrics import MetricRegistry
from tests._helpers import FakeBackend


@pytest.fixture(autouse=True)
def error_handler():
    """Fresh global error handler per test so category counts are isolated."""
    return initialize_error_handler()


@pytest.fixture()
def registry() -> MetricRegistry:
    return MetricRegistry()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def fixed_now() -> dt.datetime:
    return dt.datetime(2024, 3, 15, 12, 30, 45, 123456, tzinfo=dt.timezone.utc)
