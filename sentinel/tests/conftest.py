"""Shared fixtures for sentinel tests."""

from unittest.mock import AsyncMock

import pytest

from sentinel.src.EventSink import EventSink
from sentinel.src.FreshReadCache import FreshReadCache
from sentinel.src.HealthMonitor import HealthMonitor
from sentinel.src.StablecoinRegistry import StablecoinRegistry


@pytest.fixture
def source() -> AsyncMock:
    """Price source double; set ``source.fetch_prices.return_value`` per test."""
    mock = AsyncMock()
    mock.fetch_prices.return_value = []
    mock.is_available.return_value = True
    return mock


@pytest.fixture
def registry() -> StablecoinRegistry:
    return StablecoinRegistry()


@pytest.fixture
def cache() -> FreshReadCache:
    return FreshReadCache(default_ttl=60)


@pytest.fixture
def events() -> EventSink:
    return EventSink()


@pytest.fixture
def monitor(source, registry, cache, events) -> HealthMonitor:
    """A fresh monitor per test, never shared."""
    return HealthMonitor(source=source, registry=registry, cache=cache, events=events)
