"""
Shared fixtures for unit tests.

This module provides common fixtures used across multiple test modules:
- Mocked Redis client and a LedgerCache bound to it
- Commission schedule with the default amounts
- Mirror that records scheduled commissions
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from app.services.commission.config import CommissionSchedule
from app.utils.cache import LedgerCache


@pytest.fixture
def mock_redis_client():
    """
    Mock Redis client for caching tests.

    Returns:
        AsyncMock: get() misses, delete() reports one removed key
    """
    client = AsyncMock()
    client.get = AsyncMock(return_value=None)
    client.set = AsyncMock()
    client.delete = AsyncMock(return_value=1)
    return client


@pytest.fixture
def cache(mock_redis_client):
    """LedgerCache backed by the mocked Redis client."""
    return LedgerCache(mock_redis_client, default_ttl=300)


@pytest.fixture
def schedule():
    """
    Default commission schedule.

    Default values:
    - level 1: base 75,000 + bonus 12,500
    - levels 2..10: 12,500
    - qualifying product price: 500,000
    """
    return CommissionSchedule()


@pytest.fixture
def mirror():
    """Mirror whose schedule() calls can be inspected."""
    mirror = MagicMock()
    mirror.schedule = MagicMock()
    return mirror


@pytest.fixture
def deleted_keys(mock_redis_client):
    """Callable returning all keys passed to delete() so far."""
    def collect() -> set[str]:
        keys: set[str] = set()
        for call in mock_redis_client.delete.await_args_list:
            keys.update(call.args)
        return keys
    return collect
