#!/usr/bin/env python3
"""
Tests for the in-memory open-data response cache
"""

import sys
import os
import logging

import pytest

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), 'src'))

from tabc_prospect.storage import cache as cache_module
from tabc_prospect.storage.cache import CacheService, get_api_cache, set_api_cache

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@pytest.mark.asyncio
async def test_cache_service_operations():
    """Set, read, check and delete a value"""
    cache = CacheService(enabled=True)
    test_value = [{"location_name": "Pub", "total_receipts": "42"}]

    assert await cache.set("test", "key", test_value, ttl=60) is True
    assert await cache.exists("test", "key") is True
    assert await cache.get("test", "key") == test_value

    assert await cache.delete("test", "key") is True
    assert await cache.exists("test", "key") is False
    assert await cache.get("test", "key") is None
    assert await cache.delete("test", "key") is False


@pytest.mark.asyncio
async def test_cached_values_are_copies():
    cache = CacheService(enabled=True)
    rows = [{"total_receipts": "1"}]
    await cache.set("test", "rows", rows)

    cached = await cache.get("test", "rows")
    cached[0]["total_receipts"] = "changed"
    assert (await cache.get("test", "rows"))[0]["total_receipts"] == "1"


@pytest.mark.asyncio
async def test_expired_entries_are_misses():
    cache = CacheService(enabled=True)
    await cache.set("test", "short", "value", ttl=10)
    await cache.set("test", "forever", "value", ttl=0)

    # Move the short entry past its expiry
    cache._expiry["test"][cache._make_key("test", "short")] -= 11

    assert await cache.get("test", "short") is None
    assert await cache.get("test", "forever") == "value"
    assert (await cache.get_stats())['total_entries'] == 1


@pytest.mark.asyncio
async def test_disabled_cache():
    cache = CacheService(enabled=False)
    assert await cache.set("test", "key", "value") is False
    assert await cache.get("test", "key") is None
    assert await cache.exists("test", "key") is False


@pytest.mark.asyncio
async def test_circular_value_not_cached():
    cache = CacheService(enabled=True)
    circular = {}
    circular['self'] = circular
    assert await cache.set("test", "circular", circular) is False


@pytest.mark.asyncio
async def test_clear():
    cache = CacheService(enabled=True)
    await cache.set("a", "1", 1)
    await cache.set("b", "2", 2)
    assert await cache.clear() == 2
    assert (await cache.get_stats())['total_entries'] == 0


@pytest.mark.asyncio
async def test_api_cache_helpers(monkeypatch):
    monkeypatch.setattr(cache_module, 'cache_service', CacheService(enabled=True))
    url = "https://data.texas.gov/resource/naix-2893.json?$limit=1"

    assert await get_api_cache(url) is None
    assert await set_api_cache(url, [{"ok": True}]) is True
    assert await get_api_cache(url) == [{"ok": True}]


@pytest.mark.asyncio
async def test_expired_entries_pruned_on_write():
    cache = CacheService(enabled=True)
    await cache.set("test", "one-off", "value", ttl=10)
    short_key = cache._make_key("test", "one-off")
    cache._expiry["test"][short_key] -= 11

    await cache.set("other", "fresh", "value", ttl=10)

    assert short_key not in cache._cache["test"]
    assert short_key not in cache._expiry["test"]
    assert (await cache.get_stats())['total_entries'] == 1
