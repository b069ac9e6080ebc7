"""
Simple in-memory TTL cache for upstream open-data responses
"""

import json
import logging
import hashlib
import time
from typing import Any, Optional, Dict
from collections import defaultdict

from ..config import config

logger = logging.getLogger(__name__)

class CacheService:
    """In-memory cache keyed by prefix and identifier"""

    def __init__(self, enabled: Optional[bool] = None):
        self.enabled = config.cache.enabled if enabled is None else enabled
        self._cache = defaultdict(dict)
        self._expiry = defaultdict(dict)

        logger.info(f"Using in-memory cache (enabled: {self.enabled})")

    def _make_key(self, prefix: str, identifier: str) -> str:
        """Generate a cache key with prefix and identifier"""
        key_hash = hashlib.md5(identifier.encode()).hexdigest()
        return f"{prefix}:{key_hash}"

    def _serialize_value(self, value: Any) -> str:
        # Stored serialized so callers never share mutable rows with the cache
        return json.dumps(value, default=str)

    def _deserialize_value(self, value: str) -> Any:
        return json.loads(value)

    def _is_live(self, prefix: str, key: str) -> bool:
        if key not in self._cache[prefix]:
            return False
        expiry_time = self._expiry[prefix].get(key, 0)
        if expiry_time == 0 or time.time() < expiry_time:  # 0 means no expiry
            return True
        del self._cache[prefix][key]
        self._expiry[prefix].pop(key, None)
        return False

    def _prune_expired(self) -> int:
        """Drop every expired entry; returns how many were removed"""
        now = time.time()
        removed = 0
        for prefix, expiries in self._expiry.items():
            for key in [k for k, t in expiries.items() if t and t <= now]:
                del expiries[key]
                self._cache[prefix].pop(key, None)
                removed += 1
        if removed:
            logger.debug(f"Pruned {removed} expired cache entries")
        return removed

    async def get(self, prefix: str, identifier: str) -> Optional[Any]:
        """
        Get a value from cache

        Args:
            prefix: Cache key prefix (e.g., 'api')
            identifier: Unique identifier for the cached item

        Returns:
            Cached value or None if not found/expired
        """
        if not self.enabled:
            return None

        key = self._make_key(prefix, identifier)
        if self._is_live(prefix, key):
            logger.debug(f"Cache hit for key: {key}")
            return self._deserialize_value(self._cache[prefix][key])

        logger.debug(f"Cache miss for key: {key}")
        return None

    async def set(self, prefix: str, identifier: str, value: Any, ttl: Optional[int] = None) -> bool:
        """
        Set a value in cache

        Args:
            prefix: Cache key prefix
            identifier: Unique identifier for the cached item
            value: JSON-serializable value to cache
            ttl: Time to live in seconds (uses default if None, 0 = no expiry)

        Returns:
            True if stored, False otherwise
        """
        if not self.enabled:
            return False

        try:
            serialized_value = self._serialize_value(value)
        except (TypeError, ValueError) as e:
            logger.warning(f"Failed to serialize value for caching: {e}")
            return False

        key = self._make_key(prefix, identifier)
        if ttl is None:
            ttl = config.cache.default_ttl

        self._prune_expired()
        self._cache[prefix][key] = serialized_value
        self._expiry[prefix][key] = time.time() + ttl if ttl > 0 else 0

        logger.debug(f"Cached value for key: {key} (TTL: {ttl}s)")
        return True

    async def delete(self, prefix: str, identifier: str) -> bool:
        """Delete a value from cache; True if something was removed"""
        if not self.enabled:
            return False

        key = self._make_key(prefix, identifier)
        if key in self._cache[prefix]:
            del self._cache[prefix][key]
            self._expiry[prefix].pop(key, None)
            logger.debug(f"Deleted cache key: {key}")
            return True
        return False

    async def exists(self, prefix: str, identifier: str) -> bool:
        if not self.enabled:
            return False
        return self._is_live(prefix, self._make_key(prefix, identifier))

    async def clear(self) -> int:
        """Remove every entry; returns the number cleared"""
        cleared_count = sum(len(keys) for keys in self._cache.values())
        self._cache.clear()
        self._expiry.clear()
        logger.info(f"Cleared {cleared_count} cache entries")
        return cleared_count

    async def get_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return {
            'enabled': self.enabled,
            'total_entries': sum(len(keys) for keys in self._cache.values()),
            'type': 'memory'
        }

# Global cache service instance
cache_service = CacheService()

async def get_api_cache(url: str) -> Optional[Any]:
    """Get an open-data response from cache"""
    return await cache_service.get('api', url)

async def set_api_cache(url: str, response: Any) -> bool:
    """Cache an open-data response"""
    return await cache_service.set('api', url, response, config.cache.api_cache_ttl)
