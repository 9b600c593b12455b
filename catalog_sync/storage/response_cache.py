# catalog_sync/storage/response_cache.py

"""In-memory TTL cache for remote API GET responses."""

import logging
import time
from dataclasses import dataclass
from typing import Any

from catalog_sync.config.settings import Settings

logger = logging.getLogger("catalog_sync.response_cache")


@dataclass
class CacheEntry:
    """A cached response body for one request key."""

    data: Any
    timestamp: float


class ResponseCache:
    """Per-client response cache keyed by ``METHOD:endpoint``."""

    def __init__(self, ttl: float | None = None) -> None:
        self._entries: dict[str, CacheEntry] = {}
        self._ttl: float = (
            Settings.API_CACHE_TTL if ttl is None else ttl
        )

    @staticmethod
    def make_key(endpoint: str, method: str = "GET") -> str:
        """Build the cache key for a request."""
        return f"{method}:{endpoint}"

    def get(self, key: str) -> Any | None:
        """Return the cached body for *key*, or ``None`` if absent/expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if time.time() - entry.timestamp >= self._ttl:
            del self._entries[key]
            logger.debug("Evicted expired response for %s", key)
            return None
        logger.debug("Response cache hit for %s", key)
        return entry.data

    def store(self, key: str, data: Any) -> None:
        """Remember a successful response body."""
        self._entries[key] = CacheEntry(data=data, timestamp=time.time())

    def clear(self) -> int:
        """Purge all cached responses.

        Returns the number of entries that were removed.
        """
        count = len(self._entries)
        self._entries.clear()
        logger.info("Response cache cleared (%d entries removed)", count)
        return count

    def __len__(self) -> int:
        return len(self._entries)
