# ============================================================================
# CLAUDE CONTEXT - EPHEMERAL URL CACHE
# ============================================================================
# STATUS: Service Layer - Short-lived cache for resolved attachment URLs
# PURPOSE: Remember freshly signed attachment URLs for the image proxy routes
# EXPORTS: UrlCache, attachment_cache_key
# DEPENDENCIES: time (stdlib)
# ============================================================================
"""
Ephemeral URL Cache.

Maps (field, record id, index) to the last known good attachment URL.
Entries expire by wall-clock comparison when read; there is no background
sweep and no size bound. Cardinality is bounded by the number of upstream
attachments and the TTL is short.

One instance is built at startup and handed to the service that serves the
redirect routes. Concurrent requests refreshing the same key race
harmlessly (last writer wins).
"""

import time
from typing import Callable, Dict, Optional, Tuple

from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.CACHE, "UrlCache")


def attachment_cache_key(field_name: str, record_id: str, index: int) -> str:
    """Build the cache key for one attachment slot, e.g. ``Photo:rec123:0``."""
    return f"{field_name}:{record_id}:{index}"


class UrlCache:
    """
    TTL cache of resolved attachment URLs.

    Args:
        ttl_seconds: Lifetime of an entry in seconds
        clock: Time source returning seconds (defaults to time.time)
    """

    def __init__(self, ttl_seconds: float = 480, clock: Optional[Callable[[], float]] = None):
        self.ttl_seconds = ttl_seconds
        self._clock = clock or time.time
        self._entries: Dict[str, Tuple[str, float]] = {}

    def get(self, key: str) -> Optional[str]:
        """Return the cached URL, or None when missing or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None

        url, expires_at = entry
        if self._clock() > expires_at:
            # lazy eviction
            self._entries.pop(key, None)
            logger.debug(f"URL cache expired: {key}")
            return None

        return url

    def put(self, key: str, url: str) -> None:
        """Store a URL with a fresh TTL."""
        self._entries[key] = (url, self._clock() + self.ttl_seconds)

    def clear(self) -> None:
        """Clear all cache entries."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def stats(self) -> Dict[str, int]:
        """Get cache statistics."""
        now = self._clock()
        valid = sum(1 for _, expiry in self._entries.values() if expiry >= now)
        return {
            "total_entries": len(self._entries),
            "valid_entries": valid,
            "expired_entries": len(self._entries) - valid
        }
