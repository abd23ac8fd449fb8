"""In-process read cache for catalog and market rate lookups"""

import json
import time
from typing import Any, Dict, Optional, Tuple

from ddm_jewellers.config import settings
from ddm_jewellers.infrastructure.observability.metrics import cache_lookup_counter


def cache_key(kind: str, params: Optional[Dict[str, Any]] = None) -> str:
    """Stable key for a query kind and its parameters, e.g. products_{"limit": 20}"""
    return f"{kind}_{json.dumps(params or {}, sort_keys=True, default=str)}"


class TTLCache:
    """
    Plain TTL map.

    Entries expire on read once older than `ttl_seconds`. There is no size
    bound and no locking; the service runs on a single event loop.
    """

    def __init__(self, ttl_seconds: float | None = None):
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else settings.cache_ttl_seconds
        self._entries: Dict[str, Tuple[Any, float]] = {}

    def get(self, key: str) -> Optional[Any]:
        entry = self._entries.get(key)
        if entry is None:
            cache_lookup_counter.labels(result="miss").inc()
            return None

        value, stored_at = entry
        if time.monotonic() - stored_at > self.ttl_seconds:
            del self._entries[key]
            cache_lookup_counter.labels(result="miss").inc()
            return None

        cache_lookup_counter.labels(result="hit").inc()
        return value

    def set(self, key: str, value: Any) -> None:
        self._entries[key] = (value, time.monotonic())

    def clear(self, pattern: Optional[str] = None) -> None:
        """Drop every entry, or only keys containing `pattern`"""
        if pattern is None:
            self._entries.clear()
            return
        for key in [k for k in self._entries if pattern in k]:
            del self._entries[key]

    def __len__(self) -> int:
        return len(self._entries)


response_cache = TTLCache()
