"""
In-process TTL cache shared by the upstream adapters and the feed preloader.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, TYPE_CHECKING

from shared.logging import get_logger

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_TTL_SECONDS = 300.0

DEFAULT_CATEGORY_TTLS: Dict[str, float] = {
    "summary": 60 * 60,
    "feed": 10 * 60,
    "search": 15 * 60,
    "passthrough": 60 * 60,
}


@dataclass
class CacheEntry:
    """Cached value with its absolute expiry timestamp."""

    value: Any
    expires_at: float
    category: str


class TTLCache:
    """
    Key/value store with a per-category expiry.

    Entries are checked on every read and evicted the first time they are
    observed past their expiry. There is no size bound; ``purge_expired`` can
    be called periodically to drop entries that are never read again.

    ``get`` and ``set`` never await, so under asyncio each call completes
    without interleaving with other coroutines. Concurrent writers to one key
    resolve as last write wins.
    """

    def __init__(
        self,
        category_ttls: Optional[Mapping[str, float]] = None,
        *,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.category_ttls: Dict[str, float] = dict(
            DEFAULT_CATEGORY_TTLS if category_ttls is None else category_ttls
        )
        self.default_ttl = default_ttl
        self.metrics = metrics
        self.logger = get_logger("proxy.cache")
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def ttl_for(self, category: str) -> float:
        """TTL in seconds for a category; unknown categories use the default."""
        return self.category_ttls.get(category, self.default_ttl)

    def get(self, key: str, category: Optional[str] = None) -> Optional[Any]:
        """
        Return the cached value, or None when absent or expired.

        ``category`` labels the miss metric for keys that are not stored.
        """
        entry = self._entries.get(key)
        if entry is None:
            self._record(category, hit=False)
            return None

        if self._clock() >= entry.expires_at:
            del self._entries[key]
            self.logger.debug("Cache entry expired", key=key, category=entry.category)
            self._record(entry.category, hit=False)
            return None

        self._record(entry.category, hit=True)
        return entry.value

    def set(self, key: str, value: Any, category: str) -> None:
        """Store a value under the expiry configured for its category."""
        ttl = self.ttl_for(category)
        self._entries[key] = CacheEntry(
            value=value,
            expires_at=self._clock() + ttl,
            category=category,
        )
        self.logger.debug("Cached value", key=key, category=category, ttl=ttl)

    def purge_expired(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if now >= entry.expires_at]
        for key in expired:
            del self._entries[key]

        if expired:
            self.logger.info("Purged expired cache entries", count=len(expired), remaining=len(self._entries))
        return len(expired)

    def stats(self) -> Dict[str, Any]:
        """Entry counts, total and per category, including not yet purged entries."""
        by_category: Dict[str, int] = {}
        for entry in self._entries.values():
            by_category[entry.category] = by_category.get(entry.category, 0) + 1
        return {"entries": len(self._entries), "by_category": by_category}

    def _record(self, category: Optional[str], hit: bool) -> None:
        if not self.metrics:
            return
        metric_name = "cache_hits_total" if hit else "cache_misses_total"
        self.metrics.increment_counter(metric_name, cache_type=category or "unknown")
