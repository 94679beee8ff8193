"""
Proxy caching package.

Provides the in-memory TTL cache shared by the upstream adapters and the
feed preloader, plus the cache key builders. Entries are volatile and are
rebuilt after a restart.
"""

from .keys import feed_key, passthrough_key, search_key, summary_key
from .ttl_cache import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "TTLCache",
    "feed_key",
    "passthrough_key",
    "search_key",
    "summary_key",
]
