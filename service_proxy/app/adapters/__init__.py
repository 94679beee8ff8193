"""
Adapters package for the proxy service.

One client per upstream (Wikipedia, RSS/Atom feeds, keyword search,
generative text). Adapters used by the aggregator encapsulate:

- Request shapes, identifying headers and explicit timeouts
- Write-through caching via the shared TTL cache
- Degraded placeholder results instead of raised errors

All adapters share the service's ``httpx.AsyncClient`` so connections to
the same host are reused.
"""

from .wikipedia_client import WikipediaClient
from .feed_reader import FeedArticle, FeedItem, FeedReader, FeedResult
from .search_client import SearchClient
from .generative_client import GenerativeClient

__all__ = [
    "WikipediaClient",
    "FeedArticle",
    "FeedItem",
    "FeedReader",
    "FeedResult",
    "SearchClient",
    "GenerativeClient",
]
