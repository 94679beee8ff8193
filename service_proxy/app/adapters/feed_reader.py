"""
RSS/Atom feed reader with per-request filtering over a shared cached fetch.
"""

from __future__ import annotations

import asyncio
import html
import re
import time
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, TYPE_CHECKING

import feedparser
import httpx

from shared.config import FeedSource
from shared.logging import get_logger
from service_proxy.app.caching import TTLCache, feed_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


MAX_ARTICLES = 5
FEED_ERROR = "Error fetching feed"

_TAG_PATTERN = re.compile(r"<[^>]+>")
_SPACE_PATTERN = re.compile(r"\s+")


class FeedParseError(Exception):
    """The document could not be parsed as a feed."""


@dataclass(frozen=True)
class FeedItem:
    """A raw feed entry, as cached."""

    title: Optional[str] = None
    link: Optional[str] = None
    content_snippet: Optional[str] = None
    content: Optional[str] = None

    def matches(self, needle: str) -> bool:
        """Case-insensitive substring match on title or snippet."""
        return any(
            field and needle in field.lower()
            for field in (self.title, self.content_snippet)
        )

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> "FeedItem":
        """Build from a feedparser entry."""
        content = None
        if entry.get("content"):
            content = entry["content"][0].get("value")
        summary = entry.get("summary")
        return cls(
            title=entry.get("title") or None,
            link=entry.get("link") or None,
            content_snippet=_strip_html(summary or content),
            content=content or summary,
        )


@dataclass(frozen=True)
class FeedArticle:
    """A formatted article returned to clients."""

    title: str
    description: Optional[str] = None
    link: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"title": self.title}
        if self.description is not None:
            payload["description"] = self.description
        if self.link is not None:
            payload["link"] = self.link
        return payload

    @classmethod
    def from_item(cls, item: FeedItem) -> "FeedArticle":
        return cls(
            title=item.title or "Untitled",
            description=item.content_snippet or item.content or "No description available.",
            link=item.link or "No link available.",
        )

    @classmethod
    def no_match(cls, query: str) -> "FeedArticle":
        return cls(title=f'No matching articles found for "{query}"')


@dataclass(frozen=True)
class FeedResult:
    """Articles from one feed, or the error that replaced them."""

    feed: str
    articles: Optional[List[FeedArticle]] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            return {"feed": self.feed, "error": self.error}
        return {"feed": self.feed, "articles": [article.to_dict() for article in self.articles or []]}


def select_articles(items: Sequence[FeedItem], query: str, limit: int = MAX_ARTICLES) -> List[FeedArticle]:
    """
    Filter and format cached feed items for one request.

    An empty query keeps every item. Feed order is preserved. When nothing
    matches, a single placeholder naming the query is returned.
    """
    needle = query.lower()
    matching = [item for item in items if not needle or item.matches(needle)]
    if not matching:
        return [FeedArticle.no_match(query)]
    return [FeedArticle.from_item(item) for item in matching[:limit]]


class FeedReader:
    """Fetches, parses and caches configured feeds."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: TTLCache,
        *,
        timeout: float = 15.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.http_client = http_client
        self.cache = cache
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.feed_reader")

    async def fetch(self, feed: FeedSource, query: str = "", *, refresh: bool = False) -> FeedResult:
        """
        Return the filtered articles of one feed.

        The raw item list is cached per feed URL, so different queries share
        one upstream fetch. ``refresh`` skips the cache read and rewrites the
        entry. Failures become an error result instead of raising.
        """
        try:
            items = await self._load_items(feed, refresh=refresh)
        except (httpx.HTTPError, FeedParseError) as exc:
            self.logger.error("RSS fetch error", url=feed.url, error=str(exc))
            return FeedResult(feed=feed.label, error=FEED_ERROR)

        return FeedResult(feed=feed.label, articles=select_articles(items, query))

    async def fetch_all(
        self,
        feeds: Sequence[FeedSource],
        query: str = "",
        *,
        refresh: bool = False,
    ) -> List[FeedResult]:
        """Fetch every feed concurrently; results keep configuration order."""
        if not feeds:
            return []
        return list(await asyncio.gather(*(self.fetch(feed, query, refresh=refresh) for feed in feeds)))

    async def _load_items(self, feed: FeedSource, *, refresh: bool) -> List[FeedItem]:
        cache_key = feed_key(feed.url)
        if not refresh:
            cached = self.cache.get(cache_key, "feed")
            if cached is not None:
                return cached

        start = time.perf_counter()
        try:
            response = await self.http_client.get(feed.url, timeout=self.timeout)
            response.raise_for_status()
            parsed = await asyncio.to_thread(feedparser.parse, response.content)
        except httpx.HTTPError:
            self._record("error", start)
            raise

        if parsed.bozo and not parsed.entries:
            self._record("error", start)
            raise FeedParseError(str(parsed.get("bozo_exception", "malformed feed")))

        items = [FeedItem.from_entry(entry) for entry in parsed.entries]
        self._record("success", start)
        self.cache.set(cache_key, items, "feed")
        self.logger.debug("Feed fetched", url=feed.url, items=len(items))
        return items

    def _record(self, outcome: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_request("feed", outcome, time.perf_counter() - start)


def _strip_html(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    text = html.unescape(_TAG_PATTERN.sub(" ", value))
    return _SPACE_PATTERN.sub(" ", text).strip() or None
