"""
Keyword search client (DuckDuckGo wrapper API).
"""

import time
from typing import Any, Dict, List, Optional, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from service_proxy.app.caching import TTLCache, search_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_API_URL = "https://ddg-api.herokuapp.com/search"
MAX_RESULTS = 10


def error_results() -> List[Dict[str, str]]:
    """Placeholder returned when the search upstream fails."""
    return [{"title": "Error fetching DuckDuckGo results", "link": "", "snippet": ""}]


class SearchClient:
    """Client for the keyword search API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: TTLCache,
        *,
        api_url: str = DEFAULT_API_URL,
        timeout: float = 15.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.http_client = http_client
        self.cache = cache
        self.api_url = api_url
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.search")

    async def search(self, query: str) -> List[Dict[str, Any]]:
        """Return up to ten ``{title, link, snippet}`` results; never raises."""
        cache_key = search_key(query)
        cached = self.cache.get(cache_key, "search")
        if cached is not None:
            return cached

        start = time.perf_counter()
        try:
            response = await self.http_client.get(
                self.api_url,
                params={"query": query},
                timeout=self.timeout,
            )
            response.raise_for_status()
            results = (response.json() or {}).get("results") or []
            formatted = [
                {
                    "title": result.get("title"),
                    "link": result.get("link"),
                    "snippet": result.get("snippet"),
                }
                for result in results[:MAX_RESULTS]
            ]
        except (httpx.HTTPError, ValueError, AttributeError, TypeError) as exc:
            self._record("error", start)
            self.logger.error("DuckDuckGo fetch error", query=query, error=str(exc))
            return error_results()

        self._record("success", start)
        self.cache.set(cache_key, formatted, "search")
        return formatted

    def _record(self, outcome: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_request("search", outcome, time.perf_counter() - start)
