"""
Wikipedia client for the proxy: article summaries and raw API passthrough.
"""

import time
from typing import Any, Dict, Iterable, Optional, Tuple, TYPE_CHECKING

import httpx

from shared.logging import get_logger
from shared.errors import ExternalServiceError, UpstreamResponseError
from service_proxy.app.caching import TTLCache, passthrough_key, summary_key

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_API_URL = "https://en.wikipedia.org/w/api.php"
DEFAULT_USER_AGENT = "FanBoxAppProxy/1.0"

SUMMARY_ERROR = "Error fetching Wikipedia."
SUMMARY_NOT_FOUND = "No Wikipedia content found."


class SummaryNotFound(Exception):
    """The query resolved to a page without a plain-text extract."""


class WikipediaClient:
    """Client for the MediaWiki query API."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        cache: TTLCache,
        *,
        api_url: str = DEFAULT_API_URL,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 15.0,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.http_client = http_client
        self.cache = cache
        self.api_url = api_url
        self.headers = {"User-Agent": user_agent}
        self.timeout = timeout
        self.metrics = metrics
        self.logger = get_logger("proxy.wikipedia")

    async def fetch_summary(self, query: str) -> str:
        """
        Return the plain-text extract for ``query``.

        Never raises: a missing page yields ``SUMMARY_NOT_FOUND`` and any
        upstream failure yields ``SUMMARY_ERROR``.
        """
        cache_key = summary_key(query)
        cached = self.cache.get(cache_key, "summary")
        if cached is not None:
            return cached

        params = {
            "action": "query",
            "prop": "extracts",
            "explaintext": "true",
            "titles": query,
            "format": "json",
            "exintro": "false",
        }

        start = time.perf_counter()
        try:
            response = await self.http_client.get(
                self.api_url,
                params=params,
                headers=self.headers,
                timeout=self.timeout,
            )
            response.raise_for_status()
            extract = self._first_extract(response.json())
        except SummaryNotFound:
            self._record("not_found", start)
            self.logger.info("Wikipedia page has no extract", query=query)
            return SUMMARY_NOT_FOUND
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as exc:
            self._record("error", start)
            self.logger.error("Wikipedia fetch error", query=query, error=str(exc))
            return SUMMARY_ERROR

        self._record("success", start)
        self.cache.set(cache_key, extract, "summary")
        return extract

    async def passthrough(self, params: Iterable[Tuple[str, str]]) -> Any:
        """
        Forward arbitrary query parameters to the API and return its JSON.

        Successful bodies are cached by the order-independent parameter set.
        Non-success responses raise ``UpstreamResponseError`` carrying the
        upstream status and body so the caller can relay them.
        """
        pairs = list(params)
        cache_key = passthrough_key(pairs)
        cached = self.cache.get(cache_key, "passthrough")
        if cached is not None:
            return cached

        start = time.perf_counter()
        try:
            response = await self.http_client.get(
                self.api_url,
                params=pairs,
                headers=self.headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as exc:
            self._record("timeout", start)
            self.logger.error("Wikipedia direct fetch timed out", params=pairs, error=str(exc))
            raise ExternalServiceError(
                service="wikipedia",
                message="Upstream request timed out",
                details={"error": str(exc)},
                status_code=504,
            )
        except httpx.HTTPError as exc:
            self._record("error", start)
            self.logger.error("Wikipedia direct fetch error", params=pairs, error=str(exc))
            raise ExternalServiceError(
                service="wikipedia",
                message=str(exc) or exc.__class__.__name__,
                details={"error": str(exc)},
            )

        if response.status_code >= 400:
            self._record("error", start)
            self.logger.warning(
                "Wikipedia direct fetch rejected",
                params=pairs,
                status_code=response.status_code,
            )
            raise UpstreamResponseError("wikipedia", response.status_code, self._error_body(response))

        try:
            data = response.json()
        except ValueError as exc:
            self._record("error", start)
            self.logger.error("Wikipedia direct fetch returned invalid JSON", params=pairs, error=str(exc))
            raise ExternalServiceError(
                service="wikipedia",
                message="Upstream returned invalid JSON",
                details={"body": response.text[:500]},
            )

        self._record("success", start)
        self.cache.set(cache_key, data, "passthrough")
        return data

    @staticmethod
    def _first_extract(payload: Dict[str, Any]) -> str:
        """Pick the extract of the first page in upstream order."""
        pages = payload["query"]["pages"]
        if not pages:
            raise SummaryNotFound()

        first_page = next(iter(pages.values()))
        extract = first_page.get("extract")
        if not extract:
            raise SummaryNotFound()
        return extract

    @staticmethod
    def _error_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return {"error": response.text}

    def _record(self, outcome: str, start: float) -> None:
        if self.metrics:
            self.metrics.record_upstream_request("wikipedia", outcome, time.perf_counter() - start)
