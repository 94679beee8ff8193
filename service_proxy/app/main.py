"""
Unified AI Proxy service.
"""

from typing import List, Optional

import httpx
from fastapi import Body, Request
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict

from shared.base_service import BaseService
from shared.config import FeedSource, ServiceConfig, load_feed_sources
from shared.errors import UpstreamResponseError
from service_proxy.app.adapters import FeedReader, GenerativeClient, SearchClient, WikipediaClient
from service_proxy.app.caching import TTLCache
from service_proxy.app.domain import Aggregator
from service_proxy.app.preload import FeedPreloader


ROOT_MESSAGE = "Unified AI Proxy running. Use /generate, /generate/stream, /api/wikipedia"


class GenerateRequest(BaseModel):
    """Body of the aggregation endpoints; ``query`` is accepted as an alias."""

    model_config = ConfigDict(extra="allow")

    prompt: Optional[str] = None
    query: Optional[str] = None

    @property
    def text(self) -> Optional[str]:
        return self.prompt if self.prompt is not None else self.query


class ProxyService(BaseService):
    """Aggregation proxy service implementation."""

    def __init__(
        self,
        config: Optional[ServiceConfig] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        feeds: Optional[List[FeedSource]] = None,
    ):
        super().__init__("proxy", config)
        timeout = self.config.upstream_timeout_seconds

        # One pooled client for every upstream keeps connections alive per host
        self.http_client = http_client or httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            limits=httpx.Limits(max_keepalive_connections=20, keepalive_expiry=60.0),
        )
        self.cache = TTLCache(
            self.config.cache_ttls(),
            default_ttl=self.config.default_ttl_seconds,
            metrics=self.metrics,
        )
        self.feeds = feeds if feeds is not None else load_feed_sources(self.config.feeds_file)

        self.wikipedia_client = WikipediaClient(
            self.http_client,
            self.cache,
            api_url=self.config.wikipedia_api_url,
            user_agent=self.config.wikipedia_user_agent,
            timeout=timeout,
            metrics=self.metrics,
        )
        self.feed_reader = FeedReader(self.http_client, self.cache, timeout=timeout, metrics=self.metrics)
        self.search_client = SearchClient(
            self.http_client,
            self.cache,
            api_url=self.config.search_api_url,
            timeout=timeout,
            metrics=self.metrics,
        )
        self.generative_client = GenerativeClient(
            self.http_client,
            self.config.api_keys,
            self.config.models,
            api_url=self.config.generative_api_url,
            temperature=self.config.generative_temperature,
            max_output_tokens=self.config.generative_max_output_tokens,
            timeout=timeout,
            metrics=self.metrics,
        )
        self.aggregator = Aggregator(
            self.wikipedia_client,
            self.feed_reader,
            self.search_client,
            self.generative_client,
            self.feeds,
        )
        self.feed_preloader = FeedPreloader(
            self.feed_reader,
            self.feeds,
            self.cache,
            interval_seconds=self.config.feed_preload_interval_seconds,
            metrics=self.metrics,
        )

        if not self.generative_client.attempts:
            self.logger.warning("No generative API keys configured; /generate/stream will report failure")

        @self.app.on_event("startup")
        async def _startup():
            if self.config.feed_preload_enabled and self.feeds:
                await self.feed_preloader.start()

        @self.app.on_event("shutdown")
        async def _shutdown():
            await self.feed_preloader.stop()
            await self.http_client.aclose()

        self._setup_proxy_routes()

        # Expose service instance via app state for introspection/testing
        self.app.state.proxy_service = self

    def _setup_proxy_routes(self):
        """Set up aggregation and passthrough routes."""

        @self.app.exception_handler(UpstreamResponseError)
        async def upstream_response_handler(request: Request, exc: UpstreamResponseError):
            """Relay the upstream's own status and error body."""
            self.logger.warning("Relaying upstream error", message=exc.message, status_code=exc.status_code)
            return JSONResponse(status_code=exc.status_code, content=exc.body)

        @self.app.get("/", response_class=PlainTextResponse)
        async def root():
            """Availability message."""
            return ROOT_MESSAGE

        @self.app.post("/generate")
        async def generate(payload: Optional[GenerateRequest] = Body(default=None)):
            """Summary, matching feed articles and search results for a prompt."""
            result = await self.aggregator.aggregate(payload.text if payload else None)
            return result.to_dict()

        @self.app.post("/generate/stream")
        async def generate_stream(payload: Optional[GenerateRequest] = Body(default=None)):
            """Generated text for a prompt, streamed as it arrives."""
            chunks = self.aggregator.stream(payload.text if payload else None)
            return StreamingResponse(
                chunks,
                media_type="text/plain; charset=utf-8",
                headers={"Cache-Control": "no-cache", "X-Accel-Buffering": "no"},
            )

        @self.app.get("/api/wikipedia")
        async def wikipedia_passthrough(request: Request):
            """Forward arbitrary query parameters to the Wikipedia API."""
            data = await self.wikipedia_client.passthrough(request.query_params.multi_items())
            return JSONResponse(content=data)


def create_app(config: Optional[ServiceConfig] = None, **kwargs):
    """Create FastAPI application."""
    service = ProxyService(config, **kwargs)
    return service.app


if __name__ == "__main__":
    service = ProxyService()
    service.run()
