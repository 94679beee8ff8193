"""
Request-scoped aggregation across the upstream adapters.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Sequence

from shared.config import FeedSource
from shared.errors import ValidationError
from shared.logging import get_logger
from service_proxy.app.adapters import (
    FeedReader,
    FeedResult,
    GenerativeClient,
    SearchClient,
    WikipediaClient,
)


MAX_CONTEXT_HEADLINES = 10


@dataclass
class AggregatedResult:
    """Combined output of the summary, feed and search adapters."""

    summary: str
    feed_results: List[FeedResult] = field(default_factory=list)
    search_results: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wikipedia": self.summary,
            "rss": [result.to_dict() for result in self.feed_results],
            "duckduckgo": self.search_results,
        }


def require_prompt(prompt: Any) -> str:
    """Reject missing or blank prompts before any upstream is touched."""
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Missing prompt")
    return prompt.strip()


def build_context_prompt(prompt: str, summary: str, feed_results: Sequence[FeedResult]) -> str:
    """Prefix the user prompt with the summary and matching feed headlines."""
    headlines: List[str] = []
    for result in feed_results:
        for article in result.articles or []:
            if article.link is None:
                # No-match placeholder
                continue
            headlines.append(f"- [{result.feed}] {article.title}: {article.description}")

    sections = [prompt, "", "Wikipedia summary:", summary]
    if headlines:
        sections += ["", "Recent news:", *headlines[:MAX_CONTEXT_HEADLINES]]
    return "\n".join(sections)


class Aggregator:
    """Fans a prompt out to the adapters and composes their results."""

    def __init__(
        self,
        wikipedia: WikipediaClient,
        feed_reader: FeedReader,
        search: SearchClient,
        generative: GenerativeClient,
        feeds: Sequence[FeedSource],
    ):
        self.wikipedia = wikipedia
        self.feed_reader = feed_reader
        self.search = search
        self.generative = generative
        self.feeds = list(feeds)
        self.logger = get_logger("proxy.aggregator")

    async def aggregate(self, prompt: Any) -> AggregatedResult:
        """Query summary, feeds and search concurrently."""
        query = require_prompt(prompt)

        summary, feed_results, search_results = await asyncio.gather(
            self.wikipedia.fetch_summary(query),
            self.feed_reader.fetch_all(self.feeds, query),
            self.search.search(query),
        )

        self.logger.info(
            "Aggregated prompt",
            feeds=len(feed_results),
            search_results=len(search_results),
        )
        return AggregatedResult(
            summary=summary,
            feed_results=feed_results,
            search_results=search_results,
        )

    def stream(self, prompt: Any) -> AsyncIterator[bytes]:
        """
        Validate ``prompt`` now and return the generated-text relay.

        Validation happens before the response is committed, so a missing
        prompt is still reported as a client error.
        """
        query = require_prompt(prompt)
        return self._stream(query)

    async def _stream(self, query: str) -> AsyncIterator[bytes]:
        summary, feed_results = await asyncio.gather(
            self.wikipedia.fetch_summary(query),
            self.feed_reader.fetch_all(self.feeds, query),
        )
        context_prompt = build_context_prompt(query, summary, feed_results)

        async for chunk in self.generative.stream(context_prompt):
            yield chunk
