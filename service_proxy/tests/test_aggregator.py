"""
Unit tests for the request aggregator.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from service_proxy.app.adapters import FeedArticle, FeedResult, GenerativeClient
from service_proxy.app.adapters.wikipedia_client import SUMMARY_ERROR
from service_proxy.app.domain import Aggregator, build_context_prompt, require_prompt
from shared.config import FeedSource
from shared.errors import ValidationError


FEEDS = [FeedSource(url="https://news.example.com/rss", name="Example News")]

FEED_RESULTS = [
    FeedResult(
        feed="Example News",
        articles=[FeedArticle(title="Adele tour", description="Dates revealed", link="https://news.example.com/1")],
    )
]

SEARCH_RESULTS = [{"title": "Adele - Wikipedia", "link": "https://en.wikipedia.org/wiki/Adele", "snippet": "Singer"}]


def _generative(*chunks):
    generative = MagicMock(spec=GenerativeClient)
    captured = {}

    async def _stream(prompt):
        captured["prompt"] = prompt
        for chunk in chunks:
            yield chunk

    generative.stream = _stream
    generative.captured = captured
    return generative


class TestRequirePrompt:
    """Test cases for prompt validation."""

    @pytest.mark.parametrize("prompt", [None, "", "   ", 42, ["Adele"]])
    def test_rejects_missing_prompt(self, prompt):
        with pytest.raises(ValidationError) as exc_info:
            require_prompt(prompt)

        assert exc_info.value.message == "Missing prompt"
        assert exc_info.value.status_code == 400

    def test_strips_whitespace(self):
        assert require_prompt("  Adele ") == "Adele"


class TestAggregator:
    """Test cases for Aggregator."""

    @pytest.fixture
    def wikipedia(self):
        client = MagicMock()
        client.fetch_summary = AsyncMock(return_value="Adele is a singer.")
        return client

    @pytest.fixture
    def feed_reader(self):
        reader = MagicMock()
        reader.fetch_all = AsyncMock(return_value=FEED_RESULTS)
        return reader

    @pytest.fixture
    def search(self):
        client = MagicMock()
        client.search = AsyncMock(return_value=SEARCH_RESULTS)
        return client

    @pytest.fixture
    def aggregator(self, wikipedia, feed_reader, search):
        return Aggregator(wikipedia, feed_reader, search, _generative(b"unused"), FEEDS)

    @pytest.mark.asyncio
    async def test_aggregate_combines_all_sources(self, aggregator, wikipedia, feed_reader, search):
        result = await aggregator.aggregate("Adele")

        assert result.to_dict() == {
            "wikipedia": "Adele is a singer.",
            "rss": [
                {
                    "feed": "Example News",
                    "articles": [
                        {"title": "Adele tour", "description": "Dates revealed", "link": "https://news.example.com/1"}
                    ],
                }
            ],
            "duckduckgo": SEARCH_RESULTS,
        }
        wikipedia.fetch_summary.assert_awaited_once_with("Adele")
        feed_reader.fetch_all.assert_awaited_once_with(FEEDS, "Adele")
        search.search.assert_awaited_once_with("Adele")

    @pytest.mark.asyncio
    async def test_missing_prompt_calls_no_adapter(self, aggregator, wikipedia, feed_reader, search):
        with pytest.raises(ValidationError):
            await aggregator.aggregate(None)

        assert wikipedia.fetch_summary.await_count == 0
        assert feed_reader.fetch_all.await_count == 0
        assert search.search.await_count == 0

    @pytest.mark.asyncio
    async def test_degraded_summary_keeps_other_sources(self, aggregator, wikipedia):
        wikipedia.fetch_summary.return_value = SUMMARY_ERROR

        result = await aggregator.aggregate("Adele")

        assert result.summary == SUMMARY_ERROR
        assert result.feed_results == FEED_RESULTS
        assert result.search_results == SEARCH_RESULTS

    @pytest.mark.asyncio
    async def test_adapters_run_concurrently(self, aggregator, wikipedia, feed_reader, search):
        started = []
        all_started = asyncio.Event()

        def _gate(name, value):
            async def _call(*args, **kwargs):
                started.append(name)
                if len(started) == 3:
                    all_started.set()
                # Each adapter waits until every adapter has been entered
                await asyncio.wait_for(all_started.wait(), timeout=1)
                return value
            return _call

        wikipedia.fetch_summary.side_effect = _gate("summary", "text")
        feed_reader.fetch_all.side_effect = _gate("feeds", [])
        search.search.side_effect = _gate("search", [])

        result = await aggregator.aggregate("Adele")

        assert sorted(started) == ["feeds", "search", "summary"]
        assert result.summary == "text"

    @pytest.mark.asyncio
    async def test_stream_relays_generated_chunks_with_context(self, wikipedia, feed_reader, search):
        generative = _generative(b"first ", b"second")
        aggregator = Aggregator(wikipedia, feed_reader, search, generative, FEEDS)

        chunks = [chunk async for chunk in aggregator.stream("Adele")]

        assert chunks == [b"first ", b"second"]
        prompt = generative.captured["prompt"]
        assert prompt.startswith("Adele")
        assert "Adele is a singer." in prompt
        assert "[Example News] Adele tour: Dates revealed" in prompt
        assert search.search.await_count == 0

    def test_stream_validates_before_streaming(self, aggregator, wikipedia):
        with pytest.raises(ValidationError):
            aggregator.stream("")

        assert wikipedia.fetch_summary.await_count == 0


class TestBuildContextPrompt:
    """Test cases for the generative context prompt."""

    def test_skips_no_match_placeholders_and_failed_feeds(self):
        results = [
            FeedResult(feed="Quiet", articles=[FeedArticle.no_match("Adele")]),
            FeedResult(feed="Broken", error="Error fetching feed"),
        ]

        prompt = build_context_prompt("Adele", "Summary text", results)

        assert prompt == "Adele\n\nWikipedia summary:\nSummary text"
