"""
Background warming of the feed cache.
"""

import asyncio
from typing import List, Optional, Sequence, Set, TYPE_CHECKING

from shared.config import FeedSource
from shared.logging import get_logger
from service_proxy.app.adapters.feed_reader import FeedReader, FeedResult
from service_proxy.app.caching import TTLCache

if TYPE_CHECKING:  # pragma: no cover - imported for typing only
    from shared.metrics import MetricsCollector


DEFAULT_INTERVAL_SECONDS = 10 * 60


class FeedPreloader:
    """
    Refreshes every configured feed on a fixed interval.

    The first pass starts as soon as the preloader is started. Each tick
    launches its pass without waiting for the previous one, so a slow pass
    may overlap the next; the worst case is a redundant cache refresh.
    """

    def __init__(
        self,
        feed_reader: FeedReader,
        feeds: Sequence[FeedSource],
        cache: TTLCache,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        metrics: Optional["MetricsCollector"] = None,
    ):
        self.feed_reader = feed_reader
        self.feeds = list(feeds)
        self.cache = cache
        self.interval_seconds = interval_seconds
        self.metrics = metrics
        self.logger = get_logger("proxy.feed_preloader")

        self.running = False
        self.runs_started = 0
        self._loop_task: Optional[asyncio.Task] = None
        self._passes: Set[asyncio.Task] = set()

    async def start(self):
        """Start the preload loop."""
        if self.running:
            return
        self.running = True
        self._loop_task = asyncio.create_task(self._preload_loop())
        self.logger.info("Feed preloader started", feeds=len(self.feeds), interval=self.interval_seconds)

    async def stop(self):
        """Stop the loop and cancel passes still in flight."""
        self.running = False
        tasks = [task for task in (self._loop_task, *self._passes) if task is not None]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._loop_task = None
        self._passes.clear()
        self.logger.info("Feed preloader stopped")

    async def run_once(self) -> List[FeedResult]:
        """Refresh all feeds once and drop expired cache entries."""
        self.logger.info("Preloading RSS feeds", feeds=len(self.feeds))
        results = await self.feed_reader.fetch_all(self.feeds, "", refresh=True)
        purged = self.cache.purge_expired()

        failed = [result.feed for result in results if not result.ok]
        self.logger.info(
            "Preloading done",
            refreshed=len(results) - len(failed),
            failed=failed,
            purged=purged,
            cache_keys=len(self.cache),
        )
        return results

    async def _preload_loop(self):
        while self.running:
            self._spawn_pass()
            await asyncio.sleep(self.interval_seconds)

    def _spawn_pass(self) -> None:
        self.runs_started += 1
        task = asyncio.create_task(self._guarded_pass())
        self._passes.add(task)
        task.add_done_callback(self._passes.discard)

    async def _guarded_pass(self) -> None:
        try:
            await self.run_once()
        except Exception as exc:
            self.logger.error("Feed preload pass failed", error=str(exc), exc_info=True)
            self._record("error")
        else:
            self._record("success")

    def _record(self, outcome: str) -> None:
        if self.metrics:
            self.metrics.increment_counter("feed_preload_runs_total", outcome=outcome)
