"""Periodic feed ingestion on the event loop."""

from __future__ import annotations

import asyncio
import logging

from seismic_monitor.fetchers.feed import FeedClient
from seismic_monitor.service import StorageSelector

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 300


class IngestionScheduler:
    """Fetches the feed every *interval_seconds* and upserts it into the active store.

    Best effort: a failed cycle is logged and the next one runs on schedule.
    In fallback mode the upsert is a no-op, and each cycle first tries to
    reconnect the durable store when *reconnect* is set.
    """

    def __init__(
        self,
        feed: FeedClient,
        selector: StorageSelector,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        reconnect: bool = True,
    ) -> None:
        self.feed = feed
        self.selector = selector
        self.interval_seconds = interval_seconds
        self.reconnect = reconnect
        self._task: asyncio.Task[None] | None = None

    async def run_once(self) -> int:
        """Run one cycle. Returns the number of events fetched (0 on failure)."""
        try:
            if self.reconnect and self.selector.mode == "fallback":
                await asyncio.to_thread(self.selector.reconnect)

            events = await asyncio.to_thread(self.feed.fetch)
            store = self.selector.active
            new_count, updated_count = await asyncio.to_thread(store.upsert_many, events)
        except Exception:  # noqa: BLE001
            logger.exception("Ingestion cycle failed")
            return 0

        logger.info(
            "Ingested %d events into %s store | new=%d updated=%d",
            len(events),
            store.mode,
            new_count,
            updated_count,
        )
        return len(events)

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the loop on the running event loop. The first cycle runs immediately."""
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop(), name="ingestion")
        logger.info("Ingestion scheduled every %s seconds", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
