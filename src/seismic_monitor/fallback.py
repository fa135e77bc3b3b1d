"""Volatile in-memory storage used while the durable store is unreachable."""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterable, Sequence

from seismic_monitor.fetchers.feed import FeedClient
from seismic_monitor.models import SeismicEvent
from seismic_monitor.store import DuplicateKeyError

logger = logging.getLogger(__name__)


class FallbackCache:
    """Holds user-submitted events for the lifetime of the process.

    Feed data is never retained: every query fetches the feed live and
    appends it to the held reports. The held set is an immutable tuple that
    is replaced on every write, so a snapshot taken mid-query stays whole.
    Writers are serialized; readers never wait.
    """

    mode = "fallback"

    def __init__(self, feed: FeedClient, dedupe: bool = False) -> None:
        self.feed = feed
        self.dedupe = dedupe
        self._held: tuple[SeismicEvent, ...] = ()
        self._write_lock = threading.Lock()

    def snapshot(self) -> tuple[SeismicEvent, ...]:
        return self._held

    def append(self, event: SeismicEvent) -> None:
        with self._write_lock:
            self._held = (*self._held, event)

    def extend(self, events: Iterable[SeismicEvent]) -> None:
        with self._write_lock:
            self._held = (*self._held, *events)

    def remove_by_id(self, external_id: str) -> None:
        with self._write_lock:
            self._held = tuple(ev for ev in self._held if ev.external_id != external_id)

    def drain(self) -> tuple[SeismicEvent, ...]:
        """Take every held event and leave the cache empty."""
        with self._write_lock:
            held, self._held = self._held, ()
        return held

    # EventStore interface

    def upsert_many(self, events: Sequence[SeismicEvent]) -> tuple[int, int]:
        return (0, 0)

    def insert_one(self, event: SeismicEvent) -> None:
        with self._write_lock:
            if any(ev.external_id == event.external_id for ev in self._held):
                raise DuplicateKeyError(event.external_id)
            self._held = (*self._held, event)

    def query(self, min_magnitude: float = 0.0) -> list[SeismicEvent]:
        held = self.snapshot()
        live = self.feed.fetch()
        if self.dedupe:
            held_ids = {ev.external_id for ev in held}
            live = [ev for ev in live if ev.external_id not in held_ids]
        logger.debug("Fallback query merged %d held and %d live events", len(held), len(live))
        return [ev for ev in (*held, *live) if ev.magnitude >= min_magnitude]

    def delete_one(self, external_id: str) -> bool:
        self.remove_by_id(external_id)
        return True

    def count(self) -> int:
        return len(self._held)
