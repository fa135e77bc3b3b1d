"""Query, submission and deletion over whichever store is active."""

from __future__ import annotations

import asyncio
import logging
import math
import threading
import time
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from seismic_monitor.config import SeismicMonitorConfig
from seismic_monitor.fallback import FallbackCache
from seismic_monitor.fetchers.feed import FeedClient
from seismic_monitor.models import ScoredEvent, SeismicEvent
from seismic_monitor.scoring import compute_risk
from seismic_monitor.store import EventStore, SqlEventStore

logger = logging.getLogger(__name__)


class ReportValidationError(ValueError):
    """A user report could not be parsed. Nothing was written."""


class StorageSelector:
    """Owns the choice between the durable store and the fallback cache.

    The choice is made once, from ``durable.available``. The only later
    change is ``reconnect()``, which promotes a fallback selector to durable.
    Writes routed through the selector and the promotion share one lock, so
    a write lands either in the fallback before it is drained or in the
    durable store after the held reports are migrated.
    """

    def __init__(self, durable: SqlEventStore, fallback: FallbackCache) -> None:
        self.durable = durable
        self.fallback = fallback
        self._active: EventStore = durable if durable.available else fallback
        self._switch_lock = threading.Lock()
        logger.info("Storage mode: %s", self._active.mode)

    @property
    def active(self) -> EventStore:
        return self._active

    @property
    def mode(self) -> str:
        return self._active.mode

    def reconnect(self) -> bool:
        """Try to move from fallback to durable. Returns True on a switch.

        Held user reports are copied into the durable store. If that copy
        fails the selector stays in fallback mode with the reports intact.
        """
        if self._active is self.durable:
            return False
        if not self.durable.connect():
            return False

        with self._switch_lock:
            if self._active is self.durable:
                return False
            held = self.fallback.drain()
            try:
                self.durable.upsert_many(held)
            except SQLAlchemyError:
                logger.exception(
                    "Could not migrate %d held reports; staying in fallback mode", len(held)
                )
                self.fallback.extend(held)
                return False
            self._active = self.durable

        logger.info("Durable store reachable again; migrated %d held reports", len(held))
        return True

    def insert_one(self, event: SeismicEvent) -> str:
        """Insert into the active store. Returns the mode it was written to."""
        with self._switch_lock:
            store = self._active
            store.insert_one(event)
        return store.mode

    def delete_one(self, external_id: str) -> None:
        with self._switch_lock:
            self._active.delete_one(external_id)


def _parse_float(report: Mapping[str, Any], field: str) -> float:
    value = report.get(field)
    if value is None or isinstance(value, bool):
        raise ReportValidationError(f"'{field}' is required and must be a number")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ReportValidationError(f"'{field}' must be a number, got {value!r}") from None
    if not math.isfinite(number):
        raise ReportValidationError(f"'{field}' must be finite, got {value!r}")
    return number


def _parse_casualties(report: Mapping[str, Any]) -> int:
    value = report.get("casualties")
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise ReportValidationError("'casualties' must be a non-negative integer")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ReportValidationError(
            f"'casualties' must be a non-negative integer, got {value!r}"
        ) from None
    if number < 0 or (isinstance(value, float) and value != number):
        raise ReportValidationError(
            f"'casualties' must be a non-negative integer, got {value!r}"
        )
    return number


def parse_report(
    report: Mapping[str, Any],
    now_ms: int,
    id_prefix: str = "user-",
) -> SeismicEvent:
    """Build a user-reported event from a submission body.

    Expected keys: ``mag``, ``depth``, ``lat``, ``lng`` (numbers), optional
    ``place`` and ``casualties``. Raises ReportValidationError on bad input.
    """
    if not isinstance(report, Mapping):
        raise ReportValidationError("Report body must be a JSON object")
    magnitude = _parse_float(report, "mag")
    depth = _parse_float(report, "depth")
    lat = _parse_float(report, "lat")
    lng = _parse_float(report, "lng")
    casualties = _parse_casualties(report)
    place = report.get("place")

    return SeismicEvent(
        external_id=f"{id_prefix}{now_ms}",
        magnitude=magnitude,
        place=str(place) if place not in (None, "") else None,
        occurred_at_ms=now_ms,
        depth_km=depth,
        longitude=lng,
        latitude=lat,
        casualties=casualties,
        is_user_reported=True,
    )


def rank(scored: list[ScoredEvent]) -> list[ScoredEvent]:
    """Highest score first; ties go to the most recent event."""
    return sorted(
        scored,
        key=lambda s: (s.risk.score, s.event.occurred_at_ms),
        reverse=True,
    )


class QueryService:
    """Request-side operations. Store calls run off the event loop."""

    def __init__(self, selector: StorageSelector, id_prefix: str = "user-") -> None:
        self.selector = selector
        self.id_prefix = id_prefix

    async def handle(
        self,
        min_magnitude: float = 0.0,
        observer_lat: float | None = None,
        observer_lon: float | None = None,
    ) -> list[ScoredEvent]:
        store = self.selector.active
        events = await asyncio.to_thread(store.query, min_magnitude)
        scored = [
            ScoredEvent(event=ev, risk=compute_risk(ev, observer_lat, observer_lon))
            for ev in events
        ]
        return rank(scored)

    async def submit(self, report: Mapping[str, Any]) -> SeismicEvent:
        event = parse_report(report, now_ms=int(time.time() * 1000), id_prefix=self.id_prefix)
        mode = await asyncio.to_thread(self.selector.insert_one, event)
        logger.info(
            "Stored user report %s (M%.1f) in %s store", event.external_id, event.magnitude, mode
        )
        return event

    async def remove(self, external_id: str) -> bool:
        await asyncio.to_thread(self.selector.delete_one, external_id)
        return True


@dataclass
class Services:
    """Everything the API and CLI need, wired from one config."""

    config: SeismicMonitorConfig
    feed: FeedClient
    selector: StorageSelector
    query: QueryService


def build_services(config: SeismicMonitorConfig) -> Services:
    """Wire the feed, both stores and the query service. Probes the database once."""
    feed = FeedClient(url=config.feed_url, timeout=config.request_timeout)
    durable = SqlEventStore(config.database_url)
    durable.connect()
    fallback = FallbackCache(feed, dedupe=config.dedupe_fallback_merge)
    selector = StorageSelector(durable, fallback)
    return Services(
        config=config,
        feed=feed,
        selector=selector,
        query=QueryService(selector, id_prefix=config.user_report_prefix),
    )
