"""Shared fixtures for seismic_monitor tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from seismic_monitor.config import SeismicMonitorConfig
from seismic_monitor.fallback import FallbackCache
from seismic_monitor.fetchers.feed import FeedClient
from seismic_monitor.models import SeismicEvent
from seismic_monitor.store import SqlEventStore

FIXTURES_DIR = Path(__file__).parent / "fixtures"

FEED_URL = "https://feed.test/summary/2.5_day.geojson"


@pytest.fixture
def sample_feed_response() -> dict:
    return json.loads((FIXTURES_DIR / "feed_sample.json").read_text())


@pytest.fixture
def feed_client() -> FeedClient:
    return FeedClient(url=FEED_URL, timeout=5)


@pytest.fixture
def sample_events() -> list[SeismicEvent]:
    """Pre-built events for unit tests."""
    return [
        SeismicEvent(
            external_id="us2025abc1",
            magnitude=5.2,
            place="Near coast of Japan",
            occurred_at_ms=1700000000000,
            depth_km=30.0,
            longitude=141.5,
            latitude=38.3,
        ),
        SeismicEvent(
            external_id="us2025abc2",
            magnitude=4.8,
            place="Central Japan",
            occurred_at_ms=1700100000000,
            depth_km=45.0,
            longitude=139.8,
            latitude=36.1,
        ),
        SeismicEvent(
            external_id="us2025abc3",
            magnitude=3.1,
            place=None,
            occurred_at_ms=1700200000000,
            depth_km=10.0,
            longitude=-117.7,
            latitude=35.7,
        ),
    ]


@pytest.fixture
def user_event() -> SeismicEvent:
    return SeismicEvent(
        external_id="user-1700300000000",
        magnitude=5.0,
        place="Test",
        occurred_at_ms=1700300000000,
        depth_km=10.0,
        longitude=20.0,
        latitude=10.0,
        casualties=2,
        is_user_reported=True,
    )


@pytest.fixture
def sqlite_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'events.db'}"


@pytest.fixture
def unreachable_url(tmp_path: Path) -> str:
    return f"sqlite:///{tmp_path / 'missing' / 'dir' / 'events.db'}"


@pytest.fixture
def durable_store(sqlite_url: str) -> SqlEventStore:
    store = SqlEventStore(sqlite_url)
    assert store.connect()
    return store


@pytest.fixture
def fallback_cache(feed_client: FeedClient) -> FallbackCache:
    return FallbackCache(feed_client)


@pytest.fixture
def durable_config(sqlite_url: str) -> SeismicMonitorConfig:
    return SeismicMonitorConfig(
        feed_url=FEED_URL, database_url=sqlite_url, ingest_on_startup=False
    )


@pytest.fixture
def fallback_config(unreachable_url: str) -> SeismicMonitorConfig:
    return SeismicMonitorConfig(
        feed_url=FEED_URL, database_url=unreachable_url, ingest_on_startup=False
    )
