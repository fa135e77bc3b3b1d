"""USGS GeoJSON summary feed client."""

from __future__ import annotations

import logging
from typing import Any

from requests import RequestException, Session

from seismic_monitor.config import USGS_FEED_URL
from seismic_monitor.http import create_session
from seismic_monitor.models import SeismicEvent

logger = logging.getLogger(__name__)


def parse_feature(feature: dict[str, Any]) -> SeismicEvent:
    """Map one GeoJSON feature onto a SeismicEvent.

    Raises KeyError, IndexError, TypeError or ValueError on malformed input.
    """
    props = feature["properties"]
    lon, lat, depth = feature["geometry"]["coordinates"][:3]
    return SeismicEvent(
        external_id=str(feature["id"]),
        magnitude=float(props["mag"]),
        place=props.get("place"),
        occurred_at_ms=int(props["time"]),
        depth_km=float(depth),
        longitude=float(lon),
        latitude=float(lat),
    )


class FeedClient:
    """Fetches the live feed and normalizes it. Never raises to the caller."""

    def __init__(
        self,
        url: str = USGS_FEED_URL,
        timeout: int = 30,
        session: Session | None = None,
    ) -> None:
        self.url = url
        self.timeout = timeout
        self._session = session

    @property
    def session(self) -> Session:
        if self._session is None:
            self._session = create_session()
        return self._session

    def fetch(self) -> list[SeismicEvent]:
        """Return the current feed contents, or an empty list on any failure."""
        try:
            resp = self.session.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
            features = resp.json()["features"]
        except (RequestException, ValueError, KeyError, TypeError):
            logger.warning("Feed fetch failed for %s", self.url, exc_info=True)
            return []

        if not isinstance(features, list):
            logger.warning("Feed response has no feature list: %r", type(features))
            return []

        events: list[SeismicEvent] = []
        for feat in features:
            try:
                if feat["properties"].get("mag") is None:
                    continue
                events.append(parse_feature(feat))
            except (KeyError, IndexError, TypeError, ValueError, AttributeError):
                logger.warning("Skipping malformed feed feature %r", _feature_id(feat))
        logger.debug("Fetched %d events from %s", len(events), self.url)
        return events


def _feature_id(feat: Any) -> Any:
    return feat.get("id") if isinstance(feat, dict) else None
