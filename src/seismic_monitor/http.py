"""requests Session used by the earthquake feed client."""

from __future__ import annotations

from requests import Session
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from seismic_monitor import __version__

USER_AGENT = f"seismic-monitor/{__version__}"

FEED_ACCEPT = "application/geo+json, application/json"


def create_session(
    retries: int = 2,
    backoff_factor: float = 0.5,
    status_forcelist: tuple[int, ...] = (429, 500, 502, 503, 504),
) -> Session:
    """Session for polling the GeoJSON feed.

    Only GETs are retried, and a final bad status is returned rather than
    raised so ``FeedClient.fetch`` can log it and yield no events. A feed that
    stays down is picked up again by the next ingestion cycle.
    """
    retry = Retry(
        total=retries,
        backoff_factor=backoff_factor,
        status_forcelist=status_forcelist,
        allowed_methods=["GET"],
        raise_on_status=False,
    )
    session = Session()
    session.headers.update({"User-Agent": USER_AGENT, "Accept": FEED_ACCEPT})
    session.mount("https://", HTTPAdapter(max_retries=retry))
    session.mount("http://", HTTPAdapter(max_retries=retry))
    return session
