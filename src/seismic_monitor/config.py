"""Configuration model for the seismic monitor service."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings

USGS_FEED_URL = "https://earthquake.usgs.gov/earthquakes/feed/v1.0/summary/2.5_day.geojson"


class SeismicMonitorConfig(BaseSettings):
    """All configurable parameters for the seismic monitor.

    Values can be set via constructor arguments, environment variables
    prefixed with SEISMIC_MONITOR_, or defaults.
    """

    model_config = {"env_prefix": "SEISMIC_MONITOR_"}

    feed_url: str = Field(
        default=USGS_FEED_URL, description="GeoJSON feature feed to ingest."
    )
    request_timeout: int = Field(
        default=30, ge=1, le=300, description="HTTP request timeout in seconds."
    )
    database_url: str = Field(
        default="sqlite:///seismic_monitor.db",
        description="SQLAlchemy URL of the durable store. Empty disables it.",
    )
    ingest_interval_seconds: int = Field(
        default=300, ge=1, description="Seconds between ingestion cycles."
    )
    ingest_on_startup: bool = Field(
        default=True, description="Start the ingestion scheduler with the API."
    )
    reconnect_on_ingest: bool = Field(
        default=True,
        description="Re-probe the durable store on each ingestion cycle while in fallback mode.",
    )
    dedupe_fallback_merge: bool = Field(
        default=False,
        description="Drop feed events whose id is already held by the fallback cache.",
    )
    user_report_prefix: str = Field(
        default="user-", min_length=1, description="Prefix of synthesized report ids."
    )
    host: str = Field(default="127.0.0.1", description="Bind address for `serve`.")
    port: int = Field(default=3000, ge=1, le=65535, description="Bind port for `serve`.")
