"""FastAPI surface for the seismic monitor."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Annotated, Any

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse

from seismic_monitor import __version__
from seismic_monitor.config import SeismicMonitorConfig
from seismic_monitor.scheduler import IngestionScheduler
from seismic_monitor.service import ReportValidationError, Services, build_services
from seismic_monitor.store import DuplicateKeyError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncGenerator[None, None]:
    """Wire services, probe the database once and start background ingestion."""
    config: SeismicMonitorConfig = application.state.config
    services = await asyncio.to_thread(build_services, config)
    scheduler = IngestionScheduler(
        services.feed,
        services.selector,
        interval_seconds=config.ingest_interval_seconds,
        reconnect=config.reconnect_on_ingest,
    )
    application.state.services = services
    application.state.scheduler = scheduler
    application.state.start_time = datetime.now(tz=timezone.utc)
    if config.ingest_on_startup:
        scheduler.start()
    try:
        yield
    finally:
        await scheduler.stop()


def get_services(request: Request) -> Services:
    return request.app.state.services


ServicesDep = Annotated[Services, Depends(get_services)]


def create_app(config: SeismicMonitorConfig | None = None) -> FastAPI:
    application = FastAPI(
        title="Seismic Monitor API",
        description="Live earthquake feed ranked by risk to an observer location.",
        version=__version__,
        lifespan=lifespan,
    )
    application.state.config = config or SeismicMonitorConfig()

    @application.get("/health")
    async def health(request: Request, services: ServicesDep) -> dict[str, Any]:
        """Server health check with uptime and storage mode."""
        store = services.selector.active
        now = datetime.now(tz=timezone.utc)
        return {
            "status": "ok",
            "version": __version__,
            "uptime_seconds": round((now - request.app.state.start_time).total_seconds(), 1),
            "storage_mode": store.mode,
            "stored_events": await asyncio.to_thread(store.count),
        }

    @application.get("/api/quakes")
    async def list_quakes(
        services: ServicesDep,
        min_magnitude: Annotated[
            float | None,
            Query(alias="minMagnitude", description="Minimum magnitude."),
        ] = None,
        min_mag: Annotated[
            float | None,
            Query(alias="minMag", include_in_schema=False),
        ] = None,
        lat: Annotated[float | None, Query(description="Observer latitude.")] = None,
        lon: Annotated[float | None, Query(description="Observer longitude.")] = None,
    ) -> list[dict[str, Any]]:
        """Events ranked by risk to (lat, lon), then by recency."""
        if min_magnitude is None:
            min_magnitude = min_mag if min_mag is not None else 0.0
        ranked = await services.query.handle(min_magnitude, lat, lon)
        return [s.to_dict() for s in ranked]

    @application.post("/api/quakes", status_code=201)
    async def submit_quake(request: Request, services: ServicesDep) -> JSONResponse:
        """Store a user report: {mag, place?, depth, lat, lng, casualties?}."""
        try:
            report = await request.json()
        except ValueError:
            return JSONResponse(
                status_code=400, content={"success": False, "error": "Request body is not valid JSON"}
            )
        try:
            event = await services.query.submit(report)
        except ReportValidationError as exc:
            return JSONResponse(status_code=400, content={"success": False, "error": str(exc)})
        except DuplicateKeyError as exc:
            return JSONResponse(status_code=409, content={"success": False, "error": str(exc)})
        return JSONResponse(status_code=201, content={"success": True, "event": asdict(event)})

    @application.delete("/api/quakes/{external_id}")
    async def delete_quake(services: ServicesDep, external_id: str) -> dict[str, bool]:
        """Delete by id. Succeeds whether or not the id existed."""
        return {"success": await services.query.remove(external_id)}

    return application


app = create_app()
