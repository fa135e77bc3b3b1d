"""CLI interface using Typer."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from seismic_monitor import __version__
from seismic_monitor.config import SeismicMonitorConfig
from seismic_monitor.scheduler import IngestionScheduler
from seismic_monitor.service import build_services

app = typer.Typer(
    name="seismic-monitor",
    help="Live earthquake feed ranked by risk to an observer location.",
    add_completion=False,
)
console = Console()

_LEVEL_STYLE = {"High": "red", "Medium": "dark_orange", "Low": "green"}


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        handlers=[logging.StreamHandler()],
    )


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"seismic-monitor {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=_version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """Seismic Monitor: live quake feed with per-observer risk ranking."""


@app.command()
def serve(
    host: Annotated[str | None, typer.Option("--host", help="Bind address.")] = None,
    port: Annotated[int | None, typer.Option("--port", "-p", help="Bind port.")] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
) -> None:
    """Run the HTTP API with background ingestion."""
    import uvicorn

    from seismic_monitor.api import create_app

    _configure_logging(verbose)
    config = SeismicMonitorConfig()
    uvicorn.run(
        create_app(config),
        host=host or config.host,
        port=port or config.port,
        log_level="debug" if verbose else "info",
    )


@app.command()
def ingest(
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
) -> None:
    """Run a single ingestion cycle against the configured store."""
    _configure_logging(verbose)
    config = SeismicMonitorConfig()
    services = build_services(config)
    scheduler = IngestionScheduler(
        services.feed, services.selector, reconnect=config.reconnect_on_ingest
    )
    fetched = asyncio.run(scheduler.run_once())
    if not fetched:
        console.print("[yellow]No events fetched from the feed.[/yellow]")
        raise typer.Exit(code=1)
    console.print(
        f"Fetched [bold]{fetched}[/bold] events; "
        f"{services.selector.mode} store now holds {services.selector.active.count()}."
    )


@app.command()
def quakes(
    min_magnitude: Annotated[
        float,
        typer.Option("--min-magnitude", "-m", min=0.0, help="Minimum magnitude."),
    ] = 0.0,
    lat: Annotated[float | None, typer.Option("--lat", help="Observer latitude.")] = None,
    lon: Annotated[float | None, typer.Option("--lon", help="Observer longitude.")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", min=1, help="Rows to show.")] = 20,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable verbose logging.")] = False,
) -> None:
    """Print events ranked by risk to the observer location."""
    _configure_logging(verbose)
    services = build_services(SeismicMonitorConfig())
    ranked = asyncio.run(services.query.handle(min_magnitude, lat, lon))

    if not ranked:
        console.print("[yellow]No events match.[/yellow]")
        raise typer.Exit()

    table = Table(title=f"Seismic Events ({services.selector.mode} store)")
    table.add_column("Time (UTC)", style="dim")
    table.add_column("Mag", justify="right", style="bold")
    table.add_column("Place")
    table.add_column("Depth km", justify="right")
    table.add_column("Distance km", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Level")

    for s in ranked[:limit]:
        ev, risk = s.event, s.risk
        when = datetime.fromtimestamp(ev.occurred_at_ms / 1000, tz=timezone.utc)
        style = _LEVEL_STYLE.get(risk.level)
        table.add_row(
            when.strftime("%Y-%m-%d %H:%M"),
            f"{ev.magnitude:.1f}",
            (ev.place or "-") + (" [cyan](user)[/cyan]" if ev.is_user_reported else ""),
            f"{ev.depth_km:.1f}",
            f"{risk.distance_km:.0f}" if risk.level != "N/A" else "-",
            str(risk.score),
            f"[{style}]{risk.level}[/{style}]" if style else risk.level,
        )

    console.print(table)
    console.print(f"Showing {min(limit, len(ranked))} of {len(ranked)} events")
