"""Command-line entry points for the alert monitoring engine."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence

import click
from rich.console import Console
from rich.table import Table

from . import __version__
from .alerts import Alert, new_alerts
from .engine import AlertEngine
from .logging_utils import configure_logging
from .scheduler import AlertScheduler, parse_location_key
from .settings import get_settings
from .severity import severity_rank

LOGGER = logging.getLogger(__name__)
CONSOLE = Console()

_SEVERITY_STYLE = {"warning": "bold red", "watch": "yellow", "advisory": "cyan"}


def render_alerts(alerts: Sequence[Alert], title: str) -> Table:
    table = Table(title=title)
    table.add_column("Severity")
    table.add_column("Event")
    table.add_column("Headline")
    table.add_column("Effective")
    table.add_column("Expires")

    for alert in sorted(alerts, key=lambda item: severity_rank(item.severity)):
        style = _SEVERITY_STYLE.get(alert.severity.value, "")
        table.add_row(
            f"[{style}]{alert.severity.value}[/{style}]" if style else alert.severity.value,
            alert.event,
            alert.headline,
            alert.start_time.isoformat(),
            alert.end_time.isoformat(),
        )
    return table


def _engine() -> AlertEngine:
    try:
        settings = get_settings()
    except ValueError as exc:
        raise SystemExit(f"Invalid configuration: {exc}") from exc
    return AlertEngine.from_settings(settings)


@click.group()
@click.version_option(__version__, prog_name="stormwatch")
@click.option("--verbose", is_flag=True, help="Log at DEBUG level.")
def main(verbose: bool) -> None:
    """Poll severe-weather alerts for geographic points."""
    configure_logging(logging.DEBUG if verbose else logging.INFO)


@main.command()
@click.option("--lat", type=float, required=True)
@click.option("--lon", type=float, required=True)
@click.option("--location-id", type=str, default=None, help="Defaults to 'lat,lon'.")
def fetch(lat: float, lon: float, location_id: str | None) -> None:
    """Fetch the active alerts for one point."""
    engine = _engine()
    alerts = asyncio.run(engine.fetch_active(lat, lon, location_id or f"{lat},{lon}"))
    if not alerts:
        CONSOLE.print("No active alerts")
        return
    CONSOLE.print(render_alerts(alerts, f"Active alerts for {lat},{lon}"))


@main.command()
@click.option("--lat", type=float, required=True)
@click.option("--lon", type=float, required=True)
@click.option("--location-id", type=str, default=None, help="Defaults to 'lat,lon'.")
def history(lat: float, lon: float, location_id: str | None) -> None:
    """Fetch a point, then show what the retention window holds for it."""
    engine = _engine()
    location_id = location_id or f"{lat},{lon}"
    asyncio.run(engine.fetch_active(lat, lon, location_id))
    CONSOLE.print(
        render_alerts(engine.get_historical(location_id), f"History for {location_id}")
    )


@main.command()
def health() -> None:
    """Check the upstream feed and print an engine health snapshot."""
    engine = _engine()
    snapshot = asyncio.run(engine.health())
    CONSOLE.print_json(json.dumps(snapshot))
    if snapshot["status"] != "healthy":
        raise SystemExit(1)


@main.command()
@click.option(
    "--key",
    "keys",
    multiple=True,
    help="Location key 'lat,lon'; repeatable. Defaults to ALERT_SUBSCRIPTIONS.",
)
@click.option("--once", is_flag=True, help="Run a single check then exit.")
def watch(keys: tuple[str, ...], once: bool) -> None:
    """Register locations and check them on the configured interval."""
    engine = _engine()
    settings = get_settings()
    selected = list(keys) or settings.subscription_keys
    if not selected:
        raise SystemExit("Pass --key or configure ALERT_SUBSCRIPTIONS before watching")

    for key in selected:
        if parse_location_key(key) is None:
            LOGGER.warning("Location key %s is not 'lat,lon'; it will be skipped", key)
        engine.register_callback(key, _console_notifier(key))

    scheduler = AlertScheduler(engine, interval_seconds=settings.scheduler_interval_seconds)

    async def runner() -> None:
        if once:
            report = await scheduler.run_once()
            CONSOLE.print(report.summary())
        else:
            await scheduler.run_forever()

    asyncio.run(runner())


def _console_notifier(key: str):
    seen: set[str] = set()

    def notify(alerts: list[Alert]) -> None:
        fresh = new_alerts(seen, alerts)
        seen.clear()
        seen.update(alert.id for alert in alerts)
        if fresh:
            CONSOLE.print(render_alerts(fresh, f"New alerts for {key}"))
        else:
            LOGGER.info("No new alerts for %s (%s active)", key, len(alerts))

    return notify


if __name__ == "__main__":  # pragma: no cover
    main()
