"""
Main CLI application using Typer.
"""

import asyncio
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from rich.console import Console
from rich.table import Table

from ..adapters.clock import FixedClock, SystemClock
from ..adapters.json_store import JsonBookingStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import SlotBookerError
from ..services.booking_service import BookingService

app = typer.Typer(
    name="slotbooker",
    help="Find bookable appointment slots and assign staff to bookings",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


def _load_config(config_file: Optional[Path]) -> AppConfig:
    config_path = config_file or get_default_config_path()
    return AppConfig.load_from_yaml(config_path)


def _build_service(config: AppConfig, now: Optional[str] = None) -> BookingService:
    store = JsonBookingStore(path=config.data_file, timezone=config.timezone)

    if now:
        clock = FixedClock(_parse_instant(now, config.timezone))
    else:
        clock = SystemClock(timezone=config.timezone)

    return BookingService(
        store=store,
        clock=clock,
        slot_calculator=config.build_slot_calculator(),
    )


def _parse_instant(value: str, tz: str) -> pendulum.DateTime:
    try:
        parsed = pendulum.parse(value, tz=tz)
    except ValueError as e:
        raise typer.BadParameter(f"Invalid date/time '{value}': {e}")

    if not isinstance(parsed, pendulum.DateTime):
        raise typer.BadParameter(f"Expected a date and time, got '{value}'")
    return parsed


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {message}")
    raise typer.Exit(1)


@app.command()
def slots(
    date: Annotated[str, typer.Argument(help="Day to search (YYYY-MM-DD)")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    resource: Annotated[Optional[str], typer.Option("--resource", "-r", help="Only consider this resource id")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Pretend the current time is this ISO timestamp")] = None,
    config_file: ConfigOption = None,
):
    """
    List the start times at which some resource can take a booking.

    Examples:

        slotbooker slots 2024-11-25

        slotbooker slots 2024-11-25 --duration 45 --resource ana
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    try:
        day = pendulum.from_format(date, "YYYY-MM-DD", tz=config.timezone).date()
    except ValueError as e:
        _fail(f"Could not parse date '{date}': {e}")

    minutes = duration if duration is not None else config.scheduling.default_service_minutes
    service = _build_service(config, now)

    found = asyncio.run(service.generate_slots(day, minutes, resource_id=resource))

    console.print()
    if not found:
        console.print(
            f"[yellow]⚠ No free slots on {day.format('DD.MM.YYYY')} "
            f"for a {minutes} minute service.[/yellow]"
        )
    else:
        console.print(
            f"[bold green]✓ {len(found)} slot(s) on {day.format('DD.MM.YYYY')} "
            f"({minutes} min):[/bold green]\n"
        )
        console.print("  " + "  ".join(found))
    console.print()


@app.command()
def check(
    resource: Annotated[str, typer.Argument(help="Resource id")],
    start: Annotated[str, typer.Argument(help="Start time, e.g. '2024-11-25 10:00'")],
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Service duration in minutes")] = None,
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Booking id to ignore (when moving a booking)")] = None,
    config_file: ConfigOption = None,
):
    """
    Check whether a resource is free at a given time.
    """
    try:
        config = _load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        _fail(str(e))

    start_at = _parse_instant(start, config.timezone)
    minutes = duration if duration is not None else config.scheduling.default_service_minutes
    service = _build_service(config)

    free = asyncio.run(
        service.is_available(resource, start_at, minutes, exclude_booking_id=exclude)
    )

    when = start_at.in_timezone(config.timezone).format("DD.MM.YYYY HH:mm")
    if free:
        console.print(f"[green]✓ {resource} is available at {when} ({minutes} min)[/green]")
    else:
        console.print(f"[yellow]✗ {resource} is not available at {when} ({minutes} min)[/yellow]")
        raise typer.Exit(2)


@app.command()
def assign(
    booking: Annotated[str, typer.Argument(help="Id of the pending booking")],
    config_file: ConfigOption = None,
):
    """
    Assign the least busy available resource to a pending booking.
    """
    try:
        config = _load_config(config_file)
        service = _build_service(config)
        chosen = asyncio.run(service.assign_resource(booking))
    except (FileNotFoundError, ValueError, SlotBookerError) as e:
        _fail(str(e))

    if chosen is None:
        console.print(
            f"[yellow]⚠ Booking {booking} was not assigned "
            "(unknown, already assigned, or nobody is free).[/yellow]"
        )
        raise typer.Exit(2)

    console.print(f"[green]✓ Booking {booking} assigned to {chosen.display_name()}[/green]")


@app.command()
def resources(config_file: ConfigOption = None):
    """
    List all resources with their working hours.
    """
    try:
        config = _load_config(config_file)
        store = JsonBookingStore(path=config.data_file, timezone=config.timezone)
        items = asyncio.run(store.list_resources())
    except (FileNotFoundError, ValueError, SlotBookerError) as e:
        _fail(str(e))

    if not items:
        console.print("[yellow]No resources defined in the data file.[/yellow]")
        return

    table = Table(
        title="Resources",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Name")
    table.add_column("Active")
    table.add_column("Working hours", style="dim")

    for item in items:
        hours = item.working_hours
        window = (
            f"{hours.start_time.strftime('%H:%M')} - {hours.end_time.strftime('%H:%M')}"
            if hours else "-"
        )
        table.add_row(item.id, item.name, "yes" if item.active else "no", window)

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbooker[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
