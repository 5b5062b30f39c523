"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Annotated

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from ..adapters.http_store import HttpReservationStore
from ..adapters.memory_store import InMemoryProviderDirectory, InMemoryReservationStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import BookingSlotsError
from ..domain.models import DateRange, ProposedInterval
from ..domain.schedule import WEEKDAY_NAMES, parse_time_of_day
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="bookingslots",
    help="Find open appointment slots and check bookings for astrologers and priests",
    add_completion=False
)

console = Console()

logger = logging.getLogger(__name__)

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
MockOption = Annotated[
    bool,
    typer.Option("--mock", help="Use bundled sample reservations instead of the booking API."),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")]


def _configure_logging(config: AppConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.log_level)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(config_file: Optional[Path], verbose: bool) -> AppConfig:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _configure_logging(config, verbose)
    return config


def _build_service(config: AppConfig, mock: bool) -> AvailabilityService:
    """
    Wire the service with the configured reservation store.

    Falls back to the sample data when no booking API is configured.
    """
    directory = InMemoryProviderDirectory(config.build_profiles())

    if not mock and config.store.base_url:
        store = HttpReservationStore(
            base_url=config.store.base_url,
            api_token=config.store.api_token,
            timeout=config.store.timeout_seconds,
            timezone=config.timezone,
        )
    else:
        if not mock:
            logger.info("No booking API configured, using local reservation data")
        store = InMemoryReservationStore.from_json_file(
            config.store.fixture_path,
            timezone=config.timezone,
        )

    return AvailabilityService(reservation_store=store, provider_directory=directory)


def _parse_date(value: str, tz: str, label: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD", tz=tz).date()
    except ValueError as e:
        console.print(f"[red]Could not parse {label}: {e}[/red]")
        raise typer.Exit(1)


@app.command()
def slots(
    provider: Annotated[str, typer.Argument(help="Provider id, e.g. 'pandit-sharma'")],
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD), defaults to today")] = None,
    end: Annotated[Optional[str], typer.Option("--end", help="Last date (YYYY-MM-DD), defaults to the lookahead")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Slot length in minutes")] = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    List open slots for a provider.

    Examples:

        bookingslots slots pandit-sharma
        bookingslots slots acharya-iyer --start 2025-03-03 --end 2025-03-07 -d 60
        bookingslots slots pandit-sharma --mock
    """
    try:
        config = _load_config(config_file, verbose)
        provider_config = config.find_provider(provider)
        if provider_config is None:
            console.print(f"[bold red]Error:[/bold red] Unknown provider: '{provider}'")
            raise typer.Exit(1)

        tz = provider_config.timezone or config.timezone
        first_day = _parse_date(start, tz, "start date") if start else pendulum.today(tz).date()
        if end:
            date_range = DateRange(start=first_day, end=_parse_date(end, tz, "end date"))
        else:
            date_range = DateRange.lookahead(first_day, config.defaults.lookahead_days)

        if mock:
            console.print("[yellow]⚠  MOCK MODE: using sample reservations[/yellow]\n")

        service = _build_service(config, mock)
        found = asyncio.run(
            service.available_slots(
                provider_id=provider_config.id,
                date_range=date_range,
                duration_minutes=duration,
            )
        )

        console.print(
            f"[bold cyan]{provider_config.name}[/bold cyan] "
            f"({provider_config.kind.value}) | {date_range.start.format('DD.MM.YYYY')} - "
            f"{date_range.end.format('DD.MM.YYYY')} | {tz}\n"
        )
        if not found:
            console.print(
                "[yellow]⚠ No open slots found.[/yellow]\n"
                "Try a longer date range or a shorter duration."
            )
        else:
            console.print(f"[bold green]✓ {len(found)} open slot(s):[/bold green]\n")
            for slot in found:
                console.print(f"  {slot.format_display()}")
        console.print()

    except (FileNotFoundError, ValueError, BookingSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def check(
    provider: Annotated[str, typer.Argument(help="Provider id")],
    on: Annotated[str, typer.Option("--date", help="Date (YYYY-MM-DD)")],
    start: Annotated[str, typer.Option("--start", help="Start time (HH:MM)")],
    end: Annotated[str, typer.Option("--end", help="End time (HH:MM)")],
    exclude: Annotated[Optional[str], typer.Option("--exclude", help="Reservation id being edited")] = None,
    config_file: ConfigOption = None,
    mock: MockOption = False,
    verbose: VerboseOption = False,
):
    """
    Check whether a time span can be booked.
    """
    try:
        config = _load_config(config_file, verbose)
        provider_config = config.find_provider(provider)
        if provider_config is None:
            console.print(f"[bold red]Error:[/bold red] Unknown provider: '{provider}'")
            raise typer.Exit(1)

        tz = provider_config.timezone or config.timezone
        day = _parse_date(on, tz, "date")
        start_minute = parse_time_of_day(start)
        end_minute = parse_time_of_day(end)
        proposed = ProposedInterval(
            provider_id=provider_config.id,
            start=pendulum.datetime(day.year, day.month, day.day, start_minute // 60, start_minute % 60, tz=tz),
            end=pendulum.datetime(day.year, day.month, day.day, end_minute // 60, end_minute % 60, tz=tz),
            exclude_reservation_id=exclude,
        )

        service = _build_service(config, mock)
        result = asyncio.run(service.check_bookable(proposed))

        if result.bookable:
            console.print(f"\n[bold green]✓ {proposed.time_range} is bookable[/bold green]\n")
        else:
            console.print(
                f"\n[bold yellow]✗ {proposed.time_range} is not bookable:[/bold yellow] "
                f"{result.reason.value}"
            )
            for conflict in result.conflicts:
                console.print(f"  [dim]conflicts with {conflict.id} ({conflict.time_range})[/dim]")
            console.print()
            raise typer.Exit(2)

    except (FileNotFoundError, ValueError, BookingSlotsError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def list_providers(
    config_file: ConfigOption = None,
):
    """
    List all configured providers and their working hours.
    """
    try:
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)

        if not config.providers:
            console.print("[yellow]No providers defined in the config file.[/yellow]")
            return

        table = Table(
            title="Configured providers",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Kind")
        table.add_column("Bookable")
        table.add_column("Working days", style="dim")

        for profile in config.build_profiles():
            open_days = [
                f"{name[:3].title()} {', '.join(str(w) for w in day.windows)}"
                for name, day in zip(WEEKDAY_NAMES, profile.schedule.days)
                if day.available and day.windows
            ]
            table.add_row(
                profile.id,
                profile.name,
                profile.kind.value,
                "yes" if profile.is_bookable() else "no",
                "\n".join(open_days) or "-",
            )

        console.print()
        console.print(table)
        console.print()

    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]bookingslots[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
