"""
Main CLI application using Typer.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Annotated, Dict, List, Optional

import pendulum
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.event_publisher import LoggingEventPublisher
from ..adapters.in_memory import InMemoryCatalog
from ..adapters.json_store import JsonBookingRepository
from ..config import AppConfig, get_default_config_path
from ..domain.booking import Booking
from ..domain.event_type import describe_location
from ..domain.exceptions import SchedulingError
from ..domain.models import Invitee
from ..services.booking_service import BookingResult, BookingService

app = typer.Typer(
    name="slotkeeper",
    help="List bookable slots and manage bookings against a host's availability",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]


@dataclass
class _Context:
    config: AppConfig
    catalog: InMemoryCatalog
    repository: JsonBookingRepository
    service: BookingService

    def timezone_for(self, event_type_id: str) -> str:
        event_type = self.catalog.get_event_type(event_type_id)
        return self.catalog.get_schedule(event_type.schedule_id).timezone


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _load_context(config_file: Optional[Path]) -> _Context:
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    _configure_logging(config.log_level)

    catalog = config.build_catalog()
    repository = JsonBookingRepository(config.bookings_file)
    service = BookingService(
        catalog=catalog,
        repository=repository,
        publisher=LoggingEventPublisher(),
        lifecycle=config.build_lifecycle(),
    )
    return _Context(config=config, catalog=catalog, repository=repository, service=service)


@contextmanager
def _cli_errors():
    """Turn domain and configuration errors into a message and exit code 1."""
    try:
        yield
    except SchedulingError as e:
        console.print(f"[bold red]{e.kind}:[/bold red] {e}")
        raise typer.Exit(1)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


def _parse_date(value: str) -> date:
    try:
        return pendulum.from_format(value, "YYYY-MM-DD").date()
    except ValueError as e:
        raise ValueError(f"Could not parse date '{value}' (expected YYYY-MM-DD): {e}") from e


def _parse_start(value: str, tz: str):
    try:
        return pendulum.from_format(value, "YYYY-MM-DD HH:mm", tz=tz)
    except ValueError as e:
        raise ValueError(f"Could not parse start '{value}' (expected 'YYYY-MM-DD HH:mm'): {e}") from e


def _parse_answers(answers: List[str]) -> Dict[str, str]:
    responses: Dict[str, str] = {}
    for item in answers:
        key, sep, value = item.partition("=")
        if not sep or not key.strip():
            raise ValueError(f"Answers must look like question_id=value, got '{item}'")
        responses[key.strip()] = value.strip()
    return responses


def _print_result(result: BookingResult, tz: str, headline: str) -> None:
    booking = result.booking
    local = booking.slot.in_timezone(tz)
    lines = [
        f"[bold green]✓ {headline}[/bold green]\n",
        f"[bold]Booking:[/bold] {booking.id}",
        f"[bold]Status:[/bold] {booking.status.value}",
        f"[bold]When:[/bold] {local} ({tz})",
        f"[bold]Invitee:[/bold] {booking.invitee.name} <{booking.invitee.email}>",
    ]
    if booking.meeting_url:
        lines.append(f"[bold]Meeting URL:[/bold] {booking.meeting_url}")
    if result.events:
        lines.append(f"[bold]Events:[/bold] {', '.join(type(e).__name__ for e in result.events)}")
    console.print(Panel.fit("\n".join(lines), title=booking.event_type_id))


@app.command()
def slots(
    event_type: Annotated[str, typer.Argument(help="Event type id")],
    config_file: ConfigOption = None,
    start: Annotated[Optional[str], typer.Option("--start", help="First date (YYYY-MM-DD), defaults to today")] = None,
    days: Annotated[int, typer.Option("--days", "-n", help="Number of days to list")] = 7,
):
    """
    List bookable slots for an event type.

    Examples:

        slotkeeper slots intro-call
        slotkeeper slots intro-call --start 2025-03-03 --days 5
    """
    with _cli_errors():
        ctx = _load_context(config_file)
        tz = ctx.timezone_for(event_type)

        if days < 1:
            raise ValueError("--days must be at least 1")
        start_date = _parse_date(start) if start else pendulum.now(tz).date()
        end_date = start_date.add(days=days - 1)

        found = ctx.service.list_available_slots(event_type, start_date, end_date)

        console.print()
        if not found:
            console.print(
                "[yellow]⚠ No bookable slots found.[/yellow]\n"
                "Try a longer period or check the schedule's overrides."
            )
            return

        table = Table(
            title=f"{event_type}: {start_date} – {end_date} ({tz})",
            show_header=True,
            header_style="bold cyan"
        )
        table.add_column("Date", style="bold yellow")
        table.add_column("Slots")

        by_day: Dict[str, List[str]] = {}
        for slot in found:
            local = slot.in_timezone(tz)
            by_day.setdefault(local.start.format("ddd DD.MM.YYYY"), []).append(local.start.format("HH:mm"))

        for day, times in by_day.items():
            table.add_row(day, "  ".join(times))

        console.print(table)
        console.print(f"\n[bold green]{len(found)} slot(s)[/bold green]\n")


@app.command()
def book(
    event_type: Annotated[str, typer.Argument(help="Event type id")],
    start: Annotated[str, typer.Argument(help="Start in the schedule's timezone, 'YYYY-MM-DD HH:mm'")],
    name: Annotated[str, typer.Option("--name", help="Invitee name")],
    email: Annotated[str, typer.Option("--email", help="Invitee email")],
    phone: Annotated[Optional[str], typer.Option("--phone", help="Invitee phone")] = None,
    notes: Annotated[Optional[str], typer.Option("--notes", help="Notes for the host")] = None,
    answer: Annotated[Optional[List[str]], typer.Option("--answer", "-a", help="Answer as question_id=value")] = None,
    config_file: ConfigOption = None,
):
    """
    Book a slot.

    Example:

        slotkeeper book intro-call "2025-03-03 09:30" --name "Ada" --email ada@example.com
    """
    with _cli_errors():
        ctx = _load_context(config_file)
        tz = ctx.timezone_for(event_type)
        result = ctx.service.book(
            event_type,
            Invitee(name=name, email=email, phone=phone),
            _parse_start(start, tz),
            notes=notes,
            responses=_parse_answers(answer or []),
        )
        _print_result(result, tz, "Booking created")


@app.command()
def reschedule(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    start: Annotated[str, typer.Argument(help="New start in the schedule's timezone, 'YYYY-MM-DD HH:mm'")],
    config_file: ConfigOption = None,
):
    """Move a confirmed booking to a new start time."""
    with _cli_errors():
        ctx = _load_context(config_file)
        tz = ctx.timezone_for(ctx.repository.get(booking_id).event_type_id)
        result = ctx.service.reschedule(booking_id, _parse_start(start, tz))
        _print_result(result, tz, "Booking rescheduled")


@app.command()
def cancel(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    reason: Annotated[str, typer.Option("--reason", "-r", help="Cancellation reason")] = "",
    config_file: ConfigOption = None,
):
    """Cancel a booking."""
    with _cli_errors():
        ctx = _load_context(config_file)
        result = ctx.service.cancel(booking_id, reason)
        _print_result(result, ctx.timezone_for(result.booking.event_type_id), "Booking cancelled")


@app.command()
def confirm(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """Confirm a pending booking."""
    with _cli_errors():
        ctx = _load_context(config_file)
        result = ctx.service.confirm(booking_id)
        _print_result(result, ctx.timezone_for(result.booking.event_type_id), "Booking confirmed")


@app.command()
def complete(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """Mark a booking as completed."""
    with _cli_errors():
        ctx = _load_context(config_file)
        result = ctx.service.complete(booking_id)
        _print_result(result, ctx.timezone_for(result.booking.event_type_id), "Booking completed")


@app.command("no-show")
def no_show(
    booking_id: Annotated[str, typer.Argument(help="Booking id")],
    config_file: ConfigOption = None,
):
    """Mark a booking as a no-show."""
    with _cli_errors():
        ctx = _load_context(config_file)
        result = ctx.service.mark_no_show(booking_id)
        _print_result(result, ctx.timezone_for(result.booking.event_type_id), "Booking marked as no-show")


@app.command()
def remind(config_file: ConfigOption = None):
    """Record reminders that have come due."""
    with _cli_errors():
        ctx = _load_context(config_file)
        results = ctx.service.send_due_reminders()
        if not results:
            console.print("[yellow]No reminders due.[/yellow]")
            return
        for result in results:
            console.print(f"  ✓ Reminder for {result.booking.id} ({result.booking.invitee.email})")


@app.command()
def bookings(
    config_file: ConfigOption = None,
    show_all: Annotated[bool, typer.Option("--all", help="Include cancelled bookings")] = False,
):
    """List bookings."""
    with _cli_errors():
        ctx = _load_context(config_file)
        rows: List[Booking] = [b for b in ctx.repository.list_all() if show_all or b.is_active()]

        if not rows:
            console.print("[yellow]No bookings.[/yellow]")
            return

        table = Table(title="Bookings", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="dim")
        table.add_column("Event type", style="bold yellow")
        table.add_column("When")
        table.add_column("Invitee")
        table.add_column("Status")

        for booking in rows:
            tz = ctx.timezone_for(booking.event_type_id)
            table.add_row(
                booking.id,
                booking.event_type_id,
                f"{booking.slot.in_timezone(tz)} ({tz})",
                booking.invitee.email,
                booking.status.value,
            )

        console.print()
        console.print(table)
        console.print()


@app.command("event-types")
def event_types(config_file: ConfigOption = None):
    """List configured event types."""
    with _cli_errors():
        ctx = _load_context(config_file)
        items = ctx.catalog.list_event_types()

        if not items:
            console.print("[yellow]No event types defined in the config file.[/yellow]")
            return

        table = Table(title="Event types", show_header=True, header_style="bold cyan")
        table.add_column("Id", style="bold yellow")
        table.add_column("Name")
        table.add_column("Duration")
        table.add_column("Buffers")
        table.add_column("Location", style="dim")
        table.add_column("Active")

        for item in items:
            table.add_row(
                item.id,
                item.name,
                f"{item.duration_minutes} min",
                f"{item.buffer_before_minutes}/{item.buffer_after_minutes} min",
                describe_location(item.location),
                "yes" if item.is_active else "no",
            )

        console.print()
        console.print(table)
        console.print()


@app.command()
def validate(config_file: ConfigOption = None):
    """Validate the configuration file."""
    with _cli_errors():
        config_path = config_file or get_default_config_path()
        config = AppConfig.load_from_yaml(config_path)
        console.print(Panel.fit(
            f"[bold green]✓ Configuration is valid[/bold green]\n\n"
            f"[bold]Schedules:[/bold] {len(config.schedules)}\n"
            f"[bold]Event types:[/bold] {len(config.event_types)}\n"
            f"[bold]Buffer scope:[/bold] {config.buffer_scope.value}\n"
            f"[bold]Bookings file:[/bold] {config.bookings_file}",
            title=str(config_path)
        ))


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotkeeper[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
