"""
Main CLI application using Typer.
"""

import asyncio
import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import pendulum
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_calendar_client import JsonCalendarClient
from ..adapters.static_calendar_client import StaticCalendarClient
from ..config import AppConfig, load_config
from ..domain.exceptions import SlotProposerError
from ..domain.intent_composer import compose
from ..domain.models import coerce_instant
from ..services.availability import AvailabilityService

app = typer.Typer(
    name="slotproposer",
    help="Propose meeting slots for an email, given a busy calendar",
    add_completion=False
)

console = Console()
err_console = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def _read_email(email_file: Optional[Path], text: Optional[str]) -> str:
    """Email text from --text, a file, or stdin ("-" or nothing given)."""
    if text is not None:
        return text
    if email_file is not None and str(email_file) != "-":
        return email_file.read_text(encoding="utf-8")
    return typer.get_text_stream("stdin").read()


def _parse_now(now: Optional[str], tz: str):
    reference = coerce_instant(now if now is not None else pendulum.now("UTC"), tz)
    if reference is None:
        err_console.print(f"[red]Could not resolve the reference time '{now or 'now'}' in {tz}[/red]")
        raise typer.Exit(1)
    return reference


def _load(config_file: Optional[Path]) -> AppConfig:
    try:
        return load_config(config_file)
    except (FileNotFoundError, ValueError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)


@app.command()
def propose(
    email_file: Annotated[Optional[Path], typer.Argument(help="File with the email body. Reads stdin when omitted or '-'.")] = None,
    text: Annotated[Optional[str], typer.Option("--text", "-t", help="Email body given inline.")] = None,
    busy_file: Annotated[Optional[Path], typer.Option("--busy", "-b", help="JSON file with busy intervals.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    timezone: Annotated[Optional[str], typer.Option("--timezone", "--tz", help="IANA time zone of the calendar owner")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Pin the reference instant (ISO-8601)")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the result as JSON.")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Enable debug logging.")] = False,
):
    """
    Propose up to three meeting slots for an email.

    Examples:

        slotproposer propose mail.txt --busy busy.json --duration 45

        echo "Can we meet tomorrow morning?" | slotproposer propose --tz Europe/Berlin
    """
    _configure_logging(verbose)
    config = _load(config_file)
    tz = timezone or config.timezone
    reference = _parse_now(now, tz)

    try:
        email_body = _read_email(email_file, text)

        busy_path = busy_file or config.busy_file
        client = JsonCalendarClient(busy_path) if busy_path else StaticCalendarClient()

        service = AvailabilityService(
            client,
            search_days=config.search_days,
            workday_start_hour=config.defaults.start_hour,
            workday_end_hour=config.defaults.end_hour,
        )
        result = asyncio.run(
            service.propose(
                email_body=email_body,
                duration_minutes=duration if duration is not None else config.defaults.duration_minutes,
                time_zone=tz,
                now=reference,
            )
        )
    except (SlotProposerError, ValidationError, OSError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(result.to_dict(), indent=2, ensure_ascii=False))
        return

    console.print(f"\n[bold cyan]{result.summary}[/bold cyan]\n")

    if result.proposed_slots:
        table = Table(show_header=True, header_style="bold cyan")
        table.add_column("#", style="dim")
        table.add_column("Slot", style="bold yellow")
        table.add_column("Duration", justify="right")
        for idx, slot in enumerate(result.proposed_slots, 1):
            table.add_row(
                str(idx),
                slot.label,
                f"{slot.duration_minutes()} min",
            )
        console.print(table)

    console.print(Panel(result.reply_draft, title="Reply draft"))


@app.command()
def parse(
    email_file: Annotated[Optional[Path], typer.Argument(help="File with the email body. Reads stdin when omitted or '-'.")] = None,
    text: Annotated[Optional[str], typer.Option("--text", "-t", help="Email body given inline.")] = None,
    duration: Annotated[Optional[int], typer.Option("--duration", "-d", help="Meeting duration in minutes")] = None,
    timezone: Annotated[Optional[str], typer.Option("--timezone", "--tz", help="IANA time zone")] = None,
    now: Annotated[Optional[str], typer.Option("--now", help="Pin the reference instant (ISO-8601)")] = None,
    config_file: Annotated[Optional[Path], typer.Option("--config", "-c", help="Path to config file")] = None,
):
    """
    Show the scheduling request extracted from an email.
    """
    config = _load(config_file)
    tz = timezone or config.timezone
    reference = _parse_now(now, tz)

    try:
        request = compose(
            _read_email(email_file, text),
            duration if duration is not None else config.defaults.duration_minutes,
            tz,
            reference=reference,
        )
    except (SlotProposerError, OSError) as e:
        err_console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    typer.echo(json.dumps(request.to_dict(), indent=2))


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotproposer[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
