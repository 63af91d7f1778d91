"""dappstore CLI — register, rate and inspect dApp listings."""

from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import click
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from dappstore import __version__
from dappstore.config import load_settings
from dappstore.logging_setup import setup_logging
from dappstore.registry.errors import RegistryError
from dappstore.registry.events import EventLog, JsonlEventJournal, event_to_dict
from dappstore.registry.service import RegistryService
from dappstore.registry.store import JsonStateFile

console = Console()


class _Context:
    """Opens the registry lazily so ``--help`` never touches the state file."""

    def __init__(self, state_file: Path, journal_path: Path, owner: str) -> None:
        self.state_file = state_file
        self.journal = JsonlEventJournal(journal_path)
        self.owner = owner
        self._service: RegistryService | None = None

    @property
    def service(self) -> RegistryService:
        if self._service is None:
            events = EventLog()
            events.subscribe(self.journal)
            self._service = RegistryService.open(
                JsonStateFile(self.state_file), owner=self.owner, events=events
            )
        return self._service


def _fail(exc: Exception) -> None:
    code = getattr(exc, "code", "error")
    console.print(f"[red]Error ({code}):[/] {escape(str(exc))}")
    raise SystemExit(1)


@contextmanager
def _handled() -> Iterator[None]:
    """Report registry failures and unreadable snapshots/journals, then exit 1."""
    try:
        yield
    except (RegistryError, ValueError) as e:
        _fail(e)


@click.group()
@click.version_option(version=__version__)
@click.option("--state-file", "-s", default=None, type=click.Path(dir_okay=False),
              help="Registry snapshot (default: $DAPPSTORE_STATE_FILE)")
@click.option("--log-level", default=None, help="Logging level (default: $DAPPSTORE_LOG_LEVEL)")
@click.pass_context
def main(ctx: click.Context, state_file: str | None, log_level: str | None):
    """dappstore — a registry of dApp listings with 1-5 user ratings."""
    settings = load_settings()
    setup_logging(log_level or settings.log_level)

    if state_file:
        path = Path(state_file).expanduser()
        journal = settings.events_file or path.with_name(path.stem + ".events.jsonl")
    else:
        path = settings.state_file
        journal = settings.journal_path
    ctx.obj = _Context(path, journal, settings.owner)


# ── Listings ─────────────────────────────────────────────────────────


@main.command()
@click.argument("name")
@click.argument("url")
@click.argument("category")
@click.option("--as", "caller", required=True, help="Developer identity")
@click.pass_obj
def register(obj: _Context, name: str, url: str, category: str, caller: str):
    """Register a new listing and print its id."""
    with _handled():
        listing_id = obj.service.register_listing(caller, name, url, category)
    console.print(f"[green]Registered listing[/] {listing_id}")


@main.command(name="set-active")
@click.argument("listing_id", type=int)
@click.option("--active/--inactive", default=True, help="New status")
@click.option("--as", "caller", required=True, help="Developer identity")
@click.pass_obj
def set_active(obj: _Context, listing_id: int, active: bool, caller: str):
    """Activate or deactivate one of your listings."""
    with _handled():
        obj.service.set_active(caller, listing_id, active)
    status = "[green]active[/]" if active else "[yellow]inactive[/]"
    console.print(f"Listing {listing_id} is now {status}")


@main.command()
@click.argument("listing_id", type=int)
@click.argument("rating", type=int)
@click.option("--as", "caller", required=True, help="Rater identity")
@click.pass_obj
def rate(obj: _Context, listing_id: int, rating: int, caller: str):
    """Rate a listing from 1 to 5. Rating again replaces your earlier rating."""
    with _handled():
        obj.service.rate_listing(caller, listing_id, rating)
        stats = obj.service.get_rating_stats(listing_id)
    console.print(
        f"Rated listing {listing_id}: {rating} "
        f"(count={stats.rating_count}, sum={stats.rating_sum})"
    )


@main.command()
@click.argument("listing_id", type=int)
@click.pass_obj
def average(obj: _Context, listing_id: int):
    """Print the average rating x100 (truncated)."""
    with _handled():
        value = obj.service.get_average_rating(listing_id)
    console.print(f"{value} ({value // 100}.{value % 100:02d})")


@main.command()
@click.argument("listing_id", type=int)
@click.pass_obj
def show(obj: _Context, listing_id: int):
    """Show one listing with its rating stats."""
    with _handled():
        listing = obj.service.get_listing(listing_id)
        stats = obj.service.get_rating_stats(listing_id)

    table = Table(title=f"Listing {listing.id}", show_header=False)
    table.add_column("Field", style="cyan")
    table.add_column("Value")
    table.add_row("Name", escape(listing.name))
    table.add_row("URL", escape(listing.url))
    table.add_row("Category", escape(listing.category))
    table.add_row("Developer", escape(listing.developer))
    table.add_row("Active", "[green]Y[/]" if listing.active else "[red]N[/]")
    table.add_row("Ratings", str(stats.rating_count))
    table.add_row("Average x100", str(stats.average_x100))
    console.print(table)


@main.command(name="listings-of")
@click.argument("developer")
@click.pass_obj
def listings_of(obj: _Context, developer: str):
    """List the ids a developer has registered, oldest first."""
    with _handled():
        ids = obj.service.get_listings_of(developer)
    if not ids:
        console.print(f"[yellow]No listings registered by {escape(developer)}.[/]")
        return
    console.print(", ".join(str(i) for i in ids))


# ── Administration ───────────────────────────────────────────────────


@main.command(name="transfer-ownership")
@click.argument("new_owner")
@click.option("--as", "caller", required=True, help="Current owner identity")
@click.pass_obj
def transfer_ownership(obj: _Context, new_owner: str, caller: str):
    """Hand the registry owner role to NEW_OWNER."""
    with _handled():
        obj.service.transfer_ownership(caller, new_owner)
    console.print(f"Registry owner is now [cyan]{escape(new_owner)}[/]")


@main.command()
@click.pass_obj
def owner(obj: _Context):
    """Print the current registry owner."""
    with _handled():
        current = obj.service.owner
    console.print(escape(current))


@main.command()
@click.option("--type", "event_type", default=None, help="Only show this event type")
@click.pass_obj
def events(obj: _Context, event_type: str | None):
    """Print the journaled event stream."""
    with _handled():
        recorded = obj.journal.read(event_type)
    if not recorded:
        console.print("[yellow]No events recorded.[/]")
        return

    table = Table(title=f"Events ({len(recorded)})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Event", style="cyan", no_wrap=True)
    table.add_column("Details", overflow="fold")
    for event in recorded:
        data = event_to_dict(event)
        details = ", ".join(
            f"{k}={v}" for k, v in data.items() if k not in ("event", "sequence")
        )
        table.add_row(str(event.sequence), event.event, escape(details))
    console.print(table)


if __name__ == "__main__":
    main()
