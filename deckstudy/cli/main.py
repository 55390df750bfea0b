"""
CLI entry point for deckstudy.
"""

# Standard library imports
import logging
from pathlib import Path
from typing import Optional

# Third-party imports
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

# Local application imports
from deckstudy.config import get_settings
from deckstudy.db.database import DeckDatabase
from deckstudy.exceptions import (
    CardNotFoundError,
    DatabaseError,
    DeckNotFoundError,
)
from deckstudy.models import (
    CreateCardInput,
    CreateDeckInput,
    UpdateCardInput,
    UpdateDeckInput,
)
from deckstudy.cli._study_logic import study_logic

logger = logging.getLogger(__name__)

console = Console()

app = typer.Typer(
    name="deckstudy",
    help="Deckstudy: build flashcard decks and study them in timed sessions.",
    add_completion=False,
    rich_markup_mode="markdown",
)
deck_app = typer.Typer(help="Create, inspect, update and delete decks.")
card_app = typer.Typer(help="Add, list, update and delete cards in a deck.")
app.add_typer(deck_app, name="deck")
app.add_typer(card_app, name="card")


# ---------------------------------------------------------------------------
# Shared options (flags win over DECKSTUDY_DB / DECKSTUDY_OWNER, which win
# over the settings defaults)
# ---------------------------------------------------------------------------


_db_option = typer.Option(  # noqa: B008
    None,
    "--db",
    help="Path to the DuckDB database file. "
    "Falls back to DECKSTUDY_DB, then to the configured default.",
    envvar="DECKSTUDY_DB",
)

_owner_option = typer.Option(  # noqa: B008
    None,
    "--owner",
    help="Identity that owns the decks. Falls back to DECKSTUDY_OWNER.",
    envvar="DECKSTUDY_OWNER",
)

_yes_option = typer.Option(  # noqa: B008
    False, "--yes", "-y", help="Do not ask for confirmation."
)


def _resolve_db_path(db: Optional[Path]) -> Path:
    """Resolve the db path from the CLI flag or the settings."""
    if db is not None:
        return db
    return get_settings().db_path


def _resolve_owner(owner: Optional[str]) -> str:
    if owner:
        return owner
    return get_settings().owner_id


def _open_db(db: Optional[Path]) -> DeckDatabase:
    db_manager = DeckDatabase(db_path=_resolve_db_path(db))
    db_manager.initialize_schema()
    return db_manager


def _print_validation_error(e: ValidationError) -> None:
    console.print("[bold red]Invalid input:[/bold red]")
    for error in e.errors():
        field = ".".join(str(part) for part in error["loc"]) or "input"
        console.print(f"- {field}: {error['msg']}")


def _fail_unexpected(e: Exception) -> None:
    logger.exception("Unexpected error in CLI command.")
    console.print(
        f"[bold red]An unexpected error occurred: {e}[/bold red]"
    )
    raise typer.Exit(code=1) from e


def _format_timestamp(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M")


# ---------------------------------------------------------------------------
# Decks
# ---------------------------------------------------------------------------


@deck_app.command("create")
def create_deck(
    name: str = typer.Argument(..., help="Name of the new deck."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="Optional deck description."
    ),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Create a new, empty deck."""
    try:
        data = CreateDeckInput(name=name, description=description)
        with _open_db(db) as db_manager:
            deck = db_manager.create_deck(_resolve_owner(owner), data)
        console.print(
            f"[bold green]Created deck {deck.id}:[/bold green] {deck.name}"
        )
    except ValidationError as e:
        _print_validation_error(e)
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


@deck_app.command("list")
def list_decks(
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """List your decks with their card counts, most recently created first."""
    try:
        with _open_db(db) as db_manager:
            decks = db_manager.get_user_decks_with_card_counts(
                _resolve_owner(owner)
            )
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)

    if not decks:
        console.print(
            "[yellow]No decks yet. Create one with "
            "[cyan]deckstudy deck create NAME[/cyan].[/yellow]"
        )
        return

    table = Table(title="Decks")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Name", style="magenta")
    table.add_column("Cards", justify="right")
    table.add_column("Description")
    table.add_column("Updated", style="dim")
    for deck, card_count in decks:
        table.add_row(
            str(deck.id),
            deck.name,
            str(card_count),
            deck.description or "",
            _format_timestamp(deck.updated_at),
        )
    console.print(table)


@deck_app.command("show")
def show_deck(
    deck_id: int = typer.Argument(..., help="ID of the deck."),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Show a deck and its cards."""
    try:
        with _open_db(db) as db_manager:
            deck = db_manager.fetch_deck_with_cards(
                deck_id, _resolve_owner(owner)
            )
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)

    if deck is None:
        console.print(f"[bold red]Error: Deck {deck_id} not found.[/bold red]")
        raise typer.Exit(code=1)

    console.print(
        Panel(
            deck.description or "[dim]No description[/dim]",
            title=f"Deck {deck.id}: {deck.name}",
            subtitle=f"{len(deck.cards)} cards",
        )
    )
    if deck.cards:
        table = Table(show_lines=True)
        table.add_column("ID", style="cyan", justify="right")
        table.add_column("Front", style="magenta")
        table.add_column("Back", style="green")
        for card in deck.cards:
            table.add_row(str(card.id), card.front, card.back)
        console.print(table)


@deck_app.command("update")
def update_deck(
    deck_id: int = typer.Argument(..., help="ID of the deck."),
    name: Optional[str] = typer.Option(None, "--name", help="New name."),
    description: Optional[str] = typer.Option(
        None, "--description", "-d", help="New description."
    ),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Rename a deck or change its description."""
    try:
        data = UpdateDeckInput(name=name, description=description)
        if not data.has_changes():
            console.print(
                "[bold red]Error: Nothing to update; "
                "pass --name and/or --description.[/bold red]"
            )
            raise typer.Exit(code=1)
        with _open_db(db) as db_manager:
            deck = db_manager.update_deck(
                deck_id, _resolve_owner(owner), data
            )
        console.print(
            f"[bold green]Updated deck {deck.id}:[/bold green] {deck.name}"
        )
    except typer.Exit:
        raise
    except ValidationError as e:
        _print_validation_error(e)
        raise typer.Exit(code=1)
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


@deck_app.command("delete")
def delete_deck(
    deck_id: int = typer.Argument(..., help="ID of the deck."),
    yes: bool = _yes_option,
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Delete a deck and every card in it."""
    if not yes:
        typer.confirm(
            f"Delete deck {deck_id} and all of its cards? "
            "This cannot be undone.",
            abort=True,
        )
    try:
        with _open_db(db) as db_manager:
            card_count = db_manager.delete_deck(deck_id, _resolve_owner(owner))
        console.print(
            f"[bold green]Deleted deck {deck_id}[/bold green] "
            f"({card_count} cards removed)."
        )
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


@card_app.command("add")
def add_card(
    deck_id: int = typer.Argument(..., help="ID of the deck to add to."),
    front: str = typer.Option(..., "--front", "-f", help="Question side."),
    back: str = typer.Option(..., "--back", "-b", help="Answer side."),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Add a card to one of your decks."""
    try:
        data = CreateCardInput(deck_id=deck_id, front=front, back=back)
        with _open_db(db) as db_manager:
            card = db_manager.create_card(_resolve_owner(owner), data)
        console.print(
            f"[bold green]Added card {card.id}[/bold green] to deck {deck_id}."
        )
    except ValidationError as e:
        _print_validation_error(e)
        raise typer.Exit(code=1)
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


@card_app.command("list")
def list_cards(
    deck_id: int = typer.Argument(..., help="ID of the deck."),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """List the cards of a deck, most recently created first."""
    try:
        with _open_db(db) as db_manager:
            cards = db_manager.get_cards_by_deck(deck_id, _resolve_owner(owner))
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)

    if not cards:
        console.print(f"[yellow]Deck {deck_id} has no cards yet.[/yellow]")
        return

    table = Table(title=f"Cards in deck {deck_id}", show_lines=True)
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Front", style="magenta")
    table.add_column("Back", style="green")
    table.add_column("Created", style="dim")
    for card in cards:
        table.add_row(
            str(card.id),
            card.front,
            card.back,
            _format_timestamp(card.created_at),
        )
    console.print(table)


@card_app.command("update")
def update_card(
    card_id: int = typer.Argument(..., help="ID of the card."),
    front: Optional[str] = typer.Option(None, "--front", "-f"),
    back: Optional[str] = typer.Option(None, "--back", "-b"),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Change the front and/or back of a card."""
    try:
        data = UpdateCardInput(front=front, back=back)
        if not data.has_changes():
            console.print(
                "[bold red]Error: Nothing to update; "
                "pass --front and/or --back.[/bold red]"
            )
            raise typer.Exit(code=1)
        with _open_db(db) as db_manager:
            card = db_manager.update_card(card_id, _resolve_owner(owner), data)
        console.print(f"[bold green]Updated card {card.id}.[/bold green]")
    except typer.Exit:
        raise
    except ValidationError as e:
        _print_validation_error(e)
        raise typer.Exit(code=1)
    except CardNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


@card_app.command("delete")
def delete_card(
    card_id: int = typer.Argument(..., help="ID of the card."),
    yes: bool = _yes_option,
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """Delete a single card."""
    if not yes:
        typer.confirm(f"Delete card {card_id}?", abort=True)
    try:
        with _open_db(db) as db_manager:
            db_manager.delete_card(card_id, _resolve_owner(owner))
        console.print(f"[bold green]Deleted card {card_id}.[/bold green]")
    except CardNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


# ---------------------------------------------------------------------------
# Study
# ---------------------------------------------------------------------------


@app.command()
def study(
    deck_id: int = typer.Argument(..., help="ID of the deck to study."),
    db: Optional[Path] = _db_option,
    owner: Optional[str] = _owner_option,
):
    """
    Study a deck: answer every card once, in random order, against the clock.

    During a session type `:pause` to take a break and `:exit` to leave.
    """
    try:
        study_logic(
            deck_id=deck_id,
            db_path=_resolve_db_path(db),
            owner_id=_resolve_owner(owner),
        )
    except DeckNotFoundError as e:
        console.print(f"[bold red]Error: {e}[/bold red]")
        raise typer.Exit(code=1)
    except DatabaseError as e:
        console.print(f"[bold red]Database Error:[/bold red] {e}")
        raise typer.Exit(code=1)
    except Exception as e:
        _fail_unexpected(e)


def main():
    app()


if __name__ == "__main__":
    main()
