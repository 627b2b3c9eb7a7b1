from __future__ import annotations

from dotenv import load_dotenv

load_dotenv()

import asyncio
import logging

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text

from ennote.config import SERVER_URL
from ennote.db import init_db
from ennote.exceptions import InvalidNoteError, StackTransportError
from ennote.models import Note
from ennote.services.notes import NoteStore
from ennote.services.pairing import RemoteStackSource, build_deep_link, parse_notes_text, render_qr_text
from ennote.services.review import ReviewSession, format_remaining
from ennote.services.scanner import Confirming, Failed, Imported, ScannerFlow
from ennote.services.widget import WidgetProvider

app = typer.Typer(help="ennote: short notes, stack mode and QR transfer")
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _open_store() -> NoteStore:
    if not init_db():
        console.print("[yellow]Note storage is unavailable; changes last only for this command.[/yellow]")
    return NoteStore()


def _note_at(store: NoteStore, position: int) -> Note:
    active = store.active_notes()
    if not 1 <= position <= len(active):
        console.print(f"[red]No active note at position {position}.[/red]")
        raise typer.Exit(1)
    return active[position - 1]


def _render_active(notes: list[Note]) -> None:
    table = Table(title=f"{len(notes)} notes")
    table.add_column("#", style="dim", justify="right")
    table.add_column("Note", style="cyan")
    table.add_column("ID", style="dim")
    for position, note in enumerate(notes, start=1):
        table.add_row(str(position), escape(note.title), note.id[:8])
    console.print(table)


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", help="Host to bind to"),
    port: int = typer.Option(8000, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
) -> None:
    """Start the ennote web server."""
    import uvicorn

    uvicorn.run("ennote.web:create_app", host=host, port=port, reload=reload, factory=True)


@app.command("list")
def list_notes(completed: bool = typer.Option(False, "--completed", help="Show completed notes")) -> None:
    """Show active notes in order."""
    store = _open_store()
    if not completed:
        notes = store.active_notes()
        if not notes:
            console.print("[green]No notes. Add one with `ennote add`.[/green]")
            return
        _render_active(notes)
        return

    table = Table(title="Completed")
    table.add_column("Note", style="dim")
    table.add_column("Completed", style="yellow")
    for note in store.completed_notes():
        table.add_row(escape(note.title), note.completed_at.astimezone().strftime("%Y-%m-%d %H:%M"))
    console.print(table)


@app.command()
def add(content: str = typer.Argument(..., help="Note text; the first line is the title")) -> None:
    """Add a note to the end of the list."""
    try:
        note = _open_store().create(content)
    except InvalidNoteError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    console.print(f"Added [cyan]{escape(note.title)}[/cyan]")


@app.command()
def done(position: int = typer.Argument(..., help="Position in the active list (1-based)")) -> None:
    """Complete a note."""
    store = _open_store()
    note = _note_at(store, position)
    store.complete(note.id)
    console.print(f"[green]Completed[/green] {escape(note.title)}")


@app.command()
def undo(note_id: str = typer.Argument(..., help="ID (or ID prefix) of a completed note")) -> None:
    """Move a completed note back to the end of the active list."""
    store = _open_store()
    matches = [n for n in store.completed_notes() if n.id.startswith(note_id)]
    if len(matches) != 1:
        console.print(f"[red]Expected one completed note matching {note_id!r}, found {len(matches)}.[/red]")
        raise typer.Exit(1)
    note = store.uncomplete(matches[0].id)
    console.print(f"Restored [cyan]{escape(note.title)}[/cyan] at position {len(store.active_notes())}")


@app.command()
def rm(position: int = typer.Argument(..., help="Position in the active list (1-based)")) -> None:
    """Delete an active note."""
    store = _open_store()
    note = _note_at(store, position)
    store.delete(note.id)
    console.print(f"Deleted {escape(note.title)}")


@app.command()
def move(
    source: int = typer.Argument(..., help="Current position (1-based)"),
    destination: int = typer.Argument(..., help="New position (1-based)"),
) -> None:
    """Move a note to a new position."""
    store = _open_store()
    try:
        notes = store.move(source - 1, destination - 1)
    except IndexError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    _render_active(notes)


@app.command()
def clear() -> None:
    """Delete every completed note."""
    count = _open_store().clear_completed()
    console.print(f"Cleared {count} completed notes")


@app.command()
def review(timer: int = typer.Option(0, help="Start a countdown of this many minutes")) -> None:
    """Stack mode: work through active notes one at a time."""
    session = ReviewSession(_open_store()).start()
    if timer:
        session.start_timer(timer)

    while not session.is_finished():
        note = session.current()
        remaining = session.time_remaining()
        subtitle = str(session.progress())
        if remaining is not None:
            subtitle += f" · {format_remaining(remaining)} left"
        console.print(Panel(Text(note.content), title="Stack Mode", subtitle=subtitle))
        choice = Prompt.ask("d = done, q = quit", choices=["d", "q"], default="d")
        if choice == "q":
            return
        session.complete_current(expected_id=note.id)

    console.print(f"[green]{session.progress().total} notes cleared[/green]")


@app.command()
def stack(
    text: str = typer.Argument(None, help="Notes, one per line; read from stdin when omitted"),
    server: str = typer.Option(SERVER_URL, help="ennote server URL"),
) -> None:
    """Create a stack on the server and print its QR code."""
    if text is None:
        text = typer.get_text_stream("stdin").read()
    notes = parse_notes_text(text)
    if not notes:
        console.print("[red]Nothing to send; give at least one non-blank line.[/red]")
        raise typer.Exit(1)
    try:
        created = asyncio.run(RemoteStackSource(server).create_stack(notes))
    except StackTransportError as exc:
        console.print(f"[red]{exc}[/red]")
        raise typer.Exit(1)
    console.print(render_qr_text(created.id))
    console.print(f"{build_deep_link(created.id)}  ({len(created.notes)} notes, expires at {created.expires_at.astimezone():%H:%M:%S})")


@app.command()
def scan(
    code: str = typer.Argument(..., help="Scanned code, e.g. ennote://stack/<id>"),
    server: str = typer.Option(SERVER_URL, help="ennote server URL"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Import without asking"),
) -> None:
    """Import the notes of a scanned stack code."""
    flow = ScannerFlow(RemoteStackSource(server), _open_store())
    state = asyncio.run(flow.handle_code(code))
    if isinstance(state, Failed):
        console.print(f"[red]{state.message}[/red]")
        raise typer.Exit(1)

    if not isinstance(state, Confirming):
        raise typer.Exit(1)
    console.print(f"Found {len(state.stack.notes)} notes")
    for content in state.stack.notes:
        console.print(f"  ○ {escape(content)}")
    if not yes and not Confirm.ask("Import notes?", default=True):
        flow.cancel()
        return

    state = asyncio.run(flow.confirm_import())
    if isinstance(state, Imported):
        console.print(f"[green]Imported {len(state.notes)} notes[/green]")
    elif isinstance(state, Failed):
        console.print(f"[red]{state.message}[/red]")
        raise typer.Exit(1)


@app.command()
def widget() -> None:
    """Print what the home-screen widget would show."""
    entry = WidgetProvider(_open_store()).snapshot()
    for note in entry.notes[:8]:
        console.print(f"○ {escape(note.content.splitlines()[0])}")
    if not entry.notes:
        console.print("[dim]No notes[/dim]")
    if entry.timer_end:
        console.print(f"Timer ends {entry.timer_end.astimezone():%H:%M}")
    streak = " ".join(f"{a.day_letter}:{a.completed_count}" for a in entry.activity)
    console.print(f"[dim]{streak}[/dim]")
