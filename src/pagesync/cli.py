# src/pagesync/cli.py
"""
pagesync Command Line Interface (CLI).

This module implements the terminal interface using `typer` and `rich`.

Features
--------
- **Slugs**: Generate a slug and resolve it against already-taken values.
- **Validation**: Check page/menu payload files and print errors as a table.
- **Snapshots**: Push an element tree as the preview snapshot and show it.
- **Watch**: Act as a preview context, re-rendering whenever the snapshot changes
  and printing every update relayed by editors, `push` or the API.

Usage
-----
    $ pagesync slug "Hello, World!" --taken hello-world
    $ pagesync validate-page page.json
    $ pagesync push elements.json --dir artifacts/snapshots
    $ pagesync watch --dir artifacts/snapshots
"""

from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree as RichTree

from pagesync.core.broadcast.transport import SnapshotTransport
from pagesync.core.contracts.element import PageElement
from pagesync.core.contracts.update import RealtimeUpdate
from pagesync.core.contracts.validation import ValidationResult
from pagesync.core.errors import MalformedDocument, SnapshotError
from pagesync.core.settings import load_settings
from pagesync.core.slug import is_valid_slug, unique_slug
from pagesync.core.snapshot.consumer import SnapshotConsumer
from pagesync.core.snapshot.medium import FileMedium
from pagesync.core.snapshot.store import DocumentSnapshot, SnapshotStore
from pagesync.core.tree import deserialize, element_count, from_wire, to_wire
from pagesync.core.validation import validate_elements, validate_menu, validate_page

# Ensure .env overrides are visible before settings are read.
load_dotenv()

app = typer.Typer(
    help="pagesync: page element trees, validation and live preview snapshots.",
    rich_markup_mode="markdown",
)
console = Console()

DirOption = Annotated[
    Path | None,
    typer.Option("--dir", "-d", help="Snapshot directory (default: PAGESYNC_SNAPSHOT_DIR)."),
]
KeyOption = Annotated[
    str | None,
    typer.Option("--key", "-k", help="Snapshot key (default: PAGESYNC_PREVIEW_KEY)."),
]


# --------------------------------------------------------------------------- #
# Helpers
# --------------------------------------------------------------------------- #


def _load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except ValueError as e:
        console.print(f"[bold red]❌ {path} is not valid JSON:[/bold red] {e}")
        raise typer.Exit(code=2) from e


def _render_result(result: ValidationResult, subject: str) -> None:
    if result.is_valid:
        console.print(f"[bold green]✅ {subject} is valid[/bold green]")
        return
    table = Table(title=f"{subject}: {len(result.errors)} error(s)", header_style="bold red")
    table.add_column("Field", style="yellow")
    table.add_column("Message")
    for error in result.errors:
        table.add_row(escape(error.field), escape(error.message))
    console.print(table)


def _store(directory: Path | None, context: str) -> SnapshotStore:
    return SnapshotStore(FileMedium(directory), context=context)


def _outline(document: DocumentSnapshot | None, title: str) -> RichTree:
    """Build a rich tree of the document (ids, kinds, widget types)."""
    root = RichTree(f"[bold]{title}[/bold]")
    if document is None:
        root.add("[dim]<no snapshot written yet>[/dim]")
        return root

    def add(node: RichTree, element: PageElement) -> None:
        label = f"[cyan]{element.kind}[/cyan] {escape(element.id)}"
        if element.widget_type:
            label += f" [magenta]({escape(element.widget_type)})[/magenta]"
        text = element.content.get("text")
        if isinstance(text, str) and text:
            label += f" [dim]“{escape(text[:40])}”[/dim]"
        branch = node.add(label)
        for child in element.children:
            add(branch, child)

    for element in document.elements:
        add(root, element)
    return root


# --------------------------------------------------------------------------- #
# Commands
# --------------------------------------------------------------------------- #


@app.command()  # type: ignore[misc]
def slug(
    title: Annotated[str, typer.Argument(help="Title to turn into a slug.")],
    taken: Annotated[
        list[str] | None,
        typer.Option("--taken", "-t", help="Slug already in use (repeatable)."),
    ] = None,
) -> None:
    """Print the slug for TITLE, made unique against `--taken` values."""
    existing = set(taken or [])
    result = unique_slug(title, existing.__contains__)
    console.print(result)
    if not is_valid_slug(result):
        raise typer.Exit(code=1)


@app.command("validate-page")  # type: ignore[misc]
def validate_page_cmd(
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Page payload (JSON)."),
    ],
) -> None:
    """Validate a page payload file; exit 1 when invalid."""
    result = validate_page(_load_json(file))
    _render_result(result, "Page")
    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command("validate-menu")  # type: ignore[misc]
def validate_menu_cmd(
    file: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help="Menu payload (JSON)."),
    ],
) -> None:
    """Validate a menu payload file; exit 1 when invalid."""
    result = validate_menu(_load_json(file))
    _render_result(result, "Menu")
    if not result.is_valid:
        raise typer.Exit(code=1)


@app.command()  # type: ignore[misc]
def push(
    file: Annotated[
        Path,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help="Element tree: a JSON array or an {\"elements\": [...]} object.",
        ),
    ],
    directory: DirOption = None,
    key: KeyOption = None,
) -> None:
    """Validate an element tree file, write it as the preview snapshot and announce it."""
    raw = file.read_text(encoding="utf-8")
    try:
        data = json.loads(raw)
        elements = from_wire(data["elements"]) if isinstance(data, dict) else deserialize(raw)
    except (ValueError, KeyError) as e:
        console.print(f"[bold red]❌ Malformed document:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    result = validate_elements(elements)
    if not result.is_valid:
        _render_result(result, "Document")
        raise typer.Exit(code=1)

    target = key or load_settings().preview_key
    try:
        store = _store(directory, "cli")
        size = store.write(target, elements)
        SnapshotTransport(store).send(
            RealtimeUpdate(subject="page", action="update", payload={"elements": to_wire(elements)})
        )
    except SnapshotError as e:
        console.print(f"[bold red]❌ Snapshot write failed:[/bold red] {e}")
        raise typer.Exit(code=1) from e

    console.print(
        f"[bold green]✅ Wrote[/bold green] {element_count(elements)} element(s) "
        f"to [u]{target}[/u] ({size} bytes)"
    )


@app.command()  # type: ignore[misc]
def show(directory: DirOption = None, key: KeyOption = None) -> None:
    """Print the current preview snapshot as a tree."""
    target = key or load_settings().preview_key
    try:
        document = _store(directory, "cli").read(target)
    except MalformedDocument as e:
        console.print(f"[bold red]❌ {e}[/bold red]")
        raise typer.Exit(code=1) from e
    console.print(_outline(document, target))


@app.command()  # type: ignore[misc]
def watch(
    directory: DirOption = None,
    key: KeyOption = None,
    interval: Annotated[
        float, typer.Option("--interval", "-i", min=0.05, help="Polling interval in seconds.")
    ] = 0.5,
    once: Annotated[
        bool, typer.Option("--once", help="Render the initial read and exit.")
    ] = False,
) -> None:
    """Follow the preview snapshot and re-render on every change (Ctrl-C to stop)."""
    medium = FileMedium(directory)
    store = SnapshotStore(medium, context="watch")
    target = key or load_settings().preview_key

    def render(document: DocumentSnapshot | None) -> None:
        console.print(_outline(document, target))

    console.print(
        Panel.fit(
            f"[bold cyan]pagesync preview[/bold cyan]\nWatching: [u]{medium.base_dir}[/u]",
            border_style="cyan",
        )
    )

    def announce(update: RealtimeUpdate) -> None:
        label = f"{update.subject}/{update.action}"
        console.print(f"[yellow]📣 {label}[/yellow] [dim]at {update.timestamp}[/dim]")

    consumer = SnapshotConsumer(store, target, on_change=render)
    with consumer:
        if once:
            return
        stop_listening = SnapshotTransport(store).listen(announce)
        try:
            while True:
                time.sleep(interval)
                medium.poll()
        except KeyboardInterrupt:
            console.print("[dim]Stopped.[/dim]")
        finally:
            stop_listening()


if __name__ == "__main__":
    app()
