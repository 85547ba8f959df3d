# ABOUTME: The `folio import` command for adding EPUBs to the library.
# ABOUTME: Walks a directory, parses each EPUB, and stores it with its snapshot.

import asyncio
from pathlib import Path

import click
from rich.console import Console

from folio.cli.options import db_option
from folio.core.importer import import_books
from folio.db.catalog import LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


def _find_epubs(directory: Path) -> list[Path]:
    """Recursively find all .epub files in a directory."""
    return sorted(directory.rglob("*.epub"))


@click.command("import")
@click.argument(
    "directory",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
)
@db_option
def import_command(directory: Path, db_path: Path | None) -> None:
    """Scan a directory for EPUB files and add them to the library."""
    epub_files = _find_epubs(directory)

    if not epub_files:
        console.print(f"[yellow]No EPUB files found in {directory}[/yellow]")
        return

    console.print(f"Found [bold]{len(epub_files)}[/bold] EPUB file(s)\n")

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        result = asyncio.run(
            import_books(
                epub_files,
                catalog,
                on_progress=lambda i, n, p: console.print(f"[dim][{i}/{n}][/dim] {p.name}"),
            )
        )
    finally:
        conn.close()

    parts = []
    if result.added:
        parts.append(f"[green]{result.added} added[/green]")
    if result.skipped:
        parts.append(f"[yellow]{result.skipped} skipped[/yellow]")
    if result.errors:
        parts.append(f"[red]{result.errors} error(s)[/red]")
    console.print("\n" + ", ".join(parts))

    if result.error_details:
        console.print(f"\n[yellow]{result.errors} file(s) could not be read:[/yellow]")
        for path, msg in result.error_details:
            console.print(f"  [dim]{path.name}:[/dim] {msg}")
