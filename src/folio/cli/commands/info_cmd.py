# ABOUTME: The `folio info` command for displaying a stored book's details.
# ABOUTME: Shows metadata, file facts, progress, and the table of contents by ID.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from folio.cli.display import navigation_tree
from folio.cli.options import db_option
from folio.db.catalog import LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


@click.command("info")
@click.argument("book_id", type=int)
@db_option
def info(book_id: int, db_path: Path | None) -> None:
    """Show detailed information for a book by ID."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        record = LibraryCatalog(conn).get_by_id(book_id)
    finally:
        conn.close()

    if record is None:
        console.print(f"[red]Book {book_id} not found.[/red]")
        raise SystemExit(1)

    meta = record.metadata
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("Field", style="bold", width=14)
    table.add_column("Value")

    table.add_row("ID", str(record.id))
    table.add_row("Title", meta.title)
    table.add_row("Author", meta.creator)
    table.add_row("Language", meta.language)
    if meta.publisher:
        table.add_row("Publisher", meta.publisher)
    if meta.date:
        table.add_row("Date", meta.date)
    if meta.identifier:
        table.add_row("Identifier", meta.identifier)
    if meta.rights:
        table.add_row("Rights", meta.rights)
    if meta.description:
        table.add_row("Description", meta.description)
    table.add_row("File", f"{record.file_name} ({record.file_size:,} bytes)")
    table.add_row("Chapters", str(len(record.snapshot.spine)))
    table.add_row("Progress", f"{record.progress_percent:.1f}% (page {record.current_position})")
    table.add_row("Last read", record.last_read or "never")
    table.add_row("Hash", record.file_hash)
    table.add_row("Added", record.date_added)

    console.print(table)
    if record.snapshot.navigation:
        console.print(navigation_tree("Contents", record.snapshot.navigation))
