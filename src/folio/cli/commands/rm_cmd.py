# ABOUTME: The `folio rm` command for removing a book from the library.
# ABOUTME: Deletes the catalog entry together with its stored archive.

from pathlib import Path

import click
from rich.console import Console

from folio.cli.options import db_option
from folio.db.catalog import LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


@click.command("rm")
@click.argument("book_id", type=int)
@db_option
@click.option("-y", "--yes", is_flag=True, default=False, help="Do not ask for confirmation.")
def rm(book_id: int, db_path: Path | None, yes: bool) -> None:
    """Remove a book from the library by ID."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        record = catalog.get_by_id(book_id)
        if record is None:
            console.print(f"[red]Book {book_id} not found.[/red]")
            raise SystemExit(1)

        if not yes and not click.confirm(f"Remove '{record.metadata.title}'?"):
            console.print("[dim]Cancelled.[/dim]")
            return

        catalog.delete_book(book_id)
    finally:
        conn.close()

    console.print(f"Removed [bold]{record.metadata.title}[/bold]")
