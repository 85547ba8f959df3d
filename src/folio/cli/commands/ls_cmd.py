# ABOUTME: The `folio ls` command for listing books in the library.
# ABOUTME: Displays a Rich table with reading progress for each book.

from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from folio.cli.options import db_option
from folio.db.catalog import LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library

console = Console()


@click.command("ls")
@db_option
def ls(db_path: Path | None) -> None:
    """List all books in the library, most recently read first."""
    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        records = LibraryCatalog(conn).list_all()
    finally:
        conn.close()

    if not records:
        console.print("[yellow]No books in the library.[/yellow]")
        return

    table = Table()
    table.add_column("ID", style="dim", width=4)
    table.add_column("Title", style="bold")
    table.add_column("Author")
    table.add_column("Lang", width=5)
    table.add_column("Progress", justify="right")
    table.add_column("Last read")

    for record in records:
        table.add_row(
            str(record.id),
            record.metadata.title,
            record.metadata.creator,
            record.metadata.language,
            f"{record.progress_percent:.0f}%",
            record.last_read or "[dim]never[/dim]",
        )

    console.print(table)
    console.print(f"\n[dim]{len(records)} book(s)[/dim]")
