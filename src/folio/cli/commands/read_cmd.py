# ABOUTME: The `folio read` command for reading a stored book in the terminal.
# ABOUTME: Paginates the book, shows one page, and records reading progress.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel

from folio.cli.display import page_text
from folio.cli.options import build_render_config, db_option, render_options
from folio.core.config import RenderConfig
from folio.core.importer import load_stored_document
from folio.core.pagination import PageContent, PaginationEngine, PaginationError, calculate_pages
from folio.db.catalog import LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library
from folio.formats.errors import EpubReadError

console = Console()


async def _read_page(
    catalog: LibraryCatalog,
    book_id: int,
    config: RenderConfig,
    page_number: int,
    chapter: int | None,
) -> tuple[PaginationEngine, PageContent]:
    async with await load_stored_document(catalog, book_id) as document:
        engine = await calculate_pages(document, config)
        if chapter is not None:
            engine.go_to_chapter(chapter)
        else:
            engine.go_to_page(page_number)
        return engine, await engine.page_content()


@click.command("read")
@click.argument("book_id", type=int)
@db_option
@render_options
@click.option("--page", "page_number", type=click.IntRange(min=1), default=None,
              help="Page to show (default: where you left off).")
@click.option("--chapter", type=click.IntRange(min=0), default=None,
              help="Jump to the first page of this spine index.")
def read(
    book_id: int,
    db_path: Path | None,
    font_size: int,
    line_height: float,
    width: int,
    height: int,
    css_enabled: bool,
    page_number: int | None,
    chapter: int | None,
) -> None:
    """Show a page of a stored book and remember the position."""
    config = build_render_config(font_size, line_height, width, height, css_enabled)

    conn = open_library(db_path or DEFAULT_DB_PATH)
    try:
        catalog = LibraryCatalog(conn)
        record = catalog.get_by_id(book_id)
        if record is None:
            console.print(f"[red]Book {book_id} not found.[/red]")
            raise SystemExit(1)

        start = page_number or max(1, record.current_position)
        try:
            engine, content = asyncio.run(_read_page(catalog, book_id, config, start, chapter))
        except (EpubReadError, PaginationError) as exc:
            console.print(f"[red]Error:[/red] {exc}")
            raise SystemExit(1) from exc

        catalog.update_progress(book_id, engine.current_page, engine.progress_percent)
    finally:
        conn.close()

    title = f"{record.metadata.title} - {content.chapter_title}"
    console.print(Panel(page_text(content), title=title))
    console.print(
        f"[dim]Page {engine.current_page} of {engine.total_pages} "
        f"({engine.progress_percent:.0f}%)[/dim]"
    )
