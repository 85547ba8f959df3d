# ABOUTME: The `folio pages` command for paginating an EPUB file.
# ABOUTME: Prints per-chapter page counts and optionally previews one page.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from folio.cli.display import page_text
from folio.cli.options import build_render_config, render_options
from folio.core.config import RenderConfig
from folio.core.document import DocumentModel
from folio.core.pagination import PageContent, PaginationError, PaginationResult, calculate_pages
from folio.formats.errors import EpubReadError

console = Console()


async def _paginate(
    data: bytes, config: RenderConfig, page_number: int | None
) -> tuple[PaginationResult, PageContent | None]:
    async with await DocumentModel.load(data) as document:
        engine = await calculate_pages(document, config)
        content = None
        if page_number is not None:
            engine.go_to_page(page_number)
            content = await engine.page_content()
        return engine.result, content


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@render_options
@click.option("--page", "page_number", type=click.IntRange(min=1), default=None,
              help="Preview this page.")
def pages(
    path: Path,
    font_size: int,
    line_height: float,
    width: int,
    height: int,
    css_enabled: bool,
    page_number: int | None,
) -> None:
    """Paginate an EPUB file and show how pages fall across chapters."""
    config = build_render_config(font_size, line_height, width, height, css_enabled)
    try:
        result, content = asyncio.run(_paginate(path.read_bytes(), config, page_number))
    except (EpubReadError, PaginationError) as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    table = Table(title=f"{path.name} ({config.content_width}x{config.page_height}px pages)")
    table.add_column("Chapter", style="dim", width=7)
    table.add_column("Title", style="bold")
    table.add_column("Pages", justify="right")
    table.add_column("Range", justify="right")
    for page in result.pages:
        if page.is_first_of_chapter:
            last = page.page_number + page.pages_in_chapter - 1
            table.add_row(
                str(page.chapter_index),
                page.chapter_title,
                str(page.pages_in_chapter),
                f"{page.page_number}-{last}",
            )
    console.print(table)
    console.print(f"\n[dim]{result.total_pages} page(s)[/dim]")

    if content is not None:
        title = f"Page {content.page.page_number} - {content.chapter_title}"
        console.print(Panel(page_text(content), title=title))
