# ABOUTME: The `folio inspect` command for viewing the structure of an EPUB.
# ABOUTME: Shows metadata, reading order, table of contents, fonts, and stylesheets.

import asyncio
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from folio.cli.display import navigation_tree
from folio.core.document import DocumentModel, DocumentSnapshot
from folio.formats.errors import EpubReadError

console = Console()


async def _load_snapshot(path: Path) -> tuple[DocumentSnapshot, str]:
    async with await DocumentModel.load(path.read_bytes()) as document:
        return document.snapshot(), document.package_path


@click.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def inspect(path: Path) -> None:
    """Show metadata, spine, and table of contents of an EPUB file."""
    try:
        snapshot, package_path = asyncio.run(_load_snapshot(path))
    except EpubReadError as exc:
        console.print(f"[red]Error:[/red] {exc}")
        raise SystemExit(1) from exc

    meta = snapshot.metadata
    table = Table(title=str(path.name), show_header=False, pad_edge=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")

    table.add_row("Title", meta.title)
    table.add_row("Author", meta.creator)
    table.add_row("Language", meta.language)
    table.add_row("Publisher", meta.publisher or "[dim]unknown[/dim]")
    table.add_row("Date", meta.date or "[dim]unknown[/dim]")
    table.add_row("Identifier", meta.identifier or "[dim]none[/dim]")
    table.add_row("Description", meta.description or "[dim]none[/dim]")
    table.add_row("Package", package_path)
    table.add_row("Manifest", f"{len(snapshot.manifest)} item(s)")
    cover = next((e.path for e in snapshot.manifest.values() if e.is_cover_image), None)
    table.add_row("Cover", cover or "no")
    console.print(table)

    spine = Table(title="Reading order")
    spine.add_column("#", style="dim", width=4)
    spine.add_column("Path")
    spine.add_column("Linear", width=6)
    for item in snapshot.spine:
        spine.add_row(str(item.order), item.path, "yes" if item.linear else "no")
    console.print(spine)

    if snapshot.navigation:
        console.print(navigation_tree("Contents", snapshot.navigation))
    else:
        console.print("[yellow]No table of contents.[/yellow]")

    for font in snapshot.fonts:
        console.print(f"[dim]Font:[/dim] {font.path} ({font.mime_type})")
    for sheet in snapshot.global_css:
        console.print(f"[dim]Stylesheet:[/dim] {sheet.path} ({len(sheet.css_text)} chars)")
