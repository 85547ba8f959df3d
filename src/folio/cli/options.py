# ABOUTME: Shared Click options for folio CLI commands.
# ABOUTME: Provides the --db flag and the render options that build a RenderConfig.

from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from folio.core.config import MAX_FONT_SIZE, MIN_FONT_SIZE, RenderConfig, Viewport
from folio.db.connection import DEFAULT_DB_PATH

db_option = click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    default=None,
    help=f"Path to library database (default: {DEFAULT_DB_PATH})",
)

_RENDER_OPTIONS = [
    click.option(
        "--font-size",
        type=click.IntRange(MIN_FONT_SIZE, MAX_FONT_SIZE),
        default=16,
        show_default=True,
        help="Base font size in pixels.",
    ),
    click.option(
        "--line-height",
        type=click.FloatRange(min=0.1),
        default=1.6,
        show_default=True,
        help="Line height multiplier.",
    ),
    click.option("--width", type=int, default=1200, show_default=True, help="Viewport width."),
    click.option("--height", type=int, default=800, show_default=True, help="Viewport height."),
    click.option("--css/--no-css", "css_enabled", default=True, help="Apply book stylesheets."),
]


def render_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the shared render options to a command."""
    for option in reversed(_RENDER_OPTIONS):
        func = option(func)
    return func


def build_render_config(
    font_size: int, line_height: float, width: int, height: int, css_enabled: bool
) -> RenderConfig:
    """Build a RenderConfig from render option values.

    Raises:
        click.BadParameter: If the viewport leaves no room for content.
    """
    try:
        return RenderConfig(
            font_size=font_size,
            line_height=line_height,
            viewport=Viewport(width=width, height=height),
            css_enabled=css_enabled,
        )
    except ValueError as exc:
        raise click.BadParameter(str(exc)) from exc
