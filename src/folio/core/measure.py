# ABOUTME: Off-screen measurement surface that estimates rendered chapter height.
# ABOUTME: A deterministic line-box approximation of browser flow layout, no real layout engine.

import math
from collections.abc import Iterator
from contextlib import contextmanager

from bs4 import BeautifulSoup, NavigableString, Tag
from bs4.element import PreformattedString

from folio.core.config import RenderConfig

HTML_PARSER = "html.parser"

# Average glyph advance as a fraction of the font size
CHAR_WIDTH_EM = 0.5
DEFAULT_IMAGE_HEIGHT = 300.0

# Browser default font scaling for headings
HEADING_SCALE: dict[str, float] = {
    "h1": 2.0,
    "h2": 1.5,
    "h3": 1.17,
    "h4": 1.0,
    "h5": 0.83,
    "h6": 0.67,
}

# Collapsed vertical margin added after a block, in ems of the block's font
BLOCK_MARGIN_EM: dict[str, float] = {
    "p": 1.0,
    "h1": 0.67,
    "h2": 0.83,
    "h3": 1.0,
    "h4": 1.33,
    "h5": 1.67,
    "h6": 2.33,
    "blockquote": 1.0,
    "pre": 1.0,
    "ul": 1.0,
    "ol": 1.0,
    "dl": 1.0,
    "figure": 1.0,
    "table": 1.0,
}

BLOCK_TAGS: frozenset[str] = frozenset(
    {
        "address", "article", "aside", "blockquote", "caption", "center", "dd", "div",
        "dl", "dt", "figcaption", "figure", "footer", "header", "li", "main", "nav",
        "ol", "p", "pre", "section", "table", "tr", "ul",
    }
    | set(HEADING_SCALE)
)

IMAGE_TAGS: frozenset[str] = frozenset({"img", "svg", "image", "video", "canvas"})

SKIPPED_TAGS: frozenset[str] = frozenset(
    {"head", "link", "meta", "noscript", "script", "style", "template", "title"}
)


def _parse_px(value: object) -> float | None:
    """Parse an HTML length attribute like '300' or '300px'. Percentages yield None."""
    if value is None:
        return None
    text = str(value).strip().lower().removesuffix("px")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if number > 0 else None


class _LineBoxLayout:
    """Accumulates block heights while walking a parsed chapter."""

    def __init__(self, config: RenderConfig) -> None:
        self._font_size = config.font_size
        self._line_height = config.line_height
        self._width = config.content_width
        self._inline: list[str] = []
        self._preformatted = False
        self.height = 0.0

    def _line_px(self, scale: float) -> float:
        return self._font_size * scale * self._line_height

    def _chars_per_line(self, scale: float) -> int:
        return max(1, math.floor(self._width / (self._font_size * scale * CHAR_WIDTH_EM)))

    def _has_inline_text(self) -> bool:
        return any(chunk.strip() for chunk in self._inline)

    def flush(self, scale: float) -> None:
        """Lay out pending inline text as line boxes at the given font scale."""
        text = "".join(self._inline)
        self._inline.clear()
        per_line = self._chars_per_line(scale)

        if self._preformatted:
            if not text.strip():
                return
            lines = text.strip("\n").split("\n")
            line_count = sum(max(1, math.ceil(len(line) / per_line)) for line in lines)
        else:
            collapsed = " ".join(text.split())
            if not collapsed:
                return
            line_count = math.ceil(len(collapsed) / per_line)

        self.height += line_count * self._line_px(scale)

    def _image_height(self, tag: Tag) -> float:
        width = _parse_px(tag.get("width"))
        height = _parse_px(tag.get("height"))
        if width and height:
            return height * min(1.0, self._width / width)
        if height:
            return height
        if width:
            return min(width, self._width) * 0.75
        return DEFAULT_IMAGE_HEIGHT

    def walk(self, node: Tag, scale: float) -> None:
        for child in node.children:
            if isinstance(child, Tag):
                self._visit(child, scale)
            elif isinstance(child, NavigableString) and not isinstance(child, PreformattedString):
                self._inline.append(str(child))

    def _visit(self, tag: Tag, scale: float) -> None:
        name = tag.name
        if name in SKIPPED_TAGS:
            return

        if name == "br":
            if self._has_inline_text():
                self.flush(scale)
            else:
                self.height += self._line_px(scale)
            return

        if name in IMAGE_TAGS:
            self.flush(scale)
            self.height += self._image_height(tag)
            return

        if name == "hr":
            self.flush(scale)
            self.height += self._font_size * scale
            return

        if name not in BLOCK_TAGS:
            self.walk(tag, scale)
            return

        self.flush(scale)
        block_scale = HEADING_SCALE.get(name, scale)
        before = self.height
        was_preformatted = self._preformatted
        if name == "pre":
            self._preformatted = True

        self.walk(tag, block_scale)
        self.flush(block_scale)

        self._preformatted = was_preformatted
        if self.height > before:
            self.height += BLOCK_MARGIN_EM.get(name, 0.0) * self._font_size * block_scale


class MeasurementSurface:
    """Measures chapter markup at a fixed width and typography.

    Only valid inside the measurement_surface() context that created it.
    """

    def __init__(self, config: RenderConfig) -> None:
        self._config = config
        self._released = False

    def measure(self, html: str) -> float:
        """Estimate the rendered height of an HTML fragment in pixels.

        Raises:
            RuntimeError: If the surface has already been released.
        """
        if self._released:
            raise RuntimeError("Measurement surface has been released")
        soup = BeautifulSoup(html, HTML_PARSER)
        layout = _LineBoxLayout(self._config)
        layout.walk(soup, 1.0)
        layout.flush(1.0)
        return layout.height

    def release(self) -> None:
        self._released = True


@contextmanager
def measurement_surface(config: RenderConfig) -> Iterator[MeasurementSurface]:
    """Provide a MeasurementSurface for one pagination pass, released on exit."""
    surface = MeasurementSurface(config)
    try:
        yield surface
    finally:
        surface.release()
