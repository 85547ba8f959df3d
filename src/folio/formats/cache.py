# ABOUTME: Per-book memoization of stylesheets, embedded fonts, and loaded chapters.
# ABOUTME: Owned by one DocumentModel and discarded with it; never shared between books.

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from folio.formats.chapter import ChapterContent


@dataclass
class ResourceCache:
    """Append-only maps keyed by archive path (or spine index for chapters).

    Values are deterministic for a given archive, so concurrent population
    with last-writer-wins is acceptable.
    """

    stylesheets: dict[str, str] = field(default_factory=dict)
    fonts: dict[str, str] = field(default_factory=dict)
    chapters: dict[int, "ChapterContent"] = field(default_factory=dict)

    def clear(self) -> None:
        """Drop every cached value."""
        self.stylesheets.clear()
        self.fonts.clear()
        self.chapters.clear()
