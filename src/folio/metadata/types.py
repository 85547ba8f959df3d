# ABOUTME: Core data structures describing a parsed EPUB package.
# ABOUTME: Metadata, manifest, spine, and navigation are built once per load and never mutated.

from dataclasses import dataclass, field

UNKNOWN_TITLE = "Unknown Title"
UNKNOWN_AUTHOR = "Unknown Author"
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class BookMetadata:
    """Dublin Core metadata from the package document.

    Title, creator, and language always have a value: missing fields fall back
    to sentinel defaults. Everything else is None when absent.
    """

    title: str = UNKNOWN_TITLE
    creator: str = UNKNOWN_AUTHOR
    language: str = DEFAULT_LANGUAGE
    publisher: str | None = None
    date: str | None = None
    description: str | None = None
    rights: str | None = None
    identifier: str | None = None


@dataclass(frozen=True)
class ManifestEntry:
    """One file declared in the package manifest."""

    id: str
    path: str
    media_type: str
    is_navigation_document: bool = False
    is_cover_image: bool = False

    @property
    def file_name(self) -> str:
        """Last path segment of the entry."""
        return self.path.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class SpineItem:
    """A manifest entry placed in the reading order.

    order is the canonical chapter index and always equals the item's
    position in the spine sequence.
    """

    entry: ManifestEntry
    linear: bool
    order: int

    @property
    def path(self) -> str:
        return self.entry.path


@dataclass(frozen=True)
class NavigationNode:
    """A table-of-contents entry, normalized across EPUB3 nav and EPUB2 NCX."""

    title: str
    target_path: str | None = None
    fragment_id: str | None = None
    children: tuple["NavigationNode", ...] = field(default_factory=tuple)
    source_order: int | None = None

    @property
    def href(self) -> str | None:
        """The target as 'path#fragment', or None for label-only nodes."""
        if self.target_path is None:
            return None
        if self.fragment_id:
            return f"{self.target_path}#{self.fragment_id}"
        return self.target_path

    def walk(self) -> list["NavigationNode"]:
        """This node followed by all descendants, depth-first."""
        nodes = [self]
        for child in self.children:
            nodes.extend(child.walk())
        return nodes
