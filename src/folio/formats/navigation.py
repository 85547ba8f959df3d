# ABOUTME: Table-of-contents extraction for EPUB3 nav documents and EPUB2 NCX files.
# ABOUTME: Both formats normalize into the same NavigationNode tree.

import logging
import warnings
from dataclasses import dataclass
from enum import Enum

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning
from lxml import etree

from folio.formats.archive import ArchiveReader
from folio.formats.container import local_name, parse_xml
from folio.formats.errors import EpubReadError
from folio.formats.urls import resolve_path, split_fragment
from folio.metadata.types import ManifestEntry, NavigationNode, SpineItem

logger = logging.getLogger(__name__)

# XHTML nav documents are deliberately parsed with the HTML tree builder
warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

NCX_MEDIA_TYPE = "application/x-dtbncx+xml"
HTML_PARSER = "html.parser"


class NavigationKind(Enum):
    """Which table-of-contents schema a book provides."""

    EPUB3_NAV = "epub3-nav"
    EPUB2_NCX = "epub2-ncx"
    NONE = "none"


@dataclass(frozen=True)
class NavigationSource:
    """The navigation document chosen for a book, tagged with its schema."""

    kind: NavigationKind
    entry: ManifestEntry | None = None


def _find_ncx_entry(
    manifest: dict[str, ManifestEntry], ncx_id: str | None = None
) -> ManifestEntry | None:
    """The NCX manifest entry, preferring the one named by the spine's toc attribute."""
    if ncx_id and ncx_id in manifest and manifest[ncx_id].media_type == NCX_MEDIA_TYPE:
        return manifest[ncx_id]
    for entry in manifest.values():
        if entry.media_type == NCX_MEDIA_TYPE:
            return entry
    return None


def select_navigation_source(
    manifest: dict[str, ManifestEntry], ncx_id: str | None = None
) -> NavigationSource:
    """Pick the EPUB3 nav document if declared, else the EPUB2 NCX, else nothing."""
    for entry in manifest.values():
        if entry.is_navigation_document:
            return NavigationSource(NavigationKind.EPUB3_NAV, entry)

    ncx_entry = _find_ncx_entry(manifest, ncx_id)
    if ncx_entry is not None:
        return NavigationSource(NavigationKind.EPUB2_NCX, ncx_entry)

    return NavigationSource(NavigationKind.NONE)


def _make_node(
    title: str | None,
    href: str | None,
    base_path: str,
    children: list[NavigationNode],
    source_order: int | None = None,
) -> NavigationNode | None:
    """Build a node, or None when it has no title or points nowhere and has no children."""
    if not title:
        return None

    target_path: str | None = None
    fragment: str | None = None
    if href:
        path, fragment = split_fragment(href.strip())
        target_path = resolve_path(base_path, path)

    if target_path is None and not children:
        return None

    return NavigationNode(
        title=title,
        target_path=target_path,
        fragment_id=fragment,
        children=tuple(children),
        source_order=source_order,
    )


# --- EPUB3 nav document ---


def _clean_text(element: Tag) -> str:
    return " ".join(element.get_text(" ").split())


def _is_toc_nav(nav: Tag) -> bool:
    epub_type = str(nav.get("epub:type") or "").split()
    role = str(nav.get("role") or "")
    return "toc" in epub_type or role == "doc-toc"


def _parse_nav_list(list_el: Tag, nav_path: str) -> list[NavigationNode]:
    nodes: list[NavigationNode] = []
    for li in list_el.find_all("li", recursive=False):
        title: str | None = None
        href: str | None = None

        label = li.find(["a", "span"], recursive=False)
        if label is None:
            # Some generators wrap the anchor in a <p> or <div>
            label = next(
                (
                    candidate
                    for candidate in li.find_all(["a", "span"])
                    if candidate.find_parent(["ol", "ul"]) is list_el
                ),
                None,
            )
        if label is not None:
            title = _clean_text(label) or None
            if label.name == "a":
                raw_href = label.get("href")
                href = str(raw_href) if raw_href else None

        nested = li.find(["ol", "ul"], recursive=False)
        children = _parse_nav_list(nested, nav_path) if nested is not None else []

        node = _make_node(title, href, nav_path, children)
        if node is not None:
            nodes.append(node)
    return nodes


def parse_nav_document(html: str, nav_path: str) -> list[NavigationNode]:
    """Parse an EPUB3 navigation document into a NavigationNode tree.

    Args:
        html: The nav document markup.
        nav_path: Archive path of the nav document, used to resolve hrefs.

    Returns:
        Top-level navigation nodes, or an empty list if no TOC list is found.
    """
    soup = BeautifulSoup(html, HTML_PARSER)
    navs = soup.find_all("nav")
    if not navs:
        logger.warning("No <nav> element found in %s", nav_path)
        return []

    toc_nav = next((nav for nav in navs if _is_toc_nav(nav)), navs[0])
    toc_list = toc_nav.find(["ol", "ul"])
    if toc_list is None:
        return []

    return _parse_nav_list(toc_list, nav_path)


# --- EPUB2 NCX ---


def _child_elements(parent: etree._Element, name: str) -> list[etree._Element]:
    return [child for child in parent if local_name(child) == name]


def _parse_play_order(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        logger.debug("Ignoring non-numeric playOrder: %r", value)
        return None


def _parse_nav_points(parent: etree._Element, ncx_path: str) -> list[NavigationNode]:
    nodes: list[NavigationNode] = []
    for nav_point in _child_elements(parent, "navPoint"):
        title: str | None = None
        for nav_label in _child_elements(nav_point, "navLabel"):
            texts = _child_elements(nav_label, "text")
            if texts:
                title = " ".join("".join(texts[0].itertext()).split()) or None
                break

        src: str | None = None
        contents = _child_elements(nav_point, "content")
        if contents:
            src = contents[0].get("src") or None

        children = _parse_nav_points(nav_point, ncx_path)
        node = _make_node(
            title,
            src,
            ncx_path,
            children,
            source_order=_parse_play_order(nav_point.get("playOrder")),
        )
        if node is not None:
            nodes.append(node)

    # playOrder decides sibling order only when every sibling declares one
    if nodes and all(node.source_order is not None for node in nodes):
        nodes.sort(key=lambda node: node.source_order)  # type: ignore[arg-type, return-value]
    return nodes


def parse_ncx(data: bytes, ncx_path: str) -> list[NavigationNode]:
    """Parse an EPUB2 NCX document into a NavigationNode tree.

    Malformed XML is logged and yields an empty list rather than failing.
    """
    try:
        root = parse_xml(data)
    except etree.XMLSyntaxError as exc:
        logger.warning("Failed to parse NCX %s: %s", ncx_path, exc)
        return []

    nav_map = next((el for el in root.iter() if local_name(el) == "navMap"), None)
    if nav_map is None:
        return []
    return _parse_nav_points(nav_map, ncx_path)


def _read_nav(archive: ArchiveReader, entry: ManifestEntry) -> list[NavigationNode]:
    try:
        html = archive.read_text(entry.path)
    except EpubReadError as exc:
        logger.warning("Failed to read navigation document %s: %s", entry.path, exc)
        return []
    return parse_nav_document(html, entry.path)


def _read_ncx(archive: ArchiveReader, entry: ManifestEntry) -> list[NavigationNode]:
    try:
        data = archive.read_binary(entry.path)
    except EpubReadError as exc:
        logger.warning("Failed to read NCX %s: %s", entry.path, exc)
        return []
    return parse_ncx(data, entry.path)


def resolve_navigation(
    archive: ArchiveReader,
    manifest: dict[str, ManifestEntry],
    ncx_id: str | None = None,
) -> list[NavigationNode]:
    """Locate and parse the book's table of contents.

    Prefers the EPUB3 nav document and falls back to the EPUB2 NCX, including
    when the nav document is unreadable or empty. Returns an empty list when the
    book has neither.
    """
    source = select_navigation_source(manifest, ncx_id)

    if source.kind is NavigationKind.EPUB3_NAV and source.entry is not None:
        logger.debug("Using EPUB3 navigation document %s", source.entry.path)
        nodes = _read_nav(archive, source.entry)
        if nodes:
            return nodes
        ncx_entry = _find_ncx_entry(manifest, ncx_id)
        if ncx_entry is not None:
            logger.info("EPUB3 navigation was empty, falling back to NCX %s", ncx_entry.path)
            return _read_ncx(archive, ncx_entry)
        return nodes

    if source.kind is NavigationKind.EPUB2_NCX and source.entry is not None:
        logger.debug("Using EPUB2 NCX %s", source.entry.path)
        return _read_ncx(archive, source.entry)

    logger.warning("No navigation document found")
    return []


def synthesize_navigation(spine: tuple[SpineItem, ...]) -> list[NavigationNode]:
    """Build a flat table of contents with one node per linear spine item."""
    return [
        NavigationNode(title=f"Chapter {item.order + 1}", target_path=item.path)
        for item in spine
        if item.linear
    ]
