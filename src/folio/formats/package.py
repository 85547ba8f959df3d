# ABOUTME: Parses the OPF package document into metadata, manifest, and spine.
# ABOUTME: Dublin Core fields fall back to sentinel defaults; bad spine refs are skipped.

import logging
from dataclasses import dataclass

from lxml import etree

from folio.formats.archive import ArchiveReader
from folio.formats.container import local_name, parse_xml
from folio.formats.errors import MalformedPackageError
from folio.formats.urls import resolve_path
from folio.metadata.types import (
    DEFAULT_LANGUAGE,
    UNKNOWN_AUTHOR,
    UNKNOWN_TITLE,
    BookMetadata,
    ManifestEntry,
    SpineItem,
)

logger = logging.getLogger(__name__)

DC_NAMESPACE = "http://purl.org/dc/elements/1.1/"


@dataclass(frozen=True)
class PackageDocument:
    """The parsed contents of an OPF package document."""

    path: str
    metadata: BookMetadata
    manifest: dict[str, ManifestEntry]
    spine: tuple[SpineItem, ...]
    ncx_id: str | None = None


def _children_named(parent: etree._Element, name: str) -> list[etree._Element]:
    """Direct children of parent with the given local name."""
    return [child for child in parent if local_name(child) == name]


def _first_descendant(root: etree._Element, name: str) -> etree._Element | None:
    """First element in document order with the given local name."""
    for element in root.iter():
        if local_name(element) == name:
            return element
    return None


def _text_of(element: etree._Element) -> str | None:
    """Whitespace-normalized text content, or None when empty."""
    text = " ".join("".join(element.itertext()).split())
    return text or None


def _get_metadata_value(metadata_el: etree._Element | None, name: str) -> str | None:
    """Extract a Dublin Core value, trying the un-prefixed name before dc:name."""
    if metadata_el is None:
        return None

    candidates = [el for el in metadata_el.iter() if local_name(el) == name]
    # Un-prefixed elements win over the Dublin Core namespace when both exist
    plain = [el for el in candidates if etree.QName(el).namespace != DC_NAMESPACE]
    prefixed = [el for el in candidates if etree.QName(el).namespace == DC_NAMESPACE]

    for element in (*plain, *prefixed):
        value = _text_of(element)
        if value:
            return value
    return None


def _extract_metadata(metadata_el: etree._Element | None) -> BookMetadata:
    return BookMetadata(
        title=_get_metadata_value(metadata_el, "title") or UNKNOWN_TITLE,
        creator=_get_metadata_value(metadata_el, "creator") or UNKNOWN_AUTHOR,
        language=_get_metadata_value(metadata_el, "language") or DEFAULT_LANGUAGE,
        publisher=_get_metadata_value(metadata_el, "publisher"),
        date=_get_metadata_value(metadata_el, "date"),
        description=_get_metadata_value(metadata_el, "description"),
        rights=_get_metadata_value(metadata_el, "rights"),
        identifier=_get_metadata_value(metadata_el, "identifier"),
    )


def _find_cover_id(metadata_el: etree._Element | None) -> str | None:
    """Find the EPUB2 <meta name="cover" content="..."> manifest id, if declared."""
    if metadata_el is None:
        return None
    for element in metadata_el.iter():
        if local_name(element) == "meta" and element.get("name") == "cover":
            content = (element.get("content") or "").strip()
            if content:
                return content
    return None


def _extract_manifest(
    manifest_el: etree._Element | None, package_path: str, cover_id: str | None
) -> dict[str, ManifestEntry]:
    """Build the id -> ManifestEntry map, resolving hrefs against the package path."""
    manifest: dict[str, ManifestEntry] = {}
    if manifest_el is None:
        logger.warning("Package document has no manifest")
        return manifest

    for item in _children_named(manifest_el, "item"):
        item_id = item.get("id")
        href = item.get("href")
        if not item_id or not href:
            logger.warning("Skipping manifest item without id or href: %s", item_id or href)
            continue

        properties = (item.get("properties") or "").split()
        manifest[item_id] = ManifestEntry(
            id=item_id,
            path=resolve_path(package_path, href),
            media_type=(item.get("media-type") or "").strip(),
            is_navigation_document="nav" in properties,
            is_cover_image="cover-image" in properties or item_id == cover_id,
        )

    logger.debug("Found %d manifest items", len(manifest))
    return manifest


def _extract_spine(
    spine_el: etree._Element | None, manifest: dict[str, ManifestEntry]
) -> tuple[SpineItem, ...]:
    """Build the reading order. Unresolvable idrefs are skipped without leaving gaps."""
    spine: list[SpineItem] = []
    if spine_el is None:
        logger.warning("Package document has no spine")
        return ()

    for itemref in _children_named(spine_el, "itemref"):
        idref = itemref.get("idref")
        entry = manifest.get(idref) if idref else None
        if entry is None:
            logger.debug("Skipping spine itemref with unknown idref: %s", idref)
            continue
        spine.append(
            SpineItem(
                entry=entry,
                linear=itemref.get("linear") != "no",
                order=len(spine),
            )
        )

    logger.debug("Found %d spine items", len(spine))
    return tuple(spine)


def parse_package(archive: ArchiveReader, package_path: str) -> PackageDocument:
    """Parse the OPF package document.

    Args:
        archive: The opened EPUB archive.
        package_path: Archive path of the OPF file (from container.xml).

    Returns:
        PackageDocument with metadata, manifest, and spine.

    Raises:
        ResourceNotFoundError: If the package document is not in the archive.
        MalformedPackageError: If the package document is not well-formed XML.
    """
    data = archive.read_binary(package_path)
    try:
        root = parse_xml(data)
    except etree.XMLSyntaxError as exc:
        raise MalformedPackageError(f"Failed to parse OPF XML: {package_path}: {exc}") from exc

    metadata_el = _first_descendant(root, "metadata")
    manifest_el = _first_descendant(root, "manifest")
    spine_el = _first_descendant(root, "spine")

    manifest = _extract_manifest(manifest_el, package_path, _find_cover_id(metadata_el))
    spine = _extract_spine(spine_el, manifest)
    ncx_id = spine_el.get("toc") if spine_el is not None else None

    return PackageDocument(
        path=package_path,
        metadata=_extract_metadata(metadata_el),
        manifest=manifest,
        spine=spine,
        ncx_id=ncx_id or None,
    )
