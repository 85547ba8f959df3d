# ABOUTME: Locates the package (OPF) document via META-INF/container.xml.
# ABOUTME: The container file is mandatory; its absence is a hard failure.

import logging

from lxml import etree

from folio.formats.archive import ArchiveReader
from folio.formats.errors import MalformedContainerError, ResourceNotFoundError

logger = logging.getLogger(__name__)

CONTAINER_PATH = "META-INF/container.xml"


def parse_xml(data: bytes) -> etree._Element:
    """Parse XML bytes without resolving external entities or hitting the network."""
    parser = etree.XMLParser(resolve_entities=False, no_network=True, huge_tree=True)
    return etree.fromstring(data, parser)


def local_name(element: etree._Element) -> str:
    """Return an element's tag without its namespace ('' for comments and PIs)."""
    tag = element.tag
    if not isinstance(tag, str):
        return ""
    return etree.QName(tag).localname


def resolve_package_path(archive: ArchiveReader) -> str:
    """Return the archive path of the package document.

    Reads META-INF/container.xml and takes the full-path attribute of the first
    rootfile element.

    Raises:
        MalformedContainerError: If container.xml is missing, unparseable,
            or declares no rootfile with a full-path.
    """
    try:
        data = archive.read_binary(CONTAINER_PATH)
    except ResourceNotFoundError as exc:
        raise MalformedContainerError(f"Missing {CONTAINER_PATH}") from exc

    try:
        root = parse_xml(data)
    except etree.XMLSyntaxError as exc:
        raise MalformedContainerError(f"Failed to parse {CONTAINER_PATH}: {exc}") from exc

    for element in root.iter():
        if local_name(element) != "rootfile":
            continue
        full_path = (element.get("full-path") or "").strip()
        if full_path:
            package_path = full_path.lstrip("/")
            logger.debug("Found package document at %s", package_path)
            return package_path

    raise MalformedContainerError(f"No rootfile full-path found in {CONTAINER_PATH}")
