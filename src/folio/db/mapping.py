# ABOUTME: Converts between DocumentSnapshot dataclasses and SQLite rows.
# ABOUTME: The snapshot is stored as a JSON document alongside a few indexed columns.

import json
from dataclasses import asdict, dataclass
from typing import Any

from folio.core.document import DocumentSnapshot
from folio.formats.fonts import EmbeddedFont
from folio.formats.styles import Stylesheet
from folio.metadata.types import BookMetadata, ManifestEntry, NavigationNode, SpineItem


@dataclass
class BookRecord:
    """A cataloged book: its snapshot plus database-specific fields."""

    id: int
    snapshot: DocumentSnapshot
    file_name: str
    file_size: int
    file_hash: str
    current_position: int
    progress_percent: float
    last_read: str | None
    date_added: str

    @property
    def metadata(self) -> BookMetadata:
        return self.snapshot.metadata


def _navigation_to_dict(node: NavigationNode) -> dict[str, Any]:
    return {
        "title": node.title,
        "target_path": node.target_path,
        "fragment_id": node.fragment_id,
        "source_order": node.source_order,
        "children": [_navigation_to_dict(child) for child in node.children],
    }


def _navigation_from_dict(data: dict[str, Any]) -> NavigationNode:
    return NavigationNode(
        title=data["title"],
        target_path=data.get("target_path"),
        fragment_id=data.get("fragment_id"),
        source_order=data.get("source_order"),
        children=tuple(_navigation_from_dict(child) for child in data.get("children", [])),
    )


def snapshot_to_json(snapshot: DocumentSnapshot) -> str:
    """Serialize a snapshot to JSON.

    Spine items reference manifest entries by id rather than repeating them.
    """
    document = {
        "metadata": asdict(snapshot.metadata),
        "manifest": [asdict(entry) for entry in snapshot.manifest.values()],
        "spine": [
            {"idref": item.entry.id, "linear": item.linear} for item in snapshot.spine
        ],
        "navigation": [_navigation_to_dict(node) for node in snapshot.navigation],
        "fonts": [asdict(font) for font in snapshot.fonts],
        "global_css": [asdict(sheet) for sheet in snapshot.global_css],
    }
    return json.dumps(document)


def snapshot_from_json(text: str) -> DocumentSnapshot:
    """Rebuild a DocumentSnapshot from its JSON form.

    Raises:
        ValueError: If the JSON is malformed or a spine idref is not in the manifest.
    """
    document = json.loads(text)
    manifest = {
        entry["id"]: ManifestEntry(**entry) for entry in document.get("manifest", [])
    }

    spine: list[SpineItem] = []
    for item in document.get("spine", []):
        entry = manifest.get(item["idref"])
        if entry is None:
            raise ValueError(f"Spine references unknown manifest id: {item['idref']}")
        spine.append(SpineItem(entry=entry, linear=item["linear"], order=len(spine)))

    return DocumentSnapshot(
        metadata=BookMetadata(**document["metadata"]),
        manifest=manifest,
        spine=tuple(spine),
        navigation=tuple(_navigation_from_dict(node) for node in document.get("navigation", [])),
        fonts=tuple(EmbeddedFont(**font) for font in document.get("fonts", [])),
        global_css=tuple(Stylesheet(**sheet) for sheet in document.get("global_css", [])),
    )


def snapshot_to_row(
    snapshot: DocumentSnapshot,
    file_name: str,
    file_size: int,
    file_hash: str,
) -> dict[str, Any]:
    """Convert a snapshot and file facts to a dict suitable for INSERT."""
    return {
        "title": snapshot.metadata.title,
        "creator": snapshot.metadata.creator,
        "language": snapshot.metadata.language,
        "file_name": file_name,
        "file_size": file_size,
        "file_hash": file_hash,
        "document": snapshot_to_json(snapshot),
    }


def row_to_record(row: Any) -> BookRecord:
    """Convert a full books row to a BookRecord."""
    return BookRecord(
        id=row["id"],
        snapshot=snapshot_from_json(row["document"]),
        file_name=row["file_name"],
        file_size=row["file_size"],
        file_hash=row["file_hash"],
        current_position=row["current_position"],
        progress_percent=row["progress_percent"],
        last_read=row["last_read"],
        date_added=row["date_added"],
    )
