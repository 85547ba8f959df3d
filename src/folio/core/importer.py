# ABOUTME: Import pipeline that parses EPUBs and stores them in the folio library.
# ABOUTME: Also re-opens stored books as DocumentModels from their saved archive bytes.

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from folio.core.document import DocumentModel
from folio.db.catalog import DuplicateBookError, LibraryCatalog
from folio.db.hashing import compute_bytes_hash
from folio.formats.errors import EpubReadError

logger = logging.getLogger(__name__)


@dataclass
class ImportResult:
    """Summary of an import operation."""

    added: int = 0
    skipped: int = 0
    errors: int = 0
    book_ids: list[int] = field(default_factory=list)
    error_details: list[tuple[Path, str]] = field(default_factory=list)


# Called after each file with (index, total, path)
ProgressFn = Callable[[int, int, Path], None]


async def import_books(
    paths: list[Path],
    catalog: LibraryCatalog,
    *,
    on_progress: ProgressFn | None = None,
) -> ImportResult:
    """Import EPUB files into the library catalog.

    For each file: reads the bytes, computes the SHA-256 hash, loads the
    document to validate it and capture a snapshot, then stores snapshot and
    bytes together. Duplicate files (same hash) are skipped before parsing.
    Unreadable files are recorded as errors and do not stop the batch.

    Args:
        paths: EPUB file paths to import.
        catalog: The library catalog to add books to.
        on_progress: Optional callback invoked after each file.

    Returns:
        ImportResult with counts of added, skipped, and errored files.
    """
    result = ImportResult()

    for position, epub_path in enumerate(paths, start=1):
        await _import_one(epub_path, catalog, result)
        if on_progress is not None:
            on_progress(position, len(paths), epub_path)

    logger.info(
        "Import finished: %d added, %d skipped, %d errors",
        result.added,
        result.skipped,
        result.errors,
    )
    return result


async def _import_one(epub_path: Path, catalog: LibraryCatalog, result: ImportResult) -> None:
    try:
        data = await asyncio.to_thread(epub_path.read_bytes)
    except OSError as exc:
        result.errors += 1
        result.error_details.append((epub_path, str(exc)))
        return

    file_hash = compute_bytes_hash(data)
    if catalog.get_by_hash(file_hash) is not None:
        logger.debug("Skipping %s: already in library", epub_path)
        result.skipped += 1
        return

    try:
        async with await DocumentModel.load(data) as document:
            snapshot = document.snapshot()
    except EpubReadError as exc:
        logger.warning("Cannot import %s: %s", epub_path, exc)
        result.errors += 1
        result.error_details.append((epub_path, str(exc)))
        return

    try:
        book_id = catalog.add_book(snapshot, data, file_name=epub_path.name, file_hash=file_hash)
    except DuplicateBookError:
        # Another process inserted the same file after the hash check
        result.skipped += 1
        return

    result.added += 1
    result.book_ids.append(book_id)


async def load_stored_document(catalog: LibraryCatalog, book_id: int) -> DocumentModel:
    """Re-open a cataloged book from its stored archive bytes.

    Raises:
        ValueError: If the book_id does not exist.
        EpubReadError: If the stored archive can no longer be parsed.
    """
    data = catalog.get_archive(book_id)
    return await DocumentModel.load(data)
