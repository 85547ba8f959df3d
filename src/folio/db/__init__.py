# ABOUTME: Public API for the folio library database layer.
# ABOUTME: Exports connection management, catalog operations, and data types.

from folio.db.catalog import DuplicateBookError, LibraryCatalog
from folio.db.connection import DEFAULT_DB_PATH, open_library
from folio.db.hashing import compute_bytes_hash, compute_file_hash
from folio.db.mapping import BookRecord

__all__ = [
    "DEFAULT_DB_PATH",
    "BookRecord",
    "DuplicateBookError",
    "LibraryCatalog",
    "compute_bytes_hash",
    "compute_file_hash",
    "open_library",
]
