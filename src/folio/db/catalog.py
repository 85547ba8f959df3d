# ABOUTME: CRUD operations for the folio library catalog.
# ABOUTME: Stores book snapshots with their original archives and tracks reading progress.

import logging
import sqlite3

from folio.core.document import DocumentSnapshot
from folio.db.mapping import BookRecord, row_to_record, snapshot_to_row

logger = logging.getLogger(__name__)


class DuplicateBookError(Exception):
    """Raised when attempting to add a book with a file_hash that already exists."""


class LibraryCatalog:
    """Wraps a sqlite3 connection and provides typed CRUD for the books table."""

    def __init__(self, conn: sqlite3.Connection) -> None:
        self._conn = conn

    def add_book(
        self,
        snapshot: DocumentSnapshot,
        data: bytes,
        file_name: str,
        file_hash: str,
    ) -> int:
        """Add a book and its original archive bytes to the catalog.

        Args:
            snapshot: Plain-data view of the loaded document.
            data: The original EPUB bytes, kept so the book can be re-opened.
            file_name: Name of the imported file.
            file_hash: SHA-256 hash of data.

        Returns:
            The row ID of the inserted book.

        Raises:
            DuplicateBookError: If a book with this file_hash already exists.
        """
        row = snapshot_to_row(snapshot, file_name, len(data), file_hash)
        columns = ", ".join(row.keys())
        placeholders = ", ".join("?" for _ in row)

        try:
            with self._conn:
                cursor = self._conn.execute(
                    f"INSERT INTO books ({columns}) VALUES ({placeholders})",
                    list(row.values()),
                )
                book_id = cursor.lastrowid
                self._conn.execute(
                    "INSERT INTO files (book_id, data) VALUES (?, ?)",
                    (book_id, sqlite3.Binary(data)),
                )
        except sqlite3.IntegrityError as exc:
            if "UNIQUE constraint failed: books.file_hash" in str(exc):
                raise DuplicateBookError(f"Book with hash {file_hash} already exists") from exc
            raise

        logger.debug("Cataloged '%s' as book %s", snapshot.metadata.title, book_id)
        return book_id  # type: ignore[return-value]

    def get_by_id(self, book_id: int) -> BookRecord | None:
        """Retrieve a book by its row ID."""
        cursor = self._conn.execute("SELECT * FROM books WHERE id = ?", (book_id,))
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    def get_by_hash(self, file_hash: str) -> BookRecord | None:
        """Retrieve a book by its file hash."""
        cursor = self._conn.execute("SELECT * FROM books WHERE file_hash = ?", (file_hash,))
        row = cursor.fetchone()
        return row_to_record(row) if row else None

    def list_all(self) -> list[BookRecord]:
        """Return all books, most recently read first, then by title."""
        cursor = self._conn.execute(
            "SELECT * FROM books ORDER BY last_read IS NULL, last_read DESC, title"
        )
        return [row_to_record(row) for row in cursor.fetchall()]

    def get_archive(self, book_id: int) -> bytes:
        """Return the original EPUB bytes of a book.

        Raises:
            ValueError: If the book_id does not exist.
        """
        cursor = self._conn.execute("SELECT data FROM files WHERE book_id = ?", (book_id,))
        row = cursor.fetchone()
        if row is None:
            raise ValueError(f"Book with id {book_id} not found")
        return bytes(row["data"])

    def update_progress(self, book_id: int, current_position: int, progress_percent: float) -> None:
        """Record the reader's position and stamp last_read.

        Raises:
            ValueError: If the book_id does not exist, or progress is outside 0-100.
        """
        if not 0 <= progress_percent <= 100:
            raise ValueError(f"progress_percent must be between 0 and 100, got {progress_percent}")

        cursor = self._conn.execute(
            "UPDATE books SET current_position = ?, progress_percent = ?, "
            "last_read = strftime('%Y-%m-%dT%H:%M:%S', 'now') WHERE id = ?",
            (current_position, progress_percent, book_id),
        )
        self._conn.commit()

        if cursor.rowcount == 0:
            raise ValueError(f"Book with id {book_id} not found")

    def delete_book(self, book_id: int) -> None:
        """Delete a book and its stored archive.

        Raises:
            ValueError: If the book_id does not exist.
        """
        cursor = self._conn.execute("DELETE FROM books WHERE id = ?", (book_id,))
        self._conn.commit()

        if cursor.rowcount == 0:
            raise ValueError(f"Book with id {book_id} not found")
