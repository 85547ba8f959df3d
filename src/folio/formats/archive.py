# ABOUTME: Read-only access to the ZIP container that backs an EPUB file.
# ABOUTME: Verifies the mimetype entry and exposes text/binary lookups by internal path.

import io
import logging
import threading
import zipfile
import zlib
from dataclasses import dataclass

from folio.formats.errors import InvalidArchiveError, NotAnEpubError, ResourceNotFoundError

logger = logging.getLogger(__name__)

EPUB_MIMETYPE = "application/epub+zip"
MIMETYPE_ENTRY = "mimetype"


@dataclass(frozen=True)
class ArchiveEntry:
    """A single entry in the EPUB archive."""

    path: str
    is_directory: bool


class ArchiveReader:
    """An opened EPUB archive held entirely in memory.

    The handle is read-only after open(), so it can be shared by concurrent
    resource reads. Reads are serialized internally on the underlying ZipFile.
    """

    def __init__(self, zip_file: zipfile.ZipFile) -> None:
        self._zip = zip_file
        self._lock = threading.Lock()
        self._names = set(zip_file.namelist())

    @classmethod
    def open(cls, data: bytes) -> "ArchiveReader":
        """Open an EPUB from its raw bytes.

        Args:
            data: The complete EPUB file contents.

        Returns:
            An ArchiveReader for the archive.

        Raises:
            InvalidArchiveError: If the ZIP central directory cannot be read.
            NotAnEpubError: If the mimetype entry is missing or wrong.
        """
        try:
            zip_file = zipfile.ZipFile(io.BytesIO(data))
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
            raise InvalidArchiveError(f"Not a readable ZIP archive: {exc}") from exc

        archive = cls(zip_file)
        try:
            archive._verify_mimetype()
        except (NotAnEpubError, InvalidArchiveError):
            archive.close()
            raise
        return archive

    def _verify_mimetype(self) -> None:
        """Check the mimetype entry exists and declares application/epub+zip."""
        if MIMETYPE_ENTRY not in self._names:
            raise NotAnEpubError("No mimetype file found - not a valid EPUB")

        infos = self._zip.infolist()
        if infos and infos[0].filename != MIMETYPE_ENTRY:
            logger.warning("mimetype is not the first archive entry")

        try:
            mimetype = self.read_binary(MIMETYPE_ENTRY).decode("ascii").strip()
        except UnicodeDecodeError as exc:
            raise NotAnEpubError("mimetype entry is not ASCII text") from exc

        if mimetype != EPUB_MIMETYPE:
            raise NotAnEpubError(f"Invalid mimetype: {mimetype!r}")

    def __contains__(self, path: object) -> bool:
        return path in self._names

    def read_binary(self, path: str) -> bytes:
        """Read an archive entry as raw bytes.

        Raises:
            ResourceNotFoundError: If path is not in the archive.
            InvalidArchiveError: If the entry is corrupt, encrypted, or uses an
                unsupported compression method.
        """
        if path not in self._names:
            raise ResourceNotFoundError(f"File not found in EPUB: {path}")
        with self._lock:
            try:
                return self._zip.read(path)
            except (
                zipfile.BadZipFile,
                OSError,
                zlib.error,
                RuntimeError,
                NotImplementedError,
                EOFError,
            ) as exc:
                raise InvalidArchiveError(f"Failed to decompress {path}: {exc}") from exc

    def read_text(self, path: str) -> str:
        """Read an archive entry as UTF-8 text (BOM tolerated).

        Raises:
            ResourceNotFoundError: If path is not in the archive.
        """
        return self.read_binary(path).decode("utf-8-sig", errors="replace")

    def list_entries(self) -> list[ArchiveEntry]:
        """List every entry in archive order."""
        return [
            ArchiveEntry(path=info.filename, is_directory=info.is_dir())
            for info in self._zip.infolist()
        ]

    def close(self) -> None:
        """Release the underlying ZipFile."""
        self._zip.close()

    def __enter__(self) -> "ArchiveReader":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
