# ABOUTME: Exception taxonomy for EPUB container and document parsing.
# ABOUTME: Every parser failure derives from EpubReadError so callers can catch one type.


class EpubReadError(Exception):
    """Raised when an EPUB file cannot be read or parsed."""


class InvalidArchiveError(EpubReadError):
    """Raised when the ZIP central directory cannot be read."""


class NotAnEpubError(EpubReadError):
    """Raised when the mimetype entry is missing or is not application/epub+zip."""


class MalformedContainerError(EpubReadError):
    """Raised when META-INF/container.xml is missing, unparseable, or has no rootfile."""


class MalformedPackageError(EpubReadError):
    """Raised when the package (OPF) document cannot be parsed."""


class ResourceNotFoundError(EpubReadError):
    """Raised when an archive-internal path does not exist in the archive."""


class InvalidChapterIndexError(EpubReadError):
    """Raised when a chapter index falls outside the spine."""


class ChapterNotFoundError(EpubReadError):
    """Raised when no spine entry matches a chapter href."""
