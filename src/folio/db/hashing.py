# ABOUTME: SHA-256 hashing of EPUB contents for deduplication on import.
# ABOUTME: Files are hashed in chunks; in-memory archives are hashed directly.

import hashlib
from pathlib import Path

_CHUNK_SIZE = 65536  # 64 KB


def compute_file_hash(path: Path) -> str:
    """Compute the SHA-256 hash of a file.

    Args:
        path: Path to the file to hash.

    Returns:
        Lowercase hex digest string (64 characters).

    Raises:
        FileNotFoundError: If the file does not exist.
    """
    hasher = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(_CHUNK_SIZE):
            hasher.update(chunk)
    return hasher.hexdigest()


def compute_bytes_hash(data: bytes) -> str:
    """SHA-256 hex digest of an in-memory archive."""
    return hashlib.sha256(data).hexdigest()
