# ABOUTME: Archive-internal path resolution shared by every EPUB resource lookup.
# ABOUTME: Resolves relative references, splits fragments, and builds data URIs.

import base64
import re
from urllib.parse import unquote

# Matches "scheme:" prefixes such as http:, https:, data:, mailto:
_SCHEME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def split_fragment(href: str) -> tuple[str, str | None]:
    """Split an href into its path and fragment parts.

    Returns:
        (path, fragment) tuple. Fragment is None when absent or empty.
    """
    path, _, fragment = href.partition("#")
    return path, fragment or None


def directory_of(path: str) -> str:
    """Return the directory portion of an archive path ('' at the archive root)."""
    return path.rsplit("/", 1)[0] if "/" in path else ""


def is_absolute_url(url: str) -> bool:
    """Whether a URL points outside the archive (data:, http:, //host, ...)."""
    return url.startswith("//") or bool(_SCHEME_RE.match(url))


def resolve_path(base_path: str, reference: str) -> str:
    """Resolve a reference found in base_path to an archive-internal path.

    A leading slash is archive-root-relative. Otherwise the reference is joined
    to the directory of base_path, with each '../' popping one directory level
    and './' segments ignored. An empty reference points at base_path itself.

    Args:
        base_path: Archive path of the document containing the reference.
        reference: The relative (or root-absolute) reference, without fragment.

    Returns:
        Normalized archive path with no leading slash.
    """
    if not reference:
        return base_path

    reference = unquote(reference)
    if reference.startswith("/"):
        parts: list[str] = []
    else:
        base_dir = directory_of(base_path)
        parts = base_dir.split("/") if base_dir else []

    for segment in reference.split("/"):
        if segment in ("", "."):
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)

    return "/".join(parts)


def make_data_uri(mime_type: str, data: bytes) -> str:
    """Encode binary data as a base64 data URI."""
    encoded = base64.b64encode(data).decode("ascii")
    return f"data:{mime_type};base64,{encoded}"


# Matches CSS url(...) tokens; group 1 is the optional quote, group 2 the URL
CSS_URL_RE = re.compile(r"""url\(\s*(['"]?)([^'")]+?)\1\s*\)""")
