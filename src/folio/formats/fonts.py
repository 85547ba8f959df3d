# ABOUTME: Extracts embedded fonts from an EPUB and inlines them as data URIs.
# ABOUTME: Rewrites @font-face url() references so stylesheets work without the archive.

import logging
import re
from dataclasses import dataclass

from folio.formats.archive import ArchiveReader
from folio.formats.cache import ResourceCache
from folio.formats.errors import EpubReadError
from folio.formats.urls import CSS_URL_RE, make_data_uri, resolve_path, split_fragment
from folio.metadata.types import ManifestEntry

logger = logging.getLogger(__name__)

GENERIC_MEDIA_TYPE = "application/octet-stream"
DEFAULT_FONT_MIME_TYPE = "font/opentype"

FONT_MIME_TYPES: dict[str, str] = {
    "ttf": "font/ttf",
    "otf": "font/otf",
    "woff": "font/woff",
    "woff2": "font/woff2",
    "eot": "application/vnd.ms-fontobject",
    "svg": "image/svg+xml",
}

_FONT_MEDIA_TYPE_MARKERS = ("font", "otf", "ttf", "woff")

_FONT_FACE_RE = re.compile(r"@font-face\s*\{[^}]*\}", re.IGNORECASE)


@dataclass(frozen=True)
class EmbeddedFont:
    """A font file from the manifest, encoded for inline use."""

    id: str
    path: str
    mime_type: str
    data_uri: str
    file_name: str


def is_font_entry(entry: ManifestEntry) -> bool:
    """Permissive check: any media type mentioning font, otf, ttf, or woff."""
    media_type = entry.media_type.lower()
    return any(marker in media_type for marker in _FONT_MEDIA_TYPE_MARKERS)


def font_mime_type(media_type: str | None, path: str) -> str:
    """The MIME type for a font, inferred from its extension when the manifest is generic."""
    if media_type and media_type != GENERIC_MEDIA_TYPE:
        return media_type
    extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
    return FONT_MIME_TYPES.get(extension, DEFAULT_FONT_MIME_TYPE)


class FontResolver:
    """Embeds manifest fonts and memoizes their data URIs by archive path."""

    def __init__(
        self,
        archive: ArchiveReader,
        manifest: dict[str, ManifestEntry],
        cache: ResourceCache,
    ) -> None:
        self._archive = archive
        self._manifest = manifest
        self._cache = cache

    def extract_all(self) -> list[EmbeddedFont]:
        """Extract every font in the manifest. Unreadable fonts are logged and skipped."""
        fonts: list[EmbeddedFont] = []
        for entry in self._manifest.values():
            if not is_font_entry(entry):
                continue
            try:
                data = self._archive.read_binary(entry.path)
            except EpubReadError as exc:
                logger.warning("Failed to extract font %s: %s", entry.path, exc)
                continue

            mime_type = font_mime_type(entry.media_type, entry.path)
            data_uri = make_data_uri(mime_type, data)
            self._cache.fonts[entry.path] = data_uri
            fonts.append(
                EmbeddedFont(
                    id=entry.id,
                    path=entry.path,
                    mime_type=mime_type,
                    data_uri=data_uri,
                    file_name=entry.file_name,
                )
            )

        logger.debug("Extracted %d fonts", len(fonts))
        return fonts

    def rewrite_font_face_urls(self, css_text: str, base_path: str) -> str:
        """Point @font-face url() references at the embedded font data.

        Each url() inside an @font-face block is resolved against base_path
        (the stylesheet or chapter that contains the CSS). URLs that are already
        data URIs, or that do not match an extracted font, are left unchanged.

        Args:
            css_text: Stylesheet text.
            base_path: Archive path the CSS was loaded from.

        Returns:
            The CSS with font references replaced by data URIs.
        """

        def _replace_url(match: re.Match[str]) -> str:
            url = match.group(2).strip()
            if url.startswith("data:"):
                return match.group(0)
            font_path = resolve_path(base_path, split_fragment(url)[0])
            data_uri = self._cache.fonts.get(font_path)
            if data_uri is None:
                logger.debug("No embedded font for %s (from %s)", url, base_path)
                return match.group(0)
            return f"url('{data_uri}')"

        def _replace_block(match: re.Match[str]) -> str:
            return CSS_URL_RE.sub(_replace_url, match.group(0))

        return _FONT_FACE_RE.sub(_replace_block, css_text)
