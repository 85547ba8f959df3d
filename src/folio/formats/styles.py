# ABOUTME: Collects the stylesheets that apply to each chapter of an EPUB.
# ABOUTME: Inline <style> blocks and linked stylesheets, with relative url() references embedded.

import logging
import re
from dataclasses import dataclass
from enum import Enum

from bs4 import BeautifulSoup, Tag

from folio.formats.archive import ArchiveReader
from folio.formats.cache import ResourceCache
from folio.formats.errors import EpubReadError
from folio.formats.urls import CSS_URL_RE, is_absolute_url, make_data_uri, resolve_path, split_fragment
from folio.metadata.types import ManifestEntry

logger = logging.getLogger(__name__)

CSS_MEDIA_TYPE = "text/css"
HTML_PARSER = "html.parser"


class StyleSourceKind(Enum):
    """Where a chapter's style rule came from."""

    INLINE = "inline"
    EXTERNAL = "external"


@dataclass(frozen=True)
class Stylesheet:
    """A CSS file declared in the manifest."""

    path: str
    css_text: str


@dataclass(frozen=True)
class StyleRule:
    """One block of CSS applying to a chapter, in document order."""

    source_kind: StyleSourceKind
    css_text: str
    resolved_href: str | None = None


def _is_stylesheet_link(link: Tag) -> bool:
    rel = link.get("rel") or []
    if isinstance(rel, str):
        rel = rel.split()
    return any(value.lower() == "stylesheet" for value in rel)


class StyleResolver:
    """Loads CSS from the archive and memoizes it in the book's ResourceCache."""

    def __init__(
        self,
        archive: ArchiveReader,
        manifest: dict[str, ManifestEntry],
        cache: ResourceCache,
    ) -> None:
        self._archive = archive
        self._manifest = manifest
        self._cache = cache
        self._by_path = {entry.path: entry for entry in manifest.values()}

    def load_all(self) -> list[Stylesheet]:
        """Load every text/css manifest entry. Unreadable files are logged and skipped."""
        stylesheets: list[Stylesheet] = []
        for entry in self._manifest.values():
            if entry.media_type != CSS_MEDIA_TYPE:
                continue
            try:
                css_text = self._archive.read_text(entry.path)
            except EpubReadError as exc:
                logger.warning("Failed to load CSS %s: %s", entry.path, exc)
                continue
            self._cache.stylesheets[entry.path] = css_text
            stylesheets.append(Stylesheet(path=entry.path, css_text=css_text))

        logger.debug("Loaded %d stylesheets", len(stylesheets))
        return stylesheets

    def _load_external(self, css_path: str) -> str | None:
        cached = self._cache.stylesheets.get(css_path)
        if cached is not None:
            return cached
        try:
            css_text = self._archive.read_text(css_path)
        except EpubReadError as exc:
            logger.warning("Failed to load stylesheet %s: %s", css_path, exc)
            return None
        self._cache.stylesheets[css_path] = css_text
        return css_text

    def for_chapter(self, chapter_html: str, chapter_path: str) -> list[StyleRule]:
        """Collect the style rules for one chapter in document order.

        Inline <style> elements contribute their text. <link rel="stylesheet">
        hrefs are resolved against the chapter path and served from the cache
        when possible; a stylesheet that cannot be loaded is skipped.

        Args:
            chapter_html: The chapter's raw markup.
            chapter_path: Archive path of the chapter.

        Returns:
            Ordered StyleRule list.
        """
        soup = BeautifulSoup(chapter_html, HTML_PARSER)
        rules: list[StyleRule] = []

        for element in soup.find_all(["style", "link"]):
            if element.name == "style":
                rules.append(StyleRule(StyleSourceKind.INLINE, element.get_text()))
                continue

            href = element.get("href")
            if not href or not _is_stylesheet_link(element) or is_absolute_url(str(href)):
                continue
            css_path = resolve_path(chapter_path, split_fragment(str(href))[0])
            css_text = self._load_external(css_path)
            if css_text is not None:
                rules.append(StyleRule(StyleSourceKind.EXTERNAL, css_text, css_path))

        return rules

    def embed_urls(self, css_text: str, base_path: str) -> str:
        """Replace relative url() references with data URIs for archive resources.

        References that are already absolute, or that do not resolve to an
        archive entry, are left untouched.
        """

        def _replace(match: re.Match[str]) -> str:
            url = match.group(2).strip()
            if is_absolute_url(url):
                return match.group(0)
            path = resolve_path(base_path, split_fragment(url)[0])
            if path not in self._archive:
                return match.group(0)
            try:
                data = self._archive.read_binary(path)
            except EpubReadError as exc:
                logger.warning("Failed to embed CSS resource %s: %s", path, exc)
                return match.group(0)
            entry = self._by_path.get(path)
            mime_type = entry.media_type if entry and entry.media_type else "application/octet-stream"
            return f"url('{make_data_uri(mime_type, data)}')"

        return CSS_URL_RE.sub(_replace, css_text)
