# ABOUTME: Loads a spine chapter into self-contained, renderable content.
# ABOUTME: Extracts the body, inlines images as data URIs, and attaches the chapter's CSS.

import logging
import warnings
from dataclasses import dataclass

from bs4 import BeautifulSoup, Tag, XMLParsedAsHTMLWarning

from folio.formats.archive import ArchiveReader
from folio.formats.errors import EpubReadError, InvalidChapterIndexError
from folio.formats.fonts import FontResolver
from folio.formats.styles import StyleResolver, StyleRule
from folio.formats.urls import is_absolute_url, make_data_uri, resolve_path, split_fragment
from folio.metadata.types import ManifestEntry, SpineItem

logger = logging.getLogger(__name__)

warnings.filterwarnings("ignore", category=XMLParsedAsHTMLWarning)

HTML_PARSER = "html.parser"
DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"

# (tag, attribute) pairs that reference images inside chapter markup
_IMAGE_REFERENCES = (("img", "src"), ("image", "href"), ("image", "xlink:href"))
_HEAD_ONLY_TAGS = ["title", "style", "link", "meta"]


@dataclass(frozen=True)
class ChapterContent:
    """A chapter ready for display: body markup plus the CSS that applies to it."""

    index: int
    path: str
    title: str
    html_body: str
    style_rules: tuple[StyleRule, ...] = ()

    @property
    def combined_css(self) -> str:
        """All style rules concatenated in order."""
        return "\n".join(rule.css_text for rule in self.style_rules)


class ChapterLoader:
    """Builds ChapterContent for spine items of one book."""

    def __init__(
        self,
        archive: ArchiveReader,
        manifest: dict[str, ManifestEntry],
        styles: StyleResolver,
        fonts: FontResolver,
    ) -> None:
        self._archive = archive
        self._styles = styles
        self._fonts = fonts
        self._by_path = {entry.path: entry for entry in manifest.values()}

    def load(self, spine: tuple[SpineItem, ...], index: int) -> ChapterContent:
        """Load the chapter at a spine index.

        Args:
            spine: The book's reading order.
            index: 0-based spine index.

        Returns:
            ChapterContent with sanitized body markup and resolved CSS.

        Raises:
            InvalidChapterIndexError: If index is outside the spine.
            ResourceNotFoundError: If the chapter file is missing from the archive.
        """
        if not 0 <= index < len(spine):
            raise InvalidChapterIndexError(f"Invalid chapter index: {index}")

        spine_item = spine[index]
        chapter_path = spine_item.path
        raw_html = self._archive.read_text(chapter_path)

        soup = BeautifulSoup(raw_html, HTML_PARSER)
        title = self._extract_title(soup) or f"Chapter {index + 1}"

        body = soup.body or self._bodyless_root(soup)
        for script in body.find_all("script"):
            script.decompose()
        self._inline_images(body, chapter_path)

        return ChapterContent(
            index=index,
            path=chapter_path,
            title=title,
            html_body=body.decode_contents().strip(),
            style_rules=tuple(self._resolve_styles(raw_html, chapter_path)),
        )

    @staticmethod
    def _bodyless_root(soup: BeautifulSoup) -> Tag:
        """Content root for markup without a <body>: the document minus its head."""
        if soup.head is not None:
            soup.head.decompose()
        for element in soup.find_all(_HEAD_ONLY_TAGS):
            element.decompose()
        return soup.html or soup

    @staticmethod
    def _extract_title(soup: BeautifulSoup) -> str | None:
        title_el = soup.head.find("title") if soup.head else soup.find("title")
        if title_el is None:
            return None
        title = " ".join(title_el.get_text().split())
        return title or None

    def _resolve_styles(self, raw_html: str, chapter_path: str) -> list[StyleRule]:
        """Chapter style rules with fonts and other url() references embedded."""
        resolved: list[StyleRule] = []
        for rule in self._styles.for_chapter(raw_html, chapter_path):
            base_path = rule.resolved_href or chapter_path
            css_text = self._fonts.rewrite_font_face_urls(rule.css_text, base_path)
            css_text = self._styles.embed_urls(css_text, base_path)
            resolved.append(StyleRule(rule.source_kind, css_text, rule.resolved_href))
        return resolved

    def _inline_images(self, body: Tag, chapter_path: str) -> None:
        """Replace archive-relative image references with data URIs in place."""
        for tag_name, attribute in _IMAGE_REFERENCES:
            for element in body.find_all(tag_name):
                src = element.get(attribute)
                if not src or is_absolute_url(str(src)):
                    continue
                data_uri = self._image_data_uri(chapter_path, str(src))
                if data_uri is not None:
                    element[attribute] = data_uri

    def _image_data_uri(self, chapter_path: str, src: str) -> str | None:
        image_path = resolve_path(chapter_path, split_fragment(src)[0])
        try:
            data = self._archive.read_binary(image_path)
        except EpubReadError as exc:
            logger.warning("Failed to inline image %s: %s", image_path, exc)
            return None

        entry = self._by_path.get(image_path)
        mime_type = entry.media_type if entry and entry.media_type else DEFAULT_IMAGE_MIME_TYPE
        return make_data_uri(mime_type, data)
