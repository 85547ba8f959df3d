# ABOUTME: DocumentModel façade that loads an EPUB once and serves chapters on demand.
# ABOUTME: Orchestrates archive, container, package, navigation, style, and font resolution.

import asyncio
import logging
from dataclasses import dataclass
from urllib.parse import unquote

from folio.formats.archive import ArchiveReader
from folio.formats.cache import ResourceCache
from folio.formats.chapter import ChapterContent, ChapterLoader
from folio.formats.container import resolve_package_path
from folio.formats.errors import ChapterNotFoundError, EpubReadError
from folio.formats.fonts import EmbeddedFont, FontResolver
from folio.formats.navigation import resolve_navigation, synthesize_navigation
from folio.formats.package import PackageDocument, parse_package
from folio.formats.styles import Stylesheet, StyleResolver
from folio.formats.urls import split_fragment
from folio.metadata.types import BookMetadata, ManifestEntry, NavigationNode, SpineItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentSnapshot:
    """The plain-data part of a loaded document, safe to persist.

    Behavior (chapter loading) is not included; re-load the original archive
    bytes to get it back.
    """

    metadata: BookMetadata
    manifest: dict[str, ManifestEntry]
    spine: tuple[SpineItem, ...]
    navigation: tuple[NavigationNode, ...]
    fonts: tuple[EmbeddedFont, ...]
    global_css: tuple[Stylesheet, ...]


def _open_package(data: bytes) -> tuple[ArchiveReader, PackageDocument]:
    """Open the archive and parse its package document, closing the archive on failure."""
    archive = ArchiveReader.open(data)
    try:
        package_path = resolve_package_path(archive)
        package = parse_package(archive, package_path)
    except BaseException:
        archive.close()
        raise
    return archive, package


class DocumentModel:
    """A loaded EPUB: package data plus lazy, cached chapter access.

    Each instance owns its archive handle and ResourceCache. Loading a new
    archive means creating a new DocumentModel; nothing is shared between them.
    """

    def __init__(
        self,
        archive: ArchiveReader,
        package: PackageDocument,
        navigation: list[NavigationNode],
        fonts: list[EmbeddedFont],
        global_css: list[Stylesheet],
        cache: ResourceCache,
        styles: StyleResolver,
        font_resolver: FontResolver,
    ) -> None:
        self._archive = archive
        self._package = package
        self._navigation = tuple(navigation)
        self._fonts = tuple(fonts)
        self._global_css = tuple(global_css)
        self._cache = cache
        self._loader = ChapterLoader(archive, package.manifest, styles, font_resolver)
        self._closed = False

    @classmethod
    async def load(cls, data: bytes, *, synthesize_toc: bool = True) -> "DocumentModel":
        """Parse an EPUB from its raw bytes.

        The archive, container, and package document are processed in order.
        Navigation, stylesheets, and fonts are independent of each other and are
        resolved concurrently.

        Args:
            data: The complete EPUB file contents.
            synthesize_toc: Build one navigation node per linear spine item when
                the book has no usable table of contents.

        Returns:
            A loaded DocumentModel.

        Raises:
            EpubReadError: If the archive, container, or package document is
                unusable. See folio.formats.errors for the specific subclasses.
        """
        archive, package = await asyncio.to_thread(_open_package, data)

        cache = ResourceCache()
        styles = StyleResolver(archive, package.manifest, cache)
        font_resolver = FontResolver(archive, package.manifest, cache)
        try:
            navigation, global_css, fonts = await asyncio.gather(
                asyncio.to_thread(resolve_navigation, archive, package.manifest, package.ncx_id),
                asyncio.to_thread(styles.load_all),
                asyncio.to_thread(font_resolver.extract_all),
            )
        except BaseException:
            archive.close()
            raise

        if not navigation and synthesize_toc:
            navigation = synthesize_navigation(package.spine)

        logger.info(
            "Loaded '%s': %d spine items, %d navigation entries, %d stylesheets, %d fonts",
            package.metadata.title,
            len(package.spine),
            len(navigation),
            len(global_css),
            len(fonts),
        )
        return cls(archive, package, navigation, fonts, global_css, cache, styles, font_resolver)

    @property
    def metadata(self) -> BookMetadata:
        return self._package.metadata

    @property
    def manifest(self) -> dict[str, ManifestEntry]:
        return self._package.manifest

    @property
    def spine(self) -> tuple[SpineItem, ...]:
        return self._package.spine

    @property
    def navigation(self) -> tuple[NavigationNode, ...]:
        return self._navigation

    @property
    def fonts(self) -> tuple[EmbeddedFont, ...]:
        return self._fonts

    @property
    def global_css(self) -> tuple[Stylesheet, ...]:
        return self._global_css

    @property
    def package_path(self) -> str:
        return self._package.path

    def snapshot(self) -> DocumentSnapshot:
        """The persistable plain-data fields of this document."""
        return DocumentSnapshot(
            metadata=self.metadata,
            manifest=dict(self.manifest),
            spine=self.spine,
            navigation=self.navigation,
            fonts=self.fonts,
            global_css=self.global_css,
        )

    def spine_index_for_href(self, href: str) -> int | None:
        """Spine index of the chapter an href points at, ignoring any fragment.

        Percent-encoded paths (chapter%20two.xhtml) match their decoded manifest path.
        """
        path = unquote(split_fragment(href)[0]).lstrip("/")
        for item in self.spine:
            if item.path == path:
                return item.order
        return None

    async def get_chapter(self, index: int) -> ChapterContent:
        """Load (or return the cached) chapter at a spine index.

        Raises:
            InvalidChapterIndexError: If index is outside the spine.
            EpubReadError: If the document has been closed or the chapter is unreadable.
        """
        cached = self._cache.chapters.get(index)
        if cached is not None:
            return cached
        if self._closed:
            raise EpubReadError("Document has been closed")

        chapter = await asyncio.to_thread(self._loader.load, self.spine, index)
        self._cache.chapters[index] = chapter
        return chapter

    async def get_chapter_by_href(self, href: str) -> ChapterContent:
        """Load the chapter an href points at.

        Raises:
            ChapterNotFoundError: If no spine item matches the href's path.
        """
        index = self.spine_index_for_href(href)
        if index is None:
            raise ChapterNotFoundError(f"Chapter not found: {href}")
        return await self.get_chapter(index)

    def close(self) -> None:
        """Release the archive and drop cached resources."""
        if self._closed:
            return
        self._closed = True
        self._cache.clear()
        self._archive.close()

    async def __aenter__(self) -> "DocumentModel":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        self.close()
