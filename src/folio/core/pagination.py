# ABOUTME: Splits a loaded document into viewport-sized pages and navigates between them.
# ABOUTME: Pages are derived from measured chapter heights and recomputed on every config change.

import asyncio
import logging
import math
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from folio.core.config import RenderConfig
from folio.core.document import DocumentModel
from folio.core.measure import measurement_surface
from folio.formats.chapter import ChapterContent
from folio.formats.errors import ChapterNotFoundError, InvalidChapterIndexError

logger = logging.getLogger(__name__)


class PaginationError(Exception):
    """Raised when a document cannot be paginated at all (total_pages is 0)."""


class PaginationNotReadyError(PaginationError):
    """Raised when navigation is requested before pages are available."""


class PaginationState(Enum):
    IDLE = "idle"
    CALCULATING = "calculating"
    READY = "ready"
    FAILED = "failed"


class Measurer(Protocol):
    """Anything that can report the rendered height of an HTML fragment."""

    def measure(self, html: str) -> float: ...


SurfaceFactory = Callable[[RenderConfig], AbstractContextManager[Measurer]]


@dataclass(frozen=True)
class Page:
    """One page of the book: a fixed-height window into a chapter."""

    page_number: int
    chapter_index: int
    position_within_chapter: int
    pages_in_chapter: int
    start_offset: int
    end_offset: int
    chapter_title: str

    @property
    def is_first_of_chapter(self) -> bool:
        return self.position_within_chapter == 0

    @property
    def is_last_of_chapter(self) -> bool:
        return self.position_within_chapter == self.pages_in_chapter - 1


@dataclass(frozen=True)
class PageContent:
    """Renderable markup for a page, sliced on demand."""

    page: Page
    content_slice: str
    combined_css: str

    @property
    def chapter_title(self) -> str:
        return self.page.chapter_title


@dataclass(frozen=True)
class PaginationResult:
    """The complete page sequence computed for one RenderConfig."""

    config: RenderConfig
    pages: tuple[Page, ...]

    @property
    def total_pages(self) -> int:
        return len(self.pages)

    def page(self, page_number: int) -> Page | None:
        """Page by 1-based number, or None when out of range."""
        if 1 <= page_number <= self.total_pages:
            return self.pages[page_number - 1]
        return None

    def first_page_of_chapter(self, chapter_index: int) -> Page | None:
        """First page of a chapter, or None if the chapter produced no pages."""
        for page in self.pages:
            if page.chapter_index == chapter_index:
                return page
        return None


def paginate_chapter(
    chapter_index: int,
    chapter_title: str,
    content_height: float,
    page_height: int,
    first_page_number: int,
) -> list[Page]:
    """Page descriptors for one chapter.

    Every chapter yields at least one page, even when empty. Content exactly one
    page tall yields exactly one page.
    """
    pages_in_chapter = max(1, math.ceil(content_height / page_height))
    return [
        Page(
            page_number=first_page_number + position,
            chapter_index=chapter_index,
            position_within_chapter=position,
            pages_in_chapter=pages_in_chapter,
            start_offset=position * page_height,
            end_offset=(position + 1) * page_height,
            chapter_title=chapter_title,
        )
        for position in range(pages_in_chapter)
    ]


def slice_page(chapter: ChapterContent, page: Page, config: RenderConfig) -> PageContent:
    """Build the markup for one page of a chapter.

    A single-page chapter is returned unmodified. Otherwise the chapter body is
    shifted up by the page's start offset inside a fixed-height frame that
    hides the overflow. The slice only renders correctly inside a viewport of
    the same size; it is a visual clip, not a standalone HTML excerpt.
    """
    if page.pages_in_chapter == 1:
        content = chapter.html_body
    else:
        content = (
            f'<div class="folio-page" style="position: relative; '
            f'height: {config.page_height}px; overflow: hidden;">'
            f'<div class="folio-page-content" style="position: absolute; '
            f'top: -{page.start_offset}px; left: 0; right: 0;">'
            f"{chapter.html_body}</div></div>"
        )
    css = chapter.combined_css if config.css_enabled else ""
    return PageContent(page=page, content_slice=content, combined_css=css)


class PaginationEngine:
    """Paginates a DocumentModel and tracks the reader's current page.

    State moves IDLE -> CALCULATING -> READY (or FAILED). Every pass gets a
    generation number; starting a new pass (config change or document reload)
    makes older in-flight passes stale, and a stale pass returns None without
    touching engine state.
    """

    def __init__(
        self,
        document: DocumentModel | None,
        config: RenderConfig | None = None,
        *,
        surface_factory: SurfaceFactory = measurement_surface,
    ) -> None:
        self._document = document
        self._config = config or RenderConfig()
        self._surface_factory = surface_factory
        self._state = PaginationState.IDLE
        self._result: PaginationResult | None = None
        self._current_page = 0
        self._generation = 0

    @property
    def state(self) -> PaginationState:
        return self._state

    @property
    def config(self) -> RenderConfig:
        return self._config

    @property
    def document(self) -> DocumentModel | None:
        return self._document

    @property
    def result(self) -> PaginationResult | None:
        return self._result

    @property
    def total_pages(self) -> int:
        return self._result.total_pages if self._result else 0

    @property
    def current_page(self) -> int:
        """Current 1-based page number (0 when nothing is paginated)."""
        return self._current_page

    @property
    def can_go_next(self) -> bool:
        return self._current_page < self.total_pages

    @property
    def can_go_prev(self) -> bool:
        return self._current_page > 1

    @property
    def progress_percent(self) -> float:
        if not self.total_pages:
            return 0.0
        return self._current_page / self.total_pages * 100

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    def _fail(self) -> None:
        self._state = PaginationState.FAILED
        self._result = None
        self._current_page = 0

    async def calculate_pages(self) -> PaginationResult | None:
        """Run a full pagination pass over the whole spine.

        The previously current page is kept if it still exists, otherwise the
        reader is moved to page 1.

        Returns:
            The new PaginationResult, or None if a newer pass superseded this one.

        Raises:
            PaginationError: If there is no document, or no chapter could be paginated.
        """
        self._generation += 1
        generation = self._generation
        document = self._document
        config = self._config
        self._state = PaginationState.CALCULATING

        if document is None or not document.spine:
            self._fail()
            raise PaginationError("No document to paginate")

        pages = await self._measure_book(document, config, generation)
        if pages is None:
            logger.debug("Pagination pass %d superseded", generation)
            return None

        if not pages:
            self._fail()
            raise PaginationError("No chapter could be paginated")

        result = PaginationResult(config=config, pages=tuple(pages))
        previous = self._current_page
        self._result = result
        self._current_page = previous if 1 <= previous <= result.total_pages else 1
        self._state = PaginationState.READY
        logger.info(
            "Paginated %d chapters into %d pages (font %dpx, page height %dpx)",
            len(document.spine),
            result.total_pages,
            config.font_size,
            config.page_height,
        )
        return result

    async def _measure_book(
        self, document: DocumentModel, config: RenderConfig, generation: int
    ) -> list[Page] | None:
        pages: list[Page] = []
        with self._surface_factory(config) as surface:
            for item in document.spine:
                if self._is_stale(generation):
                    return None
                try:
                    chapter = await document.get_chapter(item.order)
                    content_height = await asyncio.to_thread(surface.measure, chapter.html_body)
                except Exception as exc:
                    # Failed chapters contribute no pages
                    logger.warning("Skipping chapter %d during pagination: %s", item.order, exc)
                    continue

                pages.extend(
                    paginate_chapter(
                        chapter_index=item.order,
                        chapter_title=chapter.title,
                        content_height=content_height,
                        page_height=config.page_height,
                        first_page_number=len(pages) + 1,
                    )
                )

        if self._is_stale(generation):
            return None
        return pages

    async def update_config(self, config: RenderConfig) -> PaginationResult | None:
        """Switch to a new RenderConfig and re-paginate from scratch."""
        self._config = config
        return await self.calculate_pages()

    async def reload(self, document: DocumentModel) -> PaginationResult | None:
        """Paginate a different document, discarding all pages of the old one."""
        self._document = document
        self._result = None
        self._current_page = 0
        return await self.calculate_pages()

    def _require_ready(self) -> PaginationResult:
        if self._state is PaginationState.CALCULATING:
            raise PaginationNotReadyError("Pagination is still calculating")
        if self._result is None:
            raise PaginationNotReadyError("Pages have not been calculated")
        return self._result

    @property
    def page(self) -> Page:
        """The current page descriptor."""
        result = self._require_ready()
        return result.pages[self._current_page - 1]

    def go_to_page(self, page_number: int) -> Page:
        """Move to a page, clamping the number into [1, total_pages]."""
        result = self._require_ready()
        target = max(1, min(page_number, result.total_pages))
        if target != self._current_page:
            self._current_page = target
        return result.pages[target - 1]

    def next_page(self) -> Page:
        """Advance one page; stays put on the last page."""
        self._require_ready()
        if self.can_go_next:
            return self.go_to_page(self._current_page + 1)
        return self.page

    def prev_page(self) -> Page:
        """Go back one page; stays put on the first page."""
        self._require_ready()
        if self.can_go_prev:
            return self.go_to_page(self._current_page - 1)
        return self.page

    def go_to_chapter(self, chapter_index: int) -> Page:
        """Jump to the first page of a chapter.

        A chapter that produced no pages resolves to the next chapter that did.
        When no later chapter has pages either, the last page of the book is used.

        Raises:
            InvalidChapterIndexError: If chapter_index is outside the spine.
        """
        result = self._require_ready()
        spine_length = len(self._document.spine) if self._document else 0
        if not 0 <= chapter_index < spine_length:
            raise InvalidChapterIndexError(f"Invalid chapter index: {chapter_index}")

        target = next(
            (page for page in result.pages if page.chapter_index >= chapter_index),
            None,
        )
        if target is None:
            logger.debug("Chapter %d and later have no pages; using the last page", chapter_index)
            target = result.pages[-1]
        return self.go_to_page(target.page_number)

    def go_to_href(self, href: str) -> Page:
        """Jump to the first page of the chapter an href (e.g. a TOC entry) points at.

        Raises:
            ChapterNotFoundError: If no spine item matches the href.
        """
        self._require_ready()
        index = self._document.spine_index_for_href(href) if self._document else None
        if index is None:
            raise ChapterNotFoundError(f"Chapter not found: {href}")
        return self.go_to_chapter(index)

    async def page_content(self, page: Page | None = None) -> PageContent:
        """Slice the markup for a page (the current page by default)."""
        result = self._require_ready()
        target = page or result.pages[self._current_page - 1]
        if self._document is None:
            raise PaginationNotReadyError("No document loaded")
        chapter = await self._document.get_chapter(target.chapter_index)
        return slice_page(chapter, target, result.config)


async def calculate_pages(
    document: DocumentModel,
    config: RenderConfig,
    *,
    surface_factory: SurfaceFactory = measurement_surface,
) -> PaginationEngine:
    """Paginate a document and return an engine positioned on page 1.

    Raises:
        PaginationError: If the document cannot be paginated at all.
    """
    engine = PaginationEngine(document, config, surface_factory=surface_factory)
    await engine.calculate_pages()
    return engine
