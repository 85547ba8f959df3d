# ABOUTME: Unit tests for the pagination engine.
# ABOUTME: Uses scripted measurement surfaces so page counts are exact and deterministic.

import asyncio
from collections.abc import Callable, Iterator
from contextlib import contextmanager

import pytest

from folio.core.config import RenderConfig
from folio.core.document import DocumentModel
from folio.core.pagination import (
    Measurer,
    Page,
    PaginationEngine,
    PaginationError,
    PaginationNotReadyError,
    PaginationState,
    SurfaceFactory,
    calculate_pages,
    paginate_chapter,
    slice_page,
)
from folio.formats.chapter import ChapterContent
from folio.formats.errors import ChapterNotFoundError, InvalidChapterIndexError

# Default RenderConfig: 800px viewport minus 120px of controls
PAGE_HEIGHT = 680


class _ScriptedSurface:
    """Returns pre-set heights in call order, scaled by font size relative to 16px."""

    def __init__(self, heights: list[float], config: RenderConfig) -> None:
        self._heights = iter(heights)
        self._scale = config.font_size / 16

    def measure(self, html: str) -> float:
        return next(self._heights) * self._scale


def scripted(*heights: float) -> SurfaceFactory:
    @contextmanager
    def factory(config: RenderConfig) -> Iterator[Measurer]:
        yield _ScriptedSurface(list(heights), config)

    return factory


Book = Callable[..., bytes]


def _engine(
    data: bytes, surface_factory: SurfaceFactory, config: RenderConfig | None = None
) -> PaginationEngine:
    document = asyncio.run(DocumentModel.load(data))
    return asyncio.run(
        calculate_pages(document, config or RenderConfig(), surface_factory=surface_factory)
    )


@pytest.fixture
def two_chapters(book_factory: Book) -> bytes:
    return book_factory([("Short", "<p>short</p>"), ("Long", "<p>long</p>")])


@pytest.fixture
def engine(two_chapters: bytes) -> PaginationEngine:
    """Chapter 0 fits one page; chapter 1 needs three."""
    return _engine(two_chapters, scripted(500, 2000))


class TestPaginateChapter:
    """Tests for the per-chapter page split."""

    def test_empty_chapter_gets_one_page(self) -> None:
        """Zero content height still produces a page."""
        assert len(paginate_chapter(0, "t", 0, PAGE_HEIGHT, 1)) == 1

    def test_exact_fit_is_one_page(self) -> None:
        """Content exactly one page tall does not spill."""
        assert len(paginate_chapter(0, "t", PAGE_HEIGHT, PAGE_HEIGHT, 1)) == 1

    def test_one_pixel_over_is_two_pages(self) -> None:
        """Content one pixel taller than a page needs two."""
        assert len(paginate_chapter(0, "t", PAGE_HEIGHT + 1, PAGE_HEIGHT, 1)) == 2

    def test_offsets_and_numbering(self) -> None:
        """Pages are numbered from the given start and offset by page height."""
        pages = paginate_chapter(4, "Four", 1500, 500, 10)
        assert [p.page_number for p in pages] == [10, 11, 12]
        assert [(p.start_offset, p.end_offset) for p in pages] == [(0, 500), (500, 1000), (1000, 1500)]
        assert all(p.pages_in_chapter == 3 and p.chapter_index == 4 for p in pages)
        assert pages[0].is_first_of_chapter and pages[-1].is_last_of_chapter


class TestCalculatePages:
    """Tests for full pagination passes."""

    def test_page_sequence(self, engine: PaginationEngine) -> None:
        """One page for the short chapter, three for the long one."""
        result = engine.result
        assert result is not None
        assert result.total_pages == 4
        assert [p.chapter_index for p in result.pages] == [0, 1, 1, 1]
        assert [p.position_within_chapter for p in result.pages] == [0, 0, 1, 2]
        assert [p.page_number for p in result.pages] == [1, 2, 3, 4]

    def test_ready_on_first_page(self, engine: PaginationEngine) -> None:
        """A finished pass leaves the engine ready on page 1."""
        assert engine.state is PaginationState.READY
        assert engine.current_page == 1

    def test_chapter_titles_carried(self, engine: PaginationEngine) -> None:
        """Pages know their chapter's title."""
        assert engine.page.chapter_title == "Short"

    def test_idempotent(self, two_chapters: bytes) -> None:
        """The same document and config always produce the same pages."""
        first = _engine(two_chapters, scripted(500, 2000)).result
        second = _engine(two_chapters, scripted(500, 2000)).result
        assert first == second

    def test_failed_chapter_contributes_no_pages(self, book_factory: Book) -> None:
        """A chapter that cannot be loaded is skipped; the rest paginate."""
        data = book_factory([("A", "<p>a</p>"), ("Gone", None), ("C", "<p>c</p>")])
        engine = _engine(data, scripted(100, 100))
        assert [p.chapter_index for p in engine.result.pages] == [0, 2]

    def test_all_chapters_failing_is_terminal(self, book_factory: Book) -> None:
        """With no paginated chapter at all, the pass fails with zero pages."""
        document = asyncio.run(DocumentModel.load(book_factory([("Gone", None)])))
        engine = PaginationEngine(document, surface_factory=scripted())
        with pytest.raises(PaginationError):
            asyncio.run(engine.calculate_pages())
        assert engine.state is PaginationState.FAILED
        assert engine.total_pages == 0

    def test_no_document(self) -> None:
        """An engine without a document cannot paginate."""
        engine = PaginationEngine(None)
        with pytest.raises(PaginationError):
            asyncio.run(engine.calculate_pages())
        assert engine.state is PaginationState.FAILED

    def test_stale_pass_is_discarded(self, two_chapters: bytes) -> None:
        """A pass superseded by a config change returns None and changes nothing."""
        document = asyncio.run(DocumentModel.load(two_chapters))
        engine = PaginationEngine(document, surface_factory=scripted(500, 2000))
        bigger = RenderConfig(font_size=32)

        async def scenario() -> list:
            return await asyncio.gather(engine.calculate_pages(), engine.update_config(bigger))

        stale, fresh = asyncio.run(scenario())
        assert stale is None
        assert fresh is not None
        assert fresh.config == bigger
        assert engine.result is fresh
        # 1000px and 4000px at double scale
        assert fresh.total_pages == 2 + 6


class TestNavigation:
    """Tests for moving between pages."""

    def test_not_ready_before_calculation(self, two_chapters: bytes) -> None:
        """Navigation before the first pass is rejected."""
        document = asyncio.run(DocumentModel.load(two_chapters))
        engine = PaginationEngine(document)
        assert engine.state is PaginationState.IDLE
        with pytest.raises(PaginationNotReadyError):
            engine.next_page()

    def test_go_to_page_clamps(self, engine: PaginationEngine) -> None:
        """Requests outside the book land on the first or last page."""
        assert engine.go_to_page(0).page_number == 1
        assert engine.go_to_page(99).page_number == 4
        assert engine.current_page == 4

    def test_next_and_prev(self, engine: PaginationEngine) -> None:
        """next/prev move one page and stop at the ends."""
        assert engine.prev_page().page_number == 1
        assert engine.next_page().page_number == 2
        engine.go_to_page(4)
        assert not engine.can_go_next
        assert engine.next_page().page_number == 4
        assert engine.can_go_prev

    def test_go_to_chapter(self, engine: PaginationEngine) -> None:
        """Jumping to a chapter lands on its first page."""
        page = engine.go_to_chapter(1)
        assert page.page_number == 2
        assert page.is_first_of_chapter

    def test_go_to_invalid_chapter(self, engine: PaginationEngine) -> None:
        """Chapter indexes outside the spine are rejected."""
        with pytest.raises(InvalidChapterIndexError):
            engine.go_to_chapter(2)

    def test_go_to_skipped_chapter_lands_on_next(self, book_factory: Book) -> None:
        """A chapter without pages resolves to the next chapter that has some."""
        data = book_factory([("A", "<p>a</p>"), ("Gone", None), ("C", "<p>c</p>")])
        engine = _engine(data, scripted(100, 100))
        assert engine.go_to_chapter(1).chapter_index == 2

    def test_go_to_trailing_skipped_chapter_uses_last_page(self, book_factory: Book) -> None:
        """When no later chapter has pages, the last page of the book is used."""
        data = book_factory([("A", "<p>a</p>"), ("B", "<p>b</p>"), ("Gone", None)])
        engine = _engine(data, scripted(100, 1500))
        page = engine.go_to_chapter(2)
        assert page.page_number == engine.total_pages
        assert page.chapter_index == 1

    def test_go_to_href(self, engine: PaginationEngine) -> None:
        """TOC hrefs, fragments included, jump to the chapter's first page."""
        assert engine.go_to_href("OPS/c1.xhtml#section").page_number == 2

    def test_go_to_unknown_href(self, engine: PaginationEngine) -> None:
        """An href outside the spine raises ChapterNotFoundError."""
        with pytest.raises(ChapterNotFoundError):
            engine.go_to_href("OPS/missing.xhtml")

    def test_progress(self, engine: PaginationEngine) -> None:
        """Progress is the share of pages reached."""
        engine.go_to_page(2)
        assert engine.progress_percent == pytest.approx(50.0)


class TestReflow:
    """Tests for recomputation when the config changes."""

    def test_font_change_repaginates(self, engine: PaginationEngine) -> None:
        """A larger font produces more pages."""
        before = engine.total_pages
        asyncio.run(engine.update_config(RenderConfig(font_size=24)))
        assert engine.total_pages > before
        assert engine.config.font_size == 24

    def test_current_page_kept_when_still_valid(self, engine: PaginationEngine) -> None:
        """The reader stays on the same page number if it still exists."""
        engine.go_to_page(3)
        asyncio.run(engine.update_config(RenderConfig(font_size=24)))
        assert engine.current_page == 3

    def test_current_page_reset_when_gone(self, two_chapters: bytes) -> None:
        """If the page no longer exists, the reader returns to page 1."""
        engine = _engine(two_chapters, scripted(500, 2000), RenderConfig(font_size=32))
        engine.go_to_page(engine.total_pages)
        asyncio.run(engine.update_config(RenderConfig(font_size=12)))
        assert engine.current_page == 1

    def test_reload_discards_old_pages(self, engine: PaginationEngine, book_factory: Book) -> None:
        """Reloading paginates the new document from scratch."""
        other = asyncio.run(DocumentModel.load(book_factory([("Only", "<p>x</p>")])))
        asyncio.run(engine.reload(other))
        assert engine.total_pages == 1
        assert engine.page.chapter_title == "Only"


class TestPageContent:
    """Tests for slicing page markup."""

    def _chapter(self) -> ChapterContent:
        return ChapterContent(index=0, path="c.xhtml", title="T", html_body="<p>body</p>")

    def _page(self, position: int, pages: int) -> Page:
        return Page(
            page_number=position + 1,
            chapter_index=0,
            position_within_chapter=position,
            pages_in_chapter=pages,
            start_offset=position * PAGE_HEIGHT,
            end_offset=(position + 1) * PAGE_HEIGHT,
            chapter_title="T",
        )

    def test_single_page_chapter_is_unchanged(self) -> None:
        """A chapter that fits on one page is returned as-is."""
        content = slice_page(self._chapter(), self._page(0, 1), RenderConfig())
        assert content.content_slice == "<p>body</p>"
        assert content.chapter_title == "T"

    def test_later_page_is_offset(self) -> None:
        """Later pages shift the body up by their start offset inside a clipped frame."""
        content = slice_page(self._chapter(), self._page(1, 3), RenderConfig())
        assert f"top: -{PAGE_HEIGHT}px" in content.content_slice
        assert f"height: {PAGE_HEIGHT}px" in content.content_slice
        assert "overflow: hidden" in content.content_slice
        assert "<p>body</p>" in content.content_slice

    def test_css_disabled(self, engine: PaginationEngine) -> None:
        """With CSS disabled, no stylesheet text is returned."""
        asyncio.run(engine.update_config(RenderConfig(css_enabled=False)))
        content = asyncio.run(engine.page_content())
        assert content.combined_css == ""

    def test_current_page_content(self, engine: PaginationEngine) -> None:
        """page_content defaults to the current page."""
        engine.go_to_page(3)
        content = asyncio.run(engine.page_content())
        assert content.page.page_number == 3
        assert content.chapter_title == "Long"
