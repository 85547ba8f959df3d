# ABOUTME: Shared pytest fixtures for folio tests.
# ABOUTME: Builds EPUB archives in memory (hand-crafted and via ebooklib), valid and broken.

import asyncio
import zipfile
from collections.abc import Callable
from io import BytesIO
from pathlib import Path

import pytest
from ebooklib import epub

from folio.core.document import DocumentModel, DocumentSnapshot

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{package_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

XHTML_CHAPTER = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title}</title></head>
<body>{body}</body>
</html>
"""


def zip_epub(files: dict[str, str | bytes], *, mimetype: str | None = "application/epub+zip") -> bytes:
    """Write files into an in-memory ZIP, with the mimetype entry stored first."""
    buffer = BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as zf:
        if mimetype is not None:
            zf.writestr("mimetype", mimetype, compress_type=zipfile.ZIP_STORED)
        for name, content in files.items():
            zf.writestr(name, content)
    return buffer.getvalue()


def corrupt_entry(data: bytes, name: str) -> bytes:
    """Overwrite the compressed bytes of one archive entry with 0xFF, leaving headers intact."""
    with zipfile.ZipFile(BytesIO(data)) as zf:
        info = zf.getinfo(name)
    header = info.header_offset
    name_length = int.from_bytes(data[header + 26 : header + 28], "little")
    extra_length = int.from_bytes(data[header + 28 : header + 30], "little")
    start = header + 30 + name_length + extra_length
    end = start + info.compress_size
    return data[:start] + b"\xff" * (end - start) + data[end:]


def package_xml(
    manifest: list[tuple[str, str, str, str]],
    spine: list[tuple[str, bool]],
    *,
    metadata: str = "<dc:title>Untitled</dc:title>",
    toc: str | None = None,
    version: str = "3.0",
) -> str:
    """Render an OPF document from (id, href, media-type, properties) and (idref, linear)."""
    items = "\n".join(
        f'    <item id="{item_id}" href="{href}" media-type="{media}"'
        + (f' properties="{props}"' if props else "")
        + "/>"
        for item_id, href, media, props in manifest
    )
    itemrefs = "\n".join(
        f'    <itemref idref="{idref}"' + ("" if linear else ' linear="no"') + "/>"
        for idref, linear in spine
    )
    toc_attr = f' toc="{toc}"' if toc else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="{version}" unique-identifier="uid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    {metadata}
  </metadata>
  <manifest>
{items}
  </manifest>
  <spine{toc_attr}>
{itemrefs}
  </spine>
</package>
"""


SERIF_FONT = b"\x00\x01\x00\x00serif-font-data"
COVER_PNG = b"\x89PNG\r\n\x1a\nfake-cover"

TIDEWATER_NAV = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<head><title>Contents</title></head>
<body>
  <nav epub:type="landmarks"><ol><li><a href="text/chapter1.xhtml">Start</a></li></ol></nav>
  <nav epub:type="toc" id="toc">
    <h1>Contents</h1>
    <ol>
      <li><a href="text/chapter1.xhtml">Arrival</a>
        <ol><li><a href="text/chapter1.xhtml#harbor">The Harbor</a></li></ol>
      </li>
      <li><span>Part Two</span>
        <ol><li><a href="text/chapter%20two.xhtml">Departure</a></li></ol>
      </li>
      <li><a href="text/appendix.xhtml">Appendix</a></li>
    </ol>
  </nav>
</body>
</html>
"""

TIDEWATER_NCX = """<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
    <navPoint id="np1" playOrder="1">
      <navLabel><text>Arrival (NCX)</text></navLabel>
      <content src="text/chapter1.xhtml"/>
    </navPoint>
  </navMap>
</ncx>
"""

TIDEWATER_CSS = """@font-face { font-family: "Tide Serif"; src: url('../fonts/serif.ttf'); }
body { font-family: "Tide Serif", serif; background: url(../images/cover.png); }
"""

TIDEWATER_CHAPTER_1 = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
  <title>Arrival</title>
  <link rel="stylesheet" type="text/css" href="../css/main.css"/>
  <style>p { text-indent: 1em; }</style>
</head>
<body>
  <h1>Arrival</h1>
  <p id="harbor">The tide came in slowly over the mudflats.</p>
  <img src="../images/cover.png" alt="The harbor"/>
  <script>document.title = "changed";</script>
</body>
</html>
"""

TIDEWATER_CHAPTER_2 = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><link rel="stylesheet" href="../css/main.css"/></head>
<body><p>They left before the morning fog lifted.</p></body>
</html>
"""

TIDEWATER_APPENDIX = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml">
<head>
  <title>Appendix</title>
  <link rel="stylesheet" href="https://example.com/remote.css"/>
</head>
<body><p>Notes on tides.</p><img src="../images/missing.png"/></body>
</html>
"""


@pytest.fixture
def epub3_bytes() -> bytes:
    """EPUB3 book with nav + NCX, CSS, an embedded font, images, and a non-linear appendix.

    Spine: chapter1.xhtml (0), "chapter two.xhtml" (1), appendix.xhtml (2, non-linear).
    A spine itemref to an undeclared manifest id is included and must be skipped.
    """
    opf = package_xml(
        [
            ("nav", "nav.xhtml", "application/xhtml+xml", "nav"),
            ("ncx", "toc.ncx", "application/x-dtbncx+xml", ""),
            ("css", "css/main.css", "text/css", ""),
            ("serif", "fonts/serif.ttf", "font/ttf", ""),
            ("cover", "images/cover.png", "image/png", "cover-image"),
            ("ch1", "text/chapter1.xhtml", "application/xhtml+xml", ""),
            ("ch2", "text/chapter%20two.xhtml", "application/xhtml+xml", ""),
            ("appendix", "text/appendix.xhtml", "application/xhtml+xml", ""),
        ],
        [("ch1", True), ("ghost", True), ("ch2", True), ("appendix", False)],
        metadata=(
            "<dc:title>Tidewater</dc:title>"
            "<dc:creator>Ada Marsh</dc:creator>"
            "<dc:language>en-GB</dc:language>"
            "<dc:publisher>Harbor Press</dc:publisher>"
            '<dc:identifier id="uid">urn:uuid:tidewater-0001</dc:identifier>'
            "<dc:date>2019-04-01</dc:date>"
        ),
        toc="ncx",
    )
    return zip_epub(
        {
            "META-INF/container.xml": CONTAINER_XML.format(package_path="OEBPS/content.opf"),
            "OEBPS/content.opf": opf,
            "OEBPS/nav.xhtml": TIDEWATER_NAV,
            "OEBPS/toc.ncx": TIDEWATER_NCX,
            "OEBPS/css/main.css": TIDEWATER_CSS,
            "OEBPS/fonts/serif.ttf": SERIF_FONT,
            "OEBPS/images/cover.png": COVER_PNG,
            "OEBPS/text/chapter1.xhtml": TIDEWATER_CHAPTER_1,
            "OEBPS/text/chapter two.xhtml": TIDEWATER_CHAPTER_2,
            "OEBPS/text/appendix.xhtml": TIDEWATER_APPENDIX,
        }
    )


LIGHTHOUSE_NCX = """<?xml version="1.0" encoding="UTF-8"?>
<!DOCTYPE ncx PUBLIC "-//NISO//DTD ncx 2005-1//EN" "http://www.daisy.org/z3986/2005/ncx-2005-1.dtd">
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <head><meta name="dtb:uid" content="lighthouse"/></head>
  <docTitle><text>The Old Lighthouse</text></docTitle>
  <navMap>
    <navPoint id="p2" playOrder="3">
      <navLabel><text>Second Watch</text></navLabel>
      <content src="chapters/two.html"/>
    </navPoint>
    <navPoint id="p1" playOrder="1">
      <navLabel><text>First Watch</text></navLabel>
      <content src="chapters/one.html"/>
      <navPoint id="p1a" playOrder="2">
        <navLabel><text>The Lamp</text></navLabel>
        <content src="chapters/one.html#lamp"/>
      </navPoint>
    </navPoint>
  </navMap>
</ncx>
"""


@pytest.fixture
def epub2_bytes() -> bytes:
    """EPUB2 book with only an NCX (siblings out of playOrder), package at the archive root."""
    opf = package_xml(
        [
            ("ncx", "toc.ncx", "application/x-dtbncx+xml", ""),
            ("cover-img", "cover.jpg", "image/jpeg", ""),
            ("one", "chapters/one.html", "application/xhtml+xml", ""),
            ("two", "chapters/two.html", "application/xhtml+xml", ""),
        ],
        [("one", True), ("two", True)],
        metadata=(
            "<dc:title>The Old Lighthouse</dc:title>"
            "<dc:creator>R. Keeper</dc:creator>"
            '<meta name="cover" content="cover-img"/>'
        ),
        toc="ncx",
        version="2.0",
    )
    return zip_epub(
        {
            "META-INF/container.xml": CONTAINER_XML.format(package_path="content.opf"),
            "content.opf": opf,
            "toc.ncx": LIGHTHOUSE_NCX,
            "cover.jpg": b"\xff\xd8\xff\xe0fake-jpeg",
            "chapters/one.html": XHTML_CHAPTER.format(
                title="First Watch", body='<h2 id="lamp">The Lamp</h2><p>Light.</p>'
            ),
            "chapters/two.html": XHTML_CHAPTER.format(title="Second Watch", body="<p>Dark.</p>"),
        }
    )


BookFactory = Callable[..., bytes]


@pytest.fixture
def book_factory() -> BookFactory:
    """Build a simple EPUB from chapter bodies.

    Call with a list of (title, body) pairs; a body of None declares the chapter
    in the manifest but leaves its file out of the archive. Pass linear=[...]
    to mark chapters non-linear. The book has no navigation document.
    """

    def build(
        chapters: list[tuple[str, str | None]],
        *,
        linear: list[bool] | None = None,
        title: str = "Factory Book",
    ) -> bytes:
        linear = linear or [True] * len(chapters)
        manifest = [
            (f"c{i}", f"c{i}.xhtml", "application/xhtml+xml", "") for i in range(len(chapters))
        ]
        spine = [(f"c{i}", linear[i]) for i in range(len(chapters))]
        files: dict[str, str | bytes] = {
            "META-INF/container.xml": CONTAINER_XML.format(package_path="OPS/book.opf"),
            "OPS/book.opf": package_xml(
                manifest, spine, metadata=f"<dc:title>{title}</dc:title>"
            ),
        }
        for i, (chapter_title, body) in enumerate(chapters):
            if body is not None:
                files[f"OPS/c{i}.xhtml"] = XHTML_CHAPTER.format(title=chapter_title, body=body)
        return zip_epub(files)

    return build


@pytest.fixture
def no_mimetype_bytes() -> bytes:
    """A ZIP with EPUB structure but no mimetype entry."""
    return zip_epub(
        {"META-INF/container.xml": CONTAINER_XML.format(package_path="content.opf")},
        mimetype=None,
    )


@pytest.fixture
def no_container_bytes() -> bytes:
    """An archive with a valid mimetype but no META-INF/container.xml."""
    return zip_epub({"content.opf": package_xml([], [])})


@pytest.fixture
def sample_epub(tmp_path: Path) -> Path:
    """Create a realistic EPUB3 file with ebooklib, including nav and NCX."""
    book = epub.EpubBook()

    book.set_identifier("urn:isbn:9780123456472")
    book.set_title("The Name of the Rose")
    book.set_language("en")
    book.add_author("Umberto Eco")
    book.add_metadata("DC", "publisher", "Harcourt")
    book.add_metadata("DC", "description", "A mystery set in a medieval monastery.")

    chapter1 = epub.EpubHtml(title="First Day", file_name="chap01.xhtml", lang="en")
    chapter1.content = (
        "<html><body><h1>First Day</h1>"
        + "<p>The abbey stood on the mountain.</p>" * 40
        + "</body></html>"
    )
    chapter2 = epub.EpubHtml(title="Second Day", file_name="chap02.xhtml", lang="en")
    chapter2.content = "<html><body><h1>Second Day</h1><p>Another monk was found.</p></body></html>"
    book.add_item(chapter1)
    book.add_item(chapter2)

    book.toc = [
        epub.Link("chap01.xhtml", "First Day", "chap01"),
        epub.Link("chap02.xhtml", "Second Day", "chap02"),
    ]
    book.add_item(epub.EpubNcx())
    book.add_item(epub.EpubNav())
    book.spine = [chapter1, chapter2]

    filepath = tmp_path / "name_of_the_rose.epub"
    epub.write_epub(str(filepath), book)
    return filepath


@pytest.fixture
def epub3_file(tmp_path: Path, epub3_bytes: bytes) -> Path:
    """The hand-crafted EPUB3 book written to disk."""
    filepath = tmp_path / "tidewater.epub"
    filepath.write_bytes(epub3_bytes)
    return filepath


@pytest.fixture
def corrupt_epub(tmp_path: Path) -> Path:
    """Create a corrupt file that is not a valid EPUB."""
    filepath = tmp_path / "corrupt.epub"
    filepath.write_text("this is not a valid epub file")
    return filepath


@pytest.fixture
def library_dir(tmp_path: Path, epub3_bytes: bytes, epub2_bytes: bytes) -> Path:
    """A directory tree with two valid EPUBs, one corrupt file, and a non-EPUB file."""
    root = tmp_path / "books"
    (root / "sea").mkdir(parents=True)
    (root / "sea" / "tidewater.epub").write_bytes(epub3_bytes)
    (root / "lighthouse.epub").write_bytes(epub2_bytes)
    (root / "broken.epub").write_text("not a zip")
    (root / "notes.txt").write_text("ignore me")
    return root


@pytest.fixture
def zip_factory() -> Callable[..., bytes]:
    """The raw archive builder, for tests that hand-craft unusual layouts."""
    return zip_epub


@pytest.fixture
def opf_factory() -> Callable[..., str]:
    """The OPF renderer, for tests that hand-craft package documents."""
    return package_xml


@pytest.fixture
def epub3_snapshot(epub3_bytes: bytes) -> DocumentSnapshot:
    """Plain-data snapshot of the hand-crafted EPUB3 book."""

    async def load() -> DocumentSnapshot:
        async with await DocumentModel.load(epub3_bytes) as document:
            return document.snapshot()

    return asyncio.run(load())


@pytest.fixture
def epub2_snapshot(epub2_bytes: bytes) -> DocumentSnapshot:
    """Plain-data snapshot of the NCX-only EPUB2 book."""

    async def load() -> DocumentSnapshot:
        async with await DocumentModel.load(epub2_bytes) as document:
            return document.snapshot()

    return asyncio.run(load())


@pytest.fixture
def entry_corrupter() -> Callable[[bytes, str], bytes]:
    """Damage one deflated entry's data stream so decompression fails."""
    return corrupt_entry
