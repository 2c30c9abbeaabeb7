"""Shared fixtures: build small but real EPUB archives on disk."""

import zipfile
from pathlib import Path

import pytest

CONTAINER_XML = """<?xml version="1.0" encoding="UTF-8"?>
<container version="1.0" xmlns="urn:oasis:names:tc:opendocument:xmlns:container">
  <rootfiles>
    <rootfile full-path="{opf_path}" media-type="application/oebps-package+xml"/>
  </rootfiles>
</container>
"""

LONG_PARAGRAPH = (
    "It was a bright cold day in April, and the clocks were striking thirteen. "
    "Nobody in the house had noticed yet."
)


def chapter_xhtml(title: str, body: str) -> str:
    return f"""<?xml version="1.0" encoding="utf-8"?>
<!DOCTYPE html>
<html xmlns="http://www.w3.org/1999/xhtml">
<head><title>{title} (head title)</title><style>p {{ margin: 0; }}</style></head>
<body>
{body}
</body>
</html>
"""


def _opf(
    title: str | None,
    creators: list[str],
    manifest: list[tuple[str, str, str, str]],
    spine: list[str],
    version: str,
    extra_metadata: str,
    toc_id: str | None,
) -> str:
    meta = []
    if title is not None:
        meta.append(f"<dc:title>{title}</dc:title>")
    meta.extend(f"<dc:creator>{c}</dc:creator>" for c in creators)
    items = "\n    ".join(
        f'<item id="{item_id}" href="{href}" media-type="{media}"'
        + (f' properties="{props}"' if props else "")
        + "/>"
        for item_id, href, media, props in manifest
    )
    meta_xml = "".join(meta)
    refs = "\n    ".join(f'<itemref idref="{idref}"/>' for idref in spine)
    toc_attr = f' toc="{toc_id}"' if toc_id else ""
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<package xmlns="http://www.idpf.org/2007/opf" version="{version}" unique-identifier="bookid">
  <metadata xmlns:dc="http://purl.org/dc/elements/1.1/" xmlns:opf="http://www.idpf.org/2007/opf">
    {meta_xml}
    {extra_metadata}
  </metadata>
  <manifest>
    {items}
  </manifest>
  <spine{toc_attr}>
    {refs}
  </spine>
</package>
"""


NCX = """<?xml version="1.0" encoding="UTF-8"?>
<ncx xmlns="http://www.daisy.org/z3986/2005/ncx/" version="2005-1">
  <navMap>
    <navPoint id="np1" playOrder="1">
      <navLabel><text>Part One</text></navLabel>
      <content src="text/ch1.xhtml"/>
      <navPoint id="np2" playOrder="2">
        <navLabel><text>The Beginning</text></navLabel>
        <content src="text/ch1.xhtml#start"/>
      </navPoint>
    </navPoint>
    <navPoint id="np3" playOrder="3">
      <navLabel><text>The Middle</text></navLabel>
      <content src="text/ch2.xhtml"/>
    </navPoint>
  </navMap>
</ncx>
"""

NAV_XHTML = """<?xml version="1.0" encoding="utf-8"?>
<html xmlns="http://www.w3.org/1999/xhtml" xmlns:epub="http://www.idpf.org/2007/ops">
<head><title>Contents</title></head>
<body>
  <nav epub:type="toc">
    <ol>
      <li><a href="text/ch1.xhtml">Opening</a>
        <ol><li><a href="text/ch1.xhtml#s1">First Scene</a></li></ol>
      </li>
      <li><a href="text/ch2.xhtml">Closing</a></li>
    </ol>
  </nav>
</body>
</html>
"""

EPUB2_CHAPTERS = {
    "OEBPS/text/ch1.xhtml": chapter_xhtml(
        "One", f"<h1>Chapter One</h1>\n<p>{LONG_PARAGRAPH}</p>\n<p><em>Italic</em> and <strong>bold</strong>.</p>"
    ),
    "OEBPS/text/ch2.xhtml": chapter_xhtml(
        "Two", f"<h2>Chapter Two</h2>\n<p>The second chapter. {LONG_PARAGRAPH}</p>"
    ),
    "OEBPS/text/cover.xhtml": chapter_xhtml("Cover", "<p>Cover</p>"),
}


def write_epub(path: Path, files: dict[str, str | bytes]) -> Path:
    """Write files into a zip with the EPUB mimetype entry first."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("mimetype", "application/epub+zip", compress_type=zipfile.ZIP_STORED)
        for name, data in files.items():
            zf.writestr(name, data, compress_type=zipfile.ZIP_DEFLATED)
    return path


def corrupt_member(path: Path, name: str, length: int = 20) -> None:
    """Overwrite the start of a member's compressed data with 0xFF bytes."""
    with zipfile.ZipFile(path) as zf:
        info = zf.getinfo(name)
    data = bytearray(path.read_bytes())
    offset = info.header_offset
    # Local file header: 30 fixed bytes, then file name and extra field.
    name_len = int.from_bytes(data[offset + 26:offset + 28], "little")
    extra_len = int.from_bytes(data[offset + 28:offset + 30], "little")
    start = offset + 30 + name_len + extra_len
    data[start:start + length] = b"\xff" * length
    path.write_bytes(bytes(data))


def write_unpacked(root: Path, files: dict[str, str]) -> Path:
    for name, data in files.items():
        target = root / name
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(data, encoding="utf-8")
    return root


def epub2_files(
    title: str | None = "A Test Book",
    creators: list[str] | None = None,
    with_ncx: bool = True,
) -> dict[str, str]:
    creators = ["Jane Doe", "John Roe"] if creators is None else creators
    manifest = [
        ("cover", "text/cover.xhtml", "application/xhtml+xml", ""),
        ("ch1", "text/ch1.xhtml", "application/xhtml+xml", ""),
        ("ch2", "text/ch2.xhtml", "application/xhtml+xml", ""),
    ]
    if with_ncx:
        manifest.append(("ncx", "toc.ncx", "application/x-dtbncx+xml", ""))
    extra = """
    <dc:identifier id="bookid">urn:isbn:9780000000001</dc:identifier>
    <dc:language>en</dc:language>
    <dc:publisher>Test Press</dc:publisher>
    <dc:subject>Fiction</dc:subject>
    <dc:subject>Testing</dc:subject>
    <dc:description>A book used in tests.</dc:description>
    """
    files = {
        "META-INF/container.xml": CONTAINER_XML.format(opf_path="OEBPS/content.opf"),
        # Spine order deliberately differs from manifest order.
        "OEBPS/content.opf": _opf(
            title, creators, manifest, ["cover", "ch2", "ch1"], "2.0", extra,
            "ncx" if with_ncx else None,
        ),
        **EPUB2_CHAPTERS,
    }
    if with_ncx:
        files["OEBPS/toc.ncx"] = NCX
    return files


def epub3_files() -> dict[str, str]:
    manifest = [
        ("nav", "nav.xhtml", "application/xhtml+xml", "nav"),
        ("ch1", "text/ch1.xhtml", "application/xhtml+xml", ""),
        ("ch2", "text/ch2%20b.xhtml", "application/xhtml+xml", ""),
    ]
    extra = """
    <dc:identifier id="bookid">urn:uuid:1234</dc:identifier>
    <meta property="dcterms:modified">2024-01-02T03:04:05Z</meta>
    """
    nav = NAV_XHTML.replace("text/ch2.xhtml", "text/ch2%20b.xhtml")
    return {
        "META-INF/container.xml": CONTAINER_XML.format(opf_path="book/package.opf"),
        "book/package.opf": _opf("Third Edition", ["Ann Author"], manifest, ["ch1", "ch2"], "3.0", extra, None),
        "book/nav.xhtml": nav,
        "book/text/ch1.xhtml": EPUB2_CHAPTERS["OEBPS/text/ch1.xhtml"],
        "book/text/ch2 b.xhtml": EPUB2_CHAPTERS["OEBPS/text/ch2.xhtml"],
    }


@pytest.fixture
def epub2_book(tmp_path) -> Path:
    return write_epub(tmp_path / "test_book.epub", epub2_files())


@pytest.fixture
def epub3_book(tmp_path) -> Path:
    return write_epub(tmp_path / "third.epub", epub3_files())


@pytest.fixture
def unpacked_book(tmp_path) -> Path:
    return write_unpacked(tmp_path / "unpacked.epub", epub2_files())


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    """Run every test inside tmp_path with no EPUB2MD_* settings."""
    monkeypatch.delenv("EPUB2MD_MIN_CHAPTER_BYTES", raising=False)
    monkeypatch.delenv("EPUB2MD_HEADING_STYLE", raising=False)
    monkeypatch.chdir(tmp_path)
