"""parsers/epub_parser.py — Parse EPUB (packed or directory) into chapters."""

import posixpath
import xml.etree.ElementTree as ET
import zipfile
import zlib
from pathlib import Path
from urllib.parse import unquote

from bs4 import BeautifulSoup

from html_to_md import first_heading, html_to_markdown
from models import BookMetadata, Chapter, TocEntry
from parsers.base import EpubFormatError, ParseResult

CONTAINER_NS = "urn:oasis:names:tc:opendocument:xmlns:container"
NCX_NS = "http://www.daisy.org/z3986/2005/ncx/"
OPF_NS = "http://www.idpf.org/2007/opf"
DC_NS = "http://purl.org/dc/elements/1.1/"

CONTAINER_PATH = "META-INF/container.xml"
NCX_MEDIA_TYPE = "application/x-dtbncx+xml"

# Raised by zipfile while inflating a damaged, encrypted or exotic member.
CORRUPT_MEMBER_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError)


class _EpubSource:
    """Read-only view over the files of a packed (.epub) or unpacked EPUB."""

    def __init__(self, epub_path: Path):
        self.path = epub_path
        self._zip = None
        if epub_path.is_dir():
            return
        try:
            self._zip = zipfile.ZipFile(epub_path)
        except zipfile.BadZipFile as e:
            raise EpubFormatError(f"Not a valid EPUB archive: {epub_path} ({e})") from e

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def names(self) -> list[str]:
        if self._zip is not None:
            return self._zip.namelist()
        return sorted(
            p.relative_to(self.path).as_posix()
            for p in self.path.rglob("*") if p.is_file()
        )

    def read(self, name: str) -> bytes | None:
        """Return the bytes of an archive member, or None if it is absent."""
        # Paths resolved outside the book root are treated as absent.
        if name == ".." or name.startswith(("/", "../")):
            return None
        if self._zip is not None:
            try:
                return self._zip.read(name)
            except KeyError:
                return None
            except CORRUPT_MEMBER_ERRORS as e:
                raise EpubFormatError(f"Corrupt entry '{name}' in {self.path}: {e}") from e
        candidate = self.path / name
        if not candidate.is_file():
            return None
        return candidate.read_bytes()


def _resolve(base_dir: str, href: str) -> str:
    """Resolve an href (fragment dropped, URL-unquoted) against base_dir."""
    href = unquote(href.split("#")[0])
    if not href:
        return ""
    return posixpath.normpath(posixpath.join(base_dir, href))


def _text(el: ET.Element | None) -> str:
    if el is None:
        return ""
    return " ".join("".join(el.itertext()).split())


def _parse_xml(source: _EpubSource, name: str) -> ET.Element | None:
    data = source.read(name)
    if data is None:
        return None
    try:
        return ET.fromstring(data)
    except ET.ParseError as e:
        raise EpubFormatError(f"Malformed XML in {name}: {e}") from e


def _find_opf(source: _EpubSource) -> str:
    """Locate the OPF package document via container.xml, else any *.opf."""
    container = _parse_xml(source, CONTAINER_PATH)
    if container is not None:
        for rootfile in container.iter(f"{{{CONTAINER_NS}}}rootfile"):
            full_path = rootfile.get("full-path")
            if full_path:
                return full_path
    for name in source.names():
        if name.lower().endswith(".opf"):
            return name
    raise EpubFormatError(f"No OPF package document found in {source.path}")


def _extract_metadata(package: ET.Element) -> BookMetadata:
    """Read Dublin Core fields, version and release identifier from the OPF."""
    values: dict[str, list[str]] = {}
    modified = None
    unique_id = None
    uid_ref = package.get("unique-identifier")

    metadata_el = package.find(f"{{{OPF_NS}}}metadata")
    if metadata_el is not None:
        for el in metadata_el.iter():
            if not isinstance(el.tag, str):
                continue
            if el.tag.startswith(f"{{{DC_NS}}}"):
                name = el.tag[len(DC_NS) + 2:]
                value = _text(el)
                if not value:
                    continue
                values.setdefault(name, []).append(value)
                if name == "identifier" and uid_ref and el.get("id") == uid_ref:
                    unique_id = value
            elif el.tag == f"{{{OPF_NS}}}meta" and el.get("property") == "dcterms:modified":
                modified = _text(el) or modified

    def first(name: str) -> str | None:
        found = values.get(name)
        return found[0] if found else None

    release_identifier = f"{unique_id}@{modified}" if unique_id and modified else None

    return BookMetadata(
        title=first("title"),
        creators=values.get("creator", []),
        language=first("language"),
        description=first("description"),
        publisher=first("publisher"),
        date=first("date"),
        subjects=values.get("subject", []),
        identifier=first("identifier"),
        rights=first("rights"),
        contributors=values.get("contributor", []),
        source=first("source"),
        epub_version=package.get("version") or "unknown",
        release_identifier=release_identifier,
    )


def _read_manifest(package: ET.Element, base_dir: str) -> dict[str, dict]:
    """Return {item id: {"href", "media_type", "properties"}}."""
    manifest = {}
    manifest_el = package.find(f"{{{OPF_NS}}}manifest")
    if manifest_el is None:
        return manifest
    for item in manifest_el.findall(f"{{{OPF_NS}}}item"):
        item_id = item.get("id")
        href = item.get("href")
        if not item_id or not href:
            continue
        manifest[item_id] = {
            "href": _resolve(base_dir, href),
            "media_type": item.get("media-type", ""),
            "properties": (item.get("properties") or "").split(),
        }
    return manifest


def _nav_points(parent: ET.Element, base_dir: str) -> list[TocEntry]:
    entries = []
    for point in parent.findall(f"{{{NCX_NS}}}navPoint"):
        label = point.find(f"{{{NCX_NS}}}navLabel/{{{NCX_NS}}}text")
        content = point.find(f"{{{NCX_NS}}}content")
        src = content.get("src", "") if content is not None else ""
        entries.append(TocEntry(
            label=_text(label),
            href=_resolve(base_dir, src),
            children=_nav_points(point, base_dir),
        ))
    return entries


def _nav_list(ol, base_dir: str) -> list[TocEntry]:
    entries = []
    for li in ol.find_all("li", recursive=False):
        link = li.find(["a", "span"], recursive=False)
        sub_list = li.find("ol", recursive=False)
        href = link.get("href", "") if link is not None and link.name == "a" else ""
        entries.append(TocEntry(
            label=link.get_text(separator=" ", strip=True) if link is not None else "",
            href=_resolve(base_dir, href),
            children=_nav_list(sub_list, base_dir) if sub_list is not None else [],
        ))
    return entries


def _parse_nav_document(data: bytes, base_dir: str) -> list[TocEntry]:
    """Parse the <nav epub:type="toc"> list of an EPUB 3 navigation document."""
    soup = BeautifulSoup(data, "lxml")
    nav = soup.find("nav", attrs={"epub:type": "toc"}) or soup.find("nav")
    if nav is None:
        return []
    ol = nav.find("ol")
    return _nav_list(ol, base_dir) if ol is not None else []


def _read_toc(source: _EpubSource, spine_el: ET.Element, manifest: dict[str, dict]) -> list[TocEntry]:
    """Table of contents from the NCX, falling back to the EPUB 3 nav document."""
    ncx_item = manifest.get(spine_el.get("toc") or "")
    if ncx_item is None:
        ncx_item = next(
            (item for item in manifest.values() if item["media_type"] == NCX_MEDIA_TYPE),
            None,
        )
    if ncx_item is not None:
        root = _parse_xml(source, ncx_item["href"])
        nav_map = root.find(f"{{{NCX_NS}}}navMap") if root is not None else None
        if nav_map is not None:
            entries = _nav_points(nav_map, posixpath.dirname(ncx_item["href"]))
            if entries:
                return entries

    for item in manifest.values():
        if "nav" in item["properties"]:
            data = source.read(item["href"])
            if data is not None:
                return _parse_nav_document(data, posixpath.dirname(item["href"]))
    return []


def _toc_titles(entries: list[TocEntry], titles: dict[str, str] | None = None) -> dict[str, str]:
    """Map document path -> first TOC label pointing into it."""
    if titles is None:
        titles = {}
    for entry in entries:
        if entry.href and entry.label:
            titles.setdefault(entry.href, entry.label)
        _toc_titles(entry.children, titles)
    return titles


def parse_epub(epub_path: Path, heading_style: str = "atx") -> ParseResult:
    """Main entry point. Returns ParseResult with spine-ordered chapters and metadata."""
    epub_path = Path(epub_path)
    if not epub_path.exists():
        raise FileNotFoundError(f"EPUB not found: {epub_path}")

    with _EpubSource(epub_path) as source:
        opf_path = _find_opf(source)
        package = _parse_xml(source, opf_path)
        if package is None:
            raise EpubFormatError(f"Package document '{opf_path}' missing from {epub_path}")
        spine_el = package.find(f"{{{OPF_NS}}}spine")
        if spine_el is None:
            raise EpubFormatError(f"Package document '{opf_path}' has no spine")

        manifest = _read_manifest(package, posixpath.dirname(opf_path))
        itemrefs = spine_el.findall(f"{{{OPF_NS}}}itemref")

        metadata = _extract_metadata(package)
        metadata.chapter_count = len(itemrefs)
        metadata.toc = _read_toc(source, spine_el, manifest)
        titles = _toc_titles(metadata.toc)

        chapters = []
        for i, itemref in enumerate(itemrefs, start=1):
            item = manifest.get(itemref.get("idref", ""))
            if item is None:
                continue
            content = source.read(item["href"])
            if content is None:
                continue
            title = titles.get(item["href"]) or first_heading(content) or f"Chapter {i}"
            text = html_to_markdown(content, heading_style=heading_style)
            chapters.append(Chapter(index=i, title=title, href=item["href"], text=text))

    return ParseResult(chapters=chapters, metadata=metadata)
