"""models.py — Shared data types for epub2md."""

from dataclasses import dataclass, field


@dataclass
class Chapter:
    index: int       # 1-based spine position
    title: str       # TOC label, first heading, or "Chapter N"
    href: str        # Document path inside the archive, e.g. "OEBPS/ch01.xhtml"
    text: str        # Markdown converted from the chapter XHTML


@dataclass
class TocEntry:
    label: str
    href: str = ""
    children: list["TocEntry"] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {"label": self.label}
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class BookMetadata:
    title: str | None = None
    creators: list[str] = field(default_factory=list)
    language: str | None = None
    description: str | None = None
    publisher: str | None = None
    date: str | None = None
    subjects: list[str] = field(default_factory=list)
    identifier: str | None = None
    rights: str | None = None
    contributors: list[str] = field(default_factory=list)
    source: str | None = None
    epub_version: str = "unknown"
    release_identifier: str | None = None
    chapter_count: int = 0   # spine length, including chapters later skipped
    toc: list[TocEntry] = field(default_factory=list)

    @property
    def display_title(self) -> str:
        return self.title or "Unknown Title"

    @property
    def display_author(self) -> str:
        return self.creators[0] if self.creators else "Unknown Author"

    def to_dict(self) -> dict:
        """Mapping written to metadata.json."""
        return {
            "title": self.title,
            "creators": list(self.creators),
            "language": self.language,
            "description": self.description,
            "publisher": self.publisher,
            "date": self.date,
            "subjects": list(self.subjects),
            "identifier": self.identifier,
            "rights": self.rights,
            "contributors": list(self.contributors),
            "source": self.source,
            "epub_version": self.epub_version,
            "release_identifier": self.release_identifier,
            "chapter_count": self.chapter_count,
            "toc": [entry.to_dict() for entry in self.toc],
        }
