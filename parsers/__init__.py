"""parsers/ — EPUB parser package."""

from pathlib import Path

from parsers.base import EpubFormatError, ParseResult

SUPPORTED_EXTENSIONS = {".epub"}


def is_epub_source(path: Path) -> bool:
    """True for a .epub file or an unpacked EPUB directory."""
    path = Path(path)
    if path.is_dir():
        return (path / "META-INF" / "container.xml").is_file()
    return path.suffix.lower() in SUPPORTED_EXTENSIONS


def parse_file(file_path: Path, heading_style: str = "atx") -> ParseResult:
    """Dispatch to the EPUB parser after checking the input looks like a book."""
    file_path = Path(file_path)
    if not file_path.exists():
        raise FileNotFoundError(f"Input path does not exist: {file_path}")
    if not is_epub_source(file_path):
        raise EpubFormatError(
            f"Unsupported input: '{file_path.name}'. "
            "Expected a .epub file or an unpacked EPUB directory"
        )

    from parsers.epub_parser import parse_epub
    return parse_epub(file_path, heading_style=heading_style)


__all__ = ["EpubFormatError", "ParseResult", "is_epub_source", "parse_file"]
