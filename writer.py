"""writer.py — Write a parsed book out as Markdown files plus metadata.json."""

import json
from pathlib import Path

from config import Settings
from models import BookMetadata, Chapter
from parsers import parse_file

UNSAFE_FILENAME_CHARS = '/\\:*?"<>|'
CHAPTER_SEPARATOR = "\n\n---\n\n"


def sanitize_filename(name: str) -> str:
    """Replace characters that are invalid in file names with '_'."""
    return "".join("_" if c in UNSAFE_FILENAME_CHARS else c for c in name)


def chapter_filename(number: int) -> str:
    return f"chapter_{number:03d}.md"


def markdown_size(text: str) -> int:
    """Length of the stripped Markdown in UTF-8 bytes."""
    return len(text.strip().encode("utf-8"))


def select_chapters(chapters: list[Chapter], min_bytes: int) -> list[Chapter]:
    """Drop chapters whose Markdown is empty or shorter than min_bytes."""
    return [ch for ch in chapters if ch.text.strip() and markdown_size(ch.text) >= min_bytes]


def write_metadata(metadata: BookMetadata, output_dir: Path) -> Path:
    path = output_dir / "metadata.json"
    path.write_text(
        json.dumps(metadata.to_dict(), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )
    return path


def write_chapter_files(chapters: list[Chapter], output_dir: Path) -> list[Path]:
    """Write each chapter to chapter_NNN.md, numbered consecutively from 1."""
    written = []
    for number, chapter in enumerate(chapters, start=1):
        path = output_dir / chapter_filename(number)
        path.write_text(chapter.text, encoding="utf-8")
        written.append(path)
    return written


def build_combined_markdown(chapters: list[Chapter], metadata: BookMetadata) -> str:
    parts = [
        f"# {metadata.display_title}\n\n",
        f"**Author:** {metadata.display_author}\n\n",
        "---\n\n",
    ]
    for chapter in chapters:
        parts.append(chapter.text)
        parts.append(CHAPTER_SEPARATOR)
    return "".join(parts)


def write_combined_file(chapters: list[Chapter], metadata: BookMetadata, output_dir: Path) -> Path:
    path = output_dir / f"{sanitize_filename(metadata.display_title)}.md"
    path.write_text(build_combined_markdown(chapters, metadata), encoding="utf-8")
    return path


def convert_epub(
    epub_path: Path,
    output_dir: Path,
    single_file: bool = False,
    settings: Settings | None = None,
    log=print,
) -> list[Path]:
    """
    Convert one EPUB into output_dir. Returns the Markdown files written.
    metadata.json is always written alongside them. Status lines go to log.
    """
    settings = settings or Settings()
    epub_path = Path(epub_path)
    output_dir = Path(output_dir)

    result = parse_file(epub_path, heading_style=settings.heading_style)
    metadata = result.metadata

    output_dir.mkdir(parents=True, exist_ok=True)
    write_metadata(metadata, output_dir)

    log(f"  [{epub_path.name}] Title: {metadata.display_title}, Author: {metadata.display_author}")

    chapters = select_chapters(result.chapters, settings.min_chapter_bytes)
    if single_file:
        return [write_combined_file(chapters, metadata, output_dir)]
    return write_chapter_files(chapters, output_dir)
