"""parsers/base.py — Shared parser utilities and types."""

from dataclasses import dataclass

from models import BookMetadata, Chapter


class EpubFormatError(ValueError):
    """The input is not a readable EPUB (bad zip, missing or broken OPF)."""


@dataclass
class ParseResult:
    """Standard return type for all parsers."""
    chapters: list[Chapter]
    metadata: BookMetadata


def clean_markdown(text: str) -> str:
    """Strip trailing whitespace and collapse runs of blank lines."""
    text = text.replace("\u00ad", "")
    lines = [line.rstrip() for line in text.split("\n")]
    cleaned_lines = []
    prev_blank = False
    for line in lines:
        if not line:
            if not prev_blank:
                cleaned_lines.append("")
            prev_blank = True
        else:
            cleaned_lines.append(line)
            prev_blank = False
    return "\n".join(cleaned_lines).strip()
