"""html_to_md.py — Convert chapter XHTML into Markdown."""

from bs4 import BeautifulSoup
from markdownify import markdownify as md

from parsers.base import clean_markdown

HEADING_TAGS = ["h1", "h2", "h3", "h4", "h5", "h6"]

# Removed before conversion; <head> would otherwise leak the <title> text.
DROP_TAGS = ["head", "script", "style"]


def _soup(content: bytes | str) -> BeautifulSoup:
    return BeautifulSoup(content, "lxml")


def html_to_markdown(content: bytes | str, heading_style: str = "atx") -> str:
    """Convert one XHTML document to cleaned Markdown."""
    soup = _soup(content)
    for tag in soup(DROP_TAGS):
        tag.decompose()

    root = soup.body if soup.body is not None else soup
    text = md(
        root.decode_contents(),
        heading_style=heading_style,
        newline_style="backslash",
        bullets="-",
    )
    return clean_markdown(text)


def first_heading(content: bytes | str) -> str:
    """Return the text of the first h1-h6 in the document, or ''."""
    heading = _soup(content).find(HEADING_TAGS)
    if heading is None:
        return ""
    return heading.get_text(separator=" ", strip=True)
