"""config.py — Settings read from the environment (and .env, if present)."""

import os
from dataclasses import dataclass

from dotenv import load_dotenv

DEFAULT_MIN_CHAPTER_BYTES = 50
DEFAULT_HEADING_STYLE = "atx"
HEADING_STYLES = ("atx", "atx_closed", "underlined")


@dataclass
class Settings:
    min_chapter_bytes: int = DEFAULT_MIN_CHAPTER_BYTES  # UTF-8 length; shorter chapters are dropped
    heading_style: str = DEFAULT_HEADING_STYLE          # passed to markdownify


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got '{raw}'") from None
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")
    return value


def load_settings() -> Settings:
    """Load EPUB2MD_* settings; .env values never override the real environment."""
    load_dotenv()
    heading_style = os.getenv("EPUB2MD_HEADING_STYLE", "").strip().lower() or DEFAULT_HEADING_STYLE
    if heading_style not in HEADING_STYLES:
        raise ValueError(
            f"EPUB2MD_HEADING_STYLE must be one of {', '.join(HEADING_STYLES)}, "
            f"got '{heading_style}'"
        )
    return Settings(
        min_chapter_bytes=_int_env("EPUB2MD_MIN_CHAPTER_BYTES", DEFAULT_MIN_CHAPTER_BYTES),
        heading_style=heading_style,
    )
