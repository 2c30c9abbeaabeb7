#!/usr/bin/env python3
"""
epub2md — Convert EPUB e-books to Markdown.

Each book becomes a directory holding one chapter_NNN.md per chapter (in
spine order) plus metadata.json, or, with --single, one merged Markdown file.

Quick start:
  python epub2md.py book.epub --dry-run
  python epub2md.py book.epub
  python epub2md.py book.epub --single -o ~/Desktop/book_md
  python epub2md.py ~/Books/            # every .epub below ~/Books

Settings (environment or .env):
  EPUB2MD_MIN_CHAPTER_BYTES   drop chapters whose UTF-8 Markdown is shorter than this (default 50)
  EPUB2MD_HEADING_STYLE       atx | atx_closed | underlined (default atx)
"""

import argparse
import sys
from pathlib import Path

from tqdm import tqdm

from config import Settings, load_settings
from parsers import is_epub_source

OUTPUT_SUFFIX = "_markdown"


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="epub2md",
        description="Convert EPUB files to Markdown format",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # List chapters without writing anything:
  epub2md book.epub --dry-run

  # One Markdown file per chapter in ./book_markdown/:
  epub2md book.epub

  # One merged file, custom output directory:
  epub2md book.epub --single --output out/

  # Every EPUB below a directory, results in out/<name>_markdown/:
  epub2md ~/Books --output out/
        """,
    )
    parser.add_argument(
        "input", type=Path,
        help="Path to an EPUB file or a directory containing EPUB files",
    )
    parser.add_argument(
        "-o", "--output", type=Path, default=None, metavar="DIR",
        help="Output directory for Markdown files",
    )
    parser.add_argument(
        "-s", "--single", action="store_true",
        help="Create a single merged Markdown file instead of separate files",
    )
    parser.add_argument(
        "--dry-run", action="store_true",
        help="Parse input and list chapters without writing any files",
    )
    return parser.parse_args(argv)


def find_epub_files(directory: Path) -> list[Path]:
    """Recursively find .epub files (and unpacked *.epub directories)."""
    found = []
    for path in sorted(directory.rglob("*")):
        if path.suffix.lower() != ".epub":
            continue
        if path.is_file() or (path.is_dir() and is_epub_source(path)):
            found.append(path)
    return found


def default_output_dir(epub_path: Path, output_base: Path | None, batch: bool) -> Path:
    """
    Single book: output_base itself, else ./<stem>_markdown.
    Batch: <output_base>/<stem>_markdown, else <stem>_markdown beside the EPUB.
    """
    name = f"{epub_path.stem}{OUTPUT_SUFFIX}"
    if not batch:
        return output_base if output_base is not None else Path(name)
    if output_base is not None:
        return output_base / name
    return epub_path.parent / name


def print_chapter_list(chapters, metadata, min_bytes: int) -> None:
    from writer import markdown_size

    print(f"Title:   {metadata.display_title}")
    print(f"Author:  {metadata.display_author}")
    print(f"Version: EPUB {metadata.epub_version}")
    print(f"\nSpine has {metadata.chapter_count} documents, {len(chapters)} readable:")
    print("-" * 70)
    total_bytes = 0
    for ch in chapters:
        size = markdown_size(ch.text)
        total_bytes += size
        marker = " " if size >= min_bytes else "-"
        print(f" {marker}{ch.index:3d}. {ch.title[:48]:<48} {size:>8} bytes")
    print("-" * 70)
    print(f"  Total: {total_bytes:,} bytes  ('-' = skipped, shorter than {min_bytes} bytes)")
    print()


def dry_run(epub_path: Path, settings: Settings) -> None:
    from parsers import parse_file

    print(f"Parsing: {epub_path}")
    result = parse_file(epub_path, heading_style=settings.heading_style)
    print_chapter_list(result.chapters, result.metadata, settings.min_chapter_bytes)


def process_single_epub(epub_path: Path, output_base: Path | None, single_file: bool, settings: Settings) -> None:
    from writer import convert_epub

    output_dir = default_output_dir(epub_path, output_base, batch=False)
    print(f"Converting {epub_path} to Markdown...")
    convert_epub(epub_path, output_dir, single_file=single_file, settings=settings)
    print(f"Conversion complete! Output saved to: {output_dir}")


def process_directory(directory: Path, output_base: Path | None, single_file: bool, settings: Settings) -> int:
    """Convert every EPUB below directory. Returns the number of failures."""
    from writer import convert_epub

    epub_files = find_epub_files(directory)
    if not epub_files:
        raise FileNotFoundError(f"No EPUB files found in directory: {directory}")

    print(f"Found {len(epub_files)} EPUB file(s) in {directory}\n")

    failures = []
    for epub_path in tqdm(epub_files, desc="Converting", unit="book"):
        output_dir = default_output_dir(epub_path, output_base, batch=True)
        try:
            convert_epub(epub_path, output_dir, single_file=single_file, settings=settings, log=tqdm.write)
        except (OSError, ValueError) as e:
            failures.append((epub_path, e))

    for epub_path, error in failures:
        print(f"Failed to process {epub_path}: {error}", file=sys.stderr)

    print("\n--- Summary ---")
    print(f"Successfully processed: {len(epub_files) - len(failures)}")
    if failures:
        print(f"Failed: {len(failures)}")
    return len(failures)


def fail(message: str) -> None:
    print(f"ERROR: {message}", file=sys.stderr)
    sys.exit(1)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)

    try:
        settings = load_settings()
    except ValueError as e:
        fail(str(e))

    input_path = args.input
    if not input_path.exists():
        fail(f"Input path does not exist: {input_path}")

    batch = input_path.is_dir() and not is_epub_source(input_path)
    if not batch and not is_epub_source(input_path):
        fail("Input file must have .epub extension")

    try:
        if args.dry_run:
            epub_files = find_epub_files(input_path) if batch else [input_path]
            if not epub_files:
                fail(f"No EPUB files found in directory: {input_path}")
            for epub_path in epub_files:
                dry_run(epub_path, settings)
            print("Dry run complete. No files written.")
            return

        if batch:
            failed = process_directory(input_path, args.output, args.single, settings)
            if failed:
                fail(f"{failed} EPUB file(s) failed to process")
        else:
            process_single_epub(input_path, args.output, args.single, settings)
    except (OSError, ValueError) as e:
        fail(str(e))


if __name__ == "__main__":
    main()
