"""
EPUB inspection for Storybooker.

Reads a built book back with ebooklib to report its metadata and
document list.
"""

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

logger = logging.getLogger("storybooker.builder")


@dataclass
class EpubSummary:
    """Metadata and reading order of a built book."""
    path: Path
    title: Optional[str] = None
    author: Optional[str] = None
    language: Optional[str] = None
    documents: list[str] = field(default_factory=list)
    headings: list[str] = field(default_factory=list)


def _first_metadata(book, name: str) -> Optional[str]:
    values = book.get_metadata("DC", name)
    if values:
        return values[0][0]
    return None


def _heading(html_content: str) -> Optional[str]:
    match = re.search(r"<h1[^>]*>(.*?)</h1>", html_content, re.IGNORECASE | re.DOTALL)
    if not match:
        return None
    text = re.sub(r"<[^>]+>", "", match.group(1))
    return " ".join(text.split()) or None


def read_epub_summary(path: Path) -> EpubSummary:
    """
    Read metadata and document names from an EPUB file.

    Args:
        path: Path to EPUB file

    Returns:
        EpubSummary

    Raises:
        ImportError: If ebooklib is not installed
        FileNotFoundError: If file doesn't exist
    """
    try:
        import ebooklib
        from ebooklib import epub
    except ImportError:
        raise ImportError(
            "ebooklib is required for EPUB inspection. "
            "Install with: pip install ebooklib"
        )

    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"EPUB not found: {path}")

    book = epub.read_epub(str(path))

    summary = EpubSummary(
        path=path,
        title=_first_metadata(book, "title"),
        author=_first_metadata(book, "creator"),
        language=_first_metadata(book, "language"),
    )

    for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
        summary.documents.append(item.get_name())
        content = item.get_content()
        if isinstance(content, bytes):
            content = content.decode("utf-8", errors="replace")
        heading = _heading(content)
        if heading:
            summary.headings.append(heading)

    logger.debug(f"EPUB_INFO: path={path} documents={len(summary.documents)}")
    return summary
