"""
File-backed vector sources.

Files are read lazily: a FileDocument only touches the disk when its term
vector is requested, so iterating a large directory is cheap until indexing.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Iterable, Iterator
from pathlib import Path

from bs4 import BeautifulSoup

from vsr.vectors import count_tokens

logger = logging.getLogger(__name__)


def html_to_text(markup: str) -> str:
    """Strips tags, scripts and styles from an HTML page."""
    soup = BeautifulSoup(markup, "html.parser")
    for element in soup(["script", "style"]):
        element.decompose()
    return soup.get_text(" ")


class FileDocument:
    """
    A document stored on disk as plain text or HTML.

    Args:
        path: Location of the file.
        html: Remove HTML markup before tokenizing.
        stopwords: Optional set of tokens to drop.
        stem: Reduce tokens to their Porter stems.

    Attributes:
        doc_id: The file name, used when presenting results.
    """

    def __init__(
        self,
        path: str | Path,
        html: bool = False,
        stopwords: Iterable[str] | None = None,
        stem: bool = False,
    ):
        self.path = Path(path)
        self.html = html
        self.stopwords = stopwords
        self.stem = stem
        self.doc_id = self.path.name

    def __repr__(self) -> str:
        return f"FileDocument({str(self.path)!r})"

    def read_text(self) -> str:
        text = self.path.read_text(encoding="utf-8", errors="replace")
        return html_to_text(text) if self.html else text

    def term_vector(self) -> Counter[str]:
        return count_tokens(self.read_text(), self.stopwords, self.stem)


def iter_directory(
    directory: str | Path,
    html: bool = False,
    stopwords: Iterable[str] | None = None,
    stem: bool = False,
) -> Iterator[FileDocument]:
    """
    Yields a FileDocument for every regular file in ``directory``, by name.

    Raises:
        FileNotFoundError: If ``directory`` does not exist or is not a directory.
    """
    root = Path(directory)
    if not root.is_dir():
        raise FileNotFoundError(f"Not a directory: {root}")
    files = sorted(p for p in root.iterdir() if p.is_file())
    logger.debug("Found %d files in %s", len(files), root)
    for path in files:
        yield FileDocument(path, html=html, stopwords=stopwords, stem=stem)
