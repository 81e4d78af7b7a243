"""
Term vectors and the sources that produce them.

A term vector maps a normalized token to a non-negative weight (an occurrence
count for documents and queries, a reweighted value after relevance feedback).
Anything with a ``doc_id`` and a ``term_vector()`` method can be indexed.
"""

from __future__ import annotations

import re
from collections import Counter
from collections.abc import Iterable, Mapping
from functools import cache
from typing import Protocol, runtime_checkable

from nltk.stem import PorterStemmer

TermVector = Mapping[str, float]


ENGLISH_STOPWORDS: frozenset[str] = frozenset([
    "a", "an", "and", "are", "as", "at", "be", "been", "but", "by", "can",
    "do", "for", "from", "had", "has", "have", "he", "her", "him", "his",
    "how", "i", "if", "in", "into", "is", "it", "its", "me", "my", "no",
    "not", "of", "on", "or", "our", "out", "s", "she", "so", "some", "such",
    "t", "than", "that", "the", "their", "them", "then", "there", "these",
    "they", "this", "to", "too", "us", "very", "was", "we", "were", "what",
    "when", "where", "which", "who", "will", "with", "would", "you", "your",
])

_TOKEN_PATTERN = re.compile(r"\w+")

_STEMMER = PorterStemmer()


@cache
def stem(token: str) -> str:
    """Porter stem of a single lower-cased token."""
    return _STEMMER.stem(token)


def tokenize(text: str, stopwords: Iterable[str] | None = None, stem_tokens: bool = False) -> list[str]:
    """
    Tokenizes the input text into a list of lower-cased terms.

    Stopwords are removed before stemming, and again afterwards so a stem
    that is itself a stopword is dropped too.
    """
    tokens = _TOKEN_PATTERN.findall(text.lower())
    stop = None
    if stopwords:
        stop = stopwords if isinstance(stopwords, (set, frozenset)) else frozenset(stopwords)
        tokens = [t for t in tokens if t not in stop]
    if stem_tokens:
        tokens = [stem(t) for t in tokens]
        if stop:
            tokens = [t for t in tokens if t not in stop]
    return tokens


def count_tokens(
    text: str,
    stopwords: Iterable[str] | None = None,
    stem_tokens: bool = False,
) -> Counter[str]:
    return Counter(tokenize(text, stopwords, stem_tokens))


@runtime_checkable
class VectorSource(Protocol):
    """Anything that can produce a term vector for indexing or querying."""

    doc_id: str

    def term_vector(self) -> Counter[str]: ...


class TextDocument:
    """
    A vector source backed by an in-memory string.

    Args:
        doc_id: Identifier shown to the user.
        text: Raw text; tokenized on every call to ``term_vector``.
        stopwords: Optional set of tokens to drop.
        stem: Reduce tokens to their Porter stems.
    """

    def __init__(
        self,
        doc_id: str,
        text: str,
        stopwords: Iterable[str] | None = None,
        stem: bool = False,
    ):
        self.doc_id = doc_id
        self.text = text
        self.stopwords = stopwords
        self.stem = stem

    def __repr__(self) -> str:
        return f"TextDocument({self.doc_id!r})"

    def term_vector(self) -> Counter[str]:
        return count_tokens(self.text, self.stopwords, self.stem)


class VectorDocument:
    """A vector source wrapping an already computed token -> count mapping."""

    def __init__(self, doc_id: str, vector: TermVector):
        self.doc_id = doc_id
        self._vector = Counter(dict(vector))

    def __repr__(self) -> str:
        return f"VectorDocument({self.doc_id!r})"

    def term_vector(self) -> Counter[str]:
        # Callers get a copy so the indexed vector stays read-only
        return Counter(self._vector)


# =============================================================================
# Vector arithmetic
# =============================================================================


def max_weight(vector: TermVector) -> float:
    """Largest weight in the vector, 0.0 for an empty vector."""
    return max(vector.values(), default=0.0)


def add_scaled(target: dict[str, float], vector: TermVector, factor: float) -> dict[str, float]:
    """Adds ``factor * vector`` into ``target`` in place and returns it."""
    for token, weight in vector.items():
        target[token] = target.get(token, 0.0) + factor * weight
    return target


def normalized(vector: TermVector) -> dict[str, float]:
    """
    Divides every weight by the vector's maximum weight.

    Returns an empty dict when the vector has no positive weight.
    """
    peak = max_weight(vector)
    if peak <= 0:
        return {}
    return {token: weight / peak for token, weight in vector.items()}
