"""
Inverted index for vector-space retrieval with TF-IDF weighting.

Building is one-shot: an IndexBuilder collects term vectors for a closed set
of documents and is consumed by ``build()``, which returns an immutable
InvertedIndex. Once built, the index is read-only and can be shared between
threads without locking.

Weighting:
    idf(t)    = ln(N / df(t))
    w(t, d)   = idf(t) * count(t, d)
    |d|       = sqrt(sum_t w(t, d)^2)

Tokens with idf == 0 (present in every document) are dropped from the index
entirely, so every surviving token has idf > 0.
"""

from __future__ import annotations

import logging
import math
import sys
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np
from scipy.sparse import csr_matrix

from vsr.errors import UsageError
from vsr.vectors import VectorSource

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)


# =============================================================================
# Data model
# =============================================================================


@dataclass(frozen=True)
class DocumentReference:
    """
    A document known to the index.

    Attributes:
        index: Dense position of the document in the index (0-based).
        doc_id: Identifier shown to the user.
        source: The vector source the document came from.
        length: Euclidean norm of the document's idf-weighted vector.
    """

    index: int
    doc_id: str
    source: VectorSource = field(compare=False, repr=False)
    length: float = 0.0

    def __str__(self) -> str:
        return self.doc_id


@dataclass(frozen=True)
class TokenOccurrence:
    """A (document, raw count) pair for a single token."""

    document: int
    count: float


@dataclass(frozen=True, eq=False)
class TokenInfo:
    """
    Per-token view of the index: idf plus the documents the token occurs in.

    ``doc_indices`` and ``counts`` are parallel arrays, ordered by document.
    """

    token: str
    idf: float
    doc_indices: NDArray[np.int64]
    counts: NDArray[np.float64]

    def __len__(self) -> int:
        return len(self.doc_indices)

    @property
    def document_frequency(self) -> int:
        return len(self.doc_indices)

    @property
    def occurrences(self) -> tuple[TokenOccurrence, ...]:
        return tuple(
            TokenOccurrence(int(doc), float(count))
            for doc, count in zip(self.doc_indices, self.counts)
        )


# =============================================================================
# Index
# =============================================================================


class InvertedIndex:
    """
    Immutable token -> occurrence index over a closed document set.

    Use IndexBuilder (or ``InvertedIndex.from_documents``) to create one.

    Attributes:
        documents: DocumentReference for every indexed document, by index.
        idf_array: idf for each surviving token, by term id.
        tf_matrix: Sparse (vocab_size, N) matrix of raw counts.
        weight_matrix: Sparse (vocab_size, N) matrix of idf * count.
        lengths: Document vector lengths (N,).
    """

    def __init__(
        self,
        documents: tuple[DocumentReference, ...],
        vocabulary: dict[str, int],
        idf_array: NDArray[np.float64],
        tf_matrix: csr_matrix,
        weight_matrix: csr_matrix,
    ):
        self.documents = documents
        self._vocab = vocabulary
        self._tokens = [""] * len(vocabulary)
        for token, term_id in vocabulary.items():
            self._tokens[term_id] = token
        self.idf_array = idf_array
        self.tf_matrix = tf_matrix
        self.weight_matrix = weight_matrix
        self.lengths = np.array([doc.length for doc in documents], dtype=np.float64)
        for array in (self.idf_array, self.lengths):
            array.flags.writeable = False

    @classmethod
    def from_documents(cls, documents: Iterable[VectorSource]) -> InvertedIndex:
        return IndexBuilder().build(documents)

    def __len__(self) -> int:
        return len(self.documents)

    def __contains__(self, token: object) -> bool:
        return token in self._vocab

    def __repr__(self) -> str:
        return f"InvertedIndex(documents={len(self)}, tokens={self.size()})"

    @property
    def N(self) -> int:
        return len(self.documents)

    def size(self) -> int:
        """Number of distinct tokens that survived pruning."""
        return len(self._vocab)

    def tokens(self) -> Iterator[str]:
        return iter(self._tokens)

    def get_term_id(self, token: str) -> int | None:
        """Get term ID (None if the token is not indexed)."""
        return self._vocab.get(token)

    def idf(self, token: str) -> float:
        """idf of an indexed token, 0.0 for unknown or pruned tokens."""
        term_id = self._vocab.get(token)
        if term_id is None:
            return 0.0
        return float(self.idf_array[term_id])

    def token_info(self, token: str) -> TokenInfo | None:
        term_id = self._vocab.get(token)
        if term_id is None:
            return None
        start, end = self.tf_matrix.indptr[term_id], self.tf_matrix.indptr[term_id + 1]
        return TokenInfo(
            token=token,
            idf=float(self.idf_array[term_id]),
            doc_indices=self.tf_matrix.indices[start:end].astype(np.int64),
            counts=self.tf_matrix.data[start:end].copy(),
        )

    def document(self, index: int) -> DocumentReference:
        return self.documents[index]

    def document_vector(self, index: int) -> dict[str, float]:
        """The idf-weighted vector of a document, over surviving tokens only."""
        column = self.weight_matrix[:, index].tocoo()
        return {self._tokens[row]: float(w) for row, w in zip(column.row, column.data)}

    def describe(self) -> str:
        """
        Human readable dump of the index: every token with its idf, then the
        documents it occurs in with the occurrence count and |D|.
        """
        lines = []
        for token in self._tokens:
            info = self.token_info(token)
            lines.append(f"{token} (IDF={info.idf}) occurs in:")
            for occ in info.occurrences:
                doc = self.documents[occ.document]
                lines.append(f"   {doc.doc_id} {occ.count:g} times; |D|={doc.length}")
        return "\n".join(lines)


# =============================================================================
# Builder
# =============================================================================


class IndexBuilder:
    """
    Collects documents and produces an InvertedIndex exactly once.

    Example:
        >>> builder = IndexBuilder()
        >>> index = builder.build(documents)
        >>> builder.build(more_documents)  # raises UsageError
    """

    def __init__(self):
        # token -> [(document index, count)], created on first sight
        self._postings: dict[str, list[tuple[int, float]]] = {}
        self._sources: list[VectorSource] = []
        self._built = False

    @property
    def built(self) -> bool:
        return self._built

    def __len__(self) -> int:
        return len(self._sources)

    def _check_open(self) -> None:
        if self._built:
            raise UsageError("Index has already been built; create a new IndexBuilder to index another document set")

    def add(self, source: VectorSource) -> int:
        """
        Adds one document and returns its dense index.

        Raises:
            UsageError: If the builder has already been consumed.
            ValueError: If the document's vector contains a negative count.
        """
        self._check_open()
        vector = source.term_vector()
        for token, count in vector.items():
            if count < 0:
                raise ValueError(f"Negative count {count} for token {token!r} in document {source.doc_id!r}")

        doc_index = len(self._sources)
        self._sources.append(source)
        for token, count in vector.items():
            if count == 0:
                continue
            postings = self._postings.get(token)
            if postings is None:
                postings = self._postings[sys.intern(token)] = []
            postings.append((doc_index, float(count)))
        return doc_index

    def build(self, documents: Iterable[VectorSource] = ()) -> InvertedIndex:
        """
        Adds ``documents`` and finalizes the index.

        If adding any of ``documents`` fails, none of them are kept and the
        builder is left as it was before the call.

        Raises:
            UsageError: On a second call.
            ValueError: If a document's vector contains a negative count.
        """
        self._check_open()
        n_before = len(self._sources)
        try:
            for source in documents:
                self.add(source)
        except Exception:
            self._rollback(n_before)
            raise
        self._built = True
        index = self._finalize()
        self._postings = {}
        logger.info("Indexed %d documents with %d unique terms.", len(index), index.size())
        return index

    def _rollback(self, n_docs: int) -> None:
        """Forgets every document added after the first ``n_docs``."""
        del self._sources[n_docs:]
        for token in list(self._postings):
            postings = self._postings[token]
            # Postings are appended in document order
            while postings and postings[-1][0] >= n_docs:
                postings.pop()
            if not postings:
                del self._postings[token]

    def _finalize(self) -> InvertedIndex:
        n_docs = len(self._sources)

        vocabulary: dict[str, int] = {}
        idf_values: list[float] = []
        rows: list[int] = []
        cols: list[int] = []
        data: list[float] = []
        pruned = 0
        for token, postings in self._postings.items():
            idf = math.log(n_docs / len(postings))
            # Exact comparison: only tokens present in every document go
            if idf == 0.0:
                pruned += 1
                continue
            term_id = len(vocabulary)
            vocabulary[token] = term_id
            idf_values.append(idf)
            for doc_index, count in postings:
                rows.append(term_id)
                cols.append(doc_index)
                data.append(count)
        logger.debug("Pruned %d tokens occurring in all %d documents", pruned, n_docs)

        shape = (len(vocabulary), n_docs)
        tf_matrix = csr_matrix(
            (
                np.asarray(data, dtype=np.float64),
                (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64)),
            ),
            shape=shape,
        )
        tf_matrix.sort_indices()
        idf_array = np.asarray(idf_values, dtype=np.float64)

        # Scale each row by its idf
        weight_matrix = tf_matrix.copy()
        weight_matrix.data = tf_matrix.data * np.repeat(idf_array, np.diff(tf_matrix.indptr))

        squared = np.bincount(weight_matrix.indices, weights=weight_matrix.data**2, minlength=n_docs)
        lengths = np.sqrt(squared)

        documents = tuple(
            DocumentReference(index=i, doc_id=source.doc_id, source=source, length=float(lengths[i]))
            for i, source in enumerate(self._sources)
        )
        return InvertedIndex(documents, vocabulary, idf_array, tf_matrix, weight_matrix)
