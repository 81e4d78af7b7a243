"""
Cosine-similarity ranking over an InvertedIndex.

For a query vector q and a document d:

    score(q, d) = sum_t (idf(t) * q_t) * (idf(t) * d_t) / (|q| * |d|)

Only tokens that survived indexing contribute; unknown tokens are ignored and
add nothing to |q|. Only documents sharing at least one surviving token with
the query are returned, and documents whose weighted vector is empty are
never returned.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from vsr.index import DocumentReference, InvertedIndex
from vsr.vectors import TermVector, count_tokens

if TYPE_CHECKING:
    from numpy.typing import NDArray

logger = logging.getLogger(__name__)

# Default number of workers for parallel query processing
DEFAULT_NUM_WORKERS = 8

# Minimum queries before enabling parallelism
MIN_QUERIES_FOR_PARALLEL = 10


@dataclass(frozen=True)
class Retrieval:
    """A retrieved document and its similarity to the query."""

    document: DocumentReference
    score: float

    def __str__(self) -> str:
        return f"{self.document.doc_id} ({self.score:.5f})"


def select_top_k(
    scores: NDArray[np.float64],
    top_k: int | None,
) -> NDArray[np.int64]:
    """
    Positions of the top-k scores in descending order.

    Ties keep their original (ascending) position. Uses np.argpartition when
    k is small relative to the number of scores.
    """
    n = len(scores)
    if top_k is not None and top_k < n:
        if top_k <= 0:
            return np.array([], dtype=np.int64)
        # Partition on the k-th largest value, keep every tie at the boundary
        threshold = -np.partition(-scores, top_k - 1)[top_k - 1]
        keep = np.flatnonzero(scores >= threshold)
        order = keep[np.argsort(-scores[keep], kind="stable")]
        return order[:top_k].astype(np.int64)
    return np.argsort(-scores, kind="stable").astype(np.int64)


class VectorSpaceRanker:
    """
    TF-IDF / cosine ranker over a built index.

    Args:
        index: The index to search. It is never modified.
        num_workers: Thread pool size for ``batch_retrieve``.
        min_queries_for_parallel: Batches smaller than this run sequentially.
    """

    def __init__(
        self,
        index: InvertedIndex,
        num_workers: int = DEFAULT_NUM_WORKERS,
        min_queries_for_parallel: int = MIN_QUERIES_FOR_PARALLEL,
    ):
        self.index = index
        self.num_workers = num_workers
        self.min_queries_for_parallel = min_queries_for_parallel

    @staticmethod
    def query_vector(query: str | TermVector) -> TermVector:
        if isinstance(query, str):
            return count_tokens(query)
        if not isinstance(query, Mapping):
            raise TypeError(f"Query must be a string or a token -> weight mapping, got {type(query).__name__}")
        return query

    def rank(
        self,
        query: str | TermVector,
        top_k: int | None = None,
    ) -> tuple[NDArray[np.int64], NDArray[np.float64]]:
        """
        Rank matching documents for a query.

        Returns:
            (document indices, scores), sorted by descending score. Documents
            that share no surviving token with the query are absent.
        """
        vector = self.query_vector(query)
        index = self.index

        term_ids: list[int] = []
        weights: list[float] = []
        for token, count in vector.items():
            term_id = index.get_term_id(token)
            if term_id is None:
                continue
            term_ids.append(term_id)
            weights.append(float(index.idf_array[term_id]) * float(count))

        empty = (np.array([], dtype=np.int64), np.array([], dtype=np.float64))
        if not term_ids:
            logger.debug("No query token is indexed (%d tokens in query)", len(vector))
            return empty

        query_weights = np.asarray(weights, dtype=np.float64)
        query_length = float(np.sqrt(np.sum(query_weights**2)))
        if query_length == 0.0:
            return empty

        # Rows of the weight matrix for the query tokens: (num_terms, N)
        rows = index.weight_matrix[term_ids]
        dot = rows.T @ query_weights

        candidates = np.unique(rows.indices).astype(np.int64)
        doc_lengths = index.lengths[candidates]
        candidates = candidates[doc_lengths > 0]
        doc_lengths = doc_lengths[doc_lengths > 0]

        scores = dot[candidates] / (query_length * doc_lengths)
        matched = scores != 0
        candidates, scores = candidates[matched], scores[matched]

        order = select_top_k(scores, top_k)
        logger.debug(
            "Query with %d indexed tokens (|q|=%.4f) matched %d documents",
            len(term_ids), query_length, len(candidates),
        )
        return candidates[order], scores[order]

    def retrieve(self, query: str | TermVector, top_k: int | None = None) -> list[Retrieval]:
        """Ranked Retrievals for a query, best first."""
        doc_indices, scores = self.rank(query, top_k)
        documents = self.index.documents
        return [Retrieval(documents[i], float(s)) for i, s in zip(doc_indices, scores)]

    def batch_retrieve(
        self,
        queries: Sequence[str | TermVector],
        top_k: int | None = None,
    ) -> list[list[Retrieval]]:
        """
        Retrieve for many queries, in parallel for large batches.

        Each query accumulates its own scores against the shared read-only
        index, so results equal calling ``retrieve`` one query at a time.
        """
        if not queries:
            return []

        def retrieve_single(query: str | TermVector) -> list[Retrieval]:
            return self.retrieve(query, top_k)

        if len(queries) < self.min_queries_for_parallel or self.num_workers <= 1:
            return [retrieve_single(query) for query in queries]

        with ThreadPoolExecutor(max_workers=self.num_workers) as executor:
            return list(executor.map(retrieve_single, queries))
