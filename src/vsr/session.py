"""
Interactive search session: query, look at results, judge them, re-query.

The session only orchestrates. Scoring lives in VectorSpaceRanker and query
reformulation in RelevanceFeedback.
"""

from __future__ import annotations

import logging

from vsr.config import Config
from vsr.errors import UsageError
from vsr.feedback import RelevanceFeedback
from vsr.index import DocumentReference, InvertedIndex
from vsr.scoring import Retrieval, VectorSpaceRanker
from vsr.vectors import TermVector, count_tokens

logger = logging.getLogger(__name__)


class SearchSession:
    """
    One user's query/feedback cycle against a shared index.

    Args:
        index: A built index; the session never modifies it.
        config: Settings for paging, stopwords and feedback.
    """

    def __init__(self, index: InvertedIndex, config: Config | None = None):
        self.index = index
        self.config = config or Config()
        self.ranker = VectorSpaceRanker(
            index,
            num_workers=self.config.num_workers,
            min_queries_for_parallel=self.config.min_queries_for_parallel,
        )
        self.feedback: RelevanceFeedback | None = None
        if self.config.feedback:
            self.feedback = RelevanceFeedback(self.config.alpha, self.config.beta, self.config.gamma)
        self.query: dict[str, float] = {}
        self.retrievals: list[Retrieval] = []

    def query_vector(self, query: str | TermVector) -> dict[str, float]:
        """Text is tokenized with the same stopword and stemming settings as the documents."""
        if isinstance(query, str):
            return dict(count_tokens(query, self.config.stopword_set, self.config.stem))
        return dict(self.ranker.query_vector(query))

    def search(self, query: str | TermVector) -> list[Retrieval]:
        """Runs a new base query and forgets any earlier judgments."""
        self.query = self.query_vector(query)
        self.retrievals = self.ranker.retrieve(self.query)
        if self.feedback is not None:
            self.feedback.reset(self.query, self.retrievals)
        return self.retrievals

    def _require_feedback(self) -> RelevanceFeedback:
        if self.feedback is None:
            raise UsageError("Relevance feedback is not enabled for this session")
        return self.feedback

    def document_at(self, rank: int) -> DocumentReference:
        """Document shown at a 1-based rank in the current results."""
        if not 1 <= rank <= len(self.retrievals):
            raise ValueError(f"No such document number: {rank}")
        return self.retrievals[rank - 1].document

    def has_feedback(self, rank: int) -> bool:
        return self._require_feedback().has_feedback(self.document_at(rank))

    def judge(self, rank: int, relevant: bool) -> DocumentReference:
        return self._require_feedback().judge_rank(rank, relevant)

    def refine(self) -> list[Retrieval]:
        """
        Re-runs the query expanded with the judgments so far.

        Judgments are kept, so later refinements build on all of them.

        Raises:
            UsageError: If feedback is disabled or nothing has been judged.
        """
        feedback = self._require_feedback()
        self.query = feedback.expand_query()
        self.retrievals = self.ranker.retrieve(self.query)
        feedback.show(self.retrievals)
        return self.retrievals

    def page(self, start: int = 0) -> list[tuple[int, Retrieval]]:
        """(1-based rank, retrieval) pairs for one page starting at ``start``."""
        end = min(len(self.retrievals), start + self.config.max_retrievals)
        return [(i + 1, self.retrievals[i]) for i in range(start, end)]

    def format_page(self, start: int = 0) -> list[str]:
        if start >= len(self.retrievals):
            return ["No more retrievals."]
        return [
            f"{str(rank) + '. ':<4}{retrieval.document.doc_id:<20} Score: {round(retrieval.score, 5)}"
            for rank, retrieval in self.page(start)
        ]
