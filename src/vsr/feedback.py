"""
Relevance feedback with the Ide-regular query reformulation.

Each vector is first divided by its largest weight. Then:

    q' = alpha * q + beta * sum(relevant d) - gamma * sum(irrelevant d)

Tokens whose weight ends up <= 0 are dropped from q'.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from vsr.errors import UsageError
from vsr.index import DocumentReference
from vsr.scoring import Retrieval
from vsr.vectors import TermVector, add_scaled, normalized

logger = logging.getLogger(__name__)


@dataclass
class FeedbackState:
    """
    Judgments collected during one interactive session.

    ``good`` and ``bad`` are keyed by document index, so judging the same
    document again replaces the earlier judgment.
    """

    query: dict[str, float] = field(default_factory=dict)
    retrievals: list[Retrieval] = field(default_factory=list)
    good: dict[int, DocumentReference] = field(default_factory=dict)
    bad: dict[int, DocumentReference] = field(default_factory=dict)

    def is_empty(self) -> bool:
        return not self.good and not self.bad


class RelevanceFeedback:
    """
    Records user judgments on displayed results and expands the query.

    Args:
        alpha: Weight of the original query.
        beta: Weight of each relevant document.
        gamma: Weight of each irrelevant document.
    """

    def __init__(self, alpha: float = 1.0, beta: float = 1.0, gamma: float = 1.0):
        if alpha <= 0:
            raise ValueError(f"alpha must be positive, got {alpha}")
        self.alpha = alpha
        self.beta = beta
        self.gamma = gamma
        self.state = FeedbackState()

    def reset(self, query: TermVector, retrievals: Sequence[Retrieval] = ()) -> None:
        """Starts over for a new base query."""
        self.state = FeedbackState(query=dict(query), retrievals=list(retrievals))

    def show(self, retrievals: Sequence[Retrieval]) -> None:
        """Replaces the displayed results, keeping the judgments."""
        self.state.retrievals = list(retrievals)

    def is_empty(self) -> bool:
        return self.state.is_empty()

    @property
    def good(self) -> list[DocumentReference]:
        return list(self.state.good.values())

    @property
    def bad(self) -> list[DocumentReference]:
        return list(self.state.bad.values())

    def has_feedback(self, document: DocumentReference) -> bool:
        return document.index in self.state.good or document.index in self.state.bad

    def record_judgment(self, document: DocumentReference, relevant: bool) -> None:
        judged, other = (self.state.good, self.state.bad) if relevant else (self.state.bad, self.state.good)
        other.pop(document.index, None)
        judged[document.index] = document
        logger.debug("Judged %s as %s", document.doc_id, "relevant" if relevant else "irrelevant")

    def document_at(self, rank: int) -> DocumentReference:
        """
        The displayed document at a 1-based rank.

        Raises:
            ValueError: If no document is displayed at that rank.
        """
        retrievals = self.state.retrievals
        if not 1 <= rank <= len(retrievals):
            raise ValueError(f"No such document number: {rank}")
        return retrievals[rank - 1].document

    def judge_rank(self, rank: int, relevant: bool) -> DocumentReference:
        document = self.document_at(rank)
        self.record_judgment(document, relevant)
        return document

    def expand_query(self, original: TermVector | None = None) -> dict[str, float]:
        """
        The reformulated query vector.

        Args:
            original: Query to expand; defaults to the session's base query.

        Raises:
            UsageError: If no judgment has been recorded yet.
        """
        if self.is_empty():
            raise UsageError("Need to first view some documents and provide feedback")
        query = self.state.query if original is None else original

        expanded = add_scaled({}, normalized(query), self.alpha)
        for document in self.state.good.values():
            add_scaled(expanded, normalized(document.source.term_vector()), self.beta)
        for document in self.state.bad.values():
            add_scaled(expanded, normalized(document.source.term_vector()), -self.gamma)

        result = {token: weight for token, weight in expanded.items() if weight > 0}
        logger.info(
            "Expanded query from %d to %d tokens using %d relevant and %d irrelevant documents",
            len(query), len(result), len(self.state.good), len(self.state.bad),
        )
        return result
