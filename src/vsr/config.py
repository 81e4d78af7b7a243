"""
Runtime configuration for indexing, retrieval and relevance feedback.
"""

from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass, fields

from vsr.vectors import ENGLISH_STOPWORDS


@dataclass(frozen=True)
class Config:
    """
    All tunable settings in one place.

    Defaults reproduce plain TF-IDF retrieval with ten results per page and
    feedback switched off.
    """

    # Presentation
    max_retrievals: int = 10  # results shown per page

    # Document processing
    html: bool = False  # strip HTML markup before tokenizing
    stopwords: bool = False  # drop ENGLISH_STOPWORDS
    stem: bool = False  # reduce tokens to Porter stems

    # Relevance feedback (Ide-regular)
    feedback: bool = False
    alpha: float = 1.0  # weight of the original query
    beta: float = 1.0  # weight of each relevant document
    gamma: float = 1.0  # weight of each irrelevant document

    # Batch retrieval
    num_workers: int = 8
    min_queries_for_parallel: int = 10

    # Logging
    log_level: int = logging.WARNING
    log_file: str | None = None

    def __post_init__(self):
        if self.max_retrievals <= 0:
            raise ValueError(f"max_retrievals must be positive, got {self.max_retrievals}")
        if self.alpha <= 0:
            raise ValueError(f"alpha must be positive, got {self.alpha}")
        for name in ("beta", "gamma"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")

    @property
    def stopword_set(self) -> frozenset[str] | None:
        return ENGLISH_STOPWORDS if self.stopwords else None

    @classmethod
    def from_args(cls, args: argparse.Namespace) -> Config:
        """Builds a Config from parsed CLI arguments; unknown or None values keep defaults."""
        names = {f.name for f in fields(cls)}
        values = {k: v for k, v in vars(args).items() if k in names and v is not None}
        if isinstance(values.get("log_level"), str):
            values["log_level"] = logging.getLevelName(values["log_level"].upper())
        return cls(**values)
