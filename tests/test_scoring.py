import math

import numpy as np
import pytest

from vsr.index import IndexBuilder
from vsr.scoring import Retrieval, VectorSpaceRanker, select_top_k


@pytest.fixture
def ranker(vector_documents):
    documents = vector_documents(
        {"information": 2, "retrieval": 1, "system": 1},
        {"ranking": 2, "documents": 1, "query": 1},
        {"python": 1, "text": 2, "ranking": 1},
        {"information": 1, "query": 3},
        {"system": 1, "python": 2},
    )
    return VectorSpaceRanker(IndexBuilder().build(documents))


def test_single_matching_document_scores_one(cat_dog_index):
    retrievals = VectorSpaceRanker(cat_dog_index).retrieve({"cat": 1})

    assert len(retrievals) == 1
    assert retrievals[0].document.doc_id == "D1"
    assert retrievals[0].score == pytest.approx(1.0)


def test_unknown_tokens_are_ignored(cat_dog_index):
    ranker = VectorSpaceRanker(cat_dog_index)

    assert ranker.retrieve({"zebra": 3}) == []
    [retrieval] = ranker.retrieve({"cat": 1, "zebra": 5})
    assert retrieval.score == pytest.approx(1.0)


def test_pruned_token_never_matches(cat_dog_index):
    ranker = VectorSpaceRanker(cat_dog_index)

    assert ranker.retrieve({"dog": 1}) == []
    assert all(r.document.doc_id != "D2" for r in ranker.retrieve({"cat": 1, "dog": 4}))


def test_score_matches_cosine_by_hand(vector_documents):
    index = IndexBuilder().build(vector_documents({"a": 1, "b": 1}, {"a": 1}, {"c": 1}))
    [retrieval] = VectorSpaceRanker(index).retrieve({"b": 1})

    ln3, ln15 = math.log(3), math.log(1.5)
    assert retrieval.document.doc_id == "D1"
    assert retrieval.score == pytest.approx(ln3 / math.sqrt(ln15**2 + ln3**2))


@pytest.mark.parametrize(
    "query",
    [
        {"information": 1, "system": 1},
        {"ranking": 1, "query": 2},
        {"python": 3, "text": 1, "unknown": 7},
    ],
)
def test_ranking_properties(ranker, query):
    retrievals = ranker.retrieve(query)
    scores = [r.score for r in retrievals]

    assert retrievals
    assert scores == sorted(scores, reverse=True)
    assert all(0 < s <= 1 + 1e-9 for s in scores)
    for r in retrievals:
        doc_tokens = set(ranker.index.document_vector(r.document.index))
        assert doc_tokens & set(query)


def test_retrieval_is_idempotent(ranker):
    query = {"information": 1, "ranking": 2, "python": 1}
    assert ranker.retrieve(query) == ranker.retrieve(query)


def test_string_query_is_tokenized(cat_dog_index):
    [retrieval] = VectorSpaceRanker(cat_dog_index).retrieve("Cat cat")
    assert retrieval.document.doc_id == "D1"


def test_rejects_non_mapping_query(cat_dog_index):
    with pytest.raises(TypeError):
        VectorSpaceRanker(cat_dog_index).retrieve(["cat"])


def test_ties_are_ordered_by_document(vector_documents):
    index = IndexBuilder().build(vector_documents({"x": 1}, {"x": 1}, {"y": 1}))
    retrievals = VectorSpaceRanker(index).retrieve({"x": 1})

    assert [r.document.doc_id for r in retrievals] == ["D1", "D2"]
    assert retrievals[0].score == retrievals[1].score


def test_top_k_is_prefix_of_full_ranking(ranker):
    query = {"ranking": 1, "python": 1, "query": 1}
    full = ranker.retrieve(query)

    assert ranker.retrieve(query, top_k=2) == full[:2]
    assert ranker.retrieve(query, top_k=0) == []


def test_rank_returns_arrays(ranker):
    indices, scores = ranker.rank({"python": 1})

    assert indices.dtype == np.int64
    assert list(indices) == [4, 2]
    assert np.all(np.diff(scores) <= 0)


def test_batch_retrieve_matches_sequential(ranker):
    queries = [{"information": 1}, {"ranking": 1}, "python text", {"missing": 1}] * 3
    parallel = VectorSpaceRanker(ranker.index, num_workers=4, min_queries_for_parallel=2)

    assert parallel.batch_retrieve(queries) == [ranker.retrieve(q) for q in queries]
    assert parallel.batch_retrieve([]) == []


@pytest.mark.parametrize(
    "top_k, expected",
    [
        (None, [1, 0, 2, 3]),
        (2, [1, 0]),
        (3, [1, 0, 2]),
        (0, []),
        (10, [1, 0, 2, 3]),
    ],
)
def test_select_top_k(top_k, expected):
    scores = np.array([0.5, 0.9, 0.5, 0.1])
    assert list(select_top_k(scores, top_k)) == expected


def test_retrieval_str(cat_dog_index):
    retrieval = Retrieval(cat_dog_index.document(0), 0.123456)
    assert str(retrieval) == "D1 (0.12346)"
