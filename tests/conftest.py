import pytest

from vsr.index import IndexBuilder
from vsr.vectors import TextDocument, VectorDocument


def _make_vector_documents(*vectors):
    return [VectorDocument(f"D{i + 1}", vector) for i, vector in enumerate(vectors)]


@pytest.fixture
def vector_documents():
    """Factory building VectorDocuments named D1, D2, ... from plain mappings."""
    return _make_vector_documents


@pytest.fixture
def cat_dog_index():
    """D1={cat:2, dog:1}, D2={dog:3}: dog is pruned, D2 ends with length 0."""
    return IndexBuilder().build(_make_vector_documents({"cat": 2, "dog": 1}, {"dog": 3}))


@pytest.fixture
def pets_documents():
    return [
        TextDocument("cats.txt", "cats purr and cats sleep"),
        TextDocument("dogs.txt", "dogs bark and dogs run"),
        TextDocument("pets.txt", "cats and dogs are pets"),
    ]


@pytest.fixture
def pets_index(pets_documents):
    return IndexBuilder().build(pets_documents)
