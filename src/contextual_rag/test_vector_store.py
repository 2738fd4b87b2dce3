"""Tests for the vector store implementations."""
import pytest

from .chunker import EXTENDED_CONTENT_KEY, TextSegment
from .vector_store import ChromaVectorStore, SimpleVectorStore


def _segments():
    return [
        TextSegment("Machine learning", {"file": "ml.txt", EXTENDED_CONTENT_KEY: "About machine learning"}),
        TextSegment("Deep learning networks", {"file": "dl.txt", EXTENDED_CONTENT_KEY: "About deep learning"}),
        TextSegment("Cooking recipes", {"file": "food.txt", EXTENDED_CONTENT_KEY: "About cooking"}),
    ]


VECTORS = [[1.0, 0.0, 0.0], [0.9, 0.1, 0.0], [0.0, 1.0, 0.0]]


def test_simple_store_ranks_by_similarity():
    store = SimpleVectorStore()
    store.add_all(VECTORS, _segments())

    results = store.query([1.0, 0.0, 0.0], limit=2)

    assert [r.segment.text for r in results] == ["Machine learning", "Deep learning networks"]
    assert results[0].score == pytest.approx(1.0)


def test_simple_store_ties_keep_insertion_order():
    store = SimpleVectorStore()
    store.add_all([[1.0, 0.0]] * 3, [TextSegment(t) for t in ("first", "second", "third")])

    assert [r.segment.text for r in store.query([1.0, 0.0], limit=3)] == ["first", "second", "third"]


def test_simple_store_clear_and_size():
    store = SimpleVectorStore()
    assert store.add_all(VECTORS, _segments()) is None
    assert store.size() == 3

    store.clear()

    assert store.size() == 0
    assert store.query([1.0, 0.0, 0.0]) == []


def test_simple_store_rejects_misaligned_input():
    with pytest.raises(ValueError):
        SimpleVectorStore().add_all(VECTORS[:2], _segments())


def test_self_similarity_is_one():
    store = SimpleVectorStore()
    store.add_all([[0.3, -1.2, 4.5]], [TextSegment("x")])

    assert store.query([0.3, -1.2, 4.5], limit=1)[0].score == pytest.approx(1.0)


def test_chroma_vector_store(tmp_path):
    store = ChromaVectorStore(persist_directory=str(tmp_path / "chroma"), collection_name="test")

    assert store.add_all([], []) is None
    assert store.add_all(VECTORS, _segments()) is None
    results = store.query([1.0, 0.0, 0.0], limit=2)

    assert store.size() == 3
    assert len(results) == 2
    assert results[0].segment.text == "Machine learning"
    assert results[0].segment.metadata[EXTENDED_CONTENT_KEY] == "About machine learning"
    assert results[0].score == pytest.approx(1.0, abs=1e-3)

    store.clear()
    assert store.size() == 0
    assert store.query([1.0, 0.0, 0.0]) == []
