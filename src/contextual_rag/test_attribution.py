"""Tests for similarity-based source attribution."""
import math

import pytest

from .attribution import SourceAttributor, format_sources
from src.conftest import FakeEmbeddings, make_content

RESPONSE = "The sky is blue."


def _unit(cos):
    return [cos, math.sqrt(1.0 - cos * cos)]


def test_format_sources():
    assert format_sources(["a.txt", "b.txt"]) == " (Sources: a.txt, b.txt)"


def test_buffered_cites_matching_source():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "Sky is blue.": [1.0, 0.0]})
    attributor = SourceAttributor(embeddings)

    result = attributor.augment_complete(RESPONSE, [make_content("Sky is blue.", "weather.txt")])

    assert result == "The sky is blue. (Sources: weather.txt)"


def test_empty_contents_returns_response_unchanged():
    embeddings = FakeEmbeddings()
    attributor = SourceAttributor(embeddings)

    assert attributor.augment_complete(RESPONSE, []) == RESPONSE
    assert embeddings.calls == []


def test_blank_response_is_not_attributed():
    embeddings = FakeEmbeddings()
    attributor = SourceAttributor(embeddings)

    assert attributor.augment_complete("  ", [make_content("Sky is blue.", "a.txt")]) == "  "
    assert embeddings.calls == []


def test_similarity_exactly_at_threshold_is_rejected():
    # cos = 17 / 20 = 0.85 exactly
    embeddings = FakeEmbeddings(
        {RESPONSE: [1.0, 0.0, 0.0, 0.0, 0.0], "edge": [17.0, 10.0, 3.0, 1.0, 1.0]},
        default=[0.0, 0.0, 0.0, 0.0, 1.0]
    )
    attributor = SourceAttributor(embeddings)

    assert attributor.augment_complete(RESPONSE, [make_content("edge", "edge.txt")]) == RESPONSE


def test_only_source_above_threshold_is_cited():
    embeddings = FakeEmbeddings({
        RESPONSE: [1.0, 0.0],
        "close": _unit(0.851),
        "far": _unit(0.80),
        "farther": _unit(0.80),
    })
    attributor = SourceAttributor(embeddings)
    contents = [
        make_content("far", "far.txt"),
        make_content("close", "close.txt"),
        make_content("farther", "farther.txt"),
    ]

    assert attributor.augment_complete(RESPONSE, contents) == RESPONSE + " (Sources: close.txt)"


def test_files_are_deduplicated_in_first_seen_order():
    embeddings = FakeEmbeddings(default=[1.0, 0.0])
    attributor = SourceAttributor(embeddings)
    contents = [
        make_content("one", "b.txt"),
        make_content("two", "a.txt"),
        make_content("three", "b.txt"),
    ]

    assert attributor.find_sources(RESPONSE, contents) == ["b.txt", "a.txt"]


def test_similarity_uses_original_text_not_extended_context():
    embeddings = FakeEmbeddings({
        RESPONSE: [1.0, 0.0],
        "Sky is blue.": [1.0, 0.0],
        "Rain. Sky is blue. Snow.": [0.0, 1.0],
    })
    attributor = SourceAttributor(embeddings)
    content = make_content("Sky is blue.", "weather.txt", text="Rain. Sky is blue. Snow.")

    assert attributor.find_sources(RESPONSE, [content]) == ["weather.txt"]
    assert "Rain. Sky is blue. Snow." not in embeddings.calls


def test_custom_threshold():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "far": _unit(0.80)})

    assert SourceAttributor(embeddings, similarity_threshold=0.75).find_sources(
        RESPONSE, [make_content("far", "far.txt")]
    ) == ["far.txt"]


def test_attribution_is_deterministic():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "x": [1.0, 0.1], "y": [0.9, 0.0]})
    attributor = SourceAttributor(embeddings)
    contents = [make_content("x", "x.txt"), make_content("y", "y.txt")]

    first = attributor.augment_complete(RESPONSE, contents)
    assert all(attributor.augment_complete(RESPONSE, contents) == first for _ in range(3))


def test_dimension_mismatch_fails_loudly():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "3d": [1.0, 0.0, 0.0]})
    attributor = SourceAttributor(embeddings)

    with pytest.raises(ValueError):
        attributor.augment_complete(RESPONSE, [make_content("3d", "a.txt")])


def test_streaming_forwards_chunks_then_sources():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "Sky is blue.": [1.0, 0.0]})
    attributor = SourceAttributor(embeddings)

    out = list(attributor.augment_streamed(
        iter(["The ", "sky ", "is blue."]),
        [make_content("Sky is blue.", "weather.txt")]
    ))

    assert out == ["The ", "sky ", "is blue.", " (Sources: weather.txt)"]


def test_streaming_without_qualifying_source_adds_nothing():
    embeddings = FakeEmbeddings({RESPONSE: [1.0, 0.0], "Grass.": [0.0, 1.0]})
    attributor = SourceAttributor(embeddings)

    out = list(attributor.augment_streamed(["The ", "sky ", "is blue."], [make_content("Grass.", "g.txt")]))

    assert out == ["The ", "sky ", "is blue."]


def test_streaming_with_no_contents():
    attributor = SourceAttributor(FakeEmbeddings())
    assert list(attributor.augment_streamed(["a", "b"], [])) == ["a", "b"]


def test_streaming_chunks_arrive_before_upstream_completes():
    seen = []

    def upstream():
        for chunk in ["The ", "sky ", "is blue."]:
            seen.append(chunk)
            yield chunk

    attributor = SourceAttributor(FakeEmbeddings(default=[1.0, 0.0]))
    stream = attributor.augment_streamed(upstream(), [make_content("Sky is blue.", "weather.txt")])

    assert next(stream) == "The "
    assert seen == ["The "]


def test_cancelled_stream_never_emits_sources():
    embeddings = FakeEmbeddings(default=[1.0, 0.0])
    attributor = SourceAttributor(embeddings)
    stream = attributor.augment_streamed(
        iter(["The ", "sky ", "is blue."]),
        [make_content("Sky is blue.", "weather.txt")]
    )

    assert next(stream) == "The "
    stream.close()

    assert list(stream) == []
    assert embeddings.calls == []
