"""Shared fakes for the contextual RAG tests."""
from typing import Dict, Iterator, List, Optional

import pytest

from src.contextual_rag.chunker import TextSegment
from src.contextual_rag.retriever import Content


class FakeEmbeddings:
    """Looks vectors up by exact text; unknown texts get the default vector."""

    def __init__(self, vectors: Optional[Dict[str, List[float]]] = None, default=None):
        self.vectors = vectors or {}
        self.default = default if default is not None else [1.0, 0.0]
        self.calls: List[str] = []
        self.batch_calls: List[List[str]] = []

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        return list(self.vectors.get(text, self.default))

    def embed_batch(self, texts: List[str]) -> List[List[float]]:
        self.batch_calls.append(list(texts))
        return [list(self.vectors.get(t, self.default)) for t in texts]


class FakeLLM:
    """Returns canned answers and records every prompt."""

    def __init__(self, answer: str = "The sky is blue.", chunks: Optional[List[str]] = None):
        self.answer = answer
        self.chunks = chunks if chunks is not None else [answer]
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.answer

    def complete_streaming(self, prompt: str) -> Iterator[str]:
        self.prompts.append(prompt)
        yield from self.chunks

    def query(self, context: str, query: str) -> str:
        return self.complete(f"{context}\n{query}")

    def query_stream(self, context: str, query: str) -> Iterator[str]:
        return self.complete_streaming(f"{context}\n{query}")


class RecordingStore:
    """Minimal store that remembers the calls made by ingestion."""

    def __init__(self):
        self.cleared = 0
        self.embeddings: List[List[float]] = []
        self.segments: List[TextSegment] = []

    def clear(self):
        self.cleared += 1
        self.embeddings = []
        self.segments = []

    def add_all(self, embeddings, segments):
        self.embeddings.extend(embeddings)
        self.segments.extend(segments)

    def size(self):
        return len(self.segments)


def make_content(original_text: str, file: str, text: Optional[str] = None) -> Content:
    return Content(
        text=text if text is not None else original_text,
        original_text=original_text,
        metadata={"file": file},
        score=1.0
    )


@pytest.fixture
def fake_embeddings():
    return FakeEmbeddings()


@pytest.fixture
def fake_llm():
    return FakeLLM()


@pytest.fixture
def docs_dir(tmp_path):
    directory = tmp_path / "documents"
    directory.mkdir()
    (directory / "a.txt").write_text("Sun is bright. Sky is blue. Grass is green.", encoding="utf-8")
    (directory / "b.txt").write_text("Rain is wet. Snow is cold.", encoding="utf-8")
    return directory
