"""API tests; the startup hook is not run, a test pipeline is installed instead."""
import pytest
from fastapi.testclient import TestClient

from src import main
from src.conftest import FakeEmbeddings, FakeLLM
from src.contextual_rag import RAGConfig, RAGPipeline, SimpleVectorStore


@pytest.fixture
def client(monkeypatch, docs_dir):
    pipeline = RAGPipeline(
        config=RAGConfig(documents_path=str(docs_dir)),
        embeddings=FakeEmbeddings(default=[1.0, 0.0]),
        llm=FakeLLM(answer="The sky is blue.", chunks=["The ", "sky ", "is blue."]),
        vector_store=SimpleVectorStore()
    )
    pipeline.initialize()
    monkeypatch.setattr(main, "pipeline", pipeline)
    return TestClient(main.app)


def test_not_initialized(monkeypatch):
    monkeypatch.setattr(main, "pipeline", None)
    response = TestClient(main.app).get("/health")

    assert response.status_code == 503
    assert response.json()["status"] == "error"


def test_health_and_stats(client):
    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["vector_store"]["chunks"] == 2

    stats = client.get("/stats").json()
    assert stats["total_chunks"] == 2
    assert stats["documents"] == 2


def test_query(client):
    response = client.post("/query", json={"query": "Why is the sky blue?"})

    assert response.status_code == 200
    body = response.json()
    assert body["answer"] == "The sky is blue. (Sources: a.txt, b.txt)"
    assert body["chunks_used"] == 2


def test_blank_query_rejected(client):
    response = client.post("/query", json={"query": "  "})

    assert response.status_code == 400
    assert response.json()["error"] == "Query must not be empty"


def test_query_stream(client):
    response = client.post("/query/stream", json={"query": "Why is the sky blue?"})

    assert response.status_code == 200
    assert response.text == "The sky is blue. (Sources: a.txt, b.txt)"


def test_reset_then_reingest(client):
    assert client.post("/reset").json()["chunks_remaining"] == 0

    response = client.post("/ingest")

    assert response.status_code == 200
    assert response.json()["segments"] == 2


def test_ingest_missing_directory(client, tmp_path):
    main.pipeline.config.documents_path = str(tmp_path / "missing")

    response = client.post("/ingest")

    assert response.status_code == 400
