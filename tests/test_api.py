"""Tests for the FastAPI service."""

import json

import pytest
from fastapi.testclient import TestClient

from conftest import FakeOracle, routing_handler
from graphqa import __version__
from graphqa.api.main import create_app
from graphqa.config import Settings
from graphqa.query.answer import QueryEngine
from graphqa.schema.graph_store import KnowledgeGraphStore
from graphqa.search.vector_store import EmbeddingStore

CHUNKS = ["Intro text.", "Radio City is located in India."]


def _analysis(prompt):
    relevant = "India" in prompt
    return json.dumps({
        "summary": "",
        "confidence": 0.8 if relevant else 0.0,
        "save_for_later_processing": relevant,
    })


def _engine(oracle, graph=None, store=None):
    if graph is None:
        graph = KnowledgeGraphStore()
        graph.add_fact("Radio City", "located in", "India", "chunk_1")
    if store is None:
        store = EmbeddingStore()
        store.store("Radio City", [1.0, 0.0])
    return QueryEngine.from_settings(Settings(), CHUNKS, oracle, embedding_store=store, graph_store=graph)


@pytest.fixture
def oracle():
    return FakeOracle(
        handler=routing_handler(
            answer="Radio City is in India. {chunk_indices: [1]}",
            analysis=_analysis,
        ),
        embeddings={"Where is Radio City?": [1.0, 0.2]},
        dimension=2,
    )


def test_query_graph_mode(oracle):
    client = TestClient(create_app(_engine(oracle)))

    response = client.post("/query", json={"question": "Where is Radio City?"})

    assert response.status_code == 200
    data = response.json()
    assert data["answer"] == "Radio City is in India."
    assert data["chunk_indices"] == [1]
    assert data["retrieved_chunk_ids"] == ["chunk_1"]
    assert data["sentences"] == [{"sentence": "Radio City is in India.", "chunk_indices": [1]}]
    assert data["query_time_ms"] >= 0


def test_query_scan_mode(oracle):
    client = TestClient(create_app(_engine(oracle)))

    response = client.post("/query", json={"question": "Where is Radio City?", "mode": "scan"})

    assert response.status_code == 200
    data = response.json()
    assert data["context_indices"] == [1]
    assert data["retrieved_chunk_ids"] == []


def test_query_rejects_unknown_mode(oracle):
    client = TestClient(create_app(_engine(oracle)))

    response = client.post("/query", json={"question": "q", "mode": "guess"})

    assert response.status_code == 422


def test_oracle_failure_is_reported(oracle):
    failing = FakeOracle(handler=lambda prompt: "not json", embeddings={"q": [1.0, 0.0]}, dimension=2)
    client = TestClient(create_app(_engine(failing)))

    response = client.post("/query", json={"question": "q"})

    assert response.status_code == 500
    assert response.json()["detail"]["error"] == "Query failed"
    assert "node selection" in response.json()["detail"]["message"]


def test_status(oracle):
    client = TestClient(create_app(_engine(oracle)))

    assert client.get("/status").json() == {"total_facts": 1, "total_labels": 1, "total_chunks": 2}


def test_health(oracle):
    client = TestClient(create_app(_engine(oracle)))

    data = client.get("/health").json()

    assert data["status"] == "healthy"
    assert data["version"] == __version__
    assert data["components"] == {"graph_store": True, "vector_store": True, "oracle": True}


def test_health_degraded_with_empty_index(oracle):
    client = TestClient(create_app(_engine(oracle, KnowledgeGraphStore(), EmbeddingStore())))

    data = client.get("/health").json()

    assert data["status"] == "degraded"
    assert data["components"]["graph_store"] is False
