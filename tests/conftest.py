"""Shared fixtures for graphqa tests."""

import json
import threading

import numpy as np
import pytest

from graphqa.extraction.base import BaseOracle
from graphqa.schema.graph_store import KnowledgeGraphStore
from graphqa.search.vector_store import EmbeddingStore


class FakeOracle(BaseOracle):
    """Scripted oracle.

    Completions come from ``handler(prompt)`` when given, otherwise from
    the ``responses`` queue. Embeddings come from ``embeddings`` and default
    to a zero vector.
    """

    def __init__(self, responses=None, embeddings=None, handler=None, dimension=3):
        super().__init__(max_attempts=3, backoff_seconds=0)
        self.responses = list(responses or [])
        self.embeddings = embeddings or {}
        self.handler = handler
        self.dimension = dimension
        self.prompts = []
        self.models = []
        self.embedded = []
        self._lock = threading.Lock()

    def complete(self, prompt, model=None):
        with self._lock:
            self.prompts.append(prompt)
            self.models.append(model)
            if self.handler is not None:
                return self.handler(prompt)
            return self.responses.pop(0)

    def embed(self, text):
        with self._lock:
            self.embedded.append(text)
        return np.array(self.embeddings.get(text, [0.0] * self.dimension), dtype=np.float64)


def frontier_from_prompt(prompt):
    """Node list embedded in a node selection prompt."""
    body = prompt.rsplit("Nodes:\n", 1)[1]
    return json.loads(body.split("\n\nQuestion:", 1)[0])


def select_all(prompt):
    """Node selection handler that picks every candidate."""
    return json.dumps(frontier_from_prompt(prompt))


def routing_handler(entities=None, triples=None, answer=None, select=select_all, analysis=None):
    """Handler dispatching on the kind of prompt.

    ``entities`` and ``triples`` may be dicts keyed by a substring of the
    chunk text, or plain lists used for every chunk.
    """
    def pick(table, prompt):
        if isinstance(table, dict):
            text = prompt.split("Text: ")[-1]
            for key, value in table.items():
                if key in text:
                    return value
            return []
        return table or []

    def handle(prompt):
        if prompt.startswith("Extract the named entities"):
            return json.dumps(pick(entities, prompt))
        if prompt.startswith("Build a fact graph"):
            return json.dumps(pick(triples, prompt))
        if prompt.startswith("We want to answer the question"):
            return select(prompt)
        if prompt.startswith("Relevant excerpts"):
            return answer or ""
        if prompt.startswith("You are a critical reader"):
            return analysis(prompt)
        raise AssertionError(f"Unexpected prompt: {prompt[:60]}")

    return handle


@pytest.fixture
def fake_oracle():
    return FakeOracle()


@pytest.fixture
def graph_store():
    return KnowledgeGraphStore()


@pytest.fixture
def embedding_store():
    return EmbeddingStore()
