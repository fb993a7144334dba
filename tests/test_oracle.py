"""Tests for the oracle retry contract and the Ollama transport."""

from typing import List

import numpy as np
import pytest
import requests

from conftest import FakeOracle
from graphqa.errors import OracleProtocolError
from graphqa.extraction.base import (
    ResponseParseError,
    json_validator,
    non_empty_text,
    strip_code_fences,
)
from graphqa.extraction.llm import OllamaOracle


def test_request_returns_first_valid_response():
    oracle = FakeOracle(responses=['["a", "b"]'])

    assert oracle.request("prompt", json_validator(List[str])) == ["a", "b"]
    assert len(oracle.prompts) == 1


def test_request_retries_parse_failures():
    oracle = FakeOracle(responses=["not json", '{"wrong": "shape"}', '["ok"]'])

    assert oracle.request("prompt", json_validator(List[str])) == ["ok"]
    assert len(oracle.prompts) == 3


def test_request_gives_up_after_three_attempts():
    oracle = FakeOracle(responses=["nope", "still nope", "[1, 2", '["never reached"]'])

    with pytest.raises(OracleProtocolError) as excinfo:
        oracle.request("prompt", json_validator(List[str]), operation="entity extraction")

    assert excinfo.value.attempts == 3
    assert excinfo.value.operation == "entity extraction"
    assert isinstance(excinfo.value.last_error, ResponseParseError)
    assert len(oracle.prompts) == 3


def test_request_honours_max_attempts():
    oracle = FakeOracle(responses=["bad"] * 5)
    oracle.max_attempts = 5

    with pytest.raises(OracleProtocolError):
        oracle.request("prompt", json_validator(List[str]))
    assert len(oracle.prompts) == 5


def test_request_does_not_retry_transport_errors():
    def handler(prompt):
        raise requests.ConnectionError("connection refused")

    oracle = FakeOracle(handler=handler)

    with pytest.raises(requests.ConnectionError):
        oracle.request("prompt", json_validator(List[str]))
    assert len(oracle.prompts) == 1


def test_request_passes_model_override():
    oracle = FakeOracle(responses=["answer"])

    oracle.request("prompt", non_empty_text, model="big-model")

    assert oracle.models == ["big-model"]


def test_strip_code_fences():
    assert strip_code_fences('```json\n["a"]\n```') == '["a"]'
    assert strip_code_fences('```\n["a"]\n```') == '["a"]'
    assert strip_code_fences('  ["a"]  ') == '["a"]'


def test_json_validator_accepts_fenced_json():
    validate = json_validator(List[str])

    assert validate('```json\n["Radio City", "India"]\n```') == ["Radio City", "India"]


def test_json_validator_number_coercion():
    with pytest.raises(ResponseParseError):
        json_validator(List[str])('["2001", 2008]')

    assert json_validator(List[str], coerce_numbers=True)('["2001", 2008]') == ["2001", "2008"]


def test_non_empty_text():
    assert non_empty_text("  An answer. ") == "An answer."
    with pytest.raises(ResponseParseError):
        non_empty_text("   ")


class _Response:
    def __init__(self, payload, status=200):
        self.payload = payload
        self.status_code = status
        self.ok = status < 400

    def raise_for_status(self):
        if not self.ok:
            raise requests.HTTPError(f"{self.status_code} error")

    def json(self):
        return self.payload


def test_ollama_complete(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append((url, json, timeout))
        return _Response({"response": '["x"]'})

    monkeypatch.setattr(requests, "post", fake_post)
    oracle = OllamaOracle(model_name="llama3.1", base_url="http://ollama:11434/", timeout=30)

    assert oracle.complete("hello") == '["x"]'
    assert oracle.complete("hello", model="other")

    url, payload, timeout = calls[0]
    assert url == "http://ollama:11434/api/generate"
    assert payload["model"] == "llama3.1"
    assert payload["prompt"] == "hello"
    assert payload["stream"] is False
    assert payload["options"]["temperature"] == 0.0
    assert timeout == 30
    assert calls[1][1]["model"] == "other"


def test_ollama_embed(monkeypatch):
    def fake_post(url, json=None, timeout=None):
        assert url == "http://localhost:11434/api/embeddings"
        assert json == {"model": "nomic-embed-text", "prompt": "India"}
        return _Response({"embedding": [0.5, 0.25]})

    monkeypatch.setattr(requests, "post", fake_post)

    embedding = OllamaOracle().embed("India")

    assert isinstance(embedding, np.ndarray)
    assert embedding.tolist() == [0.5, 0.25]


def test_ollama_http_error_propagates(monkeypatch):
    calls = []

    def fake_post(url, json=None, timeout=None):
        calls.append(url)
        return _Response({}, status=500)

    monkeypatch.setattr(requests, "post", fake_post)

    with pytest.raises(requests.HTTPError):
        OllamaOracle(backoff_seconds=0).request("prompt", non_empty_text)
    assert len(calls) == 1


def test_ollama_ping(monkeypatch):
    monkeypatch.setattr(requests, "get", lambda url, timeout=None: _Response({"models": []}))
    assert OllamaOracle().ping()

    def refuse(url, timeout=None):
        raise requests.ConnectionError("down")

    monkeypatch.setattr(requests, "get", refuse)
    assert not OllamaOracle().ping()
