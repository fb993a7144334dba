"""Ollama-backed oracle and LLM-based entity and triple extraction."""

import json
import logging
from typing import List, Optional, Tuple

import numpy as np
import requests

from .base import BaseOracle, json_validator
from .prompts import ENTITY_PROMPT, TRIPLES_PROMPT
from . import ExtractionResult, Triple

logger = logging.getLogger(__name__)


class OllamaOracle(BaseOracle):
    """Oracle using the Ollama HTTP API for completions and embeddings."""

    def __init__(
        self,
        model_name: str = "llama3.1",
        base_url: str = "http://localhost:11434",
        embedding_model: str = "nomic-embed-text",
        timeout: float = 120.0,
        max_attempts: int = 3,
        backoff_seconds: float = 0.5
    ):
        """Initialize the Ollama oracle.

        Args:
            model_name: Default Ollama model for completions
            base_url: Ollama API base URL
            embedding_model: Model to use for embeddings
            timeout: HTTP timeout in seconds
            max_attempts: Attempts before giving up on unparseable responses
            backoff_seconds: Base delay between attempts
        """
        super().__init__(max_attempts=max_attempts, backoff_seconds=backoff_seconds)
        self.model_name = model_name
        self.base_url = base_url.rstrip('/')
        self.embedding_model = embedding_model
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "OllamaOracle":
        """Create an oracle from a Settings instance."""
        return cls(
            model_name=settings.ollama_model,
            base_url=settings.ollama_base_url,
            embedding_model=settings.ollama_embedding_model,
            timeout=settings.ollama_timeout,
            max_attempts=settings.oracle_max_attempts,
            backoff_seconds=settings.oracle_backoff_seconds
        )

    def complete(self, prompt: str, model: Optional[str] = None) -> str:
        """Generate completion using Ollama API.

        Args:
            prompt: Input prompt
            model: Model override, defaults to ``model_name``

        Returns:
            Model completion
        """
        model = model or self.model_name
        logger.debug("Generate completion using Ollama API (Model: %s)", model)
        response = requests.post(
            f"{self.base_url}/api/generate",
            json={
                "model": model,
                "prompt": prompt,
                "stream": False,
                "options": {
                    "temperature": 0.0
                }
            },
            timeout=self.timeout
        )
        response.raise_for_status()
        return response.json()["response"]

    def embed(self, text: str) -> np.ndarray:
        """Get embedding for text using Ollama API.

        Args:
            text: Input text

        Returns:
            Embedding vector
        """
        logger.debug("Get embedding for '%s' (Model: %s)", text, self.embedding_model)
        response = requests.post(
            f"{self.base_url}/api/embeddings",
            json={
                "model": self.embedding_model,
                "prompt": text
            },
            timeout=self.timeout
        )
        response.raise_for_status()
        return np.array(response.json()["embedding"], dtype=np.float64)

    def ping(self) -> bool:
        """Check that the Ollama server answers."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return response.ok
        except requests.RequestException:
            return False


class LLMExtractor:
    """Entity and triple extractor driven by an oracle."""

    def __init__(self, oracle: BaseOracle):
        """Initialize the extractor.

        Args:
            oracle: Oracle used for the extraction prompts
        """
        self.oracle = oracle
        self._validate_entities = json_validator(List[str], coerce_numbers=True)
        self._validate_triples = json_validator(List[Tuple[str, str, str]], coerce_numbers=True)

    def extract_entities(self, text: str) -> List[str]:
        """Extract named entities from text.

        Raises:
            OracleProtocolError: if the oracle never returns a JSON string array
        """
        prompt = ENTITY_PROMPT.format(text=text)
        entities = self.oracle.request(prompt, self._validate_entities, operation="entity extraction")
        return [e.strip() for e in entities if e.strip()]

    def extract_triples(self, text: str, entities: List[str]) -> List[Triple]:
        """Extract (subject, predicate, object) triples from text.

        Raises:
            OracleProtocolError: if the oracle never returns a JSON triple array
        """
        prompt = TRIPLES_PROMPT.format(text=text, entities=json.dumps(entities, ensure_ascii=False))
        triples = self.oracle.request(prompt, self._validate_triples, operation="triple extraction")
        return [
            (s.strip(), p.strip(), o.strip())
            for s, p, o in triples
            if s.strip() and p.strip() and o.strip()
        ]

    def extract(self, text: str) -> ExtractionResult:
        """Extract entities, then triples grounded on those entities.

        Args:
            text: Input text to process

        Returns:
            ExtractionResult containing extracted information
        """
        entities = self.extract_entities(text)
        triples = self.extract_triples(text, entities)
        logger.info("Extracted %d entities and %d triples", len(entities), len(triples))
        return ExtractionResult(entities=entities, triples=triples)
