"""Runtime configuration read from environment variables.

Values can also be supplied through a ``.env`` file; the CLI and the API
call ``load_dotenv()`` before building ``Settings``.
"""

import os
from dataclasses import dataclass, fields
from typing import Mapping, Optional


def _env(environ: Mapping[str, str], name: str, default: str) -> str:
    value = environ.get(name)
    return value if value not in (None, "") else default


@dataclass
class Settings:
    """Configuration for indexing and querying."""

    # Oracle (Ollama)
    ollama_base_url: str = "http://localhost:11434"
    ollama_model: str = "llama3.1"
    ollama_answer_model: Optional[str] = None
    ollama_embedding_model: str = "nomic-embed-text"
    ollama_timeout: float = 120.0
    oracle_max_attempts: int = 3
    oracle_backoff_seconds: float = 0.5

    # Persistence
    vector_store_path: str = "./index/embeddings.json"
    graph_store_path: str = "./index/facts.nq"
    fact_language: str = "en"

    # Indexing
    max_chunk_length: int = 500
    batch_size: int = 3
    synonym_threshold: float = 0.9

    # Retrieval
    seed_k: int = 10
    max_hops: int = 3
    max_selected_nodes: int = 10
    expansion_workers: int = 4
    max_context_characters: int = 2000

    @property
    def answer_model(self) -> str:
        """Model used for answer synthesis."""
        return self.ollama_answer_model or self.ollama_model

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        """Build settings from environment variables.

        Each field maps to the upper-cased variable of the same name, e.g.
        ``batch_size`` is read from ``BATCH_SIZE``.

        Raises:
            ValueError: if a numeric variable cannot be converted
        """
        environ = os.environ if environ is None else environ
        defaults = cls()
        values = {}
        for f in fields(cls):
            default = getattr(defaults, f.name)
            raw = _env(environ, f.name.upper(), "" if default is None else str(default))
            if default is None:
                values[f.name] = raw or None
                continue
            try:
                values[f.name] = type(default)(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {f.name.upper()}: {raw!r}") from e
        settings = cls(**values)
        settings.validate()
        return settings

    def validate(self):
        """Check value ranges.

        Raises:
            ValueError: if a value is out of range
        """
        positive = [
            "oracle_max_attempts", "max_chunk_length", "batch_size",
            "seed_k", "max_hops", "max_selected_nodes", "expansion_workers",
            "max_context_characters",
        ]
        for name in positive:
            if getattr(self, name) < 1:
                raise ValueError(f"{name.upper()} must be at least 1")
        if not -1.0 <= self.synonym_threshold <= 1.0:
            raise ValueError("SYNONYM_THRESHOLD must be between -1 and 1")
        if self.oracle_backoff_seconds < 0:
            raise ValueError("ORACLE_BACKOFF_SECONDS must not be negative")
