"""Linear-scan embedding store for entity labels."""

import json
import logging
import numbers
import os
import threading
from typing import Dict, List, Optional, Sequence

import numpy as np

from ..errors import DimensionMismatch, FormatError, NotFound
from . import SimilarityResult

logger = logging.getLogger(__name__)


def cosine_similarity(vec1: Sequence[float], vec2: Sequence[float]) -> float:
    """Cosine similarity of two vectors.

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        DimensionMismatch: if the vectors differ in length
    """
    a = np.asarray(vec1, dtype=np.float64)
    b = np.asarray(vec2, dtype=np.float64)
    if a.shape != b.shape:
        raise DimensionMismatch(len(a), len(b))

    magnitude1 = np.linalg.norm(a)
    magnitude2 = np.linalg.norm(b)
    if magnitude1 == 0 or magnitude2 == 0:
        return 0.0

    return float(np.dot(a, b) / (magnitude1 * magnitude2))


class EmbeddingStore:
    """Label-keyed embedding store searched by cosine similarity.

    The first embedding stored for a label is kept; later writes for the
    same label are ignored.
    """

    def __init__(self):
        self._labels: List[str] = []
        self._vectors: List[np.ndarray] = []
        self._positions: Dict[str, int] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._labels)

    @property
    def labels(self) -> List[str]:
        """Stored labels in insertion order."""
        return list(self._labels)

    def store(self, label: str, embedding: Sequence[float]) -> bool:
        """Store an embedding unless the label is already present.

        Args:
            label: Unique key, usually an entity name
            embedding: Embedding vector

        Returns:
            True if the entry was added, False if the label already existed
        """
        vector = np.array(embedding, dtype=np.float64)
        with self._lock:
            if label in self._positions:
                return False
            self._positions[label] = len(self._labels)
            self._labels.append(label)
            self._vectors.append(vector)
        return True

    def contains(self, label: str) -> bool:
        """Check whether ``label`` is stored."""
        return label in self._positions

    def get_embedding(self, label: str) -> Optional[np.ndarray]:
        """Retrieve the embedding for a label.

        Returns:
            A copy of the vector if found, None otherwise
        """
        position = self._positions.get(label)
        if position is None:
            return None
        return self._vectors[position].copy()

    def most_similar(
        self,
        label: str,
        embedding: Sequence[float],
        k: int = 10
    ) -> List[SimilarityResult]:
        """Find the stored labels most similar to an embedding.

        The entry whose label equals ``label`` is skipped, whatever its
        vector. Ties keep insertion order.

        Args:
            label: Label of the query itself
            embedding: Query embedding
            k: Maximum number of results

        Returns:
            Up to ``k`` results ordered by descending similarity

        Raises:
            DimensionMismatch: if a stored vector differs in length
        """
        with self._lock:
            entries = list(zip(self._labels, self._vectors))

        if not entries or k <= 0:
            return []

        query = np.asarray(embedding, dtype=np.float64)
        similarities = [
            SimilarityResult(entry_label, cosine_similarity(vector, query))
            for entry_label, vector in entries
            if entry_label != label
        ]
        similarities.sort(key=lambda result: -result.score)
        return similarities[:k]

    def similarity_between_stored(self, label1: str, label2: str) -> float:
        """Cosine similarity of two stored labels.

        Raises:
            NotFound: if either label is not stored
        """
        vector1 = self.get_embedding(label1)
        if vector1 is None:
            raise NotFound(label1)
        vector2 = self.get_embedding(label2)
        if vector2 is None:
            raise NotFound(label2)
        return cosine_similarity(vector1, vector2)

    def cosine_similarity(self, vec1: Sequence[float], vec2: Sequence[float]) -> float:
        """See :func:`cosine_similarity`."""
        return cosine_similarity(vec1, vec2)

    def to_dict(self) -> Dict:
        """Convert the store to its persisted dictionary format."""
        with self._lock:
            entries = list(zip(self._labels, self._vectors))
        return {
            "entries": [
                {"label": label, "embedding": vector.tolist()}
                for label, vector in entries
            ]
        }

    def save(self, filepath: str):
        """Save the store to a JSON file.

        Args:
            filepath: Target file, parent directories are created
        """
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        data = self.to_dict()
        with open(filepath, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.info("Vector store saved to %s (%d entries)", filepath, len(data["entries"]))

    def load(self, filepath: str):
        """Replace the store contents with the entries in a JSON file.

        A missing file empties the store. Validation happens before any
        change, so a bad file leaves the current entries untouched.

        Raises:
            FormatError: if the file is not a valid embedding store
        """
        if not os.path.exists(filepath):
            logger.info("No existing vector store found at %s", filepath)
            self._replace([])
            return

        try:
            with open(filepath, "r", encoding="utf-8") as f:
                parsed = json.load(f)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise FormatError(f"Invalid vector store file {filepath}: {e}") from e

        self._replace(_validate_entries(parsed, filepath))
        logger.info("Vector store loaded from %s (%d entries)", filepath, len(self))

    def _replace(self, entries: List[tuple]):
        with self._lock:
            self._labels = []
            self._vectors = []
            self._positions = {}
            for label, vector in entries:
                if label in self._positions:
                    continue
                self._positions[label] = len(self._labels)
                self._labels.append(label)
                self._vectors.append(vector)

    @classmethod
    def from_file(cls, filepath: str) -> "EmbeddingStore":
        """Create a store from a JSON file."""
        store = cls()
        store.load(filepath)
        return store


def _validate_entries(parsed, filepath: str) -> List[tuple]:
    if not isinstance(parsed, dict) or not isinstance(parsed.get("entries"), list):
        raise FormatError(f"Invalid vector store file format: {filepath}")

    entries = []
    for position, entry in enumerate(parsed["entries"]):
        if not isinstance(entry, dict):
            raise FormatError(f"Invalid entry {position} in vector store file {filepath}")
        label = entry.get("label")
        embedding = entry.get("embedding")
        if not isinstance(label, str) or not label or not isinstance(embedding, list):
            raise FormatError(f"Invalid entry {position} in vector store file {filepath}")
        if not all(isinstance(v, numbers.Real) and not isinstance(v, bool) for v in embedding):
            raise FormatError(f"Non-numeric embedding for entry {position} in {filepath}")
        entries.append((label, np.array(embedding, dtype=np.float64)))
    return entries
