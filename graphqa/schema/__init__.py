"""Fact graph schema definitions.

This module defines the records stored in and read from the fact graph:
- Fact quads (subject, predicate, object, provenance)
- Graph nodes used for traversal bookkeeping
- Chunk identifiers used as provenance
"""

import re
from dataclasses import asdict, dataclass
from typing import Dict, Optional

# Provenance ids
CHUNK_PREFIX = "chunk_"
_CHUNK_ID_PATTERN = re.compile(rf"^{CHUNK_PREFIX}(\d+)$")

# Predicate used when linking entities with near-identical embeddings
SYNONYM_PREDICATE = "is synonym of"

# Language tag written on persisted objects
DEFAULT_LANGUAGE = "en"


@dataclass(frozen=True)
class Fact:
    """One extracted relationship and the chunk it came from."""
    subject: str
    predicate: str
    object: str
    provenance: str

    def to_node(self) -> "GraphNode":
        return GraphNode(
            subject=self.subject,
            predicate=self.predicate,
            value=self.object,
            chunk=self.provenance
        )


@dataclass(frozen=True)
class GraphNode:
    """Traversal record for a single fact.

    Equality and hashing use all four fields, so two nodes are the same
    visited entry only when subject, predicate, value and chunk all match.
    """
    subject: str
    predicate: str
    value: str
    chunk: str

    def to_dict(self) -> Dict[str, str]:
        """Convert to dictionary format."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict) -> "GraphNode":
        """Create GraphNode from dictionary data."""
        return cls(
            subject=data["subject"],
            predicate=data["predicate"],
            value=data["value"],
            chunk=data["chunk"]
        )


def chunk_id(index: int) -> str:
    """Provenance id for the chunk at ``index``."""
    return f"{CHUNK_PREFIX}{index}"


def chunk_index(provenance: str) -> Optional[int]:
    """Chunk position encoded in a provenance id, or None for foreign ids."""
    match = _CHUNK_ID_PATTERN.match(provenance)
    return int(match.group(1)) if match else None
