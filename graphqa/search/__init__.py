"""Hybrid retrieval combining embedding similarity and fact-graph traversal.

This module provides functionality for:
- Cosine similarity search over entity embeddings
- Oracle-guided multi-hop traversal of the fact graph
- Result containers handed to the answer stage
"""

from typing import Dict, List, Optional

from ..schema import GraphNode

# Reasons a traversal stops
TERMINATED_EXHAUSTED = "exhausted"
TERMINATED_DEPTH_LIMIT = "depth_limit"


class SimilarityResult:
    """A stored label and its similarity to a query embedding."""

    def __init__(self, label: str, score: float):
        self.label = label
        self.score = score

    def __eq__(self, other) -> bool:
        if not isinstance(other, SimilarityResult):
            return NotImplemented
        return self.label == other.label and self.score == other.score

    def __repr__(self) -> str:
        return f"SimilarityResult(label={self.label!r}, score={self.score:.4f})"

    def to_dict(self) -> Dict:
        """Convert similarity result to dictionary format."""
        return {"label": self.label, "score": self.score}


class RetrievalResult:
    """Outcome of one multi-hop traversal."""

    def __init__(
        self,
        visited: List[GraphNode],
        hops: int,
        terminated_by: str,
        seeds: Optional[List[SimilarityResult]] = None,
        query_time_ms: float = 0.0
    ):
        """Initialize retrieval result.

        Args:
            visited: Visited graph nodes in the order they were first seen
            hops: Number of expansion hops performed
            terminated_by: Why the traversal stopped (exhausted or depth_limit)
            seeds: Similar labels used to build the initial frontier
            query_time_ms: Traversal time in milliseconds
        """
        self.visited = visited
        self.hops = hops
        self.terminated_by = terminated_by
        self.seeds = seeds or []
        self.query_time_ms = query_time_ms

    @property
    def chunk_ids(self) -> List[str]:
        """Distinct provenance ids in traversal order."""
        seen = {}
        for node in self.visited:
            seen.setdefault(node.chunk, None)
        return list(seen)

    def to_dict(self) -> Dict:
        """Convert retrieval result to dictionary format."""
        return {
            "chunk_ids": self.chunk_ids,
            "visited": [node.to_dict() for node in self.visited],
            "hops": self.hops,
            "terminated_by": self.terminated_by,
            "seeds": [s.to_dict() for s in self.seeds],
            "query_time_ms": self.query_time_ms
        }


class RetrievalParams:
    """Parameters for configuring the traversal."""

    def __init__(
        self,
        seed_k: int = 10,
        max_hops: int = 3,
        max_selected: int = 10,
        expansion_workers: int = 4
    ):
        """Initialize retrieval parameters.

        Args:
            seed_k: Number of similar labels used to seed the frontier
            max_hops: Maximum number of expansion hops
            max_selected: Maximum nodes the oracle may pick per hop
            expansion_workers: Threads used to expand selected nodes
        """
        self.seed_k = seed_k
        self.max_hops = max_hops
        self.max_selected = max_selected
        self.expansion_workers = expansion_workers

    @classmethod
    def from_settings(cls, settings) -> "RetrievalParams":
        """Create parameters from a Settings instance."""
        return cls(
            seed_k=settings.seed_k,
            max_hops=settings.max_hops,
            max_selected=settings.max_selected_nodes,
            expansion_workers=settings.expansion_workers
        )

    def to_dict(self) -> Dict:
        """Convert parameters to dictionary format."""
        return {
            "seed_k": self.seed_k,
            "max_hops": self.max_hops,
            "max_selected": self.max_selected,
            "expansion_workers": self.expansion_workers
        }
