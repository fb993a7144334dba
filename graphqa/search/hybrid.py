"""Hybrid retrieval combining embedding similarity and fact-graph traversal."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from ..schema import Fact, GraphNode
from ..schema.graph_store import KnowledgeGraphStore
from . import (
    TERMINATED_DEPTH_LIMIT,
    TERMINATED_EXHAUSTED,
    RetrievalParams,
    RetrievalResult,
    SimilarityResult,
)
from .relevance import RelevanceOracleClient
from .vector_store import EmbeddingStore

logger = logging.getLogger(__name__)


class MultiHopRetriever:
    """Depth-bounded, oracle-guided traversal of the fact graph.

    The traversal is seeded with the facts about the labels most similar
    to the question, then repeatedly lets the relevance oracle pick the
    frontier nodes worth following. Each picked node is expanded with the
    facts whose object equals its value and the facts sharing its subject.
    A fact is only ever added to the frontier once, which keeps cyclic
    graphs from being walked forever.
    """

    def __init__(
        self,
        embedding_store: EmbeddingStore,
        graph_store: KnowledgeGraphStore,
        relevance: RelevanceOracleClient,
        embed: Callable[[str], Sequence[float]],
        params: Optional[RetrievalParams] = None
    ):
        """Initialize the retriever.

        Args:
            embedding_store: Store holding entity label embeddings
            graph_store: Store holding the extracted facts
            relevance: Client used to filter each frontier
            embed: Function embedding the question text
            params: Traversal parameters
        """
        self.embedding_store = embedding_store
        self.graph_store = graph_store
        self.relevance = relevance
        self.embed = embed
        self.params = params or RetrievalParams()

    def seed(
        self,
        question: str,
        query_embedding: Sequence[float]
    ) -> Tuple[List[SimilarityResult], List[GraphNode]]:
        """Build the initial frontier.

        Returns:
            Tuple of (similar labels, distinct nodes whose subject is one of them)
        """
        similar = self.embedding_store.most_similar(
            question,
            query_embedding,
            k=self.params.seed_k
        )
        frontier: Dict[GraphNode, None] = {}
        for result in similar:
            logger.debug("Seed label '%s' (score %.4f)", result.label, result.score)
            for fact in self.graph_store.match(subject=result.label):
                frontier.setdefault(fact.to_node(), None)
        return similar, list(frontier)

    def expand(self, node: GraphNode) -> List[Fact]:
        """Facts pointing at the node's value plus facts about its subject."""
        return (
            self.graph_store.match(object=node.value)
            + self.graph_store.match(subject=node.subject)
        )

    def _expand_all(self, nodes: List[GraphNode]) -> List[List[Fact]]:
        if len(nodes) <= 1 or self.params.expansion_workers <= 1:
            return [self.expand(node) for node in nodes]
        workers = min(self.params.expansion_workers, len(nodes))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            return list(executor.map(self.expand, nodes))

    def retrieve(
        self,
        question: str,
        query_embedding: Optional[Sequence[float]] = None
    ) -> RetrievalResult:
        """Traverse the graph for evidence relevant to ``question``.

        Args:
            question: Natural-language question
            query_embedding: Precomputed question embedding, embedded on demand if None

        Returns:
            RetrievalResult with every visited node and the hop count

        Raises:
            OracleProtocolError: if the relevance oracle fails; the run is aborted
        """
        start_time = time.time()

        if query_embedding is None:
            query_embedding = self.embed(question)

        seeds, frontier = self.seed(question, query_embedding)
        visited: Dict[GraphNode, None] = dict.fromkeys(frontier)
        logger.info("Seeded frontier with %d nodes from %d labels", len(frontier), len(seeds))

        hop = 0
        while True:
            if not frontier:
                terminated_by = TERMINATED_EXHAUSTED
                break
            if hop >= self.params.max_hops:
                terminated_by = TERMINATED_DEPTH_LIMIT
                break

            selected = self.relevance.select(frontier, question)

            next_frontier = []
            for facts in self._expand_all(selected):
                for fact in facts:
                    node = fact.to_node()
                    if node in visited:
                        continue
                    visited[node] = None
                    next_frontier.append(node)

            hop += 1
            logger.info(
                "Hop %d: expanded %d selected nodes into %d new nodes",
                hop, len(selected), len(next_frontier)
            )
            frontier = next_frontier

        query_time = (time.time() - start_time) * 1000

        result = RetrievalResult(
            visited=list(visited),
            hops=hop,
            terminated_by=terminated_by,
            seeds=seeds,
            query_time_ms=query_time
        )
        logger.info(
            "Traversal %s after %d hops: %d nodes, chunks %s",
            terminated_by, hop, len(result.visited), result.chunk_ids
        )
        return result
