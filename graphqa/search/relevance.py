"""Oracle-backed relevance ranking of graph nodes."""

import json
import logging
from typing import List

from pydantic import BaseModel

from ..extraction.base import BaseOracle, json_validator
from ..extraction.prompts import NODE_SELECTION_PROMPT
from ..schema import GraphNode

logger = logging.getLogger(__name__)


class NodeChoice(BaseModel):
    """A graph node as returned by the oracle."""
    subject: str
    predicate: str
    value: str
    chunk: str

    def to_node(self) -> GraphNode:
        return GraphNode(
            subject=self.subject,
            predicate=self.predicate,
            value=self.value,
            chunk=self.chunk
        )


class RelevanceOracleClient:
    """Asks the oracle which frontier nodes to explore next."""

    def __init__(self, oracle: BaseOracle, max_selected: int = 10):
        """Initialize the client.

        Args:
            oracle: Oracle used for ranking
            max_selected: Maximum number of nodes kept from a response
        """
        self.oracle = oracle
        self.max_selected = max_selected
        self._validate = json_validator(List[NodeChoice])

    def select(self, nodes: List[GraphNode], question: str) -> List[GraphNode]:
        """Rank ``nodes`` by how likely they lead to an answer.

        Picks that are not among ``nodes`` are dropped, repeated picks are
        kept once, and at most ``max_selected`` nodes are returned.

        Args:
            nodes: Candidate frontier
            question: Question being answered

        Returns:
            Selected nodes in the order the oracle ranked them

        Raises:
            OracleProtocolError: if the oracle never returns a JSON node array
        """
        if not nodes:
            return []

        prompt = NODE_SELECTION_PROMPT.format(
            question=question,
            nodes=json.dumps([n.to_dict() for n in nodes], indent=2, ensure_ascii=False),
            max_nodes=self.max_selected
        )
        choices = self.oracle.request(prompt, self._validate, operation="node selection")

        candidates = set(nodes)
        selected = []
        for choice in choices:
            node = choice.to_node()
            if node not in candidates:
                logger.warning("Oracle picked a node outside the frontier: %s", node)
                continue
            if node in selected:
                continue
            selected.append(node)
            if len(selected) >= self.max_selected:
                break

        logger.info("Oracle selected %d of %d nodes", len(selected), len(nodes))
        return selected
