"""Entity and fact extraction from unstructured text.

This module provides functionality for extracting named entities and
(subject, predicate, object) triples from document chunks using an LLM
oracle with validated, retried structured output.
"""

from typing import Dict, List, Tuple

Triple = Tuple[str, str, str]


class ExtractionResult:
    """Container for the entities and triples extracted from one text."""

    def __init__(
        self,
        entities: List[str],
        triples: List[Triple]
    ):
        """Initialize extraction result.

        Args:
            entities: Named entities found in the text
            triples: (subject, predicate, object) triples found in the text
        """
        self.entities = entities
        self.triples = triples

    @property
    def labels(self) -> List[str]:
        """Distinct entity labels mentioned by entities and triples, in order."""
        seen = {}
        for entity in self.entities:
            seen.setdefault(entity, None)
        for subject, _, object_ in self.triples:
            seen.setdefault(subject, None)
            seen.setdefault(object_, None)
        return list(seen)

    def to_dict(self) -> Dict:
        """Convert extraction result to dictionary format."""
        return {
            "entities": self.entities,
            "triples": [list(t) for t in self.triples]
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ExtractionResult":
        """Create ExtractionResult from dictionary data."""
        return cls(
            entities=list(data["entities"]),
            triples=[tuple(t) for t in data["triples"]]
        )
