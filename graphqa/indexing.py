"""Builds the embedding store and fact graph for a document."""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, List, Sequence, Tuple

from .document import chunk_text, extract_document_text
from .extraction.llm import LLMExtractor
from .schema import DEFAULT_LANGUAGE, SYNONYM_PREDICATE, chunk_id
from .schema.graph_store import KnowledgeGraphStore
from .search.vector_store import EmbeddingStore
from .utils import run_in_batches

logger = logging.getLogger(__name__)


@dataclass
class IndexStats:
    """Counters collected while indexing."""
    chunks: int = 0
    facts: int = 0
    labels: int = 0
    synonyms: int = 0
    page_count: int = 0
    processing_time_ms: float = 0.0

    def to_dict(self) -> Dict:
        """Convert to dictionary format."""
        return asdict(self)


class DocumentIndexer:
    """Extracts facts from chunks and records them in the two stores.

    Chunks are processed in fixed-width batches; both stores serialize
    their own appends, so workers of one batch write to them directly.
    """

    def __init__(
        self,
        extractor: LLMExtractor,
        embed: Callable[[str], Sequence[float]],
        embedding_store: EmbeddingStore,
        graph_store: KnowledgeGraphStore,
        batch_size: int = 3,
        synonym_threshold: float = 0.9
    ):
        """Initialize the indexer.

        Args:
            extractor: Entity and triple extractor
            embed: Function embedding an entity label
            embedding_store: Store receiving label embeddings
            graph_store: Store receiving facts
            batch_size: Number of chunks processed concurrently
            synonym_threshold: Similarity at or above which labels are linked as synonyms
        """
        self.extractor = extractor
        self.embed = embed
        self.embedding_store = embedding_store
        self.graph_store = graph_store
        self.batch_size = batch_size
        self.synonym_threshold = synonym_threshold

    def _link_synonyms(self, label: str, embedding: Sequence[float], provenance: str) -> int:
        linked = 0
        for similar in self.embedding_store.most_similar(label, embedding, k=len(self.embedding_store)):
            if similar.score < self.synonym_threshold:
                break
            self.graph_store.add_fact(label, SYNONYM_PREDICATE, similar.label, provenance)
            linked += 1
        return linked

    def index_chunk(self, index: int, chunk: str) -> IndexStats:
        """Extract and store the facts and entity embeddings of one chunk."""
        provenance = chunk_id(index)
        result = self.extractor.extract(chunk)
        stats = IndexStats(chunks=1)

        for subject, predicate, object_ in result.triples:
            self.graph_store.add_fact(subject, predicate, object_, provenance)
            stats.facts += 1

        for label in result.labels:
            if self.embedding_store.contains(label):
                continue
            embedding = self.embed(label)
            if not self.embedding_store.store(label, embedding):
                continue
            stats.labels += 1
            stats.synonyms += self._link_synonyms(label, embedding, provenance)

        logger.info(
            "Indexed %s: %d facts, %d new labels, %d synonym links",
            provenance, stats.facts, stats.labels, stats.synonyms
        )
        return stats

    def index_chunks(self, chunks: List[str]) -> IndexStats:
        """Index every chunk, ``batch_size`` chunks at a time."""
        start_time = time.time()
        total = IndexStats()
        for stats in run_in_batches(chunks, self.index_chunk, self.batch_size):
            total.chunks += stats.chunks
            total.facts += stats.facts
            total.labels += stats.labels
            total.synonyms += stats.synonyms
        total.processing_time_ms = (time.time() - start_time) * 1000
        return total

    def index_document(self, path: str, max_chunk_length: int = 500) -> Tuple[IndexStats, List[str]]:
        """Extract, chunk and index a document.

        Returns:
            Tuple of (statistics, chunks)

        Raises:
            ExtractionError: if the document text cannot be extracted
        """
        document = extract_document_text(path)
        chunks = chunk_text(document.text, max_chunk_length)
        logger.info("Split %s into %d chunks", path, len(chunks))
        stats = self.index_chunks(chunks)
        stats.page_count = document.page_count
        return stats, chunks

    def save(self, vector_store_path: str, graph_store_path: str, language: str = DEFAULT_LANGUAGE):
        """Persist both stores."""
        self.embedding_store.save(vector_store_path)
        self.graph_store.save(graph_store_path, language=language)
