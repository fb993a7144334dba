"""Answer synthesis and the end-to-end query engine."""

import logging
from typing import List, Optional

from ..extraction.base import BaseOracle, non_empty_text
from ..extraction.prompts import ANSWER_PROMPT
from ..schema import chunk_index
from ..schema.graph_store import KnowledgeGraphStore
from ..search import RetrievalParams, RetrievalResult
from ..search.hybrid import MultiHopRetriever
from ..search.relevance import RelevanceOracleClient
from ..search.scan import ChunkScanner
from ..search.vector_store import EmbeddingStore
from . import Answer, QAInput, pack_context, parse_annotated_answer

logger = logging.getLogger(__name__)


class AnswerGenerator:
    """Generates an annotated answer from packed chunk context."""

    def __init__(
        self,
        oracle: BaseOracle,
        max_characters: int = 2000,
        model: Optional[str] = None
    ):
        """Initialize the generator.

        Args:
            oracle: Oracle used for answer synthesis
            max_characters: Character budget for chunk text in the prompt
            model: Optional model override for answer synthesis
        """
        self.oracle = oracle
        self.max_characters = max_characters
        self.model = model

    def generate(self, qa_inputs: List[QAInput], question: str) -> Answer:
        """Answer ``question`` from the chunks that fit the budget.

        Raises:
            OracleProtocolError: if the oracle keeps returning empty completions
        """
        context, indices = pack_context(qa_inputs, self.max_characters)
        logger.info("Answer context holds chunks %s (%d characters)", indices, len(context))

        prompt = ANSWER_PROMPT.format(
            context=context,
            question=question,
            chunk_indices=str(indices)
        )
        raw = self.oracle.request(
            prompt,
            non_empty_text,
            operation="answer synthesis",
            model=self.model
        )
        return Answer(
            raw=raw,
            sentences=parse_annotated_answer(raw),
            context_indices=indices
        )


class QueryEngine:
    """Answers questions about one indexed document."""

    def __init__(
        self,
        retriever: MultiHopRetriever,
        generator: AnswerGenerator,
        chunks: List[str],
        scanner: Optional[ChunkScanner] = None
    ):
        """Initialize the engine.

        Args:
            retriever: Graph retriever over the document's stores
            generator: Answer generator
            chunks: Document chunks, in the order used at indexing time
            scanner: Optional chunk scanner for scan mode
        """
        self.retriever = retriever
        self.generator = generator
        self.chunks = chunks
        self.scanner = scanner

    @classmethod
    def from_settings(
        cls,
        settings,
        chunks: List[str],
        oracle: BaseOracle,
        embedding_store: Optional[EmbeddingStore] = None,
        graph_store: Optional[KnowledgeGraphStore] = None
    ) -> "QueryEngine":
        """Build an engine, loading the stores from the configured paths if not given."""
        if embedding_store is None:
            embedding_store = EmbeddingStore.from_file(settings.vector_store_path)
        if graph_store is None:
            graph_store = KnowledgeGraphStore.from_file(settings.graph_store_path)

        params = RetrievalParams.from_settings(settings)
        retriever = MultiHopRetriever(
            embedding_store=embedding_store,
            graph_store=graph_store,
            relevance=RelevanceOracleClient(oracle, max_selected=params.max_selected),
            embed=oracle.embed,
            params=params
        )
        generator = AnswerGenerator(
            oracle,
            max_characters=settings.max_context_characters,
            model=settings.answer_model
        )
        scanner = ChunkScanner(oracle, batch_size=settings.batch_size)
        return cls(retriever, generator, chunks, scanner=scanner)

    def qa_inputs(self, result: RetrievalResult) -> List[QAInput]:
        """Map retrieved provenance ids to chunks, in traversal order."""
        inputs = []
        for provenance in result.chunk_ids:
            index = chunk_index(provenance)
            if index is None or not 0 <= index < len(self.chunks):
                logger.warning("Provenance '%s' does not match a document chunk", provenance)
                continue
            inputs.append(QAInput(chunk=self.chunks[index], index=index))
        return inputs

    def answer(self, question: str) -> Answer:
        """Retrieve evidence through the fact graph and answer from it."""
        result = self.retriever.retrieve(question)
        answer = self.generator.generate(self.qa_inputs(result), question)
        answer.retrieved_chunk_ids = result.chunk_ids
        return answer

    def scan(self, question: str) -> Answer:
        """Answer from the chunks the oracle judges relevant, one by one."""
        if self.scanner is None:
            raise RuntimeError("Scan mode needs a ChunkScanner")
        analyses = self.scanner.scan(self.chunks, question)
        inputs = [QAInput(chunk=self.chunks[a.chunk_index], index=a.chunk_index) for a in analyses]
        return self.generator.generate(inputs, question)
