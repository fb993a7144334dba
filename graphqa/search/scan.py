"""Chunk-by-chunk relevance scan, an alternative to graph traversal."""

import logging
from typing import List

from pydantic import BaseModel, Field

from ..extraction.base import BaseOracle, json_validator
from ..extraction.prompts import CHUNK_ANALYSIS_PROMPT
from ..utils import run_in_batches

logger = logging.getLogger(__name__)


class ChunkAnalysis(BaseModel):
    """Oracle verdict on whether a chunk helps answer a question."""
    summary: str = ""
    confidence: float = Field(ge=0.0, le=1.0)
    save_for_later_processing: bool
    relevant_lines: List[int] = Field(default_factory=list)
    chunk_index: int = -1


class ChunkScanner:
    """Asks the oracle about every chunk and keeps the relevant ones."""

    def __init__(self, oracle: BaseOracle, batch_size: int = 3):
        """Initialize the scanner.

        Args:
            oracle: Oracle used for the analysis prompts
            batch_size: Number of chunks analyzed concurrently
        """
        self.oracle = oracle
        self.batch_size = batch_size
        self._validate = json_validator(ChunkAnalysis)

    def analyze(self, chunk: str, question: str, index: int) -> ChunkAnalysis:
        """Analyze one chunk.

        Raises:
            OracleProtocolError: if the oracle never returns a valid analysis object
        """
        prompt = CHUNK_ANALYSIS_PROMPT.format(chunk=chunk, question=question)
        analysis = self.oracle.request(prompt, self._validate, operation="chunk analysis")
        return analysis.model_copy(update={"chunk_index": index})

    def scan(self, chunks: List[str], question: str) -> List[ChunkAnalysis]:
        """Analyze all chunks and return the relevant ones, most confident first."""
        analyses = run_in_batches(
            chunks,
            lambda index, chunk: self.analyze(chunk, question, index),
            self.batch_size
        )
        relevant = [a for a in analyses if a.save_for_later_processing]
        relevant.sort(key=lambda a: -a.confidence)
        logger.info("Scan kept %d of %d chunks", len(relevant), len(chunks))
        return relevant
