"""FastAPI service answering questions about an indexed document.

This module provides REST API endpoints for:
- Question answering by graph traversal or chunk scan
- Index status
- Health checks
"""

from typing import Dict, List, Literal

from pydantic import BaseModel


class QueryRequest(BaseModel):
    """Request model for questions."""
    question: str
    mode: Literal["graph", "scan"] = "graph"


class SentenceModel(BaseModel):
    """An answer sentence with its cited chunks."""
    sentence: str
    chunk_indices: List[int]


class QueryResponse(BaseModel):
    """Response model for answers."""
    answer: str
    sentences: List[SentenceModel]
    chunk_indices: List[int]
    context_indices: List[int]
    retrieved_chunk_ids: List[str]
    query_time_ms: float


class SystemStatus(BaseModel):
    """Index status information."""
    total_facts: int
    total_labels: int
    total_chunks: int


class HealthCheck(BaseModel):
    """Health check response."""
    status: str
    version: str
    components: Dict[str, bool]
