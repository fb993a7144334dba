"""FastAPI application for the question answering service."""

import logging
import time
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from .. import __version__
from ..errors import GraphQAError
from ..query.answer import QueryEngine
from . import HealthCheck, QueryRequest, QueryResponse, SystemStatus

logger = logging.getLogger(__name__)


def create_app(engine: QueryEngine, title: Optional[str] = None) -> FastAPI:
    """Create the API around an already loaded query engine.

    Args:
        engine: Engine over the stores and chunks of one document
        title: Optional API title

    Returns:
        Configured FastAPI application
    """
    app = FastAPI(
        title=title or "Graph QA API",
        description="Question answering over a document fact graph",
        version=__version__
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.engine = engine

    @app.post("/query", response_model=QueryResponse)
    def answer_question(request: QueryRequest):
        """Answer a question about the document."""
        start_time = time.time()
        try:
            if request.mode == "scan":
                answer = engine.scan(request.question)
            else:
                answer = engine.answer(request.question)
        except GraphQAError as e:
            logger.error("Query failed: %s", e)
            raise HTTPException(
                status_code=500,
                detail={"error": "Query failed", "message": str(e)}
            )

        data = answer.to_dict()
        return QueryResponse(
            answer=data["answer"],
            sentences=data["sentences"],
            chunk_indices=data["chunk_indices"],
            context_indices=data["context_indices"],
            retrieved_chunk_ids=data["retrieved_chunk_ids"],
            query_time_ms=(time.time() - start_time) * 1000
        )

    @app.get("/status", response_model=SystemStatus)
    def get_system_status():
        """Get current index status."""
        retriever = engine.retriever
        return SystemStatus(
            total_facts=len(retriever.graph_store),
            total_labels=len(retriever.embedding_store),
            total_chunks=len(engine.chunks)
        )

    @app.get("/health", response_model=HealthCheck)
    def health_check():
        """Check system health status."""
        oracle = engine.generator.oracle
        ping = getattr(oracle, "ping", None)
        components = {
            "graph_store": len(engine.retriever.graph_store) > 0,
            "vector_store": len(engine.retriever.embedding_store) > 0,
            "oracle": ping() if ping is not None else True
        }
        status = "healthy" if all(components.values()) else "degraded"
        return HealthCheck(
            status=status,
            version=__version__,
            components=components
        )

    return app
