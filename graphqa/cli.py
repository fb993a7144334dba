"""Command-line interface: index a document, then ask it questions."""

import logging
import sys

import click
from dotenv import load_dotenv

from .config import Settings
from .document import chunk_text, extract_document_text
from .extraction.base import BaseOracle
from .extraction.llm import LLMExtractor, OllamaOracle
from .indexing import DocumentIndexer
from .query.answer import QueryEngine
from .schema.graph_store import KnowledgeGraphStore
from .search.vector_store import EmbeddingStore

logger = logging.getLogger(__name__)


def build_oracle(settings: Settings) -> BaseOracle:
    """Oracle used by all commands."""
    return OllamaOracle.from_settings(settings)


def _load_chunks(document: str, settings: Settings):
    text = extract_document_text(document).text
    return chunk_text(text, settings.max_chunk_length)


def _settings(ctx, vector_store=None, graph_store=None) -> Settings:
    settings = ctx.obj["settings"]
    if vector_store:
        settings.vector_store_path = vector_store
    if graph_store:
        settings.graph_store_path = graph_store
    return settings


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--env-file", default=None, type=click.Path(dir_okay=False), help="Read settings from this .env file")
@click.pass_context
def cli(ctx, verbose, env_file):
    """Answer questions about a document using a fact graph."""
    load_dotenv(env_file)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    ctx.ensure_object(dict)
    try:
        ctx.obj["settings"] = Settings.from_env()
    except ValueError as e:
        raise click.ClickException(str(e))


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--vector-store", default=None, help="Embedding store file")
@click.option("--graph-store", default=None, help="Fact graph file")
@click.pass_context
def index(ctx, document, vector_store, graph_store):
    """Extract facts from DOCUMENT and save both stores."""
    settings = _settings(ctx, vector_store, graph_store)
    try:
        oracle = build_oracle(settings)
        indexer = DocumentIndexer(
            extractor=LLMExtractor(oracle),
            embed=oracle.embed,
            embedding_store=EmbeddingStore(),
            graph_store=KnowledgeGraphStore(),
            batch_size=settings.batch_size,
            synonym_threshold=settings.synonym_threshold
        )
        stats, _ = indexer.index_document(document, settings.max_chunk_length)
        indexer.save(settings.vector_store_path, settings.graph_store_path, settings.fact_language)
    except Exception as e:
        logger.debug("Indexing failed", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(f"Indexed {stats.chunks} chunks from {stats.page_count} pages")
    click.echo(f"Stored {stats.facts} facts, {stats.labels} labels, {stats.synonyms} synonym links")
    click.echo(f"Processing time: {stats.processing_time_ms:.2f}ms")


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--question", "-q", required=True, help="Question to answer")
@click.option("--mode", type=click.Choice(["graph", "scan"]), default="graph", show_default=True)
@click.option("--vector-store", default=None, help="Embedding store file")
@click.option("--graph-store", default=None, help="Fact graph file")
@click.pass_context
def query(ctx, document, question, mode, vector_store, graph_store):
    """Answer QUESTION about DOCUMENT."""
    settings = _settings(ctx, vector_store, graph_store)
    try:
        chunks = _load_chunks(document, settings)
        engine = QueryEngine.from_settings(settings, chunks, build_oracle(settings))
        answer = engine.scan(question) if mode == "scan" else engine.answer(question)
    except Exception as e:
        logger.debug("Query failed", exc_info=True)
        raise click.ClickException(str(e))

    click.echo(f"\nAnswer: {answer.text}")
    if answer.retrieved_chunk_ids:
        click.echo(f"\nRetrieved chunks: {', '.join(answer.retrieved_chunk_ids)}")
    click.echo(f"\nEvidence chunk indices: {answer.chunk_indices}")
    for index in answer.chunk_indices:
        if 0 <= index < len(chunks):
            click.echo(f"\nChunk {index}:\n{chunks[index]}")


@cli.command()
@click.argument("document", type=click.Path(exists=True, dir_okay=False))
@click.option("--host", default="127.0.0.1", show_default=True)
@click.option("--port", default=8000, show_default=True, type=int)
@click.pass_context
def serve(ctx, document, host, port):
    """Serve the question answering API for DOCUMENT."""
    import uvicorn

    from .api.main import create_app

    settings = _settings(ctx)
    try:
        chunks = _load_chunks(document, settings)
        engine = QueryEngine.from_settings(settings, chunks, build_oracle(settings))
    except Exception as e:
        raise click.ClickException(str(e))

    uvicorn.run(create_app(engine), host=host, port=port)


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
