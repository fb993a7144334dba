"""Tests for context packing, answer parsing and the query engine."""

import pytest

from conftest import FakeOracle, routing_handler
from graphqa.config import Settings
from graphqa.errors import OracleProtocolError
from graphqa.query import (
    Answer,
    AnnotatedSentence,
    QAInput,
    extract_chunk_indices,
    pack_context,
    parse_annotated_answer,
)
from graphqa.query.answer import AnswerGenerator, QueryEngine
from graphqa.schema import GraphNode
from graphqa.schema.graph_store import KnowledgeGraphStore
from graphqa.search import RetrievalResult, TERMINATED_EXHAUSTED
from graphqa.search.vector_store import EmbeddingStore


def test_pack_context_stops_before_overflow():
    inputs = [QAInput("a" * 40, 3), QAInput("b" * 50, 1), QAInput("c" * 20, 7), QAInput("d" * 5, 2)]

    context, indices = pack_context(inputs, max_characters=100)

    assert indices == [3, 1]
    assert "[Chunk 3]:\n" + "a" * 40 in context
    assert "[Chunk 1]:\n" + "b" * 50 in context
    assert "c" not in context
    assert "d" not in context


def test_pack_context_exact_fit_and_empty():
    context, indices = pack_context([QAInput("x" * 10, 0)], max_characters=10)
    assert indices == [0]

    context, indices = pack_context([QAInput("x" * 11, 0)], max_characters=10)
    assert (context, indices) == ("", [])


def test_parse_annotated_answer():
    text = (
        "Radio City is located in India. {chunk_indices: [0]} "
        "It started on 3 July 2001. {chunk_indices: [0, 2]} "
        "Nothing else is known."
    )

    sentences = parse_annotated_answer(text)

    assert sentences == [
        AnnotatedSentence("Radio City is located in India.", [0]),
        AnnotatedSentence("It started on 3 July 2001.", [0, 2]),
        AnnotatedSentence("Nothing else is known.", []),
    ]


def test_parse_annotated_answer_tolerates_spacing_and_duplicates():
    sentences = parse_annotated_answer("The cat is black.{ chunk_indices : [ 4 , 4,1 ] }")

    assert sentences == [AnnotatedSentence("The cat is black.", [4, 1])]


def test_extract_chunk_indices_keeps_first_appearance_order():
    text = "A. {chunk_indices: [2, 0]} B. {chunk_indices: [0, 5]} C. {chunk_indices: []}"

    assert extract_chunk_indices(text) == [2, 0, 5]


def test_answer_properties():
    answer = Answer(
        raw="...",
        sentences=[AnnotatedSentence("One.", [1, 3]), AnnotatedSentence("Two.", [3, 0])],
        context_indices=[1, 3, 0],
    )

    assert answer.text == "One. Two."
    assert answer.chunk_indices == [1, 3, 0]
    assert answer.to_dict()["chunk_indices"] == [1, 3, 0]


def test_generator_builds_prompt_from_budgeted_context():
    oracle = FakeOracle(responses=["It is in India. {chunk_indices: [4]}"])
    generator = AnswerGenerator(oracle, max_characters=30, model="answer-model")

    answer = generator.generate(
        [QAInput("Radio City is in India.", 4), QAInput("Unrelated but long chunk text.", 9)],
        "Where is Radio City?",
    )

    prompt = oracle.prompts[0]
    assert "[Chunk 4]:\nRadio City is in India." in prompt
    assert "Unrelated" not in prompt
    assert 'Answer this question: "Where is Radio City?"' in prompt
    assert "Available chunk indices: [4]" in prompt
    assert oracle.models == ["answer-model"]
    assert answer.context_indices == [4]
    assert answer.chunk_indices == [4]
    assert answer.text == "It is in India."


def test_generator_retries_empty_answers():
    oracle = FakeOracle(responses=["", "  ", "\n"])

    with pytest.raises(OracleProtocolError) as excinfo:
        AnswerGenerator(oracle).generate([QAInput("text", 0)], "question")
    assert excinfo.value.operation == "answer synthesis"


class _StaticRetriever:
    def __init__(self, result):
        self.result = result
        self.graph_store = KnowledgeGraphStore()
        self.embedding_store = EmbeddingStore()

    def retrieve(self, question):
        return self.result


def test_query_engine_maps_provenance_to_chunks():
    visited = [
        GraphNode("A", "p", "B", "chunk_2"),
        GraphNode("B", "p", "C", "external_7"),
        GraphNode("C", "p", "D", "chunk_0"),
        GraphNode("D", "p", "E", "chunk_2"),
        GraphNode("E", "p", "F", "chunk_99"),
    ]
    result = RetrievalResult(visited=visited, hops=1, terminated_by=TERMINATED_EXHAUSTED)
    oracle = FakeOracle(responses=["Answer. {chunk_indices: [2]}"])
    engine = QueryEngine(_StaticRetriever(result), AnswerGenerator(oracle), ["zero", "one", "two"])

    assert [(i.index, i.chunk) for i in engine.qa_inputs(result)] == [(2, "two"), (0, "zero")]

    answer = engine.answer("question")

    assert answer.retrieved_chunk_ids == ["chunk_2", "external_7", "chunk_0", "chunk_99"]
    assert answer.context_indices == [2, 0]
    assert answer.chunk_indices == [2]


def test_query_engine_from_settings_end_to_end(tmp_path):
    embeddings = tmp_path / "embeddings.json"
    facts = tmp_path / "facts.nq"
    store = EmbeddingStore()
    store.store("Radio City", [1.0, 0.0])
    store.save(str(embeddings))
    graph = KnowledgeGraphStore()
    graph.add_fact("Radio City", "located in", "India", "chunk_1")
    graph.save(str(facts))

    settings = Settings(vector_store_path=str(embeddings), graph_store_path=str(facts))
    oracle = FakeOracle(
        handler=routing_handler(answer="Radio City is in India. {chunk_indices: [1]}"),
        embeddings={"Where is Radio City?": [1.0, 0.1]},
    )
    engine = QueryEngine.from_settings(settings, ["intro", "Radio City is in India."], oracle)

    answer = engine.answer("Where is Radio City?")

    assert answer.retrieved_chunk_ids == ["chunk_1"]
    assert answer.chunk_indices == [1]
    assert answer.text == "Radio City is in India."
    assert oracle.models[-1] == settings.answer_model
