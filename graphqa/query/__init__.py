"""Answer generation from retrieved evidence.

This module handles:
- Packing retrieved chunks into a bounded answer context
- Parsing per-sentence chunk annotations out of generated answers
- Result containers returned to callers
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List, Tuple

_ANNOTATION = re.compile(r"\{\s*chunk_indices\s*:\s*\[([\d,\s]*)\]\s*\}")


@dataclass
class QAInput:
    """A chunk handed to the answer stage."""
    chunk: str
    index: int


@dataclass
class AnnotatedSentence:
    """One answer sentence and the chunks it cites."""
    sentence: str
    chunk_indices: List[int]

    def to_dict(self) -> Dict:
        """Convert to dictionary format."""
        return {"sentence": self.sentence, "chunk_indices": self.chunk_indices}


@dataclass
class Answer:
    """Generated answer with its evidence trail."""
    raw: str
    sentences: List[AnnotatedSentence]
    context_indices: List[int]
    retrieved_chunk_ids: List[str] = field(default_factory=list)

    @property
    def text(self) -> str:
        """Answer text without annotations."""
        return " ".join(s.sentence for s in self.sentences if s.sentence)

    @property
    def chunk_indices(self) -> List[int]:
        """Distinct cited chunk indices in order of first citation."""
        seen = {}
        for sentence in self.sentences:
            for index in sentence.chunk_indices:
                seen.setdefault(index, None)
        return list(seen)

    def to_dict(self) -> Dict:
        """Convert to dictionary format."""
        return {
            "answer": self.text,
            "raw": self.raw,
            "sentences": [s.to_dict() for s in self.sentences],
            "chunk_indices": self.chunk_indices,
            "context_indices": self.context_indices,
            "retrieved_chunk_ids": self.retrieved_chunk_ids
        }


def pack_context(qa_inputs: List[QAInput], max_characters: int) -> Tuple[str, List[int]]:
    """Concatenate chunks in order until the next one would exceed the budget.

    The budget counts chunk text only. Packing stops at the first chunk that
    does not fit; chunks are never truncated.

    Returns:
        Tuple of (context text, indices of the included chunks)
    """
    parts = []
    indices = []
    used = 0
    for qa_input in qa_inputs:
        if used + len(qa_input.chunk) > max_characters:
            break
        parts.append(f"[Chunk {qa_input.index}]:\n{qa_input.chunk}\n")
        indices.append(qa_input.index)
        used += len(qa_input.chunk)
    return "\n".join(parts), indices


def _parse_indices(body: str) -> List[int]:
    indices = []
    for item in body.split(","):
        item = item.strip()
        if item.isdigit() and int(item) not in indices:
            indices.append(int(item))
    return indices


def parse_annotated_answer(text: str) -> List[AnnotatedSentence]:
    """Split an answer into sentences with their ``{chunk_indices: [..]}`` tags.

    Text after the last annotation becomes a sentence without citations.
    """
    sentences = []
    position = 0
    for match in _ANNOTATION.finditer(text):
        sentence = " ".join(text[position:match.start()].split())
        indices = _parse_indices(match.group(1))
        if sentence or indices:
            sentences.append(AnnotatedSentence(sentence=sentence, chunk_indices=indices))
        position = match.end()

    tail = " ".join(text[position:].split())
    if tail:
        sentences.append(AnnotatedSentence(sentence=tail, chunk_indices=[]))
    return sentences


def extract_chunk_indices(text: str) -> List[int]:
    """Distinct chunk indices cited anywhere in ``text``, in order of appearance."""
    seen = {}
    for match in _ANNOTATION.finditer(text):
        for index in _parse_indices(match.group(1)):
            seen.setdefault(index, None)
    return list(seen)
