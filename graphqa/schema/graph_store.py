"""In-memory fact graph with quad-file persistence."""

import logging
import os
import re
import threading
from collections import defaultdict
from typing import Dict, Iterable, Iterator, List, Optional
from urllib.parse import quote, unquote

from . import DEFAULT_LANGUAGE, Fact

logger = logging.getLogger(__name__)

_QUAD_PATTERN = re.compile(
    r'^<([^<>\s]*)>\s+<([^<>\s]*)>\s+'
    r'"((?:[^"\\]|\\.)*)"(?:@[A-Za-z]+(?:-[A-Za-z0-9]+)*)?\s+'
    r'<([^<>\s]*)>\s*\.\s*$'
)

_ESCAPES = {"\\": "\\\\", '"': '\\"', "\n": "\\n", "\r": "\\r", "\t": "\\t"}
_UNESCAPES = {v[1]: k for k, v in _ESCAPES.items()}
_ESCAPE_SEQUENCE = re.compile(r"\\(.)")


def _encode_term(term: str) -> str:
    return f"<{quote(term, safe='')}>"


def _encode_literal(value: str, language: str) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in value)
    return f'"{escaped}"@{language}'


def _decode_literal(body: str) -> str:
    def replace(match):
        char = match.group(1)
        if char not in _UNESCAPES:
            raise ValueError(f"Unknown escape sequence '\\{char}'")
        return _UNESCAPES[char]
    return _ESCAPE_SEQUENCE.sub(replace, body)


def format_quad(fact: Fact, language: str = DEFAULT_LANGUAGE) -> str:
    """Serialize a fact as a single quad line (without newline).

    Subject, predicate and provenance are percent-encoded inside angle
    brackets; the object is written as a language-tagged string literal.
    """
    return " ".join([
        _encode_term(fact.subject),
        _encode_term(fact.predicate),
        _encode_literal(fact.object, language),
        _encode_term(fact.provenance),
        "."
    ])


def parse_quad(line: str) -> Optional[Fact]:
    """Parse one quad line.

    Returns:
        The decoded Fact, or None if the line is malformed
    """
    match = _QUAD_PATTERN.match(line.strip())
    if not match:
        return None
    subject, predicate, literal, provenance = match.groups()
    try:
        value = _decode_literal(literal)
    except ValueError:
        return None
    return Fact(
        subject=unquote(subject),
        predicate=unquote(predicate),
        object=value,
        provenance=unquote(provenance)
    )


class KnowledgeGraphStore:
    """Append-only multiset of facts with subject and object indexes.

    Identical facts added twice are kept twice. Appends are serialized by
    a lock so concurrent indexing workers can share one store.
    """

    def __init__(self, facts: Optional[Iterable[Fact]] = None):
        self._facts: List[Fact] = []
        self._by_subject: Dict[str, List[int]] = defaultdict(list)
        self._by_object: Dict[str, List[int]] = defaultdict(list)
        self._lock = threading.Lock()
        for fact in facts or []:
            self._append(fact)

    def __len__(self) -> int:
        return len(self._facts)

    def __iter__(self) -> Iterator[Fact]:
        return iter(list(self._facts))

    def _append(self, fact: Fact):
        position = len(self._facts)
        self._facts.append(fact)
        self._by_subject[fact.subject].append(position)
        self._by_object[fact.object].append(position)

    def add_fact(self, subject: str, predicate: str, object: str, provenance: str) -> Fact:
        """Append a fact to the graph.

        Args:
            subject: Subject entity
            predicate: Relation between subject and object
            object: Object value
            provenance: Id of the chunk the fact was extracted from

        Returns:
            The stored Fact
        """
        fact = Fact(subject, predicate, object, provenance)
        with self._lock:
            self._append(fact)
        return fact

    def match(
        self,
        subject: Optional[str] = None,
        predicate: Optional[str] = None,
        object: Optional[str] = None,
        provenance: Optional[str] = None
    ) -> List[Fact]:
        """Find facts matching a pattern.

        Each argument left as None is a wildcard. Subject and object
        lookups go through the indexes; other patterns scan.

        Returns:
            Matching facts in insertion order
        """
        with self._lock:
            if subject is not None and object is not None:
                by_subject = self._by_subject.get(subject, [])
                by_object = self._by_object.get(object, [])
                if len(by_object) < len(by_subject):
                    positions = by_object
                else:
                    positions = by_subject
                candidates = [self._facts[i] for i in positions]
            elif subject is not None:
                candidates = [self._facts[i] for i in self._by_subject.get(subject, [])]
            elif object is not None:
                candidates = [self._facts[i] for i in self._by_object.get(object, [])]
            else:
                candidates = list(self._facts)

        return [
            fact for fact in candidates
            if (subject is None or fact.subject == subject)
            and (predicate is None or fact.predicate == predicate)
            and (object is None or fact.object == object)
            and (provenance is None or fact.provenance == provenance)
        ]

    def save(self, filepath: str, language: str = DEFAULT_LANGUAGE):
        """Write all facts to ``filepath``, one quad per line.

        Args:
            filepath: Target file, parent directories are created
            language: Language tag for object literals
        """
        directory = os.path.dirname(filepath)
        if directory:
            os.makedirs(directory, exist_ok=True)

        with self._lock:
            facts = list(self._facts)

        with open(filepath, "w", encoding="utf-8") as f:
            for fact in facts:
                f.write(format_quad(fact, language))
                f.write("\n")
        logger.info("Graph store saved to %s (%d facts)", filepath, len(facts))

    def load(self, filepath: str):
        """Replace the contents of the store with the facts in ``filepath``.

        Malformed lines are skipped. A missing file leaves the store empty.
        """
        facts = []
        if not os.path.exists(filepath):
            logger.info("No existing graph store found at %s", filepath)
        else:
            with open(filepath, "rb") as f:
                for line_number, raw in enumerate(f, 1):
                    try:
                        line = raw.decode("utf-8")
                    except UnicodeDecodeError:
                        logger.debug("Skipping undecodable line at %s:%d", filepath, line_number)
                        continue
                    if not line.strip() or line.lstrip().startswith("#"):
                        continue
                    fact = parse_quad(line)
                    if fact is None:
                        logger.debug("Skipping malformed quad at %s:%d", filepath, line_number)
                        continue
                    facts.append(fact)

        with self._lock:
            self._facts = []
            self._by_subject = defaultdict(list)
            self._by_object = defaultdict(list)
            for fact in facts:
                self._append(fact)
        logger.info("Graph store loaded from %s (%d facts)", filepath, len(facts))

    @classmethod
    def from_file(cls, filepath: str) -> "KnowledgeGraphStore":
        """Create a store from a quad file."""
        store = cls()
        store.load(filepath)
        return store
