"""Document text extraction and chunking."""

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import List

from .errors import ExtractionError

logger = logging.getLogger(__name__)

TEXT_SUFFIXES = {".txt", ".md", ".text"}

_PARAGRAPH_BREAK = re.compile(r"\n{2,}")
_SENTENCE = re.compile(r"[^.!?]+(?:[.!?]+|$)")


@dataclass(frozen=True)
class DocumentText:
    """Extracted text of a document and its page count."""
    text: str
    page_count: int


def extract_document_text(path: str) -> DocumentText:
    """Extract the text of a PDF or plain-text document.

    Raises:
        ExtractionError: if the file cannot be read or parsed
    """
    suffix = Path(path).suffix.lower()
    try:
        if suffix in TEXT_SUFFIXES:
            text = Path(path).read_text(encoding="utf-8")
            return DocumentText(text=text, page_count=1)

        import fitz  # PyMuPDF

        with fitz.open(path) as doc:
            pages = [page.get_text("text") for page in doc]
            page_count = doc.page_count
    except Exception as e:
        raise ExtractionError(path, e) from e

    logger.info("Extracted %d pages from %s", page_count, path)
    return DocumentText(text="\n\n".join(pages), page_count=page_count)


def _split_words(sentence: str, max_length: int) -> List[str]:
    pieces = []
    current = ""
    for word in sentence.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_length:
            current = candidate
        else:
            if current:
                pieces.append(current)
            current = word
    if current:
        pieces.append(current)
    return pieces


def _split_paragraph(paragraph: str, max_length: int) -> List[str]:
    chunks = []
    current = ""
    for sentence in _SENTENCE.findall(paragraph) or [paragraph]:
        if not sentence.strip():
            continue
        if len(current + sentence) <= max_length:
            current += sentence
            continue
        if current.strip():
            chunks.append(current.strip())
        if len(sentence.strip()) > max_length:
            words = _split_words(sentence, max_length)
            chunks.extend(words[:-1])
            current = words[-1] if words else ""
        else:
            current = sentence
    if current.strip():
        chunks.append(current.strip())
    return chunks


def chunk_text(text: str, max_length: int = 500) -> List[str]:
    """Split text into chunks of at most ``max_length`` characters.

    Paragraphs (separated by blank lines) are kept whole when they fit,
    otherwise split at sentence ends, and sentences that are still too long
    are split between words. A single word longer than ``max_length`` is
    its own chunk.
    """
    chunks = []
    for paragraph in _PARAGRAPH_BREAK.split(text):
        paragraph = paragraph.strip()
        if not paragraph:
            continue
        if len(paragraph) <= max_length:
            chunks.append(paragraph)
        else:
            chunks.extend(_split_paragraph(paragraph, max_length))
    return chunks
