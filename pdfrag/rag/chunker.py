"""Overlapping character chunker used between page filtering and cleaning.

Sizes are counted in characters so no tokenizer is needed. A chunk that
would end mid-text is pulled back to the nearest paragraph, line, sentence
or word break found near its end.
"""
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Tuple

import structlog

from pdfrag import config
from pdfrag.rag.documents import Fragment

logger = structlog.get_logger()

# (separator, fraction of the window the break must lie beyond)
BREAK_RULES: Tuple[Tuple[str, float], ...] = (
    ("\n\n", 0.7),
    ("\n", 0.7),
    (". ", 0.7),
    ("! ", 0.7),
    ("? ", 0.7),
    (" ", 0.8),
)


@dataclass
class TextChunk:
    """A slice of the source text and where it came from."""

    content: str
    char_start: int
    char_end: int
    chunk_index: int


def find_break(window: str) -> int:
    """Length to keep from ``window`` so it ends on a natural break.

    Returns ``len(window)`` when no break lies close enough to the end.
    """
    for separator, ratio in BREAK_RULES:
        position = window.rfind(separator)
        if position > len(window) * ratio:
            return position + len(separator)
    return len(window)


class TextChunker:
    """Splits text into overlapping chunks of at most ``chunk_size`` characters."""

    def __init__(
        self,
        chunk_size: int = config.DEFAULT_CHUNK_SIZE,
        chunk_overlap: int = config.DEFAULT_CHUNK_OVERLAP,
    ):
        if chunk_overlap >= chunk_size:
            raise ValueError(
                f"Overlap ({chunk_overlap}) must be less than chunk size ({chunk_size})"
            )
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

    def _spans(self, text: str) -> Iterator[Tuple[int, int]]:
        length = len(text)
        start = 0
        while True:
            end = min(start + self.chunk_size, length)
            if end < length:
                end = start + find_break(text[start:end])
            yield start, end

            if end >= length:
                return
            next_start = end - self.chunk_overlap
            # a break that swallowed the overlap would stall the loop
            start = next_start if next_start > start else end

    def chunk_text(self, text: str) -> List[TextChunk]:
        """Split ``text`` into chunks; blank text gives an empty list."""
        if not text or not text.strip():
            return []

        chunks = [
            TextChunk(content=text[start:end], char_start=start, char_end=end, chunk_index=i)
            for i, (start, end) in enumerate(self._spans(text))
        ]

        logger.debug(
            "text_chunked",
            text_length=len(text),
            chunk_count=len(chunks),
            chunk_size=self.chunk_size,
            chunk_overlap=self.chunk_overlap,
        )
        return chunks

    def split_documents(self, fragments: Iterable[Fragment]) -> List[Fragment]:
        """Split page-level fragments into overlapping chunk fragments.

        Each chunk copies its parent's metadata and records the line span it
        covers under ``loc.lines`` (existing ``loc`` keys are kept).

        Args:
            fragments: Fragments to split, in order

        Returns:
            Chunk fragments in document order
        """
        results = []
        for fragment in fragments:
            for chunk in self.chunk_text(fragment.text):
                metadata = dict(fragment.metadata or {})
                loc = metadata.get("loc")
                loc = dict(loc) if isinstance(loc, dict) else {}
                first_line = fragment.text.count("\n", 0, chunk.char_start) + 1
                loc["lines"] = {
                    "from": first_line,
                    "to": first_line + chunk.content.count("\n"),
                }
                metadata["loc"] = loc
                results.append(Fragment(text=chunk.content, metadata=metadata))

        logger.info("documents_split", chunk_count=len(results))
        return results
