"""Data types shared by the ingestion and retrieval pipelines.

Metadata is an open ``str -> JSON value`` mapping. Keys this package does
not know about pass through unchanged; the helpers below read the few keys
that matter (``source``, ``page``, ``loc.pageNumber``).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

Metadata = Dict[str, Any]


@dataclass
class Fragment:
    """A unit of extracted or chunked text, prior to embedding."""

    text: str
    metadata: Metadata = field(default_factory=dict)


@dataclass(frozen=True)
class EmbeddingRecord:
    """One persisted chunk: cleaned text, its vector and metadata."""

    id: str
    text: str
    embedding: List[float]
    metadata: Metadata = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "embedding": list(self.embedding),
            "metadata": self.metadata,
        }


@dataclass(frozen=True)
class SimilarityResult:
    """A record scored against a query vector."""

    id: str
    score: float
    text: str
    metadata: Metadata
    rank: int = 0

    @property
    def page(self) -> str:
        """Page label for display, ``Unknown`` when the metadata has none."""
        number = page_number(self.metadata)
        return "Unknown" if number is None else str(number)


def record_id(index: int) -> str:
    """Store id for the chunk at ``index`` (zero-based, post-filtering)."""
    return f"chunk-{index}"


def get_source(metadata: Optional[Metadata]) -> str:
    """Return the ``source`` entry, or an empty string when absent."""
    if not isinstance(metadata, dict):
        return ""
    source = metadata.get("source")
    return "" if source is None else str(source)


def page_number(metadata: Optional[Metadata]) -> Optional[Any]:
    """Return ``loc.pageNumber`` if present, otherwise ``page``, otherwise None.

    Falsy values (0, empty string) fall through to the next key.
    """
    if not isinstance(metadata, dict):
        return None
    loc = metadata.get("loc")
    if isinstance(loc, dict) and loc.get("pageNumber"):
        return loc["pageNumber"]
    if metadata.get("page"):
        return metadata["page"]
    return None
