"""Error types raised by the ingestion and retrieval pipelines.

Each wraps the underlying failure (``raise ... from e``) so callers can
catch one family while the original exception stays attached.
"""


class RAGError(RuntimeError):
    """Base class for pipeline failures."""


class ExtractionError(RAGError):
    """The PDF could not be opened or parsed."""


class EmbeddingServiceError(RAGError):
    """The embedding call failed or returned malformed vectors."""


class StoreReadError(RAGError):
    """The embedding store is missing or is not a valid JSON array."""


class ChatServiceError(RAGError):
    """The chat model invocation failed."""


class StoreWriteError(RAGError):
    """The embedding store could not be written."""
