"""Flat JSON embedding store.

Handles:
- Writing records as a pretty-printed JSON array (atomic replace)
- Reading records back with vector and metadata sanitization
- Store statistics for logging
"""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import structlog

from pdfrag.errors import StoreReadError, StoreWriteError
from pdfrag.rag.documents import EmbeddingRecord
from pdfrag.rag.similarity import parse_vector

logger = structlog.get_logger()


def _parse_metadata(value: Any, record_id: Any) -> Any:
    # Some producers store metadata as a JSON-encoded string
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as e:
            raise StoreReadError(
                f"Invalid metadata JSON for record {record_id!r}: {e}"
            ) from e
    if value is None:
        return {}
    return value


def record_from_dict(item: Dict[str, Any]) -> EmbeddingRecord:
    """Build a record from one decoded JSON element."""
    record_id = item.get("id")
    return EmbeddingRecord(
        id="" if record_id is None else str(record_id),
        text=item.get("text") or "",
        embedding=parse_vector(item.get("embedding")),
        metadata=_parse_metadata(item.get("metadata"), record_id),
    )


def store_stats(records: Sequence[EmbeddingRecord]) -> Dict[str, Any]:
    """Summarize a set of records.

    Returns:
        Dictionary with record count, distinct embedding dimensions and
        the number of records without an embedding
    """
    dimensions = sorted({len(r.embedding) for r in records if r.embedding})
    return {
        "record_count": len(records),
        "dimensions": dimensions,
        "empty_embeddings": sum(1 for r in records if not r.embedding),
    }


class JSONEmbeddingStore:
    """Embedding records persisted as a single JSON array file."""

    def __init__(self, path: Union[str, Path]):
        """Initialize the store.

        Args:
            path: Location of the JSON file
        """
        self.path = Path(path)

    def write(self, records: Sequence[EmbeddingRecord]) -> None:
        """Overwrite the store with ``records``.

        The array is written to a temporary file next to the target and
        moved into place, so a reader never sees a half-written store.

        Args:
            records: Records to persist, in order (may be empty)

        Raises:
            StoreWriteError: If the directory or file cannot be written
        """
        payload = json.dumps(
            [record.to_dict() for record in records], indent=2, ensure_ascii=False
        )

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
        except OSError as e:
            raise StoreWriteError(f"Cannot write embedding store {self.path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException as e:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            if isinstance(e, OSError):
                raise StoreWriteError(f"Cannot write embedding store {self.path}: {e}") from e
            raise

        logger.info("embedding_store_written", path=str(self.path), **store_stats(records))

    def read(self) -> List[EmbeddingRecord]:
        """Load every record from the store.

        Returns:
            Records in file order

        Raises:
            StoreReadError: If the file is missing, unreadable, not JSON,
                or not a JSON array of objects
        """
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StoreReadError(f"Cannot read embedding store {self.path}: {e}") from e
        except UnicodeDecodeError as e:
            raise StoreReadError(f"Embedding store {self.path} is not UTF-8: {e}") from e

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StoreReadError(f"Embedding store {self.path} is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise StoreReadError(
                f"Embedding store {self.path} must contain a JSON array, "
                f"got {type(data).__name__}"
            )

        records = []
        for position, item in enumerate(data):
            if not isinstance(item, dict):
                raise StoreReadError(
                    f"Embedding store {self.path} has a non-object entry at position {position}"
                )
            records.append(record_from_dict(item))

        logger.info("embedding_store_loaded", path=str(self.path), **store_stats(records))
        return records
