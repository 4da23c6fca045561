"""Ingest pipeline for turning a PDF into an embedding store.

Orchestrates:
- PDF page extraction
- Page-level content filtering
- Overlapping chunking
- Chunk cleaning and re-filtering
- Batched embedding generation
- JSON store persistence
"""
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

import structlog

from pdfrag.config import RAGConfig
from pdfrag.errors import EmbeddingServiceError
from pdfrag.rag.chunker import TextChunker
from pdfrag.rag.content_filter import (
    clean_fragments,
    count_words,
    filter_fragments,
)
from pdfrag.rag.documents import EmbeddingRecord, Fragment, record_id
from pdfrag.rag.pdf_loader import PDFLoader
from pdfrag.rag.similarity import parse_vector
from pdfrag.rag.store_json import JSONEmbeddingStore

logger = structlog.get_logger()


class DocumentLoader(Protocol):
    def load(self, pdf_path: Union[str, Path]) -> List[Fragment]: ...


class DocumentSplitter(Protocol):
    def split_documents(self, fragments: Sequence[Fragment]) -> List[Fragment]: ...


class DocumentEmbedder(Protocol):
    async def embed_documents(self, texts: List[str]) -> List[List[float]]: ...


@dataclass
class IngestResult:
    """Counts recorded at each checkpoint of one ingestion run."""

    output_path: Path
    pages_loaded: int = 0
    pages_kept: int = 0
    chunks_created: int = 0
    chunks_kept: int = 0
    records_written: int = 0


class IngestPipeline:
    """Pipeline for ingesting a PDF into a JSON embedding store."""

    def __init__(
        self,
        config: RAGConfig,
        embedder: DocumentEmbedder,
        loader: Optional[DocumentLoader] = None,
        splitter: Optional[DocumentSplitter] = None,
    ):
        """Initialize the ingest pipeline.

        Args:
            config: Pipeline settings (chunking and filter thresholds)
            embedder: Service with an async ``embed_documents``
            loader: PDF loader (defaults to the PyMuPDF loader)
            splitter: Chunk splitter (defaults to a TextChunker built from config)
        """
        self.config = config
        self.embedder = embedder
        self.loader = loader or PDFLoader(item_separator=" ")
        self.splitter = splitter or TextChunker(
            chunk_size=config.chunk_size, chunk_overlap=config.chunk_overlap
        )

    def _filter(self, fragments: Sequence[Fragment]) -> List[Fragment]:
        return filter_fragments(
            fragments,
            min_length=self.config.min_content_length,
            min_words=self.config.min_word_count,
        )

    def _log_first_page(self, pages: Sequence[Fragment]) -> None:
        first = pages[0]
        logger.debug(
            "first_page_inspected",
            length=len(first.text),
            word_count=count_words(first.text),
            metadata=first.metadata,
            preview=first.text[:100],
        )

    async def embed_fragments(self, fragments: Sequence[Fragment]) -> List[List[float]]:
        """Embed fragment texts in one batched call.

        Raises:
            EmbeddingServiceError: If the service fails or returns a vector
                count that does not match the input
        """
        texts = [fragment.text for fragment in fragments]
        try:
            vectors = await self.embedder.embed_documents(texts)
        except EmbeddingServiceError:
            raise
        except Exception as e:
            raise EmbeddingServiceError(f"Failed to generate embeddings: {e}") from e

        if not isinstance(vectors, (list, tuple)) or len(vectors) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding service returned {len(vectors) if isinstance(vectors, (list, tuple)) else 'no'} "
                f"vectors for {len(texts)} texts"
            )

        logger.info("embeddings_generated", count=len(vectors))
        return [parse_vector(vector) for vector in vectors]

    async def ingest(
        self, pdf_path: Union[str, Path], output_path: Union[str, Path]
    ) -> IngestResult:
        """Ingest one PDF and overwrite the store at ``output_path``.

        Empty content at any checkpoint is not an error: an empty store is
        written and the run returns normally.

        Args:
            pdf_path: PDF to ingest
            output_path: JSON store to (over)write

        Returns:
            IngestResult with per-checkpoint counts

        Raises:
            ExtractionError: If the PDF cannot be loaded
            EmbeddingServiceError: If embedding fails
            StoreWriteError: If the store cannot be written
        """
        store = JSONEmbeddingStore(output_path)
        result = IngestResult(output_path=store.path)

        logger.info("ingest_started", pdf_path=str(pdf_path), output_path=str(store.path))

        pages = self.loader.load(pdf_path)
        result.pages_loaded = len(pages)
        if pages:
            self._log_first_page(pages)

        kept_pages = self._filter(pages)
        result.pages_kept = len(kept_pages)
        logger.info(
            "pages_filtered",
            pages_loaded=result.pages_loaded,
            pages_kept=result.pages_kept,
            min_content_length=self.config.min_content_length,
            min_word_count=self.config.min_word_count,
        )

        if not kept_pages:
            logger.warning(
                "no_substantial_text_found",
                hint="the PDF may be image-based or have no extractable text",
            )
            return self._write_empty(store, result)

        chunks = self.splitter.split_documents(kept_pages)
        result.chunks_created = len(chunks)
        if not chunks:
            logger.warning("no_chunks_created")
            return self._write_empty(store, result)

        final_chunks = self._filter(clean_fragments(chunks))
        result.chunks_kept = len(final_chunks)
        logger.info(
            "chunks_cleaned",
            chunks_created=result.chunks_created,
            chunks_kept=result.chunks_kept,
        )
        if not final_chunks:
            logger.warning("no_text_left_after_cleaning")
            return self._write_empty(store, result)

        vectors = await self.embed_fragments(final_chunks)

        records = [
            EmbeddingRecord(
                id=record_id(index),
                text=chunk.text,
                embedding=vector,
                metadata=chunk.metadata,
            )
            for index, (chunk, vector) in enumerate(zip(final_chunks, vectors))
        ]

        store.write(records)
        result.records_written = len(records)

        logger.info(
            "ingest_completed",
            output_path=str(store.path),
            records_written=result.records_written,
        )
        return result

    def _write_empty(self, store: JSONEmbeddingStore, result: IngestResult) -> IngestResult:
        store.write([])
        logger.info("empty_store_written", output_path=str(store.path))
        return result
