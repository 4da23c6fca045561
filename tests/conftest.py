"""Shared test fixtures and fakes for the ingestion and retrieval pipelines.

The Ollama services are replaced with small in-memory fakes; PDFs are
generated on the fly with PyMuPDF.
"""
from pathlib import Path
from typing import List, Optional, Sequence

import fitz
import pytest

from pdfrag.config import RAGConfig
from pdfrag.rag.documents import EmbeddingRecord, Fragment


def text_vector(text: str) -> List[float]:
    """Deterministic, non-zero vector derived from text."""
    return [
        float(len(text)),
        float(text.count(" ")),
        float(sum(ord(c) for c in text) % 97),
        1.0,
    ]


class FakeEmbedder:
    """Embedding service stand-in that records its calls."""

    def __init__(self, query_vector: Optional[List[float]] = None, error: Exception = None):
        self.query_vector = query_vector
        self.error = error
        self.document_calls: List[List[str]] = []
        self.query_calls: List[str] = []

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        self.document_calls.append(list(texts))
        if self.error:
            raise self.error
        return [text_vector(text) for text in texts]

    async def embed_query(self, text: str) -> List[float]:
        self.query_calls.append(text)
        if self.error:
            raise self.error
        if self.query_vector is not None:
            return self.query_vector
        return text_vector(text)


class FakeChat:
    """Chat model stand-in returning a canned reply."""

    def __init__(self, reply: str = "The answer is 42.", error: Exception = None):
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []
        self.temperatures: List[Optional[float]] = []

    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        self.prompts.append(prompt)
        self.temperatures.append(temperature)
        if self.error:
            raise self.error
        return self.reply


class FakeOllama(FakeEmbedder, FakeChat):
    """Both services in one object, like the real client."""

    def __init__(self, query_vector: Optional[List[float]] = None, reply: str = "The answer is 42."):
        FakeEmbedder.__init__(self, query_vector=query_vector)
        FakeChat.__init__(self, reply=reply)


class FakeLoader:
    """PDF loader stand-in serving fixed page texts."""

    def __init__(self, pages: Sequence[str], source: str = "doc.pdf", error: Exception = None):
        self.pages = list(pages)
        self.source = source
        self.error = error

    def load(self, pdf_path) -> List[Fragment]:
        if self.error:
            raise self.error
        return [
            Fragment(text=text, metadata={"source": self.source, "loc": {"pageNumber": i + 1}})
            for i, text in enumerate(self.pages)
        ]


def make_pdf(path: Path, pages: Sequence[str]) -> Path:
    """Write a PDF with one page per entry; empty strings give blank pages."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=11)
    doc.save(str(path))
    doc.close()
    return path


@pytest.fixture
def pdf_factory(tmp_path):
    """Build PDFs under tmp_path: ``pdf_factory(["page one", ""])``."""

    def _make(pages: Sequence[str], name: str = "doc.pdf") -> Path:
        return make_pdf(tmp_path / name, pages)

    return _make


@pytest.fixture
def rag_config() -> RAGConfig:
    """Default configuration, independent of the environment."""
    return RAGConfig()


@pytest.fixture
def sample_records() -> List[EmbeddingRecord]:
    """Three records with distinct embeddings and page metadata."""
    return [
        EmbeddingRecord(
            id="chunk-0",
            text="Attention lets the model weigh every token in the sequence.",
            embedding=[1.0, 0.0, 0.0],
            metadata={"source": "paper.pdf", "loc": {"pageNumber": 1}, "chunkIndex": 0},
        ),
        EmbeddingRecord(
            id="chunk-1",
            text="Training ran for twelve hours on eight accelerators.",
            embedding=[0.0, 1.0, 0.0],
            metadata={"source": "paper.pdf", "page": 2, "chunkIndex": 1},
        ),
        EmbeddingRecord(
            id="chunk-2",
            text="The results table reports a BLEU score of 28.4 overall.",
            embedding=[0.5, 0.5, 0.7],
            metadata={"source": "paper.pdf", "chunkIndex": 2},
        ),
    ]


@pytest.fixture
def embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def chat() -> FakeChat:
    return FakeChat()


@pytest.fixture
def ollama() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def loader_factory():
    """Build a fake loader: ``loader_factory(["page one text", ...])``."""
    return FakeLoader
