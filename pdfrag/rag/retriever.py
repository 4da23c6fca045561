"""Retriever and answer generation over a JSON embedding store.

Handles:
- Store loading
- Query embedding
- Cosine ranking with stable tie order
- Context and prompt assembly
- Chat model invocation
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Protocol, Sequence, Union

import structlog

from pdfrag.config import RAGConfig
from pdfrag.errors import ChatServiceError, EmbeddingServiceError
from pdfrag.rag.documents import EmbeddingRecord, SimilarityResult
from pdfrag.rag.similarity import cosine, parse_vector
from pdfrag.rag.store_json import JSONEmbeddingStore

logger = structlog.get_logger()

PROMPT_TEMPLATE = """You are a helpful assistant. Use the following context to answer the user's question thoroughly and in detail. If the answer is not contained in the context, say you don't know.

CONTEXT:
{context}

QUESTION:
{question}

"""


class QueryEmbedder(Protocol):
    async def embed_query(self, text: str) -> List[float]: ...


class ChatModel(Protocol):
    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str: ...


@dataclass
class Answer:
    """The model's reply plus the chunks it was given."""

    question: str
    text: str
    results: List[SimilarityResult] = field(default_factory=list)
    skipped: int = 0


def build_context(results: Sequence[SimilarityResult]) -> str:
    """Render ranked results as labeled blocks separated by a blank line."""
    return "\n\n".join(
        f"---chunk {result.rank} (id={result.id}, score={result.score:.4f})---\n{result.text}"
        for result in results
    )


def build_prompt(context: str, question: str) -> str:
    """Fill the answer prompt with the context and the verbatim question."""
    return PROMPT_TEMPLATE.format(context=context, question=question)


def rank_records(
    query_vector: Sequence[float],
    records: Sequence[EmbeddingRecord],
    top_k: int,
) -> List[SimilarityResult]:
    """Score records against a query vector and keep the best ``top_k``.

    Records without an embedding are skipped. Equal scores keep their
    store order.
    """
    valid = [record for record in records if record.embedding]
    skipped = len(records) - len(valid)
    if skipped:
        logger.warning("records_skipped", skipped=skipped, reason="missing or empty embedding")

    scored = [(cosine(query_vector, record.embedding), record) for record in valid]
    # sorted() is stable, so ties keep their original relative order
    scored = sorted(scored, key=lambda pair: pair[0], reverse=True)[:top_k]

    return [
        SimilarityResult(
            id=record.id,
            score=score,
            text=record.text,
            metadata=record.metadata,
            rank=rank,
        )
        for rank, (score, record) in enumerate(scored, 1)
    ]


class Retriever:
    """Answer questions from a JSON embedding store."""

    def __init__(self, config: RAGConfig, embedder: QueryEmbedder, chat: ChatModel):
        """Initialize the retriever.

        Args:
            config: Pipeline settings (top-k and chat temperature)
            embedder: Service with an async ``embed_query``
            chat: Chat model with an async ``invoke``
        """
        self.config = config
        self.embedder = embedder
        self.chat = chat

    def _log_results(
        self, records: Sequence[EmbeddingRecord], results: Sequence[SimilarityResult]
    ) -> None:
        logger.info(
            "retrieval_completed",
            records=len(records),
            results_returned=len(results),
            top_score=results[0].score if results else None,
        )
        for result in results:
            logger.debug(
                "retrieved_chunk",
                rank=result.rank,
                id=result.id,
                score=round(result.score, 4),
                page=result.page,
            )

    def load(self, store_path: Union[str, Path]) -> List[EmbeddingRecord]:
        """Read every record from the store (StoreReadError propagates)."""
        return JSONEmbeddingStore(store_path).read()

    async def embed_query(self, question: str) -> List[float]:
        """Embed the question.

        Raises:
            EmbeddingServiceError: If the call fails or the vector is empty
        """
        try:
            vector = await self.embedder.embed_query(question)
        except EmbeddingServiceError:
            raise
        except Exception as e:
            raise EmbeddingServiceError(f"Failed to compute query embedding: {e}") from e

        query_vector = parse_vector(vector)
        if not query_vector:
            raise EmbeddingServiceError("Failed to compute query embedding")

        logger.debug("query_embedded", dimension=len(query_vector))
        return query_vector

    async def answer(self, question: str, store_path: Union[str, Path]) -> Answer:
        """Answer a question from the chunks in the store.

        Args:
            question: Natural-language question, passed verbatim to the model
            store_path: JSON embedding store to search

        Returns:
            Answer with the model's text and the ranked chunks used

        Raises:
            StoreReadError: If the store cannot be read
            EmbeddingServiceError: If the query cannot be embedded
            ChatServiceError: If the chat model fails
        """
        records = self.load(store_path)
        query_vector = await self.embed_query(question)
        results = rank_records(query_vector, records, self.config.top_k)
        skipped = sum(1 for record in records if not record.embedding)
        self._log_results(records, results)

        prompt = build_prompt(build_context(results), question)

        logger.info(
            "generating_answer",
            chunks=len(results),
            prompt_length=len(prompt),
            temperature=self.config.chat_temperature,
        )

        try:
            text = await self.chat.invoke(prompt, temperature=self.config.chat_temperature)
        except ChatServiceError:
            raise
        except Exception as e:
            raise ChatServiceError(f"Chat model failed: {e}") from e

        return Answer(question=question, text=text, results=results, skipped=skipped)
