"""Ollama client wrapper for embeddings and chat, with error handling."""
import json
from typing import Any, Dict, List, Optional

import httpx
import structlog

from pdfrag import config
from pdfrag.errors import ChatServiceError, EmbeddingServiceError
from pdfrag.rag.similarity import parse_vector

logger = structlog.get_logger()


class OllamaClient:
    """Async client for the Ollama embedding and chat APIs."""

    def __init__(
        self,
        base_url: str = config.DEFAULT_OLLAMA_BASE_URL,
        chat_model: str = config.DEFAULT_CHAT_MODEL,
        embedding_model: str = config.DEFAULT_EMBEDDING_MODEL,
        timeout: float = config.DEFAULT_OLLAMA_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize Ollama client.

        Args:
            base_url: Ollama API base URL
            chat_model: Model used by ``chat`` and ``invoke``
            embedding_model: Model used by the embedding methods
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests pass a MockTransport)
        """
        self.base_url = base_url.rstrip("/")
        self.chat_model = chat_model
        self.embedding_model = embedding_model
        self.timeout = timeout
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: config.RAGConfig, **kwargs) -> "OllamaClient":
        return cls(
            base_url=cfg.ollama_base_url,
            chat_model=cfg.chat_model,
            embedding_model=cfg.embedding_model,
            timeout=cfg.ollama_timeout,
            **kwargs,
        )

    def _client(self, timeout: Optional[float] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout or self.timeout,
            transport=self._transport,
        )

    async def chat(
        self,
        messages: List[Dict[str, str]],
        model: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> Dict[str, Any]:
        """Send a chat completion request to Ollama.

        Args:
            messages: List of message dicts with 'role' and 'content'
            model: Model to use (defaults to the client's chat model)
            temperature: Sampling temperature (0.0-2.0)

        Returns:
            Response dict with 'message' containing 'content'

        Raises:
            ChatServiceError: On connection or API errors
        """
        model = model or self.chat_model

        payload: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "stream": False,
        }

        if temperature is not None:
            payload["options"] = {"temperature": temperature}

        try:
            async with self._client() as client:
                logger.info(
                    "ollama_chat_request",
                    model=model,
                    message_count=len(messages),
                )

                response = await client.post("/api/chat", json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.ConnectError as e:
            logger.error("ollama_connection_error", error=str(e), base_url=self.base_url)
            raise ChatServiceError(f"Cannot reach Ollama at {self.base_url}: {e}") from e
        except httpx.HTTPError as e:
            logger.error(
                "ollama_http_error",
                error=str(e),
                status_code=getattr(getattr(e, "response", None), "status_code", None),
            )
            raise ChatServiceError(f"Chat request failed: {e}") from e
        except ValueError as e:
            raise ChatServiceError(f"Chat response is not valid JSON: {e}") from e

        logger.info(
            "ollama_chat_response",
            model=model,
            response_length=len((data.get("message") or {}).get("content") or ""),
        )

        return data

    async def invoke(self, prompt: str, temperature: Optional[float] = None) -> str:
        """Send a single user prompt and return the reply text.

        Falls back to the JSON-encoded response when it has no message content.
        """
        data = await self.chat(
            [{"role": "user", "content": prompt}], temperature=temperature
        )
        content = (data.get("message") or {}).get("content")
        if content is None:
            return json.dumps(data)
        return content

    async def embed_documents(self, texts: List[str]) -> List[List[float]]:
        """Embed a batch of texts in one request.

        Args:
            texts: Texts to embed

        Returns:
            One vector per input text, in input order

        Raises:
            EmbeddingServiceError: On API errors or malformed responses
        """
        if not texts:
            return []

        payload = {"model": self.embedding_model, "input": list(texts)}

        try:
            async with self._client() as client:
                logger.debug(
                    "ollama_embedding_request",
                    model=self.embedding_model,
                    batch_size=len(texts),
                )

                response = await client.post("/api/embed", json=payload)
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPError as e:
            logger.error("ollama_embedding_error", error=str(e))
            raise EmbeddingServiceError(f"Embedding request failed: {e}") from e
        except ValueError as e:
            raise EmbeddingServiceError(f"Embedding response is not valid JSON: {e}") from e

        embeddings = data.get("embeddings")
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise EmbeddingServiceError(
                f"Expected {len(texts)} embeddings, got "
                f"{len(embeddings) if isinstance(embeddings, list) else type(embeddings).__name__}"
            )

        vectors = [parse_vector(vector) for vector in embeddings]

        logger.debug(
            "ollama_embedding_response",
            model=self.embedding_model,
            count=len(vectors),
            dimension=len(vectors[0]) if vectors else 0,
        )

        return vectors

    async def embed_query(self, text: str) -> List[float]:
        """Embed a single query text."""
        vectors = await self.embed_documents([text])
        return vectors[0]

    async def list_models(self) -> List[str]:
        """List all available Ollama models.

        Raises:
            httpx.HTTPError: On API errors
        """
        try:
            async with self._client(timeout=5.0) as client:
                response = await client.get("/api/tags")
                response.raise_for_status()
                data = response.json()
                return [m["name"] for m in data.get("models", [])]
        except httpx.HTTPError as e:
            logger.error("ollama_list_models_error", error=str(e))
            raise
