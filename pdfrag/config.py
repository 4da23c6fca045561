"""Application configuration with sensible defaults."""
import os
from dataclasses import dataclass
from typing import Mapping, Optional

# Ollama configuration
DEFAULT_OLLAMA_BASE_URL = "http://localhost:11434"
DEFAULT_CHAT_MODEL = "deepseek-v3.1:671b-cloud"
DEFAULT_EMBEDDING_MODEL = "nomic-embed-text"
DEFAULT_CHAT_TEMPERATURE = 0.1
DEFAULT_OLLAMA_TIMEOUT = 120.0

# RAG parameters (character-based, matching the splitter)
DEFAULT_CHUNK_SIZE = 1000
DEFAULT_CHUNK_OVERLAP = 200
DEFAULT_TOP_K = 9

# Content filter thresholds
MIN_CONTENT_LENGTH = 20  # trimmed length must be strictly greater
MIN_WORD_COUNT = 5

# Paths
DEFAULT_STORE_PATH = "./embeddings.json"

# Logging
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_LOG_FORMAT = "console"


def _get_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from e


def _get_float(environ: Mapping[str, str], name: str, default: float) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise ValueError(f"{name} must be a number, got {raw!r}") from e


@dataclass(frozen=True)
class RAGConfig:
    """Settings for the ingestion and retrieval pipelines.

    Built once at process start (usually with ``from_env``) and passed to
    the pipelines explicitly.
    """

    ollama_base_url: str = DEFAULT_OLLAMA_BASE_URL
    chat_model: str = DEFAULT_CHAT_MODEL
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    chat_temperature: float = DEFAULT_CHAT_TEMPERATURE
    ollama_timeout: float = DEFAULT_OLLAMA_TIMEOUT
    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    top_k: int = DEFAULT_TOP_K
    min_content_length: int = MIN_CONTENT_LENGTH
    min_word_count: int = MIN_WORD_COUNT
    log_level: str = DEFAULT_LOG_LEVEL
    log_format: str = DEFAULT_LOG_FORMAT

    def __post_init__(self):
        if self.chunk_size <= 0:
            raise ValueError(f"chunk_size must be positive, got {self.chunk_size}")
        if self.chunk_overlap < 0 or self.chunk_overlap >= self.chunk_size:
            raise ValueError(
                f"Overlap ({self.chunk_overlap}) must be between 0 and "
                f"chunk size ({self.chunk_size})"
            )
        if self.top_k <= 0:
            raise ValueError(f"top_k must be positive, got {self.top_k}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RAGConfig":
        """Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            RAGConfig with environment overrides applied

        Raises:
            ValueError: If a numeric variable cannot be parsed
        """
        env = os.environ if environ is None else environ

        return cls(
            ollama_base_url=env.get("OLLAMA_BASE_URL") or DEFAULT_OLLAMA_BASE_URL,
            chat_model=env.get("OLLAMA_MODEL") or DEFAULT_CHAT_MODEL,
            embedding_model=env.get("EMBEDDING_MODEL") or DEFAULT_EMBEDDING_MODEL,
            chat_temperature=_get_float(env, "CHAT_TEMPERATURE", DEFAULT_CHAT_TEMPERATURE),
            ollama_timeout=_get_float(env, "OLLAMA_TIMEOUT", DEFAULT_OLLAMA_TIMEOUT),
            chunk_size=_get_int(env, "CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
            chunk_overlap=_get_int(env, "CHUNK_OVERLAP", DEFAULT_CHUNK_OVERLAP),
            top_k=_get_int(env, "TOP_K", DEFAULT_TOP_K),
            min_content_length=_get_int(env, "MIN_CONTENT_LENGTH", MIN_CONTENT_LENGTH),
            min_word_count=_get_int(env, "MIN_WORD_COUNT", MIN_WORD_COUNT),
            log_level=(env.get("LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper(),
            log_format=(env.get("LOG_FORMAT") or DEFAULT_LOG_FORMAT).lower(),
        )
