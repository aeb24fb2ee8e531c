"""Embedding providers for query vectors.

Supports OpenAI, Ollama and Cohere. Providers report failure as a value:
``generate_embedding`` returns ``None`` when no vector could be produced, so
callers can branch to a fallback without exception-driven control flow.
"""

import asyncio
from enum import Enum
from typing import Protocol

import httpx
from loguru import logger
from openai import APIError, APIStatusError, APITimeoutError, AsyncOpenAI, RateLimitError
from pydantic import BaseModel, Field

from issue_search.exceptions import ConfigurationError


class EmbeddingInputKind(str, Enum):
    """What the embedded text will be used for."""

    QUERY = "query"
    DOCUMENT = "document"


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        model: Model identifier with provider prefix (e.g., "openai/text-embedding-3-small")
        dimensions: Expected embedding dimensionality
        batch_size: Number of texts to embed per API call
        max_retries: Maximum retry attempts for transient failures
        timeout_seconds: API request timeout
        api_key: API key for external services (set via env var)
        api_keys: Additional keys to rotate through (Cohere)
        base_url: Service URL for self-hosted models (Ollama)
    """

    model: str
    dimensions: int = Field(ge=128, le=4096)
    batch_size: int = Field(default=100, ge=1, le=500)
    max_retries: int = Field(default=3, ge=1, le=10)
    timeout_seconds: float = Field(default=30.0, ge=1.0, le=300.0)
    api_key: str | None = None
    api_keys: list[str] = Field(default_factory=list)
    base_url: str | None = None

    @property
    def model_name(self) -> str:
        """Model name without the provider prefix."""
        return self.model.split("/", 1)[1] if "/" in self.model else self.model

    def all_api_keys(self) -> list[str]:
        """Configured keys in rotation order (list first, then the single key)."""
        keys = [k for k in self.api_keys if k and k.strip()]
        if not keys and self.api_key:
            keys.append(self.api_key)
        return keys


class EmbeddingProvider(Protocol):
    """Protocol for query embedding providers."""

    async def generate_embedding(
        self, text: str, input_kind: EmbeddingInputKind = EmbeddingInputKind.QUERY
    ) -> list[float] | None:
        """Generate an embedding for a single text.

        Args:
            text: Input text
            input_kind: Whether the text is a search query or a stored document

        Returns:
            Embedding vector, or None if the provider could not produce one
        """
        ...


def _has_expected_dimensions(vector: list[float], dimensions: int, provider: str) -> bool:
    if len(vector) != dimensions:
        logger.warning(f"{provider} returned {len(vector)} dimensions, expected {dimensions}")
        return False
    return True


class OpenAIEmbedding:
    """OpenAI embedding client with retry logic and batching."""

    def __init__(self, config: EmbeddingConfig):
        """Initialize OpenAI client.

        Args:
            config: Embedding configuration with API key
        """
        self.config = config
        # Retries are driven by embed_batch, not by the SDK
        self.client = AsyncOpenAI(
            api_key=config.api_key, timeout=config.timeout_seconds, max_retries=0
        )
        self.model_name = config.model_name

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        """Generate embeddings for a batch of texts with retry logic.

        Args:
            texts: List of input texts (max batch_size)

        Returns:
            List of embedding vectors (same order as inputs)

        Raises:
            ValueError: If batch size exceeds config limit or dimensions mismatch
            openai.APIError: For API failures after all retries
        """
        if len(texts) > self.config.batch_size:
            raise ValueError(f"Batch size {len(texts)} exceeds limit {self.config.batch_size}")

        if not texts:
            return []

        for attempt in range(self.config.max_retries):
            try:
                response = await self.client.embeddings.create(model=self.model_name, input=texts)

                embeddings = [item.embedding for item in response.data]

                for i, emb in enumerate(embeddings):
                    if len(emb) != self.config.dimensions:
                        raise ValueError(
                            f"Expected {self.config.dimensions} dimensions, "
                            f"got {len(emb)} for text {i}"
                        )

                logger.debug(
                    f"Embedded {len(texts)} texts with {self.model_name} "
                    f"(attempt {attempt + 1}/{self.config.max_retries})"
                )
                return embeddings

            except APITimeoutError as e:
                logger.warning(
                    f"Timeout embedding batch "
                    f"(attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2**attempt)  # Exponential backoff
                else:
                    raise

            except RateLimitError as e:
                logger.warning(
                    f"Rate limited (attempt {attempt + 1}/{self.config.max_retries}): {e}"
                )
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(2 ** (attempt + 1))  # Longer backoff
                else:
                    raise

            except APIStatusError as e:
                logger.error(f"HTTP error embedding batch: {e}")
                raise

        raise RuntimeError("Exhausted all retry attempts")

    async def generate_embedding(
        self, text: str, input_kind: EmbeddingInputKind = EmbeddingInputKind.QUERY
    ) -> list[float] | None:
        """Embed a single text, returning None on any provider failure."""
        if not text or not text.strip():
            return None
        try:
            embeddings = await self.embed_batch([text])
        except (httpx.HTTPError, APIError, ValueError, RuntimeError) as e:
            logger.warning(f"OpenAI embedding unavailable: {e}")
            return None
        return embeddings[0]


class OllamaEmbedding:
    """Embedding client for a self-hosted Ollama server."""

    def __init__(self, config: EmbeddingConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.model_name = config.model_name
        self.client = client or httpx.AsyncClient(
            base_url=config.base_url or "http://localhost:11434",
            timeout=config.timeout_seconds,
        )

    async def is_available(self) -> bool:
        """Return True if the Ollama server answers its tag listing."""
        try:
            response = await self.client.get("/api/tags")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def generate_embedding(
        self, text: str, input_kind: EmbeddingInputKind = EmbeddingInputKind.QUERY
    ) -> list[float] | None:
        if not text or not text.strip():
            return None

        try:
            response = await self.client.post(
                "/api/embeddings", json={"model": self.model_name, "prompt": text}
            )
        except httpx.HTTPError as e:
            logger.warning(f"Ollama request failed: {e}")
            return None

        if not response.is_success:
            logger.warning(f"Ollama API returned {response.status_code}")
            return None

        embedding = response.json().get("embedding")
        if not embedding:
            logger.warning("Ollama response did not contain an embedding")
            return None

        vector = [float(v) for v in embedding]
        if not _has_expected_dimensions(vector, self.config.dimensions, "Ollama"):
            return None
        return vector


class CohereEmbedding:
    """Cohere embedding client rotating through configured API keys.

    Every request tries the keys in configured order; a 401 or 429 moves on to
    the next key, any other failure ends the attempt. No rotation state is
    kept between requests.
    """

    _INPUT_TYPES = {
        EmbeddingInputKind.QUERY: "search_query",
        EmbeddingInputKind.DOCUMENT: "search_document",
    }

    def __init__(self, config: EmbeddingConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self.model_name = config.model_name
        self.api_keys = config.all_api_keys()
        self.client = client or httpx.AsyncClient(
            base_url=config.base_url or "https://api.cohere.com",
            timeout=config.timeout_seconds,
        )

    async def generate_embedding(
        self, text: str, input_kind: EmbeddingInputKind = EmbeddingInputKind.QUERY
    ) -> list[float] | None:
        if not text or not text.strip():
            return None
        if not self.api_keys:
            logger.warning("Cohere embedding requested but no API key is configured")
            return None

        payload = {
            "model": self.model_name,
            "texts": [text],
            "input_type": self._INPUT_TYPES[input_kind],
            "embedding_types": ["float"],
        }

        for position, key in enumerate(self.api_keys, start=1):
            try:
                response = await self.client.post(
                    "/v1/embed",
                    json=payload,
                    headers={"Authorization": f"Bearer {key}"},
                )
            except httpx.HTTPError as e:
                logger.warning(f"Cohere request failed: {e}")
                return None

            if response.status_code in (401, 429):
                logger.warning(
                    f"Cohere key {position}/{len(self.api_keys)} "
                    f"rejected with {response.status_code}, rotating"
                )
                continue

            if not response.is_success:
                logger.error(f"Cohere API returned {response.status_code}")
                return None

            embeddings = response.json().get("embeddings", {})
            if isinstance(embeddings, dict):
                embeddings = embeddings.get("float", [])
            if not embeddings:
                logger.warning("Cohere response did not contain embeddings")
                return None

            vector = [float(v) for v in embeddings[0]]
            if not _has_expected_dimensions(vector, self.config.dimensions, "Cohere"):
                return None
            return vector

        logger.error("All Cohere API keys exhausted")
        return None


def create_embedding_provider(config: EmbeddingConfig) -> EmbeddingProvider:
    """Factory function to create an embedding provider based on model config.

    Args:
        config: Embedding configuration

    Returns:
        Embedding provider implementation

    Example:
        >>> config = EmbeddingConfig(
        ...     model="openai/text-embedding-3-small",
        ...     dimensions=1536,
        ...     api_key="sk-..."
        ... )
        >>> provider = create_embedding_provider(config)
    """
    if config.model.startswith("openai/"):
        return OpenAIEmbedding(config)
    elif config.model.startswith("ollama/"):
        return OllamaEmbedding(config)
    elif config.model.startswith("cohere/"):
        return CohereEmbedding(config)
    else:
        raise ConfigurationError(
            f"Unknown model prefix in {config.model!r}. "
            f"Expected 'openai/', 'ollama/' or 'cohere/'"
        )
