"""Embedding client abstraction for provider-agnostic vector generation.

Supports Ollama (both the legacy ``/api/embeddings`` and the newer
``/api/embed`` request shapes) and OpenAI-compatible embedding APIs. Clients
never raise for provider problems: every call returns an `EmbeddingResult`
whose status tells the caller whether semantic search is usable.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import httpx
from loguru import logger
from openai import APIError, AsyncOpenAI
from pydantic import BaseModel, Field, ValidationError

from game_search.models import EmbeddingResult


class EmbeddingConfig(BaseModel):
    """Configuration for embedding generation.

    Attributes:
        provider: Backend family ("ollama" or "openai")
        base_url: Provider endpoint; empty disables Ollama embeddings
        model: Model identifier (e.g., "nomic-embed-text")
        timeout_seconds: Per-request timeout
        api_key: API key for hosted providers (set via env var)
    """

    provider: str = Field(default="ollama", pattern="^(ollama|openai)$")
    base_url: str = ""
    model: str = "nomic-embed-text"
    timeout_seconds: float = Field(default=12.0, ge=0.1, le=300.0)
    api_key: str | None = None


def normalize_base_url(base_url: str) -> str:
    """Strip whitespace and trailing slashes from a base URL."""
    return base_url.strip().rstrip("/")


class EmbeddingClient(Protocol):
    """Protocol for embedding client implementations."""

    @property
    def enabled(self) -> bool:
        """Whether calls may reach the provider at all."""
        ...

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate an embedding for a single text.

        Args:
            text: Input text

        Returns:
            EmbeddingResult with status ok, disabled or failed
        """
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


@dataclass(frozen=True)
class SingleEmbeddingShape:
    """``POST /api/embeddings`` with a prompt, answering ``{"embedding": [...]}``."""

    path: str = "/api/embeddings"

    def request_body(self, model: str, text: str) -> dict[str, Any]:
        return {"model": model, "prompt": text}

    def extract(self, data: Any) -> list[float] | None:
        vector = data.get("embedding") if isinstance(data, dict) else None
        return vector if isinstance(vector, list) and vector else None


@dataclass(frozen=True)
class BatchEmbeddingShape:
    """``POST /api/embed`` with a one-element batch, answering ``{"embeddings": [[...]]}``."""

    path: str = "/api/embed"

    def request_body(self, model: str, text: str) -> dict[str, Any]:
        return {"model": model, "input": [text]}

    def extract(self, data: Any) -> list[float] | None:
        vectors = data.get("embeddings") if isinstance(data, dict) else None
        if not isinstance(vectors, list) or not vectors:
            return None
        first = vectors[0]
        return first if isinstance(first, list) and first else None


# Tried in order; a 404 from one shape moves on to the next.
OLLAMA_SHAPES: tuple[SingleEmbeddingShape | BatchEmbeddingShape, ...] = (
    SingleEmbeddingShape(),
    BatchEmbeddingShape(),
)


class OllamaEmbedding:
    """Ollama embedding client that adapts to the server's API version."""

    def __init__(
        self,
        config: EmbeddingConfig,
        http_client: httpx.AsyncClient | None = None,
        shapes: tuple[SingleEmbeddingShape | BatchEmbeddingShape, ...] = OLLAMA_SHAPES,
    ):
        """Initialize Ollama client.

        Args:
            config: Embedding configuration with base URL and model
            http_client: Optional shared client (created on demand otherwise)
            shapes: Request shapes in priority order
        """
        self.config = config
        self.base_url = normalize_base_url(config.base_url)
        self.model_name = config.model.strip()
        self.shapes = shapes
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def enabled(self) -> bool:
        return bool(self.base_url and self.model_name)

    def _http(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.config.timeout_seconds)
        return self._client

    async def embed(self, text: str) -> EmbeddingResult:
        """Embed text, trying each request shape until one is supported."""
        if not self.enabled:
            return EmbeddingResult.disabled()
        if not text or not text.strip():
            return EmbeddingResult.failed("empty input text")

        for shape in self.shapes:
            url = f"{self.base_url}{shape.path}"
            try:
                response = await self._http().post(
                    url,
                    json=shape.request_body(self.model_name, text),
                    timeout=self.config.timeout_seconds,
                )
            except httpx.TimeoutException as e:
                logger.warning(f"Timeout embedding text via {url}: {e}")
                return EmbeddingResult.failed(f"timeout calling {shape.path}")
            except httpx.HTTPError as e:
                logger.warning(f"HTTP error embedding text via {url}: {e}")
                return EmbeddingResult.failed(f"transport error calling {shape.path}: {e}")

            if response.status_code == 404:
                logger.debug(f"{url} not found, trying next embedding shape")
                continue

            if not response.is_success:
                logger.warning(f"Embedding request to {url} failed (HTTP {response.status_code})")
                return EmbeddingResult.failed(f"HTTP {response.status_code} from {shape.path}")

            return self._parse(shape, response)

        return EmbeddingResult.failed("no supported embedding endpoint")

    def _parse(
        self, shape: SingleEmbeddingShape | BatchEmbeddingShape, response: httpx.Response
    ) -> EmbeddingResult:
        try:
            vector = shape.extract(response.json())
        except ValueError:
            vector = None
        if vector is None:
            logger.warning(f"Malformed embedding response from {shape.path}")
            return EmbeddingResult.failed(f"malformed response from {shape.path}")

        try:
            result = EmbeddingResult.ok(vector)
        except ValidationError as e:
            logger.warning(f"Invalid embedding vector from {shape.path}: {e}")
            return EmbeddingResult.failed(f"invalid vector from {shape.path}")

        logger.debug(f"Embedded text with {self.model_name} via {shape.path} ({len(vector)} dims)")
        return result

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None


class OpenAIEmbedding:
    """OpenAI-compatible embedding client."""

    def __init__(self, config: EmbeddingConfig):
        """Initialize OpenAI client.

        Args:
            config: Embedding configuration with API key
        """
        self.config = config

        # Extract model name (strip "openai/" prefix if present)
        self.model_name = config.model.strip().removeprefix("openai/")
        self.client: AsyncOpenAI | None = None
        if config.api_key:
            self.client = AsyncOpenAI(
                api_key=config.api_key,
                base_url=normalize_base_url(config.base_url) or None,
                timeout=config.timeout_seconds,
                max_retries=0,
            )

    @property
    def enabled(self) -> bool:
        return self.client is not None and bool(self.model_name)

    async def embed(self, text: str) -> EmbeddingResult:
        if not self.enabled or self.client is None:
            return EmbeddingResult.disabled()
        if not text or not text.strip():
            return EmbeddingResult.failed("empty input text")

        try:
            response = await self.client.embeddings.create(model=self.model_name, input=[text])
        except APIError as e:
            logger.warning(f"OpenAI embedding request failed: {e}")
            return EmbeddingResult.failed(f"openai error: {e}")
        except httpx.HTTPError as e:
            logger.warning(f"HTTP error embedding text with OpenAI: {e}")
            return EmbeddingResult.failed(f"transport error: {e}")

        if not response.data:
            return EmbeddingResult.failed("openai returned no embeddings")

        try:
            return EmbeddingResult.ok(list(response.data[0].embedding))
        except ValidationError as e:
            logger.warning(f"Invalid embedding vector from OpenAI: {e}")
            return EmbeddingResult.failed("invalid vector from openai")

    async def aclose(self) -> None:
        if self.client is not None:
            await self.client.close()


def create_embedding_client(
    config: EmbeddingConfig, http_client: httpx.AsyncClient | None = None
) -> EmbeddingClient:
    """Factory function to create embedding client based on provider config.

    Args:
        config: Embedding configuration
        http_client: Optional shared httpx client for the Ollama variant

    Returns:
        Embedding client implementation

    Example:
        >>> config = EmbeddingConfig(base_url="http://localhost:11434")
        >>> client = create_embedding_client(config)
    """
    if config.provider == "ollama":
        return OllamaEmbedding(config, http_client=http_client)
    elif config.provider == "openai":
        return OpenAIEmbedding(config)
    else:
        raise ValueError(
            f"Unknown embedding provider {config.provider!r}. Expected 'ollama' or 'openai'"
        )
