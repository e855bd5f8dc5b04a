"""OpenAI-compatible embedding providers.

``OpenAIEmbedding`` talks to any endpoint implementing the OpenAI
Embeddings API through the official ``openai`` SDK. ``NovitaEmbedding``
is the same client pointed at Novita's OpenAI-compatible gateway.

Transient failures (rate limits, connection errors, 5xx) are retried with
exponential backoff; anything else surfaces immediately as
``OpenAIEmbeddingError``.
"""

from __future__ import annotations

import logging
import os
from typing import Any, List, Optional

import openai
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from code_explorer.libs.embedding.base_embedding import BaseEmbedding

logger = logging.getLogger(__name__)

TRANSIENT_ERRORS = (
    openai.RateLimitError,
    openai.APIConnectionError,
    openai.InternalServerError,
)


class OpenAIEmbeddingError(RuntimeError):
    """Raised when an embeddings API call fails."""


class OpenAIEmbedding(BaseEmbedding):
    """Embedding provider for OpenAI-compatible APIs.

    Attributes:
        model: Model identifier.
        dimensions: Optional output dimension (``text-embedding-3-*`` only).
        base_url: API base URL.
        max_retries: Attempts per batch, including the first.

    Example:
        >>> from code_explorer.core.settings import load_settings
        >>> embedding = OpenAIEmbedding(load_settings())
        >>> vectors = embedding.embed(["def add(a, b):", "class Foo:"])
    """

    DEFAULT_BASE_URL = "https://api.openai.com/v1"
    DEFAULT_MODEL = "text-embedding-3-small"
    API_KEY_ENV = "OPENAI_API_KEY"

    _MODEL_DIMENSIONS = {
        "text-embedding-3-small": 1536,
        "text-embedding-3-large": 3072,
        "text-embedding-ada-002": 1536,
        "baai/bge-m3": 1024,
    }

    def __init__(
        self,
        settings: Any,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[Any] = None,
    ) -> None:
        """Initialize the provider.

        Args:
            settings: Application settings; reads the ``embedding`` section.
            api_key: Optional key override (explicit > settings > environment).
            base_url: Optional base URL override.
            client: Pre-built SDK client, mainly for tests.

        Raises:
            ValueError: If no API key can be resolved and no client is given.
        """
        config = settings.embedding
        self.model = config.get("model") or self.DEFAULT_MODEL
        self.dimensions = config.get("dimensions")
        self.base_url = base_url or config.get("base_url") or self.DEFAULT_BASE_URL
        self.max_retries = int(config.get("max_retries", 3))
        backoff = float(config.get("retry_backoff_seconds", 1.0))

        self.api_key = (
            api_key
            or config.get("api_key")
            or os.environ.get(self.API_KEY_ENV)
            or os.environ.get("OPENAI_API_KEY")
        )
        if client is None and not self.api_key:
            raise ValueError(
                f"Embedding API key not provided. Set {self.API_KEY_ENV} "
                "or embedding.api_key in settings."
            )

        self._client = client
        self._create_with_retry = retry(
            stop=stop_after_attempt(max(1, self.max_retries)),
            wait=wait_exponential(multiplier=backoff, min=backoff, max=30),
            retry=retry_if_exception_type(TRANSIENT_ERRORS),
            reraise=True,
        )(self._create)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, base_url=self.base_url, max_retries=0)
        return self._client

    def _create(self, texts: List[str]) -> Any:
        params: dict[str, Any] = {"input": texts, "model": self.model}
        if self.dimensions is not None and "text-embedding-3" in self.model.lower():
            params["dimensions"] = self.dimensions
        return self.client.embeddings.create(**params)

    def embed(
        self,
        texts: List[str],
        trace: Optional[Any] = None,
    ) -> List[List[float]]:
        """Embed a batch of texts.

        Raises:
            ValueError: If *texts* is empty or contains blank entries.
            OpenAIEmbeddingError: If the API call fails after retries or the
                response does not line up with the input.
        """
        self.validate_texts(texts)

        try:
            response = self._create_with_retry(texts)
        except Exception as e:
            raise OpenAIEmbeddingError(f"Embeddings API call failed: {e}") from e

        try:
            embeddings = [list(item.embedding) for item in response.data]
        except (AttributeError, TypeError) as e:
            raise OpenAIEmbeddingError(f"Failed to parse embeddings response: {e}") from e

        if len(embeddings) != len(texts):
            raise OpenAIEmbeddingError(
                f"Output length mismatch: expected {len(texts)}, got {len(embeddings)}"
            )

        if trace is not None:
            trace.record_stage("embedding_call", {
                "provider": type(self).__name__,
                "model": self.model,
                "batch_size": len(texts),
            })
        return embeddings

    def get_dimension(self) -> Optional[int]:
        if self.dimensions is not None:
            return int(self.dimensions)
        return self._MODEL_DIMENSIONS.get(self.model)


class NovitaEmbedding(OpenAIEmbedding):
    """OpenAI-compatible embeddings served by Novita AI."""

    DEFAULT_BASE_URL = "https://api.novita.ai/v3/openai"
    DEFAULT_MODEL = "baai/bge-m3"
    API_KEY_ENV = "NOVITA_API_KEY"
