"""Embedding generation service (provider-agnostic)."""

from __future__ import annotations

from typing import List, Optional

from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from document_retrieval.config import EmbeddingProvider, EmbeddingSettings, get_settings
from document_retrieval.utils.errors import EmbeddingError
from document_retrieval.utils.logging import get_logger

logger = get_logger("embedding_service")


class EmbeddingService:
    """
    Embed single texts using a configurable provider.

    Providers:
    - openai: OpenAI direct API
    - azure: Azure OpenAI (requires deployment + quota)

    Transient failures are retried here with exponential backoff; callers
    that fan out over many texts never retry on their own.
    """

    def __init__(self, settings: Optional[EmbeddingSettings] = None) -> None:
        self._settings = settings or get_settings().embedding
        self._provider = self._settings.provider
        self._model_name = self._settings.resolved_model_name
        self._client = None  # lazy

    @property
    def model_name(self) -> str:
        return self._model_name

    def _get_client(self):
        """Create the appropriate OpenAI client for the selected provider."""
        if self._client is not None:
            return self._client

        from openai import AsyncAzureOpenAI, AsyncOpenAI

        if self._provider == EmbeddingProvider.OPENAI:
            if not self._settings.openai_api_key:
                raise EmbeddingError(
                    "OPENAI_API_KEY is required when EMBEDDING_PROVIDER=openai",
                    model=self._model_name,
                )
            self._client = AsyncOpenAI(
                api_key=self._settings.openai_api_key,
                base_url=self._settings.openai_base_url,
                timeout=self._settings.embedding_timeout,
            )
            return self._client

        if self._provider == EmbeddingProvider.AZURE:
            if not self._settings.is_configured:
                raise EmbeddingError(
                    "Azure embeddings require AZURE_OPENAI_ENDPOINT, AZURE_OPENAI_API_KEY, and EMBEDDING_DEPLOYMENT_NAME",
                    model=self._model_name,
                )
            self._client = AsyncAzureOpenAI(
                api_key=self._settings.azure_openai_api_key,
                azure_endpoint=self._settings.azure_openai_endpoint,
                api_version=self._settings.azure_openai_api_version,
                timeout=self._settings.embedding_timeout,
            )
            return self._client

        raise EmbeddingError(f"Unsupported embedding provider: {self._provider}", model=self._model_name)

    async def _embed_once(self, text: str) -> List[float]:
        client = self._get_client()
        try:
            resp = await client.embeddings.create(model=self._model_name, input=[text])
        except Exception as e:
            raise EmbeddingError(f"Embedding request failed: {e}", model=self._model_name) from e

        if not resp.data:
            raise EmbeddingError("Embedding response was empty", model=self._model_name)
        return list(resp.data[0].embedding)

    async def embed(self, text: str) -> List[float]:
        """
        Embed one text, retrying rate limits and transient failures.

        Args:
            text: Text to embed

        Returns:
            Embedding vector

        Raises:
            EmbeddingError: If the provider is not configured or retries are exhausted
        """
        # configuration problems are not transient
        self._get_client()

        async for attempt in AsyncRetrying(
            reraise=True,
            stop=stop_after_attempt(max(1, self._settings.embedding_max_retries)),
            wait=wait_exponential(multiplier=1, min=1, max=30),
            retry=retry_if_exception_type(EmbeddingError),
        ):
            with attempt:
                return await self._embed_once(text)
        # unreachable due to reraise=True, but keeps type checkers happy
        raise EmbeddingError("Embedding retries exhausted", model=self._model_name)

    async def close(self) -> None:
        """Close the underlying HTTP client, if one was created."""
        if self._client is not None:
            await self._client.close()
            self._client = None
