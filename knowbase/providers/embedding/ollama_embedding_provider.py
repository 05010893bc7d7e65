"""Ollama embedding provider adapter.

Implements :class:`IEmbeddingProvider` against Ollama's native
``POST /api/embeddings`` endpoint (``{"model", "prompt"}`` in,
``{"embedding": [...]}`` out).  The ``httpx.AsyncClient`` is injected so the
application context owns its lifetime and tests can substitute a mock.

Retry policy: only HTTP 400 is treated as transient.  Ollama answers 400
intermittently for inputs it chokes on while a model is loading, and the
same cleaned prompt usually succeeds a few seconds later.  Everything else
(other statuses, transport failures, malformed bodies) fails at once.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx

from knowbase.config.settings import Settings
from knowbase.interfaces.embedding_provider import IEmbeddingProvider
from knowbase.utils.errors import EmbeddingError
from knowbase.utils.logging import get_logger
from knowbase.utils.text_normalizer import clean_text_for_embedding

_EMBEDDINGS_PATH = "/api/embeddings"
_RETRYABLE_STATUS = 400


class OllamaEmbeddingProvider(IEmbeddingProvider):
    """Embedding provider backed by a local Ollama server.

    Parameters
    ----------
    settings:
        Supplies the base URL, the embedding model name and the retry policy.
    http_client:
        Shared async HTTP client.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._http = http_client
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._model = settings.models.embedding
        self._timeout = settings.request_timeout_seconds
        self._max_retries = settings.embedding_max_retries
        self._retry_delay = settings.embedding_retry_delay_seconds
        self._logger = get_logger(__name__)

    # ------------------------------------------------------------------
    # IEmbeddingProvider implementation
    # ------------------------------------------------------------------

    async def embed(self, text: str) -> list[float]:
        cleaned = clean_text_for_embedding(text)
        if not cleaned:
            raise EmbeddingError(
                message="Text is empty after cleaning",
                provider_name=self.get_provider_name(),
            )

        url = f"{self._base_url}{_EMBEDDINGS_PATH}"
        payload = {"model": self._model, "prompt": cleaned}

        for attempt in range(1, self._max_retries + 1):
            try:
                response = await self._http.post(url, json=payload, timeout=self._timeout)
            except httpx.HTTPError as exc:
                raise EmbeddingError(
                    message=f"Embedding request failed: {exc}",
                    provider_name=self.get_provider_name(),
                ) from exc

            if response.status_code == 200:
                return self._parse_embedding(response)

            if response.status_code == _RETRYABLE_STATUS:
                self._logger.warning(
                    "embedding_bad_request",
                    model=self._model,
                    attempt=attempt,
                    max_retries=self._max_retries,
                    prompt_chars=len(cleaned),
                )
                if attempt < self._max_retries:
                    await asyncio.sleep(self._retry_delay)
                continue

            raise EmbeddingError(
                message=f"Embedding endpoint returned HTTP {response.status_code}",
                provider_name=self.get_provider_name(),
            )

        raise EmbeddingError(
            message=f"Embedding failed after {self._max_retries} attempts (HTTP 400)",
            provider_name=self.get_provider_name(),
        )

    def get_provider_name(self) -> str:
        return f"ollama-{self._model}"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse_embedding(self, response: httpx.Response) -> list[float]:
        try:
            body: Any = response.json()
        except ValueError as exc:
            raise EmbeddingError(
                message="Embedding response is not valid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        vector = body.get("embedding") if isinstance(body, dict) else None
        if (
            not isinstance(vector, list)
            or not vector
            or not all(
                isinstance(v, (int, float)) and not isinstance(v, bool) for v in vector
            )
        ):
            raise EmbeddingError(
                message="Embedding response has no numeric 'embedding' array",
                provider_name=self.get_provider_name(),
            )
        return [float(v) for v in vector]
