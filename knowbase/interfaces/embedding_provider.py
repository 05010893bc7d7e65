"""Abstract base class for text-embedding providers.

Defines the contract for turning a piece of text into a vector.  The
ingestion orchestrator embeds one chunk at a time and the QA service embeds
one question at a time, so the contract is single-text.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OllamaEmbeddingProvider
# Located in: knowbase/providers/embedding/
class IEmbeddingProvider(ABC):
    """Contract for text-embedding services used by ingestion and retrieval."""

    @abstractmethod
    async def embed(self, text: str) -> list[float]:
        """Generate an embedding vector for *text*.

        Parameters
        ----------
        text:
            Raw text.  Implementations normalise it before sending.

        Returns
        -------
        list[float]
            The embedding vector.  Its length is whatever the model returns.

        Raises
        ------
        knowbase.utils.errors.EmbeddingError
            If the text is empty after cleaning, or the endpoint fails in
            a way that is not retried, or retries are exhausted.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"ollama-nomic-embed-text"``."""
