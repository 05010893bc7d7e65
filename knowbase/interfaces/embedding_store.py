"""Abstract base class for the embedding record store.

The store is a flat, append-only, ordered collection of
:class:`~knowbase.models.rag.EmbeddingRecord`.  There is no index: every
read returns everything and retrieval scans it all.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence

from knowbase.models.rag import CorpusStats, EmbeddingRecord


# Concrete implementation: JSONEmbeddingStore
# Located in: knowbase/providers/store/
class IEmbeddingStore(ABC):
    """Contract for durable embedding record storage."""

    @abstractmethod
    async def load_all(self) -> list[EmbeddingRecord]:
        """Return every persisted record in insertion order.

        Returns an empty list when nothing has been persisted yet.

        Raises
        ------
        knowbase.utils.errors.StoreCorruptedError
            If the persisted data cannot be parsed.
        """

    @abstractmethod
    async def append(self, records: Sequence[EmbeddingRecord]) -> int:
        """Append *records* after the existing ones and persist the result.

        The write is atomic from a reader's point of view: a reader sees
        either the old collection or the new one, never a partial file.

        Returns
        -------
        int
            Total number of records in the store after the append.

        Raises
        ------
        knowbase.utils.errors.StorageError
            One of its subclasses on malformed existing data, a full disk,
            or a writer-lock timeout.  On failure nothing is persisted.
        """

    @abstractmethod
    async def stats(self) -> CorpusStats:
        """Return record and source counts for the persisted collection."""

    @abstractmethod
    def get_store_name(self) -> str:
        """Return a human-readable identifier for this store."""
