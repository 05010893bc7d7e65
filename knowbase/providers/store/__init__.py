"""Embedding record stores."""

from knowbase.providers.store.json_embedding_store import JSONEmbeddingStore

__all__ = ["JSONEmbeddingStore"]
