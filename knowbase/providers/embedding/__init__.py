"""Embedding provider implementations.

Embeddings convert text into numeric vectors that capture its meaning.
The JSON store persists them and similarity search compares them.
"""

from knowbase.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider

__all__ = ["OllamaEmbeddingProvider"]
