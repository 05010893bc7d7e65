"""Abstract provider interfaces.

Every external collaborator (embedding server, generation server, cache,
record store, per-format text extraction) is reached through one of these
ABCs so services never depend on a concrete backend.
"""

from knowbase.interfaces.cache_provider import ICacheProvider
from knowbase.interfaces.embedding_provider import IEmbeddingProvider
from knowbase.interfaces.embedding_store import IEmbeddingStore
from knowbase.interfaces.llm_provider import ILLMProvider
from knowbase.interfaces.text_extractor import ITextExtractor

__all__ = [
    "ICacheProvider",
    "IEmbeddingProvider",
    "IEmbeddingStore",
    "ILLMProvider",
    "ITextExtractor",
]
