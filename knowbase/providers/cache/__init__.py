"""Cache providers.

MemoryCacheProvider remembers generated answers for a
(question, retrieved chunks) pair so repeating a question does not call
the generation model again.  It is not shared across processes.
"""

from knowbase.providers.cache.memory_cache import MemoryCacheProvider

__all__ = ["MemoryCacheProvider"]
