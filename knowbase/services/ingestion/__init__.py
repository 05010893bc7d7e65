"""Document ingestion pipeline for the knowbase knowledge base.

Pipeline stages:

1. **Extract** (source_processors/) -- per-format extractors turn Word,
   Excel, PDF, transcript/caption and EPUB files into raw text.
2. **Chunk** (chunker.py / TextChunker) -- fixed-size overlapping word
   windows with position metadata.
3. **Embed** (via IEmbeddingProvider) -- one vector per chunk, in chunk order.
4. **Store** (via IEmbeddingStore) -- one append per document.

IngestionService owns the per-file state machine; DirectoryWatcher feeds
it from the input directory.
"""

from knowbase.services.ingestion.chunker import TextChunker
from knowbase.services.ingestion.ingestion_service import IngestionService
from knowbase.services.ingestion.watcher import DirectoryWatcher

__all__ = [
    "DirectoryWatcher",
    "IngestionService",
    "TextChunker",
]
