"""Utility modules for knowbase.

- **errors** -- exception hierarchy rooted at KnowbaseError; each pipeline
  stage raises its own subclass so loops can contain per-item failures.
- **logging** -- structlog setup with console/JSON renderers.
- **text_normalizer** -- embedding input cleanup and transcript/caption
  cleaning for ingestion.
"""

from knowbase.utils.errors import (
    ConfigurationError,
    DimensionMismatchError,
    EmbeddingError,
    EmptyDocumentError,
    ExtractionError,
    GenerationError,
    KnowbaseError,
    SimilarityError,
    StorageError,
    StorageFullError,
    StoreCorruptedError,
    StoreLockTimeoutError,
    UndefinedSimilarityError,
    UnsupportedFileTypeError,
)
from knowbase.utils.logging import configure_logging, get_logger
from knowbase.utils.text_normalizer import (
    clean_text_for_embedding,
    preprocess_transcript,
    strip_caption_markup,
)

__all__ = [
    "ConfigurationError",
    "DimensionMismatchError",
    "EmbeddingError",
    "EmptyDocumentError",
    "ExtractionError",
    "GenerationError",
    "KnowbaseError",
    "SimilarityError",
    "StorageError",
    "StorageFullError",
    "StoreCorruptedError",
    "StoreLockTimeoutError",
    "UndefinedSimilarityError",
    "UnsupportedFileTypeError",
    "clean_text_for_embedding",
    "configure_logging",
    "get_logger",
    "preprocess_transcript",
    "strip_caption_markup",
]
