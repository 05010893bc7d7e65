"""Pydantic models shared across knowbase."""

from knowbase.models.answer import AnswerResult, AnswerStatus, Citation
from knowbase.models.ingestion import FileDiscovered, FileState, IngestionResult
from knowbase.models.rag import (
    Chunk,
    ChunkMetadata,
    CorpusStats,
    EmbeddingRecord,
    QueryResult,
)

__all__ = [
    "AnswerResult",
    "AnswerStatus",
    "Chunk",
    "ChunkMetadata",
    "Citation",
    "CorpusStats",
    "EmbeddingRecord",
    "FileDiscovered",
    "FileState",
    "IngestionResult",
    "QueryResult",
]
