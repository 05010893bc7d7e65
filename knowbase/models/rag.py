"""Retrieval data models for the knowbase knowledge base.

Defines Pydantic v2 models for chunks, embedded records, query results and
store statistics.  All models are frozen: a record is created once when its
chunk's embedding succeeds, appended to the store exactly once, and never
mutated afterwards.

Lifecycle:
    1. CHUNK: TextChunker slices a document's words into overlapping
       :class:`Chunk` objects with :class:`ChunkMetadata`.
    2. EMBED: each chunk that the embedding endpoint accepts becomes an
       :class:`EmbeddingRecord`.
    3. STORE: records are appended to the JSON store in chunk order.
    4. RETRIEVE: a query vector is scored against every record and the
       top-K come back as :class:`QueryResult`.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Chunk: the unit of embedding and retrieval.
# ---------------------------------------------------------------------------
class ChunkMetadata(BaseModel):
    """Provenance and position of a chunk within its source document."""

    model_config = ConfigDict(frozen=True)

    source_file: str = Field(description="File name of the source document.")
    file_type: str = Field(description='Extension without the dot, e.g. "pdf".')
    processed_time: datetime = Field(description="When the document was chunked (UTC).")
    start_index: int = Field(ge=0, description="Word offset of the chunk's first word.")
    word_count: int = Field(ge=1, description="Number of words in this chunk.")
    total_words: int = Field(ge=1, description="Number of words in the whole document.")
    chunk_number: int = Field(ge=1, description="1-based position in emission order.")


class Chunk(BaseModel):
    """A contiguous word-range slice of a source document's text."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Unique identifier (UUID) generated at chunk creation.")
    content: str = Field(description="The chunk's words joined by single spaces.")
    metadata: ChunkMetadata


# ---------------------------------------------------------------------------
# EmbeddingRecord: a chunk plus its vector, as persisted in the store.
# ---------------------------------------------------------------------------
class EmbeddingRecord(Chunk):
    """A :class:`Chunk` with the embedding vector returned by the inference server.

    The store does not validate dimensionality; similarity search rejects
    pairs of unequal length.
    """

    embedding: list[float] = Field(description="Embedding vector for ``content``.")

    @classmethod
    def from_chunk(cls, chunk: Chunk, embedding: list[float]) -> EmbeddingRecord:
        return cls(
            id=chunk.id,
            content=chunk.content,
            metadata=chunk.metadata,
            embedding=list(embedding),
        )


# ---------------------------------------------------------------------------
# QueryResult: one scored hit from similarity search.
# ---------------------------------------------------------------------------
class QueryResult(BaseModel):
    """A stored chunk scored against a query vector.  Never persisted."""

    model_config = ConfigDict(frozen=True)

    content: str
    metadata: ChunkMetadata
    similarity: float = Field(description="Cosine similarity in [-1, 1].")


# ---------------------------------------------------------------------------
# CorpusStats: snapshot of the store's size and composition.
# ---------------------------------------------------------------------------
class CorpusStats(BaseModel):
    """Aggregate statistics for the embedding store."""

    model_config = ConfigDict(frozen=True)

    total_records: int = Field(default=0, ge=0)
    total_sources: int = Field(default=0, ge=0)
    records_by_file_type: dict[str, int] = Field(default_factory=dict)
