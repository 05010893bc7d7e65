"""Unit tests for retrieval, ingestion and answer models."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from knowbase.models.answer import AnswerResult, AnswerStatus
from knowbase.models.ingestion import FileState, IngestionResult
from knowbase.models.rag import Chunk, ChunkMetadata, EmbeddingRecord


def _metadata(**overrides) -> ChunkMetadata:
    fields = {
        "source_file": "notes.txt",
        "file_type": "txt",
        "processed_time": datetime(2024, 1, 1, tzinfo=timezone.utc),  # noqa: UP017
        "start_index": 0,
        "word_count": 3,
        "total_words": 3,
        "chunk_number": 1,
    }
    fields.update(overrides)
    return ChunkMetadata(**fields)


class TestChunkMetadata:
    @pytest.mark.parametrize(
        "overrides",
        [{"start_index": -1}, {"word_count": 0}, {"total_words": 0}, {"chunk_number": 0}],
    )
    def test_bounds(self, overrides) -> None:
        with pytest.raises(ValidationError):
            _metadata(**overrides)

    def test_frozen(self) -> None:
        meta = _metadata()
        with pytest.raises(ValidationError):
            meta.chunk_number = 2


class TestEmbeddingRecord:
    def test_from_chunk_keeps_identity_and_metadata(self) -> None:
        chunk = Chunk(id="abc", content="one two three", metadata=_metadata())
        record = EmbeddingRecord.from_chunk(chunk, [0.1, 0.2])

        assert record.id == "abc"
        assert record.content == chunk.content
        assert record.metadata == chunk.metadata
        assert record.embedding == [0.1, 0.2]

    def test_json_round_trip_uses_snake_case_keys(self) -> None:
        record = EmbeddingRecord(id="x", content="c", metadata=_metadata(), embedding=[1.0])
        dumped = record.model_dump(mode="json")

        assert set(dumped["metadata"]) >= {"source_file", "processed_time", "chunk_number"}
        assert EmbeddingRecord.model_validate(dumped) == record


class TestResults:
    def test_ingestion_result_defaults(self) -> None:
        result = IngestionResult(source_file="a.pdf", state=FileState.COMPLETED)
        assert result.failed_chunks == []
        assert result.error is None

    @pytest.mark.parametrize(
        ("status", "ok"),
        [
            (AnswerStatus.ANSWERED, True),
            (AnswerStatus.NO_RELEVANT_CONTENT, True),
            (AnswerStatus.GENERATION_FAILED, False),
            (AnswerStatus.EMBEDDING_FAILED, False),
        ],
    )
    def test_answer_ok(self, status: AnswerStatus, ok: bool) -> None:
        assert AnswerResult(question="q", answer="a", status=status).ok is ok
