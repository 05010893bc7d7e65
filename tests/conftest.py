"""Shared pytest fixtures for the knowbase test suite."""

from __future__ import annotations

import hashlib
import struct
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from knowbase.config.settings import BasePaths, Settings
from knowbase.interfaces.embedding_provider import IEmbeddingProvider
from knowbase.interfaces.llm_provider import ILLMProvider
from knowbase.models.rag import ChunkMetadata, EmbeddingRecord, QueryResult
from knowbase.utils.errors import EmbeddingError

_EMBEDDING_DIM = 8


def _hash_to_vector(text: str) -> list[float]:
    """Deterministic pseudo-embedding: SHA-256 bytes unpacked as signed ints."""
    digest = hashlib.sha256(text.encode("utf-8")).digest()
    values = struct.unpack(f"{_EMBEDDING_DIM}i", digest[: 4 * _EMBEDDING_DIM])
    return [v / 2**31 for v in values]


# ---------------------------------------------------------------------------
# Mock providers
# ---------------------------------------------------------------------------


class MockEmbeddingProvider(IEmbeddingProvider):
    """In-memory deterministic embedding provider for tests.

    Texts containing any of ``fail_on`` raise :class:`EmbeddingError`, which
    lets tests exercise per-chunk failure handling.
    """

    def __init__(self, fail_on: tuple[str, ...] = ()) -> None:
        self.fail_on = fail_on
        self.calls: list[str] = []

    async def embed(self, text: str) -> list[float]:
        self.calls.append(text)
        if any(marker in text for marker in self.fail_on):
            raise EmbeddingError(message="mock failure", provider_name="mock-embedding")
        return _hash_to_vector(text)

    def get_provider_name(self) -> str:
        return "mock-embedding"


@pytest.fixture
def mock_embedding_provider() -> MockEmbeddingProvider:
    """Mock IEmbeddingProvider returning deterministic hash-based vectors."""
    return MockEmbeddingProvider()


@pytest.fixture
def mock_llm_provider() -> ILLMProvider:
    """Mock ILLMProvider whose ``generate`` returns a fixed answer.

    Override with ``mock_llm_provider.generate.return_value = "..."`` or
    ``.side_effect`` for specific tests.
    """
    mock = MagicMock(spec=ILLMProvider)
    mock.get_provider_name.return_value = "mock-llm"
    mock.generate = AsyncMock(return_value="The answer is 42.")
    return mock


# ---------------------------------------------------------------------------
# Settings and paths
# ---------------------------------------------------------------------------


@pytest.fixture
def base_paths(tmp_path: Path) -> BasePaths:
    """BasePaths rooted in a fresh temporary directory."""
    return BasePaths(
        input_dir=str(tmp_path / "input"),
        processing_dir=str(tmp_path / "processing"),
        completed_dir=str(tmp_path / "completed"),
        error_dir=str(tmp_path / "error"),
        embeddings_file=str(tmp_path / "embeddings" / "embeddings.json"),
    )


@pytest.fixture
def make_settings(base_paths: BasePaths) -> Callable[..., Settings]:
    """Factory for Settings with temp paths and fast retry timing."""

    def _make(**overrides: Any) -> Settings:
        defaults: dict[str, Any] = {
            "base_paths": base_paths,
            "ollama_base_url": "http://localhost:11434",
            "embedding_retry_delay_seconds": 0.0,
            "watch_poll_interval_seconds": 0.05,
            "watch_settle_seconds": 0.0,
        }
        defaults.update(overrides)
        return Settings(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Model factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_record() -> Callable[..., EmbeddingRecord]:
    """Factory for EmbeddingRecord with sensible defaults."""
    counter = {"n": 0}

    def _make(
        embedding: list[float],
        content: str | None = None,
        source_file: str = "notes.txt",
        file_type: str = "txt",
        chunk_number: int = 1,
    ) -> EmbeddingRecord:
        counter["n"] += 1
        text = content if content is not None else f"record {counter['n']}"
        return EmbeddingRecord(
            id=f"rec-{counter['n']}",
            content=text,
            metadata=ChunkMetadata(
                source_file=source_file,
                file_type=file_type,
                processed_time=datetime(2024, 1, 1, tzinfo=timezone.utc),  # noqa: UP017
                start_index=0,
                word_count=max(1, len(text.split())),
                total_words=max(1, len(text.split())),
                chunk_number=chunk_number,
            ),
            embedding=embedding,
        )

    return _make


@pytest.fixture
def make_query_result() -> Callable[..., QueryResult]:
    """Factory for QueryResult."""

    def _make(
        content: str,
        similarity: float = 0.9,
        source_file: str = "notes.txt",
        chunk_number: int = 1,
    ) -> QueryResult:
        return QueryResult(
            content=content,
            similarity=similarity,
            metadata=ChunkMetadata(
                source_file=source_file,
                file_type=source_file.rsplit(".", 1)[-1],
                processed_time=datetime(2024, 1, 1, tzinfo=timezone.utc),  # noqa: UP017
                start_index=0,
                word_count=max(1, len(content.split())),
                total_words=max(1, len(content.split())),
                chunk_number=chunk_number,
            ),
        )

    return _make


@pytest.fixture
def sample_document_text() -> str:
    """Multi-paragraph text used by chunker and ingestion tests."""
    return (
        "The quarterly planning review covered three themes. First, the team "
        "agreed to move the billing migration to the second half of the year "
        "because the vendor contract renews in July.\n\n"
        "Second, onboarding documentation will be rewritten so that new "
        "engineers can ship a change in their first week. The owners are "
        "Priya and Tomasz.\n\n"
        "Third, the support rotation will be reduced from weekly to fortnightly "
        "shifts, with a retrospective scheduled after two cycles."
    )
