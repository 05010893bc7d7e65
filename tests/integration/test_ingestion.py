"""Integration tests for the ingestion orchestrator.

Real files in a temporary directory tree, the real JSON store and the real
transcript/PDF extractors; only the embedding and generation endpoints are
replaced by deterministic mocks.
"""

from __future__ import annotations

import asyncio
import json
import shutil
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from conftest import MockEmbeddingProvider
from knowbase.config.settings import DEFAULT_SUPPORTED_EXTENSIONS, BasePaths
from knowbase.interfaces.embedding_store import IEmbeddingStore
from knowbase.models.answer import AnswerStatus
from knowbase.models.ingestion import FileState
from knowbase.providers.cache.memory_cache import MemoryCacheProvider
from knowbase.providers.store.json_embedding_store import JSONEmbeddingStore
from knowbase.services.answer_generator import AnswerGenerator
from knowbase.services.ingestion.chunker import TextChunker
from knowbase.services.ingestion.ingestion_service import (
    INTERRUPTED_SUBDIR,
    UNSUPPORTED_SUBDIR,
    IngestionService,
    unique_destination,
)
from knowbase.services.qa_service import QAService
from knowbase.services.similarity_search import SimilaritySearch
from knowbase.utils.errors import StorageFullError

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_GREEK = "alpha beta gamma delta epsilon POISON zeta eta theta iota kappa lambda mu nu xi"


def _dirs(paths: BasePaths) -> dict[str, Path]:
    return {
        "input": Path(paths.input_dir),
        "processing": Path(paths.processing_dir),
        "completed": Path(paths.completed_dir),
        "error": Path(paths.error_dir),
    }


def _service(
    paths: BasePaths,
    embedder=None,
    store=None,
    chunk_size: int = 5,
    overlap: int = 0,
    **kwargs,
) -> IngestionService:
    service = IngestionService(
        chunker=TextChunker(chunk_size=chunk_size, overlap=overlap),
        embedding_provider=embedder or MockEmbeddingProvider(),
        store=store or JSONEmbeddingStore(paths.embeddings_file),
        paths=paths,
        supported_extensions=kwargs.pop("supported_extensions", DEFAULT_SUPPORTED_EXTENSIONS),
        poll_interval_seconds=0.05,
        settle_seconds=0.0,
        **kwargs,
    )
    service.ensure_directories()
    return service


def _drop(paths: BasePaths, name: str, content: str | bytes) -> Path:
    path = Path(paths.input_dir) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(content, bytes):
        path.write_bytes(content)
    else:
        path.write_text(content, encoding="utf-8")
    return path


async def _wait_for(predicate, timeout: float = 5.0) -> None:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.02)


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------


class TestCompleted:
    @pytest.mark.asyncio
    async def test_file_is_embedded_stored_and_archived(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "notes.txt", "one two three four five six seven")

        result = await service.process_file(path)

        dirs = _dirs(base_paths)
        assert result.state is FileState.COMPLETED
        assert result.chunks_created == 2
        assert result.chunks_embedded == 2
        assert result.failed_chunks == []
        assert (dirs["completed"] / "notes.txt").exists()
        assert not path.exists()
        assert list(dirs["processing"].iterdir()) == []

        records = await JSONEmbeddingStore(base_paths.embeddings_file).load_all()
        assert [r.content for r in records] == ["one two three four five", "six seven"]
        assert {r.metadata.source_file for r in records} == {"notes.txt"}
        assert {r.metadata.file_type for r in records} == {"txt"}

    @pytest.mark.asyncio
    async def test_completed_name_collision_gets_suffix(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        (Path(base_paths.completed_dir) / "notes.txt").write_text("older", encoding="utf-8")
        path = _drop(base_paths, "notes.txt", "fresh words here")

        await service.process_file(path)

        completed = Path(base_paths.completed_dir)
        assert (completed / "notes.txt").read_text(encoding="utf-8") == "older"
        assert (completed / "notes_1.txt").read_text(encoding="utf-8") == "fresh words here"

    @pytest.mark.asyncio
    async def test_in_place_ingest_does_not_move_file(
        self, base_paths: BasePaths, tmp_path: Path
    ) -> None:
        service = _service(base_paths)
        path = tmp_path / "elsewhere.txt"
        path.write_text("stay right where you are", encoding="utf-8")

        result = await service.process_file(path, claim=False)

        assert result.state is FileState.COMPLETED
        assert path.exists()
        assert not (Path(base_paths.completed_dir) / "elsewhere.txt").exists()


# ---------------------------------------------------------------------------
# Partial and total embedding failure
# ---------------------------------------------------------------------------


class TestEmbeddingFailures:
    @pytest.mark.asyncio
    async def test_failed_chunk_is_skipped_and_document_completes(
        self, base_paths: BasePaths
    ) -> None:
        service = _service(base_paths, embedder=MockEmbeddingProvider(fail_on=("POISON",)))
        path = _drop(base_paths, "greek.txt", _GREEK)

        result = await service.process_file(path)

        assert result.state is FileState.COMPLETED
        assert result.chunks_created == 3
        assert result.chunks_embedded == 2
        assert result.failed_chunks == [2]
        records = await JSONEmbeddingStore(base_paths.embeddings_file).load_all()
        assert [r.metadata.chunk_number for r in records] == [1, 3]

    @pytest.mark.asyncio
    async def test_no_chunk_embedded_is_error(self, base_paths: BasePaths) -> None:
        service = _service(base_paths, embedder=MockEmbeddingProvider(fail_on=("alpha",)))
        path = _drop(base_paths, "doomed.txt", "alpha beta gamma")

        result = await service.process_file(path)

        error_dir = Path(base_paths.error_dir)
        assert result.state is FileState.ERROR
        assert result.failed_chunks == [1]
        assert (error_dir / "doomed.txt").exists()
        note = (error_dir / "doomed.txt.error.txt").read_text(encoding="utf-8")
        assert "No chunks could be embedded" in note
        assert not Path(base_paths.embeddings_file).exists()


# ---------------------------------------------------------------------------
# Extraction and unsupported types
# ---------------------------------------------------------------------------


class TestExtractionFailures:
    @pytest.mark.asyncio
    async def test_corrupt_pdf_moves_to_error_with_note(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "broken.pdf", b"\x00\x01 definitely not a document")

        result = await service.process_file(path)

        error_dir = Path(base_paths.error_dir)
        assert result.state is FileState.ERROR
        assert (error_dir / "broken.pdf").exists()
        assert "Cannot open PDF" in (error_dir / "broken.pdf.error.txt").read_text(
            encoding="utf-8"
        )

    @pytest.mark.asyncio
    async def test_empty_document_is_error(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "blank.txt", "   \n\n  ")

        result = await service.process_file(path)

        assert result.state is FileState.ERROR
        assert "No words to chunk" in (result.error or "")
        assert (Path(base_paths.error_dir) / "blank.txt").exists()

    @pytest.mark.asyncio
    async def test_unknown_extension_is_unsupported(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "readme.md", "# heading")

        result = await service.process_file(path)

        assert result.state is FileState.UNSUPPORTED_TYPE
        assert (Path(base_paths.error_dir) / UNSUPPORTED_SUBDIR / "readme.md").exists()
        assert not path.exists()

    @pytest.mark.asyncio
    async def test_extension_not_enabled_is_unsupported(self, base_paths: BasePaths) -> None:
        service = _service(base_paths, supported_extensions={".txt"})
        path = _drop(base_paths, "report.pdf", b"%PDF-1.4")

        result = await service.process_file(path)

        assert result.state is FileState.UNSUPPORTED_TYPE

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, base_paths: BasePaths) -> None:
        embedder = MagicMock()
        embedder.embed = AsyncMock(side_effect=RuntimeError("kaboom"))
        service = _service(base_paths, embedder=embedder)
        _drop(base_paths, "a.txt", "first file words")
        _drop(base_paths, "b.txt", "second file words")

        results = await service.drain()

        assert [r.state for r in results] == [FileState.ERROR, FileState.ERROR]
        assert all("kaboom" in (r.error or "") for r in results)
        assert sorted(p.name for p in Path(base_paths.error_dir).glob("*.txt")) == [
            "a.txt",
            "a.txt.error.txt",
            "b.txt",
            "b.txt.error.txt",
        ]


# ---------------------------------------------------------------------------
# Filesystem move failures
# ---------------------------------------------------------------------------

_MOVE_TARGET = "knowbase.services.ingestion.ingestion_service.shutil.move"


def _move_failing_when(predicate):
    """Return a ``shutil.move`` stand-in raising PermissionError when *predicate* matches."""
    real_move = shutil.move

    def move(src: str, dst: str) -> str:
        if predicate(Path(src), Path(dst)):
            raise PermissionError(13, "Permission denied", src)
        return real_move(src, dst)

    return move


class TestMoveFailures:
    @pytest.mark.asyncio
    async def test_unclaimable_file_does_not_stop_drain(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        locked = _drop(base_paths, "a_locked.txt", "held open by another writer")
        _drop(base_paths, "b_ok.txt", "one two three")
        move = _move_failing_when(lambda src, dst: src.name == "a_locked.txt")

        with patch(_MOVE_TARGET, side_effect=move):
            results = await service.drain()

        dirs = _dirs(base_paths)
        assert [r.source_file for r in results] == ["a_locked.txt", "b_ok.txt"]
        assert results[0].state is FileState.ERROR
        assert "Could not claim file" in (results[0].error or "")
        assert locked.exists()
        assert (dirs["error"] / "a_locked.txt.error.txt").exists()
        assert results[1].state is FileState.COMPLETED
        assert (dirs["completed"] / "b_ok.txt").exists()

    @pytest.mark.asyncio
    async def test_archive_failure_reports_error_and_keeps_going(
        self, base_paths: BasePaths
    ) -> None:
        service = _service(base_paths)
        _drop(base_paths, "a.txt", "one two three four five six seven")
        _drop(base_paths, "b.txt", "eight nine")
        completed = Path(base_paths.completed_dir)
        move = _move_failing_when(
            lambda src, dst: src.name == "a.txt" and dst.parent == completed
        )

        with patch(_MOVE_TARGET, side_effect=move):
            results = await service.drain()

        dirs = _dirs(base_paths)
        assert results[0].state is FileState.ERROR
        assert results[0].chunks_embedded == 2
        assert "could not be archived" in (results[0].error or "")
        assert (dirs["processing"] / "a.txt").exists()
        assert (dirs["error"] / "a.txt.error.txt").exists()
        assert results[1].state is FileState.COMPLETED

        records = await JSONEmbeddingStore(base_paths.embeddings_file).load_all()
        assert {r.metadata.source_file for r in records} == {"a.txt", "b.txt"}

    @pytest.mark.asyncio
    async def test_failed_move_to_error_still_writes_note(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "blank.txt", "   \n\n  ")
        error_dir = Path(base_paths.error_dir)
        move = _move_failing_when(lambda src, dst: dst.parent == error_dir)

        with patch(_MOVE_TARGET, side_effect=move):
            result = await service.process_file(path)

        assert result.state is FileState.ERROR
        assert (Path(base_paths.processing_dir) / "blank.txt").exists()
        assert "No words to chunk" in (error_dir / "blank.txt.error.txt").read_text(
            encoding="utf-8"
        )

    @pytest.mark.asyncio
    async def test_unsupported_file_left_in_place_when_move_fails(
        self, base_paths: BasePaths
    ) -> None:
        service = _service(base_paths)
        path = _drop(base_paths, "readme.md", "# heading")

        with patch(_MOVE_TARGET, side_effect=_move_failing_when(lambda src, dst: True)):
            result = await service.process_file(path)

        assert result.state is FileState.UNSUPPORTED_TYPE
        assert path.exists()


# ---------------------------------------------------------------------------
# Store failure
# ---------------------------------------------------------------------------


class TestStorageFailure:
    @pytest.mark.asyncio
    async def test_pending_records_are_dumped_beside_error_note(
        self, base_paths: BasePaths
    ) -> None:
        store = MagicMock(spec=IEmbeddingStore)
        store.append = AsyncMock(side_effect=StorageFullError())
        service = _service(base_paths, store=store)
        path = _drop(base_paths, "big.txt", "one two three four five six seven")

        result = await service.process_file(path)

        error_dir = Path(base_paths.error_dir)
        assert result.state is FileState.ERROR
        assert result.chunks_created == 2
        assert result.chunks_embedded == 2
        assert (error_dir / "big.txt").exists()
        assert "disk space" in (error_dir / "big.txt.error.txt").read_text(encoding="utf-8")
        pending = json.loads((error_dir / "big.txt.pending.json").read_text(encoding="utf-8"))
        assert [p["content"] for p in pending] == ["one two three four five", "six seven"]
        assert all(len(p["embedding"]) == 8 for p in pending)


# ---------------------------------------------------------------------------
# Interruption and recovery
# ---------------------------------------------------------------------------


class _BlockingEmbedder(MockEmbeddingProvider):
    def __init__(self) -> None:
        super().__init__()
        self.started = asyncio.Event()

    async def embed(self, text: str) -> list[float]:
        self.started.set()
        await asyncio.Event().wait()
        return []


class TestInterruption:
    def test_leftovers_move_to_interrupted_by_default(self, base_paths: BasePaths) -> None:
        service = _service(base_paths)
        leftover = Path(base_paths.processing_dir) / "halfway.txt"
        leftover.write_text("half done", encoding="utf-8")

        results = service.recover_interrupted()

        interrupted = Path(base_paths.error_dir) / INTERRUPTED_SUBDIR
        assert [(r.source_file, r.state, r.error) for r in results] == [
            ("halfway.txt", FileState.ERROR, "interrupted")
        ]
        assert (interrupted / "halfway.txt").exists()
        assert "interrupted" in (interrupted / "halfway.txt.error.txt").read_text(
            encoding="utf-8"
        )
        assert not leftover.exists()

    @pytest.mark.asyncio
    async def test_resume_policy_requeues_leftovers(self, base_paths: BasePaths) -> None:
        service = _service(base_paths, resume_interrupted=True)
        (Path(base_paths.processing_dir) / "halfway.txt").write_text(
            "half done words", encoding="utf-8"
        )

        assert service.recover_interrupted() == []
        assert (Path(base_paths.input_dir) / "halfway.txt").exists()

        results = await service.drain()
        assert [r.state for r in results] == [FileState.COMPLETED]

    @pytest.mark.asyncio
    async def test_cancellation_moves_claimed_file_to_interrupted(
        self, base_paths: BasePaths
    ) -> None:
        embedder = _BlockingEmbedder()
        service = _service(base_paths, embedder=embedder)
        path = _drop(base_paths, "slow.txt", "words that never finish embedding")

        task = asyncio.create_task(service.process_file(path))
        await asyncio.wait_for(embedder.started.wait(), timeout=5.0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        interrupted = Path(base_paths.error_dir) / INTERRUPTED_SUBDIR
        assert (interrupted / "slow.txt").exists()
        assert (interrupted / "slow.txt.error.txt").exists()
        assert list(Path(base_paths.processing_dir).iterdir()) == []


# ---------------------------------------------------------------------------
# Watch mode
# ---------------------------------------------------------------------------


class TestWatch:
    @pytest.mark.asyncio
    async def test_watch_processes_dropped_files_until_stopped(
        self, base_paths: BasePaths
    ) -> None:
        service = _service(base_paths)
        completed = Path(base_paths.completed_dir)
        _drop(base_paths, "before.txt", "present at startup")

        task = asyncio.create_task(service.watch())
        await _wait_for(lambda: (completed / "before.txt").exists())

        _drop(base_paths, "after.txt", "dropped while watching")
        await _wait_for(lambda: (completed / "after.txt").exists())

        service.stop()
        await asyncio.wait_for(task, timeout=5.0)

        records = await JSONEmbeddingStore(base_paths.embeddings_file).load_all()
        assert {r.metadata.source_file for r in records} == {"before.txt", "after.txt"}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class TestUniqueDestination:
    def test_free_name_is_kept(self, tmp_path: Path) -> None:
        assert unique_destination(tmp_path, "a.txt") == tmp_path / "a.txt"

    def test_taken_names_get_increasing_suffix(self, tmp_path: Path) -> None:
        (tmp_path / "a.txt").touch()
        (tmp_path / "a_1.txt").touch()
        assert unique_destination(tmp_path, "a.txt") == tmp_path / "a_2.txt"


# ---------------------------------------------------------------------------
# End to end
# ---------------------------------------------------------------------------


class TestIngestThenAsk:
    @pytest.mark.asyncio
    async def test_question_matching_a_chunk_cites_its_source(
        self, base_paths: BasePaths, mock_llm_provider
    ) -> None:
        embedder = MockEmbeddingProvider()
        store = JSONEmbeddingStore(base_paths.embeddings_file)
        service = _service(base_paths, embedder=embedder, store=store, chunk_size=50)
        _drop(base_paths, "billing.txt", "billing migration moves to the second half")
        _drop(base_paths, "rotation.txt", "support rotation becomes fortnightly")
        await service.drain()

        qa = QAService(
            embedder,
            SimilaritySearch(store),
            AnswerGenerator(mock_llm_provider, MemoryCacheProvider(), "llama3.1", "deepseek-r1"),
            top_k=2,
        )
        result = await qa.ask("support rotation becomes fortnightly")

        assert result.status is AnswerStatus.ANSWERED
        assert result.citations[0].source_file == "rotation.txt"
        assert result.citations[0].similarity == pytest.approx(1.0)
        prompt = mock_llm_provider.generate.call_args.args[0]
        assert "[Source: rotation.txt | chunk 1]" in prompt

    @pytest.mark.asyncio
    async def test_empty_store_gives_no_relevant_content(
        self, base_paths: BasePaths, mock_llm_provider
    ) -> None:
        store = JSONEmbeddingStore(base_paths.embeddings_file)
        qa = QAService(
            MockEmbeddingProvider(),
            SimilaritySearch(store),
            AnswerGenerator(mock_llm_provider, MemoryCacheProvider(), "llama3.1", "deepseek-r1"),
        )

        result = await qa.ask("anything at all?")

        assert result.status is AnswerStatus.NO_RELEVANT_CONTENT
        mock_llm_provider.generate.assert_not_awaited()
