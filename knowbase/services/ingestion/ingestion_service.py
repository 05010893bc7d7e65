"""Orchestrator for document ingestion.

Pipeline stages: **claim -> extract -> chunk -> embed -> store -> archive**.

Each file moves through a small state machine and the directory it sits in
mirrors its state::

    input/ ──claim──> processing/ ──> completed/            COMPLETED
                                  └─> error/                ERROR
    input/ ─────────────────────────> error/unsupported/    UNSUPPORTED_TYPE

Claiming moves the file into the processing directory before any work, so
a later watcher tick cannot pick the same file up twice.  Failures are
contained per item:

- an embedding failure skips that chunk (recorded in ``failed_chunks``)
  and the document still completes with the chunks that did embed;
- an extraction failure, an empty document, a document where no chunk
  embedded, or a store failure moves the file to the error directory with
  a ``<name>.error.txt`` note beside it.  After a store failure the
  computed records are also written to ``<name>.pending.json``.

One bad document never stops the loop.

Files still in the processing directory at startup were interrupted by a
crash.  They are moved to ``error/interrupted/`` (or back to the input
directory when ``resume_interrupted`` is set) by :meth:`recover_interrupted`.
"""

from __future__ import annotations

import asyncio
import contextlib
import json
import shutil
import time
from collections.abc import Iterable, Sequence
from datetime import datetime, timezone
from pathlib import Path

import structlog

from knowbase.config.settings import BasePaths
from knowbase.interfaces.embedding_provider import IEmbeddingProvider
from knowbase.interfaces.embedding_store import IEmbeddingStore
from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.models.ingestion import FileDiscovered, FileState, IngestionResult
from knowbase.models.rag import EmbeddingRecord
from knowbase.services.ingestion.chunker import TextChunker
from knowbase.services.ingestion.source_processors import (
    default_extractors,
    get_extractor,
    require_extractor,
)
from knowbase.services.ingestion.watcher import DirectoryWatcher, list_candidate_files
from knowbase.utils.errors import (
    EmbeddingError,
    ExtractionError,
    StorageError,
)

logger = structlog.get_logger(logger_name=__name__)

UNSUPPORTED_SUBDIR = "unsupported"
INTERRUPTED_SUBDIR = "interrupted"
INTERRUPTED_REASON = "interrupted"


def unique_destination(directory: Path, name: str) -> Path:
    """Return ``directory / name``, suffixing ``_<n>`` before the extension if taken."""
    candidate = directory / name
    if not candidate.exists():
        return candidate
    stem, suffix = Path(name).stem, Path(name).suffix
    n = 1
    while True:
        candidate = directory / f"{stem}_{n}{suffix}"
        if not candidate.exists():
            return candidate
        n += 1


class _DocumentFailed(Exception):
    """Internal signal: the document ends in ERROR with *reason*."""

    def __init__(
        self,
        reason: str,
        chunks_created: int = 0,
        failed_chunks: list[int] | None = None,
        pending: list[EmbeddingRecord] | None = None,
    ) -> None:
        super().__init__(reason)
        self.reason = reason
        self.chunks_created = chunks_created
        self.failed_chunks = failed_chunks or []
        self.pending = pending or []


class IngestionService:
    """Drives files from the input directory into the embedding store.

    Parameters
    ----------
    chunker:
        Splits extracted text into overlapping word windows.
    embedding_provider:
        Embeds each chunk.
    store:
        Receives one append per document.
    paths:
        Input, processing, completed and error directories.
    supported_extensions:
        Extensions (with dot, lowercase) accepted for ingestion.
    extractors:
        Per-format extractors; defaults to every built-in one.
    poll_interval_seconds / settle_seconds:
        Watcher timing, see :class:`DirectoryWatcher`.
    resume_interrupted:
        Recovery policy for leftovers in the processing directory.
    """

    def __init__(
        self,
        chunker: TextChunker,
        embedding_provider: IEmbeddingProvider,
        store: IEmbeddingStore,
        paths: BasePaths,
        supported_extensions: Iterable[str],
        extractors: Sequence[ITextExtractor] | None = None,
        poll_interval_seconds: float = 2.0,
        settle_seconds: float = 1.0,
        resume_interrupted: bool = False,
    ) -> None:
        self._chunker = chunker
        self._embedding_provider = embedding_provider
        self._store = store
        self._input_dir = Path(paths.input_dir).expanduser()
        self._processing_dir = Path(paths.processing_dir).expanduser()
        self._completed_dir = Path(paths.completed_dir).expanduser()
        self._error_dir = Path(paths.error_dir).expanduser()
        self._supported = {ext.lower() for ext in supported_extensions}
        self._extractors = list(extractors) if extractors is not None else default_extractors()
        self._poll_interval = poll_interval_seconds
        self._settle_seconds = settle_seconds
        self._resume_interrupted = resume_interrupted
        self._stop_event = asyncio.Event()

    # ------------------------------------------------------------------
    # Directory management
    # ------------------------------------------------------------------

    def ensure_directories(self) -> None:
        for directory in (
            self._input_dir,
            self._processing_dir,
            self._completed_dir,
            self._error_dir,
        ):
            directory.mkdir(parents=True, exist_ok=True)

    def recover_interrupted(self) -> list[IngestionResult]:
        """Deal with files left in the processing directory by a crash.

        Returns an ERROR result for every file moved to
        ``error/interrupted/``.  Files sent back to the input directory
        (``resume_interrupted``) produce no result; they are processed again.
        """
        results: list[IngestionResult] = []
        for leftover in list_candidate_files(self._processing_dir):
            if self._resume_interrupted:
                dest = self._try_move(leftover, self._input_dir)
                if dest is not None:
                    logger.warning("ingestion_resumed_interrupted", file=dest.name)
                continue
            dest = self._try_move(leftover, self._error_dir / INTERRUPTED_SUBDIR)
            self._write_error_note(
                dest or self._error_note_target(leftover.name), INTERRUPTED_REASON
            )
            logger.warning(
                "ingestion_interrupted_file", file=leftover.name, moved_to=str(dest or leftover)
            )
            results.append(
                IngestionResult(
                    source_file=leftover.name,
                    state=FileState.ERROR,
                    error=INTERRUPTED_REASON,
                )
            )
        return results

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def is_supported(self, path: Path) -> bool:
        ext = path.suffix.lower()
        return ext in self._supported and get_extractor(ext, self._extractors) is not None

    async def process_file(self, path: Path, claim: bool = True) -> IngestionResult:
        """Run one file through the pipeline.

        With ``claim=True`` (the watcher/drain path) the file is moved through
        the processing, completed and error directories.  With
        ``claim=False`` it is ingested where it is and never moved.

        If the task is cancelled while the file is claimed, the file is moved
        to ``error/interrupted/`` before the cancellation propagates.
        """
        start = time.monotonic()
        source_name = path.name
        discovered = FileDiscovered(path=path)
        logger.info("ingestion_discovered", file=source_name, state=FileState.DISCOVERED.value)

        if not self.is_supported(path):
            dest = path
            if claim:
                dest = self._try_move(path, self._error_dir / UNSUPPORTED_SUBDIR) or path
            logger.warning(
                "ingestion_unsupported_type",
                file=source_name,
                extension=path.suffix.lower(),
                moved_to=str(dest),
            )
            return IngestionResult(
                source_file=source_name,
                state=FileState.UNSUPPORTED_TYPE,
                error=f"Unsupported file type: {path.suffix or '(none)'}",
                ingestion_time=time.monotonic() - start,
            )

        working = path
        if claim:
            try:
                working = self._move(path, self._processing_dir)
            except FileNotFoundError:
                logger.warning("ingestion_file_vanished", file=source_name)
                return IngestionResult(
                    source_file=source_name,
                    state=FileState.ERROR,
                    error="File disappeared before it could be claimed",
                    ingestion_time=time.monotonic() - start,
                )
            except OSError as exc:
                # The file stays in the input directory.
                reason = f"Could not claim file: {exc}"
                logger.error("ingestion_claim_failed", file=source_name, error=str(exc))
                self._write_error_note(self._error_note_target(source_name), reason)
                return IngestionResult(
                    source_file=source_name,
                    state=FileState.ERROR,
                    error=reason,
                    ingestion_time=time.monotonic() - start,
                )
        logger.info(
            "ingestion_processing",
            file=source_name,
            state=FileState.PROCESSING.value,
            discovered_at=discovered.discovered_at.isoformat(),
        )

        try:
            chunks_created, chunks_embedded, failed = await self._ingest(working, source_name)
        except asyncio.CancelledError:
            if claim:
                dest = self._try_move(
                    working, self._error_dir / INTERRUPTED_SUBDIR, source_name
                )
                if dest is not None:
                    self._write_error_note(dest, INTERRUPTED_REASON)
                logger.warning(
                    "ingestion_cancelled", file=source_name, moved_to=str(dest or working)
                )
            raise
        except _DocumentFailed as failure:
            return self._fail(
                working,
                source_name,
                failure,
                claim=claim,
                elapsed=time.monotonic() - start,
            )
        except Exception as exc:  # one bad document must not stop the loop
            logger.exception("ingestion_unexpected_error", file=source_name)
            return self._fail(
                working,
                source_name,
                _DocumentFailed(f"Unexpected error: {exc}"),
                claim=claim,
                elapsed=time.monotonic() - start,
            )

        if claim and self._try_move(working, self._completed_dir, source_name) is None:
            # Records are already stored; the file stays in processing and is
            # picked up by recovery on the next start.
            reason = "Embeddings stored but the file could not be archived"
            self._write_error_note(self._error_note_target(source_name), reason)
            return IngestionResult(
                source_file=source_name,
                state=FileState.ERROR,
                chunks_created=chunks_created,
                chunks_embedded=chunks_embedded,
                failed_chunks=failed,
                error=reason,
                ingestion_time=time.monotonic() - start,
            )

        result = IngestionResult(
            source_file=source_name,
            state=FileState.COMPLETED,
            chunks_created=chunks_created,
            chunks_embedded=chunks_embedded,
            failed_chunks=failed,
            ingestion_time=time.monotonic() - start,
        )
        logger.info(
            "ingestion_complete",
            file=source_name,
            state=result.state.value,
            chunks_created=chunks_created,
            chunks_embedded=chunks_embedded,
            failed_chunks=len(failed),
            ingestion_time_s=round(result.ingestion_time, 3),
        )
        return result

    async def drain(self) -> list[IngestionResult]:
        """Process every file currently in the input directory once, in name order."""
        self.ensure_directories()
        results: list[IngestionResult] = []
        for path in list_candidate_files(self._input_dir):
            if self._stop_event.is_set():
                break
            results.append(await self.process_file(path))
        _log_summary("ingestion_drain_complete", results)
        return results

    async def watch(self) -> None:
        """Recover, then watch the input directory until :meth:`stop` is called.

        A :class:`DirectoryWatcher` produces events onto a queue; this
        coroutine is the single consumer.  After :meth:`stop` the file in
        flight is finished and the loop exits; queued files stay in the
        input directory for the next run.
        """
        self.ensure_directories()
        self._stop_event.clear()
        self.recover_interrupted()

        queue: asyncio.Queue[FileDiscovered] = asyncio.Queue()
        watcher = DirectoryWatcher(
            self._input_dir,
            queue,
            poll_interval=self._poll_interval,
            settle_seconds=self._settle_seconds,
        )
        producer = asyncio.create_task(watcher.run(self._stop_event))
        try:
            while not self._stop_event.is_set():
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=self._poll_interval)
                except asyncio.TimeoutError:
                    continue
                if not event.path.exists():
                    continue
                await self.process_file(event.path)
        finally:
            self._stop_event.set()
            producer.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await producer
            logger.info("ingestion_watch_stopped", pending_events=queue.qsize())

    def stop(self) -> None:
        """Stop accepting new files; the file in flight is finished."""
        self._stop_event.set()

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    async def _ingest(self, working: Path, source_name: str) -> tuple[int, int, list[int]]:
        """Extract, chunk, embed and store one claimed file.

        Returns ``(chunks_created, chunks_embedded, failed_chunk_numbers)``.
        """
        ext = working.suffix.lower()
        extractor = require_extractor(ext, self._extractors)

        try:
            text = await asyncio.to_thread(extractor.extract_text, working)
            chunks = self._chunker.chunk(
                text, {"source_file": source_name, "file_type": ext.lstrip(".")}
            )
        except ExtractionError as exc:
            raise _DocumentFailed(str(exc)) from exc

        records: list[EmbeddingRecord] = []
        failed: list[int] = []
        for chunk in chunks:
            try:
                vector = await self._embedding_provider.embed(chunk.content)
            except EmbeddingError as exc:
                failed.append(chunk.metadata.chunk_number)
                logger.warning(
                    "chunk_embedding_failed",
                    file=source_name,
                    chunk_number=chunk.metadata.chunk_number,
                    error=str(exc),
                )
                continue
            records.append(EmbeddingRecord.from_chunk(chunk, vector))

        if not records:
            raise _DocumentFailed(
                f"No chunks could be embedded ({len(chunks)} attempted)",
                chunks_created=len(chunks),
                failed_chunks=failed,
            )

        try:
            await self._store.append(records)
        except StorageError as exc:
            raise _DocumentFailed(
                str(exc),
                chunks_created=len(chunks),
                failed_chunks=failed,
                pending=records,
            ) from exc

        return len(chunks), len(records), failed

    def _fail(
        self,
        working: Path,
        source_name: str,
        failure: _DocumentFailed,
        claim: bool,
        elapsed: float,
    ) -> IngestionResult:
        note_target = None
        if claim:
            note_target = self._try_move(working, self._error_dir, source_name)
        if note_target is None:
            note_target = self._error_note_target(source_name)

        self._write_error_note(note_target, failure.reason)
        if failure.pending:
            self._write_pending(note_target, failure.pending)

        logger.error(
            "ingestion_failed",
            file=source_name,
            state=FileState.ERROR.value,
            error=failure.reason,
            pending_records=len(failure.pending),
        )
        return IngestionResult(
            source_file=source_name,
            state=FileState.ERROR,
            chunks_created=failure.chunks_created,
            chunks_embedded=len(failure.pending),
            failed_chunks=failure.failed_chunks,
            error=failure.reason,
            ingestion_time=elapsed,
        )

    def _error_note_target(self, source_name: str) -> Path:
        """Path that notes for a file not moved into the error directory hang off."""
        self._error_dir.mkdir(parents=True, exist_ok=True)
        return self._error_dir / source_name

    @staticmethod
    def _try_move(src: Path, directory: Path, name: str | None = None) -> Path | None:
        """Like :meth:`_move` but log and return ``None`` when the move fails."""
        try:
            return IngestionService._move(src, directory, name)
        except OSError as exc:
            logger.error(
                "ingestion_move_failed",
                file=src.name,
                destination=str(directory),
                error=str(exc),
            )
            return None

    @staticmethod
    def _move(src: Path, directory: Path, name: str | None = None) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        dest = unique_destination(directory, name or src.name)
        shutil.move(str(src), str(dest))
        return dest

    @staticmethod
    def _write_error_note(file_path: Path, reason: str) -> None:
        note = file_path.with_name(f"{file_path.name}.error.txt")
        timestamp = datetime.now(tz=timezone.utc).isoformat()  # noqa: UP017
        try:
            note.write_text(f"{timestamp}\n{reason}\n", encoding="utf-8")
        except OSError as exc:
            logger.error("error_note_write_failed", file=str(note), error=str(exc))

    @staticmethod
    def _write_pending(file_path: Path, records: list[EmbeddingRecord]) -> None:
        pending = file_path.with_name(f"{file_path.name}.pending.json")
        try:
            pending.write_text(
                json.dumps([r.model_dump(mode="json") for r in records], indent=2),
                encoding="utf-8",
            )
            logger.warning("pending_records_saved", file=str(pending), records=len(records))
        except OSError as exc:
            logger.error(
                "pending_records_write_failed",
                file=str(pending),
                records=len(records),
                error=str(exc),
            )


def _log_summary(event: str, results: list[IngestionResult]) -> None:
    counts: dict[str, int] = {}
    for r in results:
        counts[r.state.value] = counts.get(r.state.value, 0) + 1
    logger.info(event, files=len(results), **{k.lower(): v for k, v in counts.items()})

