"""Append-only embedding store persisted as a single JSON file.

The file holds one JSON array of records (indent 2, UTF-8, snake_case keys)
and is rewritten in full on every append:

    1. acquire the in-process writer lock (bounded wait)
    2. load every existing record
    3. concatenate the new records in arrival order
    4. write the combined array to a temp file in the same directory, fsync
    5. ``os.replace`` the temp file onto the store path

Step 5 is atomic on POSIX and Windows, so a concurrent reader sees either
the old array or the new one.  If any step fails the original file is left
untouched, the temp file is removed and a :class:`StorageError` subclass is
raised.  Blocking file I/O runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import errno
import json
import os
import tempfile
from collections import Counter
from collections.abc import Sequence
from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from knowbase.interfaces.embedding_store import IEmbeddingStore
from knowbase.models.rag import CorpusStats, EmbeddingRecord
from knowbase.utils.errors import (
    StorageError,
    StorageFullError,
    StoreCorruptedError,
    StoreLockTimeoutError,
)
from knowbase.utils.logging import get_logger

_RECORDS_ADAPTER = TypeAdapter(list[EmbeddingRecord])


class JSONEmbeddingStore(IEmbeddingStore):
    """Flat JSON-array implementation of :class:`IEmbeddingStore`.

    Parameters
    ----------
    path:
        Location of the JSON file.  Parent directories are created on the
        first append.
    lock_timeout_seconds:
        Maximum wait for the writer lock before
        :class:`StoreLockTimeoutError` is raised.
    """

    def __init__(self, path: str | Path, lock_timeout_seconds: float = 30.0) -> None:
        self._path = Path(path)
        self._lock_timeout = lock_timeout_seconds
        self._write_lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    @property
    def path(self) -> Path:
        return self._path

    # ------------------------------------------------------------------
    # IEmbeddingStore implementation
    # ------------------------------------------------------------------

    async def load_all(self) -> list[EmbeddingRecord]:
        return await asyncio.to_thread(self._read_records)

    async def append(self, records: Sequence[EmbeddingRecord]) -> int:
        new_records = list(records)

        try:
            await asyncio.wait_for(self._write_lock.acquire(), timeout=self._lock_timeout)
        except asyncio.TimeoutError as exc:
            raise StoreLockTimeoutError(
                message=(
                    f"Writer lock for {self._path} not acquired within "
                    f"{self._lock_timeout}s"
                ),
                provider_name=self.get_store_name(),
            ) from exc

        # The lock is released when the read-concat-write finishes, even if
        # this caller is cancelled while a worker thread is still writing.
        update = asyncio.ensure_future(self._read_and_write(new_records))
        update.add_done_callback(lambda _: self._write_lock.release())
        combined = await asyncio.shield(update)

        self._logger.info(
            "store_append",
            path=str(self._path),
            appended=len(new_records),
            total=len(combined),
        )
        return len(combined)

    async def stats(self) -> CorpusStats:
        records = await self.load_all()
        by_type = Counter(r.metadata.file_type for r in records)
        sources = {r.metadata.source_file for r in records}
        return CorpusStats(
            total_records=len(records),
            total_sources=len(sources),
            records_by_file_type=dict(sorted(by_type.items())),
        )

    def get_store_name(self) -> str:
        return "json_store"

    async def _read_and_write(
        self, new_records: list[EmbeddingRecord]
    ) -> list[EmbeddingRecord]:
        existing = await asyncio.to_thread(self._read_records)
        combined = existing + new_records
        if new_records:
            await asyncio.to_thread(self._write_records, combined)
        return combined

    # ------------------------------------------------------------------
    # Blocking helpers (run in a worker thread)
    # ------------------------------------------------------------------

    def _read_records(self) -> list[EmbeddingRecord]:
        if not self._path.exists():
            return []

        try:
            raw = self._path.read_bytes()
        except OSError as exc:
            raise StorageError(
                message=f"Cannot read {self._path}: {exc}",
                provider_name=self.get_store_name(),
            ) from exc

        if not raw.strip():
            return []

        try:
            return _RECORDS_ADAPTER.validate_json(raw)
        except ValidationError as exc:
            raise StoreCorruptedError(
                message=f"Malformed store file {self._path}: {exc.error_count()} error(s)",
                provider_name=self.get_store_name(),
            ) from exc

    def _write_records(self, records: list[EmbeddingRecord]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(
            [r.model_dump(mode="json") for r in records],
            indent=2,
            ensure_ascii=False,
        )

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
        )
        tmp_path = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, self._path)
        except OSError as exc:
            tmp_path.unlink(missing_ok=True)
            if exc.errno == errno.ENOSPC:
                raise StorageFullError(
                    message=f"No space left writing {self._path}",
                    provider_name=self.get_store_name(),
                ) from exc
            raise StorageError(
                message=f"Cannot write {self._path}: {exc}",
                provider_name=self.get_store_name(),
            ) from exc
        except BaseException:
            tmp_path.unlink(missing_ok=True)
            raise
