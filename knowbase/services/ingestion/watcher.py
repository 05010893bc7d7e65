"""Polling directory watcher that feeds the ingestion queue.

The watcher scans the input directory every ``poll_interval`` seconds (the
first scan runs immediately, which doubles as the startup sweep) and puts
one :class:`~knowbase.models.ingestion.FileDiscovered` event per new file on
an ``asyncio.Queue``.  A single consumer drains the queue, which keeps the
embedding store single-writer.

A file is only reported once its modification time is at least
``settle_seconds`` old, so a document that is still being copied in is
picked up on a later poll.  Hidden files (leading dot) are ignored.
"""

from __future__ import annotations

import asyncio
import contextlib
import time
from pathlib import Path

import structlog

from knowbase.models.ingestion import FileDiscovered

logger = structlog.get_logger(logger_name=__name__)


def list_candidate_files(directory: Path) -> list[Path]:
    """Return visible regular files directly inside *directory*, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and not p.name.startswith(".")
    )


class DirectoryWatcher:
    """Emits :class:`FileDiscovered` events for files appearing in a directory.

    Parameters
    ----------
    directory:
        Directory to watch (not recursive).
    queue:
        Destination for discovery events.
    poll_interval:
        Seconds between scans.
    settle_seconds:
        Minimum age of a file's mtime before it is reported.
    """

    def __init__(
        self,
        directory: Path,
        queue: asyncio.Queue[FileDiscovered],
        poll_interval: float = 2.0,
        settle_seconds: float = 1.0,
    ) -> None:
        self._directory = directory
        self._queue = queue
        self._poll_interval = poll_interval
        self._settle_seconds = settle_seconds
        # Paths already reported and still present in the directory.
        self._reported: set[Path] = set()

    def scan(self) -> list[FileDiscovered]:
        """Scan once and return events for newly settled files.

        Paths that have left the directory are forgotten, so a file that is
        dropped in again under the same name is reported again.
        """
        present = list_candidate_files(self._directory)
        self._reported &= set(present)

        now = time.time()
        events: list[FileDiscovered] = []
        for path in present:
            if path in self._reported:
                continue
            try:
                age = now - path.stat().st_mtime
            except FileNotFoundError:
                continue
            if age < self._settle_seconds:
                logger.debug("watcher_file_not_settled", file=path.name, age_s=round(age, 2))
                continue
            self._reported.add(path)
            events.append(FileDiscovered(path=path))
        return events

    async def run(self, stop_event: asyncio.Event) -> None:
        """Scan until *stop_event* is set, putting events on the queue."""
        logger.info(
            "watcher_started",
            directory=str(self._directory),
            poll_interval_s=self._poll_interval,
        )
        while not stop_event.is_set():
            for event in self.scan():
                logger.info("file_discovered", file=event.path.name)
                await self._queue.put(event)
            with contextlib.suppress(asyncio.TimeoutError):
                await asyncio.wait_for(stop_event.wait(), timeout=self._poll_interval)
        logger.info("watcher_stopped", directory=str(self._directory))
