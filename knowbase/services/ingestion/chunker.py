"""Word-window text chunking with fixed overlap.

Splits extracted document text into :class:`~knowbase.models.rag.Chunk`
objects.  Words are whitespace-delimited tokens; a chunk is a window of
``chunk_size`` consecutive words and the next window starts
``step = chunk_size - overlap`` words later, so consecutive chunks share
exactly ``overlap`` words.

Example with 9 words, ``chunk_size=5``, ``overlap=2`` (step 3)::

    words:   The quick brown fox jumps over the lazy dog
    chunk 1: [0..4]  The quick brown fox jumps
    chunk 2: [3..7]  fox jumps over the lazy
    chunk 3: [6..8]  the lazy dog

Window starts are ``0, step, 2*step, ...`` while the start is below the word
count, so the last chunk always ends on the last word.  Boundaries depend
only on the text and the two parameters; only the chunk ids are random.
"""

from __future__ import annotations

import uuid
from collections.abc import Mapping
from datetime import datetime, timezone

import structlog

from knowbase.models.rag import Chunk, ChunkMetadata
from knowbase.utils.errors import ConfigurationError, EmptyDocumentError

logger = structlog.get_logger(logger_name=__name__)


class TextChunker:
    """Splits text into overlapping fixed-size word windows.

    Parameters
    ----------
    chunk_size:
        Words per chunk (default 500).
    overlap:
        Words shared by consecutive chunks (default 50).

    Raises
    ------
    ConfigurationError
        Unless ``chunk_size > overlap >= 0``.  A zero or negative step would
        never advance, so this is rejected before any text is seen.
    """

    def __init__(self, chunk_size: int = 500, overlap: int = 50) -> None:
        if overlap < 0 or chunk_size <= overlap:
            raise ConfigurationError(
                message=(
                    "chunk_size must be greater than overlap and overlap must be "
                    f">= 0 (got chunk_size={chunk_size}, overlap={overlap})"
                ),
                provider_name="chunker",
            )
        self._chunk_size = chunk_size
        self._overlap = overlap
        self._step = chunk_size - overlap

    @property
    def chunk_size(self) -> int:
        return self._chunk_size

    @property
    def overlap(self) -> int:
        return self._overlap

    @property
    def step(self) -> int:
        return self._step

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def chunk(self, text: str, source_metadata: Mapping[str, object]) -> list[Chunk]:
        """Split *text* into overlapping :class:`Chunk` objects.

        Parameters
        ----------
        text:
            The full extracted text of one document.
        source_metadata:
            Copied into every chunk.  Keys: ``source_file`` (required),
            ``file_type`` (extension without the dot; derived from
            ``source_file`` when absent) and optionally ``processed_time``
            (defaults to now, UTC).  Every chunk of one call shares the
            same ``processed_time``.

        Returns
        -------
        list[Chunk]
            Chunks in emission order, never empty.

        Raises
        ------
        EmptyDocumentError
            If *text* contains no words.
        """
        source_file = str(source_metadata["source_file"])
        file_type = str(
            source_metadata.get("file_type") or _extension_of(source_file)
        )
        processed_time = source_metadata.get("processed_time")
        if not isinstance(processed_time, datetime):
            processed_time = datetime.now(tz=timezone.utc)  # noqa: UP017

        words = self.split_words(text)
        total_words = len(words)
        if total_words == 0:
            raise EmptyDocumentError(
                message=f"No words to chunk in {source_file}",
                provider_name="chunker",
            )

        chunks: list[Chunk] = []
        for start in range(0, total_words, self._step):
            window = words[start : start + self._chunk_size]
            metadata = ChunkMetadata(
                source_file=source_file,
                file_type=file_type,
                processed_time=processed_time,
                start_index=start,
                word_count=len(window),
                total_words=total_words,
                chunk_number=start // self._step + 1,
            )
            chunks.append(
                Chunk(id=str(uuid.uuid4()), content=" ".join(window), metadata=metadata)
            )

        logger.debug(
            "chunking_complete",
            source_file=source_file,
            total_words=total_words,
            num_chunks=len(chunks),
            chunk_size=self._chunk_size,
            overlap=self._overlap,
        )
        return chunks

    @staticmethod
    def split_words(text: str) -> list[str]:
        """Split on runs of whitespace, dropping empty tokens."""
        return text.split() if text else []


def _extension_of(file_name: str) -> str:
    _, dot, ext = file_name.rpartition(".")
    return ext.lower() if dot else ""
