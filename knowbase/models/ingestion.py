"""Ingestion state models.

A file moves through a small state machine owned by the orchestrator
(``knowbase/services/ingestion/ingestion_service.py``):

    DISCOVERED -> PROCESSING -> COMPLETED
                             -> ERROR
                             -> UNSUPPORTED_TYPE

The directory a file sits in mirrors its state (input, processing,
completed, error, error/unsupported), so state survives restarts.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field


class FileState(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """Lifecycle states of one input file."""

    DISCOVERED = "DISCOVERED"              # Seen in the input directory
    PROCESSING = "PROCESSING"              # Claimed into the processing area
    COMPLETED = "COMPLETED"                # Embedded chunks saved, file archived
    ERROR = "ERROR"                        # Unrecoverable step, file kept for inspection
    UNSUPPORTED_TYPE = "UNSUPPORTED_TYPE"  # No extractor, moved aside


class FileDiscovered(BaseModel):
    """Event emitted by the directory watcher for each candidate file."""

    model_config = ConfigDict(frozen=True)

    path: Path
    discovered_at: datetime = Field(
        default_factory=lambda: datetime.now(tz=timezone.utc)  # noqa: UP017
    )


class IngestionResult(BaseModel):
    """Outcome of processing a single file."""

    model_config = ConfigDict(frozen=True)

    source_file: str
    state: FileState
    chunks_created: int = Field(default=0, ge=0)
    chunks_embedded: int = Field(default=0, ge=0)
    # chunk_number of every chunk whose embedding failed.
    failed_chunks: list[int] = Field(default_factory=list)
    error: str | None = None
    ingestion_time: float = Field(default=0.0, ge=0.0)
