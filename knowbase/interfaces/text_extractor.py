"""Abstract base class for per-format text extractors.

Each variant (Word, Excel, PDF, Transcript, EPUB) declares which file
extensions it handles and turns a file into plain text.  The registry in
``knowbase/services/ingestion/source_processors/__init__.py`` resolves an
extension to the first extractor whose :meth:`can_process` accepts it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class ITextExtractor(ABC):
    """Contract for turning one file into raw text."""

    @abstractmethod
    def can_process(self, extension: str) -> bool:
        """Return ``True`` if this extractor handles *extension*.

        *extension* includes the leading dot and is compared
        case-insensitively, e.g. ``".PDF"`` and ``".pdf"`` are the same.
        """

    @abstractmethod
    def extract_text(self, path: Path) -> str:
        """Return the text content of the file at *path*.

        This is blocking I/O; async callers run it in a worker thread.

        Raises
        ------
        knowbase.utils.errors.ExtractionError
            If the file is unreadable, corrupt, or not of the expected format.
        """

    @abstractmethod
    def get_extractor_name(self) -> str:
        """Return a short identifier, e.g. ``"pdf"``."""
