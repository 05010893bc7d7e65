"""Per-format text extractors for the knowbase ingestion pipeline.

Each extractor implements :class:`~knowbase.interfaces.text_extractor.ITextExtractor`
and turns one file into raw text for the TextChunker:

- **WordProcessor**       -- .docx via python-docx
- **ExcelProcessor**      -- .xlsx via openpyxl
- **PDFProcessor**        -- .pdf via PyMuPDF
- **TranscriptProcessor** -- .txt transcripts, .vtt / .srt captions
- **EPUBProcessor**       -- .epub via ebooklib + BeautifulSoup

:func:`get_extractor` resolves a file extension to the first registered
extractor that accepts it.
"""

from __future__ import annotations

from collections.abc import Sequence

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.services.ingestion.source_processors.epub_processor import EPUBProcessor
from knowbase.services.ingestion.source_processors.excel_processor import ExcelProcessor
from knowbase.services.ingestion.source_processors.pdf_processor import PDFProcessor
from knowbase.services.ingestion.source_processors.transcript_processor import (
    TranscriptProcessor,
)
from knowbase.services.ingestion.source_processors.word_processor import WordProcessor
from knowbase.utils.errors import UnsupportedFileTypeError


def default_extractors() -> list[ITextExtractor]:
    """Return one instance of every built-in extractor, in lookup order."""
    return [
        WordProcessor(),
        ExcelProcessor(),
        PDFProcessor(),
        TranscriptProcessor(),
        EPUBProcessor(),
    ]


def get_extractor(
    extension: str,
    extractors: Sequence[ITextExtractor] | None = None,
) -> ITextExtractor | None:
    """Return the first extractor whose ``can_process`` accepts *extension*.

    *extension* is matched case-insensitively and may omit the leading dot.
    Returns ``None`` when no extractor handles it.
    """
    ext = extension.lower()
    if ext and not ext.startswith("."):
        ext = f".{ext}"
    for extractor in extractors if extractors is not None else default_extractors():
        if extractor.can_process(ext):
            return extractor
    return None


def require_extractor(
    extension: str,
    extractors: Sequence[ITextExtractor] | None = None,
) -> ITextExtractor:
    """Like :func:`get_extractor` but raise :class:`UnsupportedFileTypeError` on no match."""
    extractor = get_extractor(extension, extractors)
    if extractor is None:
        raise UnsupportedFileTypeError(message=f"No extractor for {extension or '(none)'}")
    return extractor


__all__ = [
    "EPUBProcessor",
    "ExcelProcessor",
    "PDFProcessor",
    "TranscriptProcessor",
    "WordProcessor",
    "default_extractors",
    "get_extractor",
    "require_extractor",
]
