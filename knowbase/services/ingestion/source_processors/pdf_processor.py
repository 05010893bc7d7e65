"""Text extractor for PDF documents.

Reads PDF files using PyMuPDF (fitz) page by page.  Text-based PDFs and
scanned PDFs with an embedded OCR text layer both work; a scan without a
text layer yields no text and is reported as an empty document downstream.
"""

from __future__ import annotations

from pathlib import Path

import fitz  # PyMuPDF -- the "fitz" import name is a PyMuPDF convention
import structlog

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class PDFProcessor(ITextExtractor):
    """Extracts the text layer of every page, pages separated by blank lines."""

    _EXTENSIONS = frozenset({".pdf"})

    def can_process(self, extension: str) -> bool:
        return extension.lower() in self._EXTENSIONS

    def extract_text(self, path: Path) -> str:
        pages = self._extract_pages(path)
        logger.info("pdf_processed", file_path=str(path), pages_with_text=len(pages))
        return "\n\n".join(text for _, text in pages)

    def get_extractor_name(self) -> str:
        return "pdf"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _extract_pages(self, path: Path) -> list[tuple[int, str]]:
        """Return ``(page_number, page_text)`` for each page that has text.

        Page numbers are 1-based.
        """
        try:
            doc = fitz.open(str(path))
        except Exception as exc:  # fitz raises several unrelated types for bad files
            logger.error("pdf_open_failed", file_path=str(path), error=str(exc))
            raise ExtractionError(
                message=f"Cannot open PDF {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc

        pages: list[tuple[int, str]] = []
        try:
            for page_num in range(len(doc)):
                text = doc[page_num].get_text("text").strip()
                if text:
                    pages.append((page_num + 1, text))
        except Exception as exc:
            raise ExtractionError(
                message=f"Cannot read PDF {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc
        finally:
            doc.close()

        if not pages:
            logger.warning("pdf_no_text_extracted", file_path=str(path))

        return pages
