"""Text extractor for EPUB books.

Reads EPUB files using ebooklib, strips the XHTML of each document item
(typically one per chapter) with BeautifulSoup, and joins the chapters in
spine order.
"""

from __future__ import annotations

import re
from pathlib import Path

import ebooklib
import structlog
from bs4 import BeautifulSoup
from ebooklib import epub

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)

# Collapse excessive whitespace while preserving paragraph breaks.
_MULTI_NEWLINE = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r"[ \t]{2,}")

# Document items shorter than this are TOC, copyright or cover pages.
_MIN_CHAPTER_CHARS = 100


class EPUBProcessor(ITextExtractor):
    """Extracts chapter text from every XHTML document item."""

    _EXTENSIONS = frozenset({".epub"})

    def can_process(self, extension: str) -> bool:
        return extension.lower() in self._EXTENSIONS

    def extract_text(self, path: Path) -> str:
        chapters = self._extract_chapters(path)
        logger.info("epub_processed", file_path=str(path), chapters=len(chapters))
        return "\n\n".join(chapters)

    def get_extractor_name(self) -> str:
        return "epub"

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _extract_chapters(self, path: Path) -> list[str]:
        try:
            book = epub.read_epub(str(path), options={"ignore_ncx": True})
        except Exception as exc:  # ebooklib surfaces zip, xml and its own errors
            logger.error("epub_open_failed", file_path=str(path), error=str(exc))
            raise ExtractionError(
                message=f"Cannot open EPUB {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc

        chapters: list[str] = []
        for item in book.get_items_of_type(ebooklib.ITEM_DOCUMENT):
            html_content = item.get_content().decode("utf-8", errors="replace")
            soup = BeautifulSoup(html_content, "html.parser")

            text = soup.get_text(separator="\n")
            text = _MULTI_SPACE.sub(" ", text)
            text = _MULTI_NEWLINE.sub("\n\n", text)
            text = text.strip()

            if len(text) < _MIN_CHAPTER_CHARS:
                continue
            chapters.append(text)

        if not chapters:
            logger.warning("epub_no_chapters_extracted", file_path=str(path))

        return chapters
