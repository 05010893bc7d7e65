"""Text extractor for Word (.docx) documents via python-docx.

python-docx reads the XML inside the DOCX zip archive.  Body paragraphs
come first, then table cells row by row; formatting is dropped.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import structlog
from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class WordProcessor(ITextExtractor):
    _EXTENSIONS = frozenset({".docx"})

    def can_process(self, extension: str) -> bool:
        return extension.lower() in self._EXTENSIONS

    def extract_text(self, path: Path) -> str:
        try:
            doc = Document(str(path))
        except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
            logger.error("docx_open_failed", file_path=str(path), error=str(exc))
            raise ExtractionError(
                message=f"Cannot open Word document {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc

        blocks = [para.text for para in doc.paragraphs if para.text.strip()]
        for table in doc.tables:
            for row in table.rows:
                cells = [cell.text.strip() for cell in row.cells if cell.text.strip()]
                if cells:
                    blocks.append(" ".join(cells))

        logger.info(
            "docx_processed",
            file_path=str(path),
            paragraphs=len(doc.paragraphs),
            tables=len(doc.tables),
        )
        return "\n\n".join(blocks)

    def get_extractor_name(self) -> str:
        return "word"
