"""Text extractor for Excel (.xlsx) workbooks via openpyxl.

Every worksheet becomes one block headed by its title; each non-empty row
becomes one line of its non-empty cell values.  Cached formula results are
read (``data_only=True``), not the formulas themselves.
"""

from __future__ import annotations

import zipfile
from pathlib import Path

import structlog
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.utils.errors import ExtractionError

logger = structlog.get_logger(logger_name=__name__)


class ExcelProcessor(ITextExtractor):
    _EXTENSIONS = frozenset({".xlsx"})

    def can_process(self, extension: str) -> bool:
        return extension.lower() in self._EXTENSIONS

    def extract_text(self, path: Path) -> str:
        try:
            workbook = load_workbook(str(path), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            logger.error("xlsx_open_failed", file_path=str(path), error=str(exc))
            raise ExtractionError(
                message=f"Cannot open workbook {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc

        sheets: list[str] = []
        rows_read = 0
        try:
            for sheet in workbook.worksheets:
                lines: list[str] = []
                for row in sheet.iter_rows(values_only=True):
                    values = [str(v).strip() for v in row if v is not None and str(v).strip()]
                    if values:
                        lines.append(" ".join(values))
                if lines:
                    rows_read += len(lines)
                    sheets.append(f"{sheet.title}\n" + "\n".join(lines))
        finally:
            workbook.close()

        logger.info(
            "xlsx_processed",
            file_path=str(path),
            sheets=len(sheets),
            rows=rows_read,
        )
        return "\n\n".join(sheets)

    def get_extractor_name(self) -> str:
        return "excel"
