"""Text extractor for transcripts and caption files.

- ``.txt`` transcripts: timestamps, noise markers and speaker labels are
  removed by :func:`~knowbase.utils.text_normalizer.preprocess_transcript`.
- ``.vtt`` / ``.srt`` captions: headers, cue numbers, cue timings and inline
  tags are removed and the rolling duplicate lines of auto-generated
  captions are collapsed by
  :func:`~knowbase.utils.text_normalizer.strip_caption_markup`.

Files are decoded as UTF-8 (a BOM is tolerated); undecodable bytes are
replaced rather than failing the whole file.
"""

from __future__ import annotations

from pathlib import Path

import structlog

from knowbase.interfaces.text_extractor import ITextExtractor
from knowbase.utils.errors import ExtractionError
from knowbase.utils.text_normalizer import preprocess_transcript, strip_caption_markup

logger = structlog.get_logger(logger_name=__name__)

_CAPTION_EXTENSIONS = frozenset({".vtt", ".srt"})


class TranscriptProcessor(ITextExtractor):
    _EXTENSIONS = frozenset({".txt"}) | _CAPTION_EXTENSIONS

    def can_process(self, extension: str) -> bool:
        return extension.lower() in self._EXTENSIONS

    def extract_text(self, path: Path) -> str:
        try:
            raw = path.read_text(encoding="utf-8-sig", errors="replace")
        except OSError as exc:
            raise ExtractionError(
                message=f"Cannot read transcript {path.name}: {exc}",
                provider_name=self.get_extractor_name(),
            ) from exc

        if path.suffix.lower() in _CAPTION_EXTENSIONS:
            text = strip_caption_markup(raw)
        else:
            text = preprocess_transcript(raw)

        logger.info(
            "transcript_processed",
            file_path=str(path),
            raw_chars=len(raw),
            cleaned_chars=len(text),
        )
        return text

    def get_extractor_name(self) -> str:
        return "transcript"
