"""Text normalization utilities.

Two concerns live here:

1. **Embedding input cleanup** -- the inference server rejects (HTTP 400)
   prompts containing control characters and stray bytes, so every text is
   normalized before it is sent for embedding.

2. **Transcript preprocessing** -- strips timestamps, noise markers, speaker
   labels and caption cue numbering from interview transcripts and caption
   files (.vtt / .srt) so embeddings capture content rather than formatting.
"""

import re
import unicodedata

# ------------------------------------------------------------------
# Embedding input cleanup
# ------------------------------------------------------------------

_WHITESPACE_RUN = re.compile(r"\s+")

# Cc = control, Cf = format (zero-width etc.), Cs = surrogate,
# Co = private use, Cn = unassigned.
_STRIPPED_CATEGORIES = frozenset({"Cc", "Cf", "Cs", "Co", "Cn"})


def clean_text_for_embedding(text: str) -> str:
    """Normalize *text* before it is sent to the embedding endpoint.

    Line endings are normalized, control and non-printable characters are
    removed (whitespace controls become spaces), whitespace runs collapse
    to a single space and the result is trimmed.

    Args:
        text: Raw chunk or query text.

    Returns:
        Cleaned single-line text; empty string if nothing printable remains.
    """
    if not text:
        return ""

    normalized = text.replace("\r\n", "\n").replace("\r", "\n")

    kept: list[str] = []
    for char in normalized:
        if char.isspace():
            kept.append(" ")
        elif unicodedata.category(char) in _STRIPPED_CATEGORIES:
            continue
        else:
            kept.append(char)

    return _WHITESPACE_RUN.sub(" ", "".join(kept)).strip()


# ------------------------------------------------------------------
# Transcript preprocessing
# ------------------------------------------------------------------

# Bracketed timestamps: [00:15:22], [1:05:30], [15:22]
_BRACKET_TIMESTAMP = re.compile(r"\[\d{1,2}:\d{2}(?::\d{2})?(?:[.,]\d{1,3})?\]")

# Bare timestamps at line start: 00:15:22 or 00:15:22 -
_BARE_TIMESTAMP = re.compile(
    r"^\d{1,2}:\d{2}(?::\d{2})?(?:[.,]\d{1,3})?\s*[-–—]?\s*", re.MULTILINE
)

# Parenthesized timestamps: (15:22), (1:05:30)
_PAREN_TIMESTAMP = re.compile(r"\(\d{1,2}:\d{2}(?::\d{2})?\)")

# Caption cue timing lines: 00:00:01.000 --> 00:00:04.000 align:start
_CUE_TIMING = re.compile(
    r"^\s*\d{1,2}:\d{2}(?::\d{2})?[.,]\d{1,3}\s*-->\s*"
    r"\d{1,2}:\d{2}(?::\d{2})?[.,]\d{1,3}.*$",
    re.MULTILINE,
)

# SRT cue counters: a line holding only a number.
_CUE_INDEX = re.compile(r"^\s*\d+\s*$", re.MULTILINE)

# WebVTT header and metadata blocks.
_VTT_HEADER = re.compile(r"^(?:WEBVTT.*|Kind:.*|Language:.*|NOTE(?: .*)?)$", re.MULTILINE)

# Inline caption tags: <c>, </c>, <00:00:01.234>, <v Speaker>
_CAPTION_TAG = re.compile(r"</?(?:c|i|b|u|v|\d{1,2}:\d{2})[^>]*>")

_NOISE_MARKER = re.compile(
    r"\[(?:INAUDIBLE|CROSSTALK|LAUGHTER|MUSIC|APPLAUSE|SILENCE|PAUSE"
    r"|BACKGROUND NOISE|OVERLAPPING|UNINTELLIGIBLE|FOREIGN LANGUAGE"
    r"|inaudible|crosstalk|laughter|music|applause|Music|Applause|Laughter)\]",
)

# Speaker labels at line start: "SPEAKER NAME:", "Interviewer:"
_SPEAKER_LABEL = re.compile(
    r"^[ \t]*[A-Z][A-Za-z'\-.]+(?:\s+[A-Za-z'\-.]+){0,3}\s*:\s+", re.MULTILINE
)

_MULTI_NEWLINE = re.compile(r"\n{3,}")
_MULTI_SPACE = re.compile(r"[ \t]{2,}")


def preprocess_transcript(text: str) -> str:
    """Clean transcript text before chunking and embedding.

    Removes timestamps, noise markers and speaker labels.  Speaker label
    removal inserts paragraph breaks so speaker turns stay separated.

    Args:
        text: Raw transcript text.

    Returns:
        Cleaned text suitable for chunking.
    """
    if not text:
        return text

    cleaned = text.replace("\r\n", "\n")

    cleaned = _BRACKET_TIMESTAMP.sub("", cleaned)
    cleaned = _BARE_TIMESTAMP.sub("", cleaned)
    cleaned = _PAREN_TIMESTAMP.sub("", cleaned)

    cleaned = _NOISE_MARKER.sub("", cleaned)

    cleaned = _SPEAKER_LABEL.sub("\n\n", cleaned)

    cleaned = _MULTI_NEWLINE.sub("\n\n", cleaned)
    cleaned = _MULTI_SPACE.sub(" ", cleaned)

    return cleaned.strip()


def strip_caption_markup(text: str) -> str:
    """Reduce a WebVTT / SRT caption file to its spoken text.

    Auto-generated captions repeat each line across consecutive cues as the
    text scrolls; consecutive duplicate lines are collapsed.

    Args:
        text: Raw caption file contents.

    Returns:
        Caption text with one line per distinct cue line.
    """
    if not text:
        return text

    cleaned = text.replace("\r\n", "\n")
    cleaned = _VTT_HEADER.sub("", cleaned)
    cleaned = _CUE_TIMING.sub("", cleaned)
    cleaned = _CUE_INDEX.sub("", cleaned)
    cleaned = _CAPTION_TAG.sub("", cleaned)

    lines: list[str] = []
    for line in cleaned.split("\n"):
        stripped = line.strip()
        if not stripped:
            continue
        if lines and lines[-1] == stripped:
            continue
        lines.append(stripped)

    return preprocess_transcript("\n".join(lines))
