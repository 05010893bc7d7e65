"""Question-answering result models."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AnswerStatus(str, Enum):  # noqa: UP042 (StrEnum requires Python 3.11+)
    """How a question was resolved.

    ``NO_RELEVANT_CONTENT`` means nothing was retrievable;
    ``GENERATION_FAILED`` means retrieval worked but the model call did not.
    """

    ANSWERED = "ANSWERED"
    NO_RELEVANT_CONTENT = "NO_RELEVANT_CONTENT"
    GENERATION_FAILED = "GENERATION_FAILED"
    EMBEDDING_FAILED = "EMBEDDING_FAILED"


class Citation(BaseModel):
    """A source that contributed to an answer, in retrieval order."""

    model_config = ConfigDict(frozen=True)

    source_file: str
    similarity: float
    chunk_number: int | None = None


class AnswerResult(BaseModel):
    """Answer text plus ordered citations returned to the query surface."""

    model_config = ConfigDict(frozen=True)

    question: str
    answer: str
    status: AnswerStatus
    citations: list[Citation] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status in (AnswerStatus.ANSWERED, AnswerStatus.NO_RELEVANT_CONTENT)
