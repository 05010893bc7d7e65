"""Question answering over the knowledge base.

Runs the query flow end to end and turns each failure mode into an
explicit :class:`~knowbase.models.answer.AnswerStatus`:

  1. EMBED    -- embed the question (``EMBEDDING_FAILED`` on error)
  2. RETRIEVE -- top-K similarity search, then the ``min_similarity``
                 filter (``NO_RELEVANT_CONTENT`` if nothing is left)
  3. ANSWER   -- grounded generation (``GENERATION_FAILED`` on error)

Citations always reflect the retrieved chunks in retrieval order, even
when generation fails, so the caller can still show where it looked.
"""

from __future__ import annotations

import structlog

from knowbase.interfaces.embedding_provider import IEmbeddingProvider
from knowbase.models.answer import AnswerResult, AnswerStatus, Citation
from knowbase.models.rag import QueryResult
from knowbase.services.answer_generator import AnswerGenerator
from knowbase.services.similarity_search import SimilaritySearch
from knowbase.utils.errors import EmbeddingError, GenerationError
from knowbase.utils.logging import get_logger

logger: structlog.BoundLogger = get_logger(__name__)

NO_RELEVANT_CONTENT_MESSAGE = "No relevant information found in the knowledge base."
GENERATION_FAILED_MESSAGE = "Could not generate an answer."
EMBEDDING_FAILED_MESSAGE = "Could not process the question."


class QAService:
    """Answers questions using embedding, similarity search and generation.

    Parameters
    ----------
    embedder:
        Embeds the question.
    search:
        Retrieves scored chunks.
    generator:
        Produces the grounded answer.
    top_k:
        Default number of chunks to retrieve.
    min_similarity:
        Retrieved chunks scoring below this are dropped before generation.
    """

    def __init__(
        self,
        embedder: IEmbeddingProvider,
        search: SimilaritySearch,
        generator: AnswerGenerator,
        top_k: int = 5,
        min_similarity: float = 0.0,
    ) -> None:
        self._embedder = embedder
        self._search = search
        self._generator = generator
        self._top_k = top_k
        self._min_similarity = min_similarity

    async def ask(
        self,
        question: str,
        top_k: int | None = None,
        reasoning: bool = False,
    ) -> AnswerResult:
        """Answer *question*.

        Embedding and generation failures come back as statuses.  A
        :class:`~knowbase.utils.errors.StorageError` from loading the store
        propagates.
        """
        k = self._top_k if top_k is None else top_k

        try:
            query_vector = await self._embedder.embed(question)
        except EmbeddingError as exc:
            logger.error("qa_embedding_failed", question=question[:80], error=str(exc))
            return AnswerResult(
                question=question,
                answer=EMBEDDING_FAILED_MESSAGE,
                status=AnswerStatus.EMBEDDING_FAILED,
            )

        results = await self._search.search(query_vector, k)
        relevant = [r for r in results if r.similarity >= self._min_similarity]
        if not relevant:
            logger.info(
                "qa_no_relevant_content",
                question=question[:80],
                retrieved=len(results),
                min_similarity=self._min_similarity,
            )
            return AnswerResult(
                question=question,
                answer=NO_RELEVANT_CONTENT_MESSAGE,
                status=AnswerStatus.NO_RELEVANT_CONTENT,
            )

        citations = _citations(relevant)
        try:
            answer = await self._generator.answer(question, relevant, reasoning=reasoning)
        except GenerationError as exc:
            logger.error("qa_generation_failed", question=question[:80], error=str(exc))
            return AnswerResult(
                question=question,
                answer=GENERATION_FAILED_MESSAGE,
                status=AnswerStatus.GENERATION_FAILED,
                citations=citations,
            )

        logger.info("qa_answered", question=question[:80], citations=len(citations))
        return AnswerResult(
            question=question,
            answer=answer,
            status=AnswerStatus.ANSWERED,
            citations=citations,
        )


def _citations(results: list[QueryResult]) -> list[Citation]:
    return [
        Citation(
            source_file=r.metadata.source_file,
            similarity=r.similarity,
            chunk_number=r.metadata.chunk_number,
        )
        for r in results
    ]
