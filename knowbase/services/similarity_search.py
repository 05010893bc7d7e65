"""Exhaustive cosine-similarity retrieval over the embedding store.

Every query loads the full record list and scores all of it; there is no
approximate index.  Scores are computed with numpy one batch of records at
a time.  Batch size changes memory use only, never the result.

Per-record failures never abort a search:

- a record whose vector length differs from the query is excluded and
  logged (``similarity_dimension_mismatch``);
- a record with a zero vector, or a zero query vector, scores ``0.0``
  ("no match") instead of NaN.

Results are ordered by descending similarity.  Equal scores keep store
order, so identical inputs always give identical output.
"""

from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import structlog

from knowbase.interfaces.embedding_store import IEmbeddingStore
from knowbase.models.rag import EmbeddingRecord, QueryResult
from knowbase.utils.errors import DimensionMismatchError, UndefinedSimilarityError

logger = structlog.get_logger(logger_name=__name__)

DEFAULT_BATCH_SIZE = 256


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Return ``dot(a, b) / (||a|| * ||b||)`` clamped to [-1, 1].

    Raises
    ------
    DimensionMismatchError
        If ``len(a) != len(b)``.
    UndefinedSimilarityError
        If either vector has zero norm.
    """
    if len(a) != len(b):
        raise DimensionMismatchError(
            message=f"Cannot compare vectors of length {len(a)} and {len(b)}"
        )
    va = np.asarray(a, dtype=np.float64)
    vb = np.asarray(b, dtype=np.float64)
    denom = float(np.linalg.norm(va) * np.linalg.norm(vb))
    if denom == 0.0:
        raise UndefinedSimilarityError()
    return float(np.clip(np.dot(va, vb) / denom, -1.0, 1.0))


class SimilaritySearch:
    """Scores a query vector against every stored record and returns the top-K.

    Parameters
    ----------
    store:
        Source of records; :meth:`IEmbeddingStore.load_all` is called once
        per search.
    batch_size:
        Number of records scored per numpy operation.
    """

    def __init__(self, store: IEmbeddingStore, batch_size: int = DEFAULT_BATCH_SIZE) -> None:
        if batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        self._store = store
        self._batch_size = batch_size

    async def search(self, query: Sequence[float], k: int) -> list[QueryResult]:
        """Return at most *k* results in descending similarity order.

        An empty store or ``k <= 0`` yields an empty list.
        """
        if k <= 0:
            return []
        records = await self._store.load_all()
        if not records:
            return []
        return self.rank(query, records, k)

    def rank(
        self, query: Sequence[float], records: Sequence[EmbeddingRecord], k: int
    ) -> list[QueryResult]:
        """Score *records* against *query* and return the top *k*."""
        if k <= 0 or not records:
            return []

        q = np.asarray(query, dtype=np.float64)
        q_norm = float(np.linalg.norm(q))
        if q_norm == 0.0:
            logger.warning("similarity_zero_query_vector", records=len(records))

        # (store position, score); position doubles as the tie-breaker.
        scored: list[tuple[int, float]] = []
        excluded = 0
        for offset in range(0, len(records), self._batch_size):
            batch = records[offset : offset + self._batch_size]
            positions: list[int] = []
            vectors: list[list[float]] = []
            for i, record in enumerate(batch):
                if len(record.embedding) != len(q):
                    excluded += 1
                    logger.warning(
                        "similarity_dimension_mismatch",
                        record_id=record.id,
                        source_file=record.metadata.source_file,
                        expected=len(q),
                        actual=len(record.embedding),
                    )
                    continue
                positions.append(offset + i)
                vectors.append(record.embedding)

            if not vectors:
                continue
            scored.extend(zip(positions, self._score_batch(np.asarray(vectors), q, q_norm)))

        scored.sort(key=lambda item: -item[1])
        top = scored[:k]

        logger.debug(
            "similarity_search_complete",
            records=len(records),
            scored=len(scored),
            excluded=excluded,
            returned=len(top),
        )
        return [
            QueryResult(
                content=records[pos].content,
                metadata=records[pos].metadata,
                similarity=score,
            )
            for pos, score in top
        ]

    @staticmethod
    def _score_batch(matrix: np.ndarray, q: np.ndarray, q_norm: float) -> list[float]:
        matrix = matrix.astype(np.float64, copy=False)
        norms = np.linalg.norm(matrix, axis=1)
        denom = norms * q_norm
        dots = matrix @ q
        with np.errstate(divide="ignore", invalid="ignore"):
            sims = np.where(denom > 0.0, dots / np.where(denom > 0.0, denom, 1.0), 0.0)
        return [float(s) for s in np.clip(sims, -1.0, 1.0)]
