"""Grounded answer generation with a process-lifetime answer cache.

Given a question and the chunks retrieved for it, builds a prompt that
lists every chunk with its source citation and asks the model to answer
only from that information.  Answers are cached by (question, ordered
chunk contents), so asking the same question against the same retrieval
result never calls the model twice.

The cache has no eviction: it grows for the life of the process.
"""

from __future__ import annotations

import hashlib
import re
from collections.abc import Sequence

import structlog

from knowbase.interfaces.cache_provider import ICacheProvider
from knowbase.interfaces.llm_provider import ILLMProvider
from knowbase.models.rag import QueryResult
from knowbase.utils.errors import GenerationError

logger = structlog.get_logger(logger_name=__name__)

# Keep the model from inventing further question/information blocks.
STOP_SEQUENCES: tuple[str, ...] = ("Question:", "Information:", "\n\n\n")

_INSTRUCTIONS = (
    "You are a personal knowledge-base assistant. Answer the question using "
    "ONLY the information below. Each passage is preceded by its source. "
    "If the information does not contain the answer, say clearly that the "
    "knowledge base does not contain enough information to answer. Do not "
    "use outside knowledge and do not invent sources."
)

# Reasoning models wrap their chain of thought in <think> ... </think>.
_THINK_BLOCK = re.compile(r"<think>.*?</think>", re.DOTALL | re.IGNORECASE)

_QUERY_SEPARATOR = "\x1f"
_CHUNK_SEPARATOR = "\x1e"


def build_cache_key(query: str, chunks: Sequence[QueryResult]) -> str:
    """Return the SHA-256 hex digest of the question and ordered chunk contents."""
    material = query + _QUERY_SEPARATOR + _CHUNK_SEPARATOR.join(c.content for c in chunks)
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


def build_prompt(query: str, chunks: Sequence[QueryResult]) -> str:
    """Render the grounded prompt for *query* over *chunks*."""
    passages = []
    for chunk in chunks:
        meta = chunk.metadata
        passages.append(
            f"[Source: {meta.source_file} | chunk {meta.chunk_number}]\n{chunk.content}"
        )
    information = "\n\n".join(passages)
    return f"{_INSTRUCTIONS}\n\nInformation:\n{information}\n\nQuestion: {query}\n\nAnswer:"


class AnswerGenerator:
    """Builds grounded prompts and calls the generation model, with caching.

    Parameters
    ----------
    llm:
        Generation provider.
    cache:
        Answer cache.  Only successful answers are stored.
    general_model / reasoning_model:
        Model names for normal and ``reasoning=True`` answers.
    temperature / top_p:
        Sampling options passed with every request.
    """

    def __init__(
        self,
        llm: ILLMProvider,
        cache: ICacheProvider,
        general_model: str,
        reasoning_model: str,
        temperature: float = 0.2,
        top_p: float = 0.9,
    ) -> None:
        self._llm = llm
        self._cache = cache
        self._general_model = general_model
        self._reasoning_model = reasoning_model
        self._temperature = temperature
        self._top_p = top_p

    async def answer(
        self,
        query: str,
        chunks: Sequence[QueryResult],
        reasoning: bool = False,
    ) -> str:
        """Return an answer to *query* grounded in *chunks*.

        Raises
        ------
        GenerationError
            If the model call fails or produces no text.  Failures are not
            cached.
        """
        cache_key = build_cache_key(query, chunks)
        if reasoning:
            # Reasoning answers live beside, not over, general ones.
            cache_key = f"reasoning:{cache_key}"

        cached = await self._cache.get(cache_key)
        if cached is not None:
            logger.debug("answer_cache_hit", question=query[:80], chunks=len(chunks))
            return str(cached)

        model = self._reasoning_model if reasoning else self._general_model
        raw = await self._llm.generate(
            build_prompt(query, chunks),
            model=model,
            stop=list(STOP_SEQUENCES),
            temperature=self._temperature,
            top_p=self._top_p,
        )

        text = _THINK_BLOCK.sub("", raw).strip() if reasoning else raw.strip()
        if not text:
            raise GenerationError(
                message=f"Model {model} returned no answer text",
                provider_name=self._llm.get_provider_name(),
            )

        await self._cache.set(cache_key, text)
        logger.info(
            "answer_generated",
            question=query[:80],
            model=model,
            chunks=len(chunks),
            answer_chars=len(text),
        )
        return text
