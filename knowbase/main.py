"""knowbase application context.

Wires every provider and service from :class:`~knowbase.config.settings.Settings`
into one :class:`AppContext`, created once at startup and torn down at
shutdown.  Components receive their collaborators at construction; nothing
is held in module-level state.

Usage::

    async with app_context(settings) as ctx:
        await ctx.ingestion.drain()
        result = await ctx.qa.ask("What did the report say about Q3?")
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass

import httpx
import structlog

from knowbase.config.settings import Settings
from knowbase.providers.cache.memory_cache import MemoryCacheProvider
from knowbase.providers.embedding.ollama_embedding_provider import OllamaEmbeddingProvider
from knowbase.providers.llm.ollama_provider import OllamaLLMProvider
from knowbase.providers.store.json_embedding_store import JSONEmbeddingStore
from knowbase.services.answer_generator import AnswerGenerator
from knowbase.services.ingestion.chunker import TextChunker
from knowbase.services.ingestion.ingestion_service import IngestionService
from knowbase.services.qa_service import QAService
from knowbase.services.similarity_search import SimilaritySearch

logger = structlog.get_logger(logger_name=__name__)


@dataclass
class AppContext:
    """Every long-lived component of a running knowbase process."""

    settings: Settings
    http_client: httpx.AsyncClient
    chunker: TextChunker
    embedding_provider: OllamaEmbeddingProvider
    llm_provider: OllamaLLMProvider
    cache: MemoryCacheProvider
    store: JSONEmbeddingStore
    search: SimilaritySearch
    generator: AnswerGenerator
    qa: QAService
    ingestion: IngestionService

    async def aclose(self) -> None:
        """Stop ingestion and release the shared HTTP client."""
        self.ingestion.stop()
        await self.http_client.aclose()
        logger.info("app_shutdown", message="HTTP client closed")


def build_context(settings: Settings) -> AppContext:
    """Construct every provider and service for *settings*.

    Raises
    ------
    knowbase.utils.errors.ConfigurationError
        If the chunking parameters are invalid.
    """
    chunker = TextChunker(
        chunk_size=settings.chunk_size_tokens,
        overlap=settings.overlap_tokens,
    )

    http_client = httpx.AsyncClient(timeout=settings.request_timeout_seconds)
    embedding_provider = OllamaEmbeddingProvider(settings, http_client)
    llm_provider = OllamaLLMProvider(settings, http_client)
    cache = MemoryCacheProvider()
    store = JSONEmbeddingStore(
        settings.base_paths.embeddings_file,
        lock_timeout_seconds=settings.store_lock_timeout_seconds,
    )
    search = SimilaritySearch(store, batch_size=settings.search_batch_size)
    generator = AnswerGenerator(
        llm=llm_provider,
        cache=cache,
        general_model=settings.models.general,
        reasoning_model=settings.models.reasoning,
        temperature=settings.generation_temperature,
        top_p=settings.generation_top_p,
    )
    qa = QAService(
        embedder=embedding_provider,
        search=search,
        generator=generator,
        top_k=settings.top_k,
        min_similarity=settings.min_similarity,
    )
    ingestion = IngestionService(
        chunker=chunker,
        embedding_provider=embedding_provider,
        store=store,
        paths=settings.base_paths,
        supported_extensions=settings.supported_extensions,
        poll_interval_seconds=settings.watch_poll_interval_seconds,
        settle_seconds=settings.watch_settle_seconds,
        resume_interrupted=settings.resume_interrupted,
    )

    logger.info(
        "app_context_built",
        environment=settings.app_env,
        embedding_model=settings.models.embedding,
        general_model=settings.models.general,
        store=str(store.path),
        chunk_size=settings.chunk_size_tokens,
        overlap=settings.overlap_tokens,
    )

    return AppContext(
        settings=settings,
        http_client=http_client,
        chunker=chunker,
        embedding_provider=embedding_provider,
        llm_provider=llm_provider,
        cache=cache,
        store=store,
        search=search,
        generator=generator,
        qa=qa,
        ingestion=ingestion,
    )


@asynccontextmanager
async def app_context(settings: Settings) -> AsyncIterator[AppContext]:
    """Build the context on entry and close it on exit."""
    ctx = build_context(settings)
    try:
        yield ctx
    finally:
        await ctx.aclose()
