"""Custom exception hierarchy for knowbase.

All application exceptions inherit from :class:`KnowbaseError`, which
carries an optional ``provider_name`` so handlers can tell which external
collaborator (e.g. "ollama", "json_store", "pdf") caused the failure.

The hierarchy is organized by pipeline stage:

    KnowbaseError  (base -- catch-all for any knowbase error)
    +-- ConfigurationError        (startup: bad chunk/overlap, invalid settings)
    +-- ExtractionError           (per document: unreadable or corrupt file)
    |   +-- EmptyDocumentError    (per document: extraction produced no words)
    +-- UnsupportedFileTypeError  (per document: no extractor for extension)
    +-- EmbeddingError            (per chunk / per query: retries exhausted)
    +-- StorageError              (per append batch)
    |   +-- StoreCorruptedError
    |   +-- StorageFullError
    |   +-- StoreLockTimeoutError
    +-- SimilarityError           (per comparison)
    |   +-- DimensionMismatchError
    |   +-- UndefinedSimilarityError
    +-- GenerationError           (per query: answer generation failed)

Per-item errors (one chunk, one file, one comparison) are contained by the
loop that owns the item; only ConfigurationError is fatal.
"""


class KnowbaseError(Exception):
    """Base exception for all knowbase errors.

    Every subclass carries a human-readable ``message`` and an optional
    ``provider_name``.  ``__str__`` prefixes the provider name in brackets
    for log scanning, e.g. ``[ollama] Embedding request failed``.
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        provider_name: str | None = None,
    ) -> None:
        self._message = message
        self._provider_name = provider_name
        super().__init__(self._message)

    @property
    def message(self) -> str:
        return self._message

    @property
    def provider_name(self) -> str | None:
        return self._provider_name

    def __str__(self) -> str:
        if self._provider_name:
            return f"[{self._provider_name}] {self._message}"
        return self._message


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------

class ConfigurationError(KnowbaseError):
    """Raised when configuration is invalid or missing at startup."""

    def __init__(
        self,
        message: str = "Invalid or missing configuration",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion: extraction
# ---------------------------------------------------------------------------

class ExtractionError(KnowbaseError):
    """Raised when a document's text cannot be extracted."""

    def __init__(
        self,
        message: str = "Text extraction failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class EmptyDocumentError(ExtractionError):
    """Raised when a document yields no words to chunk.

    Distinct from a normal empty result: the orchestrator moves the
    document to the error area instead of silently skipping it.
    """

    def __init__(
        self,
        message: str = "Document contains no text",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UnsupportedFileTypeError(KnowbaseError):
    """Raised when no extractor handles a file extension."""

    def __init__(
        self,
        message: str = "Unsupported file type",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Ingestion / query: embedding
# ---------------------------------------------------------------------------

class EmbeddingError(KnowbaseError):
    """Raised when an embedding cannot be produced (retries exhausted included)."""

    def __init__(
        self,
        message: str = "Embedding generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------

class StorageError(KnowbaseError):
    """Raised when the embedding store cannot be read or written."""

    def __init__(
        self,
        message: str = "Embedding store operation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreCorruptedError(StorageError):
    """Raised when the persisted store contains malformed data."""

    def __init__(
        self,
        message: str = "Embedding store is corrupted",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StorageFullError(StorageError):
    """Raised when the store cannot be written for lack of disk space."""

    def __init__(
        self,
        message: str = "Insufficient disk space for embedding store",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class StoreLockTimeoutError(StorageError):
    """Raised when the store's writer lock is not acquired in time."""

    def __init__(
        self,
        message: str = "Timed out waiting for the embedding store lock",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Retrieval
# ---------------------------------------------------------------------------

class SimilarityError(KnowbaseError):
    """Raised when a similarity score cannot be computed for a vector pair."""

    def __init__(
        self,
        message: str = "Similarity computation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class DimensionMismatchError(SimilarityError):
    """Raised when two compared vectors differ in length."""

    def __init__(
        self,
        message: str = "Vector dimensions do not match",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


class UndefinedSimilarityError(SimilarityError):
    """Raised when a zero vector makes cosine similarity undefined."""

    def __init__(
        self,
        message: str = "Cosine similarity is undefined for a zero vector",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)


# ---------------------------------------------------------------------------
# Answering
# ---------------------------------------------------------------------------

class GenerationError(KnowbaseError):
    """Raised when the generation endpoint fails or returns no text."""

    def __init__(
        self,
        message: str = "Answer generation failed",
        provider_name: str | None = None,
    ) -> None:
        super().__init__(message=message, provider_name=provider_name)
