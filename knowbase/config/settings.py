"""Application settings loaded from environment variables via pydantic-settings.

Sources, highest priority first:

    1. Environment variables  -- e.g. ``CHUNK_SIZE_TOKENS=400``
    2. ``.env`` file          -- local overrides, never committed
    3. Field defaults below

Nested groups use a double underscore, e.g. ``BASE_PATHS__INPUT_DIR=~/inbox``
or ``MODELS__GENERAL=mistral``.  ``config/loader.py`` can additionally layer a
YAML file underneath the environment.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SUPPORTED_EXTENSIONS: frozenset[str] = frozenset(
    {".docx", ".xlsx", ".pdf", ".txt", ".vtt", ".srt", ".epub"}
)


class BasePaths(BaseModel):
    """Directories the ingestion orchestrator moves files through."""

    input_dir: str = "data/input"
    processing_dir: str = "data/processing"
    completed_dir: str = "data/completed"
    error_dir: str = "data/error"
    embeddings_file: str = "data/embeddings/embeddings.json"


class ModelNames(BaseModel):
    """Model identifiers served by the local inference server."""

    embedding: str = "nomic-embed-text"
    general: str = "llama3.1"
    reasoning: str = "deepseek-r1"


class Settings(BaseSettings):
    """knowbase application settings.

    Environment variables override defaults.  Loaded from ``.env`` when present.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        extra="ignore",
    )

    # === Chunking ===
    chunk_size_tokens: int = 500
    overlap_tokens: int = 50
    supported_extensions: set[str] = Field(
        default_factory=lambda: set(DEFAULT_SUPPORTED_EXTENSIONS)
    )

    # === Locations ===
    base_paths: BasePaths = Field(default_factory=BasePaths)

    # === Inference server ===
    models: ModelNames = Field(default_factory=ModelNames)
    ollama_base_url: str = "http://localhost:11434"
    request_timeout_seconds: float = 60.0

    # === Embedding retry policy ===
    embedding_max_retries: int = Field(default=3, ge=1)
    embedding_retry_delay_seconds: float = Field(default=3.0, ge=0.0)

    # === Answer generation ===
    generation_temperature: float = 0.2
    generation_top_p: float = 0.9

    # === Retrieval ===
    top_k: int = Field(default=5, ge=1)
    min_similarity: float = 0.0
    search_batch_size: int = Field(default=256, ge=1)

    # === Store ===
    store_lock_timeout_seconds: float = Field(default=30.0, gt=0.0)

    # === Watcher ===
    watch_poll_interval_seconds: float = Field(default=2.0, gt=0.0)
    watch_settle_seconds: float = Field(default=1.0, ge=0.0)
    # False: leftovers in the processing area are moved to error/interrupted.
    # True: they are moved back to the input directory and reprocessed.
    resume_interrupted: bool = False

    # === App ===
    app_env: str = "development"
    log_level: str = "INFO"
    log_file: str = ""

    @model_validator(mode="after")
    def _check_chunking(self) -> Settings:
        if self.overlap_tokens < 0:
            raise ValueError("overlap_tokens must be >= 0")
        if self.chunk_size_tokens <= self.overlap_tokens:
            raise ValueError(
                "chunk_size_tokens must be greater than overlap_tokens "
                f"(got {self.chunk_size_tokens} <= {self.overlap_tokens})"
            )
        return self

    @field_validator("supported_extensions", mode="after")
    @classmethod
    def _normalize_extensions(cls, value: set[str]) -> set[str]:
        # Accept "pdf", ".PDF" and ".pdf" alike.
        return {
            ext.lower() if ext.startswith(".") else f".{ext.lower()}"
            for ext in value
            if ext
        }
