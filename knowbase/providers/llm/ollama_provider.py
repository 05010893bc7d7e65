"""Ollama LLM provider adapter.

Talks to a local Ollama server through its native ``POST /api/generate``
endpoint with ``stream: false``, so the whole answer arrives in one JSON
body (``{"response": "..."}``).  Stop sequences, temperature and top_p are
passed through ``options``.

Setup: install Ollama (https://ollama.ai), then ``ollama pull llama3.1``
and ``ollama pull deepseek-r1`` for reasoning answers.  Set
``OLLAMA_BASE_URL`` if the server is not on ``http://localhost:11434``.
"""

from __future__ import annotations

import httpx
import structlog

from knowbase.config.settings import Settings
from knowbase.interfaces.llm_provider import ILLMProvider
from knowbase.utils.errors import GenerationError

logger = structlog.get_logger(logger_name=__name__)

_GENERATE_PATH = "/api/generate"


class OllamaLLMProvider(ILLMProvider):
    """LLM provider backed by a local Ollama server.

    Defaults to ``settings.models.general``; callers pass
    ``settings.models.reasoning`` explicitly when they want it.
    """

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._http = http_client
        self._base_url = settings.ollama_base_url.rstrip("/")
        self._default_model = settings.models.general
        self._timeout = settings.request_timeout_seconds

    # ------------------------------------------------------------------
    # ILLMProvider implementation
    # ------------------------------------------------------------------

    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        stop: list[str] | None = None,
        temperature: float = 0.2,
        top_p: float = 0.9,
    ) -> str:
        """Generate a completion via Ollama's native generate API."""
        model_name = model or self._default_model
        payload = {
            "model": model_name,
            "prompt": prompt,
            "stream": False,
            "options": {
                "stop": list(stop or []),
                "temperature": temperature,
                "top_p": top_p,
            },
        }

        try:
            response = await self._http.post(
                f"{self._base_url}{_GENERATE_PATH}",
                json=payload,
                timeout=self._timeout,
            )
        except httpx.HTTPError as exc:
            raise GenerationError(
                message=f"Ollama request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code != 200:
            raise GenerationError(
                message=f"Ollama returned HTTP {response.status_code}",
                provider_name=self.get_provider_name(),
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise GenerationError(
                message="Ollama response is not valid JSON",
                provider_name=self.get_provider_name(),
            ) from exc

        content = body.get("response") if isinstance(body, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise GenerationError(
                message="Ollama returned empty response",
                provider_name=self.get_provider_name(),
            )

        logger.info("ollama_completion", model=model_name, response_chars=len(content))
        return content

    def get_provider_name(self) -> str:
        return "ollama"
