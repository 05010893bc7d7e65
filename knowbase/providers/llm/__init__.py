"""LLM provider adapters.

OllamaLLMProvider implements ILLMProvider (knowbase/interfaces/llm_provider.py)
against a local Ollama server.  main.py builds it with the shared HTTP client
and hands it to the answer generator.
"""

from knowbase.providers.llm.ollama_provider import OllamaLLMProvider

__all__ = ["OllamaLLMProvider"]
