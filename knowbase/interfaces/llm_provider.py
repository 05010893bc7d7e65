"""Abstract base class for text-generation providers.

The answer generator builds a single grounded prompt and asks the provider
to complete it.  Stop sequences are part of the contract because they keep
the model from inventing further question/information blocks.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


# Concrete implementation: OllamaLLMProvider
# Located in: knowbase/providers/llm/
class ILLMProvider(ABC):
    """Contract for LLM completion services."""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        model: str | None = None,
        stop: list[str] | None = None,
        temperature: float = 0.2,
        top_p: float = 0.9,
    ) -> str:
        """Generate a completion for *prompt*.

        Parameters
        ----------
        prompt:
            The full prompt text.
        model:
            Model to use.  ``None`` selects the provider's default model.
        stop:
            Sequences at which generation halts.
        temperature:
            Sampling temperature.
        top_p:
            Nucleus-sampling probability mass.

        Returns
        -------
        str
            The model's response text, never empty.

        Raises
        ------
        knowbase.utils.errors.GenerationError
            On a non-200 response, a transport failure, or an empty output.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""
