"""Abstract base class for key-value cache providers.

Used by the answer generator to remember answers for a
(question, retrieved-chunks) pair for the lifetime of the process.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class ICacheProvider(ABC):
    """Contract for key-value cache services.

    Operations are async so a shared backend could be dropped in without
    changing callers.
    """

    @abstractmethod
    async def get(self, key: str) -> Any | None:
        """Return the value stored under *key*, or ``None`` if absent."""

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""
