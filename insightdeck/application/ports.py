"""
Application ports - abstract interfaces for external dependencies.

These interfaces define the contracts that the application layer needs
from external systems, following the Dependency Inversion Principle.
"""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, List, Optional


class LLMServicePort(ABC):
    """Abstract interface for text-generation backends."""

    @abstractmethod
    async def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """Run one system+user exchange and return the raw reply text.

        Implementations translate vendor failures into domain errors:
        ``QuotaExceededError``, ``ConfigurationError`` or ``BackendError``.
        """

    @abstractmethod
    def stream(self, messages: List[Dict[str, str]]) -> AsyncIterator[str]:
        """Stream reply text chunks for a chat-style message list."""

    @property
    @abstractmethod
    def fast_model(self) -> str:
        """Model name used for latency-sensitive sub-tasks."""
