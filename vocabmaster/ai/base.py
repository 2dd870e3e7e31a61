"""Base class for AI providers."""

from abc import ABC, abstractmethod
from typing import Optional


class AIProvider(ABC):
    """Abstract base class for AI providers.

    Providers are synchronous; the oracle runs them off the event loop.
    """

    name = "ai"

    @abstractmethod
    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 2000,
    ) -> str:
        """
        Generate text from a prompt.

        Args:
            prompt: The user prompt
            system: Optional system prompt
            max_tokens: Maximum tokens in response

        Returns:
            Generated text
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the provider is configured and available."""
