"""LLM provider interface and factory."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional, Sequence

from ..config import LLMConfig


class LLMProvider(ABC):
    """Abstract text completion service."""

    @abstractmethod
    def complete(self, prompt: str, max_tokens: int, images: Optional[Sequence[bytes]] = None) -> str:
        """Send one user prompt and return the text of the reply.

        Args:
            prompt: The full user prompt.
            max_tokens: Upper bound on output tokens; providers may cap it
                further to what the model supports.
            images: Optional PNG images (e.g. page screenshots) sent along
                with the prompt.

        Raises:
            LLMError: if the request fails.
        """


def get_llm_provider(config: LLMConfig) -> LLMProvider:
    """Create and return the configured LLM provider."""
    if config.provider == "gemini":
        from .gemini_client import GeminiProvider

        return GeminiProvider(api_key=config.google_api_key, model=config.default_model)
    from .anthropic_client import AnthropicProvider

    return AnthropicProvider(api_key=config.anthropic_api_key, model=config.default_model)
