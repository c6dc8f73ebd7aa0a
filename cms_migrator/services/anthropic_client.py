"""Claude/Anthropic LLM provider."""

from __future__ import annotations

import base64
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Sequence

import anthropic

from ..exceptions import ConfigError, LLMError
from .llm import LLMProvider

logger = logging.getLogger(__name__)

# Max output tokens by model family
_MODEL_MAX_OUTPUT = {
    "claude-sonnet-4": 16_384,
    "claude-opus-4": 16_384,
    "claude-3-7-sonnet": 16_384,
    "claude-3-5-sonnet": 8_192,
    "claude-3-5-haiku": 8_192,
}

_DEFAULT_MAX_OUTPUT = 16_384
_ATTEMPTS = 3


def _get_model_max_output(model: str) -> int:
    for prefix, limit in _MODEL_MAX_OUTPUT.items():
        if model.startswith(prefix):
            return limit
    return _DEFAULT_MAX_OUTPUT


class AnthropicProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key and client is None:
            raise ConfigError("ANTHROPIC_API_KEY environment variable is not set")
        self._client = client or anthropic.Anthropic(api_key=api_key)
        self._model = model
        self._max_output = _get_model_max_output(model)
        self._sleep = sleep

    def _content(self, prompt: str, images: Optional[Sequence[bytes]]) -> List[Dict[str, Any]]:
        content: List[Dict[str, Any]] = []
        for image in images or ():
            content.append(
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": "image/png",
                        "data": base64.b64encode(image).decode("ascii"),
                    },
                }
            )
        content.append({"type": "text", "text": prompt})
        return content

    def complete(self, prompt: str, max_tokens: int, images: Optional[Sequence[bytes]] = None) -> str:
        tokens = min(max_tokens or self._max_output, self._max_output)
        last_error = None
        for attempt in range(_ATTEMPTS):
            try:
                response = self._client.messages.create(
                    model=self._model,
                    max_tokens=tokens,
                    messages=[{"role": "user", "content": self._content(prompt, images)}],
                )
                return "".join(
                    block.text for block in response.content if getattr(block, "type", "text") == "text"
                )
            except anthropic.RateLimitError as e:
                last_error = e
                if attempt < _ATTEMPTS - 1:
                    wait = 2 ** (attempt + 1)
                    logger.warning("Anthropic rate limit hit, retrying in %ss", wait)
                    self._sleep(wait)
            except anthropic.APIError as e:
                raise LLMError(f"Anthropic API error: {e}") from e
        raise LLMError(f"Rate limited after {_ATTEMPTS} attempts: {last_error}")
