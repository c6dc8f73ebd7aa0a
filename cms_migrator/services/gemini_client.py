from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterable, List, Optional, Sequence, Union

from ..exceptions import ConfigError, LLMError
from .llm import LLMProvider

# Gemini SDK (google-genai). Clear message if it is not installed.
try:
    from google import genai  # type: ignore
    from google.genai import errors, types  # type: ignore
except ImportError as exc:  # pragma: no cover - friendlier feedback in environments without deps
    raise ImportError(
        "Package 'google-genai' not found. Add it to the environment (pip install google-genai)."
    ) from exc

logger = logging.getLogger(__name__)

ContentInput = Union[str, bytes]

_ATTEMPTS = 3


class GeminiProvider(LLMProvider):
    """Simple client for the Gemini API (Google Gen AI) with image support.

    - The API key comes from configuration (``GOOGLE_API_KEY``).
    - Accepts text prompts plus PNG screenshots (bytes).
    - Retries on rate limiting (HTTP 429) with exponential backoff.

    Quick example:
        from cms_migrator.services.gemini_client import GeminiProvider

        llm = GeminiProvider(api_key="...")
        text = llm.complete("Summarize this page in 1 sentence:", 1000, images=[png_bytes])
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        http_options: Optional[dict] = None,
        client: Optional[Any] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key and client is None:
            raise ConfigError("GOOGLE_API_KEY environment variable is not set")

        self.model = model
        self._sleep = sleep

        # http_options is optional; when present the SDK accepts a dict.
        if client is not None:
            self.client = client
        elif http_options:
            self.client = genai.Client(api_key=api_key, http_options=http_options)
        else:
            self.client = genai.Client(api_key=api_key)

    # ------------------------- PUBLIC API -------------------------
    def complete(self, prompt: str, max_tokens: int, images: Optional[Sequence[bytes]] = None) -> str:
        contents = self._build_contents([*(images or ()), prompt])
        config = types.GenerateContentConfig(max_output_tokens=max_tokens)
        last_error = None
        for attempt in range(_ATTEMPTS):
            try:
                response = self.client.models.generate_content(
                    model=self.model,
                    contents=contents,
                    config=config,
                )
                return getattr(response, "text", None) or ""
            except errors.APIError as e:
                if getattr(e, "code", None) != 429:
                    raise LLMError(f"Gemini API error: {e}") from e
                last_error = e
                if attempt < _ATTEMPTS - 1:
                    wait = 2 ** (attempt + 1)
                    logger.warning("Gemini rate limit hit, retrying in %ss", wait)
                    self._sleep(wait)
        raise LLMError(f"Rate limited after {_ATTEMPTS} attempts: {last_error}")

    # ----------------------- INTERNAL HELPERS ----------------------
    def _build_contents(self, inputs: Iterable[ContentInput]) -> List[object]:
        parts: List[object] = []

        for item in inputs:
            # 1) Plain text
            if isinstance(item, str):
                parts.append(item)
                continue

            # 2) Bytes (page screenshots are PNG)
            if isinstance(item, (bytes, bytearray)):
                parts.append(types.Part.from_bytes(data=bytes(item), mime_type="image/png"))
                continue

            raise TypeError(f"Unsupported input type for GeminiProvider: {type(item)!r}")

        return parts
