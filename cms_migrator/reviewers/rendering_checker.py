"""Judging whether a migrated page rendered properly."""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Mapping, Optional

from ..exceptions import LLMError
from ..services.llm import LLMProvider
from .body_rewriter import truncate

logger = logging.getLogger(__name__)

HTML_PROMPT_LIMIT = 15_000
BODY_PREVIEW_LIMIT = 500

PARSE_ERROR_RESULT = {"isProperlyRendered": False, "issues": ["Error parsing AI response"]}

RENDERING_PROMPT = """
You are an expert web developer tasked with checking if a project page has rendered properly.

Here's information about the project:
- Title: {title}
- Author: {author}
- Content Preview: {preview}...

Here's the HTML of the rendered page:
```html
{html}
```

Please analyze the HTML and determine if the page has rendered properly. Look for these common issues:
1. Missing content (e.g., the project body is not visible)
2. Broken images or media embeds
3. Formatting problems (e.g., headings, lists, paragraphs not displaying correctly)
4. JavaScript errors visible on the page
5. "Page not found" or error messages

Only include actual rendering issues, not content quality or style suggestions.

Respond with a JSON object in this exact format:
{{
  "isProperlyRendered": true/false,
  "issues": ["Issue 1", "Issue 2", ...] (empty array if no issues)
}}

DO NOT include any other text in your response.
"""


def build_rendering_prompt(html: str, record: Mapping[str, Any]) -> str:
    body = str(record.get("body") or "")
    return RENDERING_PROMPT.format(
        title=record.get("title", ""),
        author=record.get("authorName", ""),
        preview=body[:BODY_PREVIEW_LIMIT],
        html=truncate(html or "", HTML_PROMPT_LIMIT),
    )


def parse_rendering_response(text: str) -> Dict[str, Any]:
    """Parse the LLM verdict.

    Anything but a JSON object with a boolean ``isProperlyRendered`` and a
    list ``issues`` gives :data:`PARSE_ERROR_RESULT`.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        logger.error("Error parsing AI response as JSON. Raw AI response: %s", text)
        return dict(PARSE_ERROR_RESULT, issues=list(PARSE_ERROR_RESULT["issues"]))
    if (
        not isinstance(data, dict)
        or not isinstance(data.get("isProperlyRendered"), bool)
        or not isinstance(data.get("issues"), list)
    ):
        logger.error("Unexpected AI response shape: %s", text)
        return dict(PARSE_ERROR_RESULT, issues=list(PARSE_ERROR_RESULT["issues"]))
    return {
        "isProperlyRendered": data["isProperlyRendered"],
        "issues": [str(issue) for issue in data["issues"]],
    }


def check_rendering(
    llm: LLMProvider,
    html: str,
    record: Mapping[str, Any],
    screenshot: Optional[bytes] = None,
    max_tokens: int = 4_000,
) -> Dict[str, Any]:
    try:
        reply = llm.complete(
            build_rendering_prompt(html, record),
            max_tokens,
            images=[screenshot] if screenshot else None,
        )
    except LLMError as e:
        logger.error("Error checking project rendering: %s", e)
        return {"isProperlyRendered": False, "issues": [f"Error checking rendering: {e}"]}
    return parse_rendering_response(reply)
