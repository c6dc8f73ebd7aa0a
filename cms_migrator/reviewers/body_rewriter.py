"""
AI repair of migrated Markdown bodies.

The LLM is shown three things: the HTML the old CMS rendered for a page,
the HTML the new CMS renders from the current Markdown, and the Markdown
itself.  It answers with corrected Markdown.  Any failure keeps the
original Markdown, so a repair pass can never lose content.
"""

from __future__ import annotations

import logging
import re

from ..exceptions import LLMError
from ..services.llm import LLMProvider

logger = logging.getLogger(__name__)

HTML_PROMPT_LIMIT = 10_000
TRUNCATION_MARKER = "... (truncated)"

_FENCE_RE = re.compile(r"^```[\w-]*\n([\s\S]*?)\n?```$")

REWRITE_PROMPT = """
I need to fix markdown syntax in {kind}s that are being migrated between CMS systems.

Here's the HTML rendered from the old CMS:
```html
{old_html}
```

Here's the HTML rendered from the new CMS using the current markdown:
```html
{new_html}
```

Here's the current markdown source:
```markdown
{markdown}
```

Please analyze the differences between the old HTML and new HTML, then fix the markdown syntax to ensure the content renders correctly in the new CMS. We're focusing on the content being the same for users, not it being exactly the same syntax wise.

It might be possible the markdown is already correct. In this case just return back the same markdown.

Common issues to fix:
1. Incorrect or missing newlines (the markdown must use two newlines to separate paragraphs)
2. Improper embedding of media (use <Embed url="..." /> for videos and images, not markdown images)
3. Missing list formatting

Return ONLY the fixed markdown with no explanations, backticks, or additional text.
"""


def truncate(text: str, limit: int) -> str:
    """Cut ``text`` to ``limit`` characters, appending a marker when cut."""
    if len(text) <= limit:
        return text
    return f"{text[:limit]} {TRUNCATION_MARKER}"


def build_rewrite_prompt(old_html: str, new_html: str, markdown: str, kind: str = "blog post") -> str:
    return REWRITE_PROMPT.format(
        kind=kind,
        old_html=truncate(old_html, HTML_PROMPT_LIMIT),
        new_html=truncate(new_html, HTML_PROMPT_LIMIT),
        markdown=markdown,
    )


def strip_code_fence(text: str) -> str:
    """Remove a code fence wrapped around the whole reply, if any."""
    stripped = text.strip()
    match = _FENCE_RE.match(stripped)
    return match.group(1) if match else stripped


def get_rewritten_body(
    llm: LLMProvider,
    old_html: str,
    new_html: str,
    markdown: str,
    kind: str = "blog post",
    max_tokens: int = 20_000,
) -> str:
    """Ask the LLM for repaired Markdown.

    Returns ``markdown`` unchanged when any input is missing, when the LLM
    call fails or when it answers with nothing.
    """
    if not old_html or not new_html or not markdown:
        logger.warning("Missing input for rewriting, keeping the original markdown")
        return markdown

    logger.info("Analyzing HTML differences and rewriting markdown...")
    try:
        reply = llm.complete(build_rewrite_prompt(old_html, new_html, markdown, kind), max_tokens)
    except LLMError as e:
        logger.error("Error rewriting body: %s", e)
        return markdown

    rewritten = strip_code_fence(reply or "")
    if not rewritten:
        logger.warning("LLM returned an empty body, keeping the original markdown")
        return markdown
    logger.info("Successfully rewrote markdown")
    return rewritten
