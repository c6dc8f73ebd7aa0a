"""
HTML → Markdown conversion for migrated post bodies.

The destination CMS renders Markdown (MDX) and resolves media through an
``<Embed url="..." />`` component, so images are never emitted as
Markdown image tokens.  Conversion runs in three passes:

1. a BeautifulSoup pass that lifts images out of contexts where an embed
   paragraph cannot live: links and inline wrappers holding nothing but
   images are unwrapped (``<a href=full><img src=thumb></a>`` is the usual
   WordPress case), and images inside headings are moved right after the
   heading;
2. a single top-down walk of the tree (markdownify) with two custom
   rules: ``<img>`` becomes an embed directive in its own paragraph, and
   ``<li>`` content is trimmed before the list marker is added;
3. a regex pass over the Markdown that strips WordPress ``[caption]``
   shortcodes, keeping only the embed they wrap.  The caption text is
   dropped.  The pattern is non-greedy and line-agnostic, so nested or
   unterminated captions may swallow more than one image; this matches
   what earlier migrations produced and is left as is.
"""

from __future__ import annotations

import re

from bs4 import BeautifulSoup, NavigableString, Tag
from markdownify import ATX, MarkdownConverter

EMBED_TEMPLATE = '<Embed url="{url}" />'

# Inline tags whose Markdown rendering would wrap an embed in link or
# emphasis syntax
_INLINE_WRAPPERS = {"a", "b", "strong", "i", "em", "u", "span", "small", "mark", "sup", "sub", "s", "del"}
_HEADING_RE = re.compile(r"^h[1-6]$")

_CAPTION_RE = re.compile(
    r'\\?\[caption(.*?)\\?\]([\s\S]*?)<Embed url="([^"]+)" />([\s\S]*?)\\?\[/caption\\?\]'
)
_EXCESS_NEWLINES_RE = re.compile(r"\n{3,}")


def embed_directive(url: str) -> str:
    return EMBED_TEMPLATE.format(url=url)


class EmbedMarkdownConverter(MarkdownConverter):
    """markdownify converter emitting embed directives for images."""

    def __init__(self, **options):
        options.setdefault("heading_style", ATX)
        options.setdefault("bullets", "-")
        options.setdefault("code_language", "")
        super().__init__(**options)

    def convert_img(self, el, text, parent_tags):
        src = (el.get("src") or "").strip()
        if not src:
            return ""
        return f"\n\n{embed_directive(src)}\n\n"

    def convert_li(self, el, text, parent_tags):
        return super().convert_li(el, (text or "").strip(), parent_tags)

    def convert_script(self, el, text, parent_tags):
        return ""

    def convert_style(self, el, text, parent_tags):
        return ""


def _holds_only_images(tag: Tag) -> bool:
    found = False
    for node in tag.children:
        if isinstance(node, Tag):
            if node.name != "img":
                return False
            found = True
        elif isinstance(node, NavigableString) and node.strip():
            return False
    return found


def lift_images(soup: BeautifulSoup) -> BeautifulSoup:
    """Move ``<img>`` tags out of links, inline wrappers and headings in place."""
    for img in soup.find_all("img"):
        parent = img.parent
        while parent is not None and parent.name in _INLINE_WRAPPERS and _holds_only_images(parent):
            grandparent = parent.parent
            parent.unwrap()
            parent = grandparent

    for heading in soup.find_all(_HEADING_RE):
        anchor = heading
        for img in heading.find_all("img"):
            anchor.insert_after(img.extract())
            anchor = img
        if anchor is not heading and not heading.get_text(strip=True) and heading.find(True) is None:
            heading.decompose()
    return soup


def strip_caption_shortcodes(markdown: str) -> str:
    """Replace ``[caption ...]...<Embed/>...[/caption]`` with the bare embed."""
    return _CAPTION_RE.sub(lambda m: embed_directive(m.group(3)), markdown)


def convert_html_to_markdown(html: str) -> str:
    """Convert an HTML fragment to Markdown.

    Deterministic: the same input always yields the same output.  Returns
    an empty string for empty or whitespace-only content.
    """
    if not html or not html.strip():
        return ""
    soup = lift_images(BeautifulSoup(html, "html.parser"))
    markdown = EmbedMarkdownConverter().convert_soup(soup)
    markdown = strip_caption_shortcodes(markdown)
    markdown = _EXCESS_NEWLINES_RE.sub("\n\n", markdown)
    return markdown.strip()


def is_blank(markdown: str) -> bool:
    return not (markdown or "").strip()
