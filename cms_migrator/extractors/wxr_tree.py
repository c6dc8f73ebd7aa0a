"""
Reading WordPress eXtended RSS (WXR) exports into a generic node tree.

WordPress serialises the same logical field in different shapes: a bare
text element, an element carrying attributes (``<category domain="...">``)
or a repeated element.  Rather than probing parsed dictionaries for each
possibility, the export is converted into a small tagged union:

``Scalar``
    an element with neither attributes nor children; only text.
``TextWrapper``
    an element with attributes and text but no children.
``Branch``
    an element with child elements, keyed by prefixed tag name.
``Repeated``
    an ordered sequence of sibling nodes sharing one tag name.

``item``, ``category`` and ``wp:postmeta`` are always ``Repeated``, even
for a single occurrence, so the extractors can iterate them uniformly.
Every field read goes through :func:`resolve_text`.
"""

from __future__ import annotations

import io
import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple, Union

from ..exceptions import IngestError

logger = logging.getLogger(__name__)

ALWAYS_ARRAY_TAGS = frozenset({"item", "category", "wp:postmeta"})

_INVALID_XML_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")


@dataclass(frozen=True)
class Scalar:
    text: str = ""


@dataclass(frozen=True)
class TextWrapper:
    text: str = ""
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class Branch:
    children: Dict[str, "Node"] = field(default_factory=dict)
    attributes: Dict[str, str] = field(default_factory=dict)
    text: str = ""


@dataclass(frozen=True)
class Repeated:
    items: Tuple["Node", ...] = ()


Node = Union[Scalar, TextWrapper, Branch, Repeated]


def resolve_text(node: Optional[Node]) -> str:
    """Return the text carried by ``node`` whatever its shape.

    A ``Repeated`` node resolves to its first entry, a missing node to the
    empty string.
    """
    if node is None:
        return ""
    if isinstance(node, Scalar):
        return node.text
    if isinstance(node, TextWrapper):
        return node.text
    if isinstance(node, Branch):
        return node.text
    if isinstance(node, Repeated):
        return resolve_text(node.items[0]) if node.items else ""
    raise TypeError(f"Unsupported node type: {type(node)!r}")


def iter_nodes(node: Optional[Node]) -> Iterator[Node]:
    """Iterate a node as a sequence: a ``Repeated`` yields its entries,
    any other node yields itself, ``None`` yields nothing."""
    if node is None:
        return
    if isinstance(node, Repeated):
        yield from node.items
    else:
        yield node


def child(node: Optional[Node], tag: str) -> Optional[Node]:
    """Return the child ``tag`` of a ``Branch`` (``None`` for any other shape)."""
    if isinstance(node, Branch):
        return node.children.get(tag)
    return None


def attribute(node: Optional[Node], name: str) -> str:
    """Return attribute ``name`` of a node, or an empty string."""
    if isinstance(node, (TextWrapper, Branch)):
        return node.attributes.get(name, "")
    return ""


def _clean_xml(text: str) -> str:
    """Remove invalid XML control characters and leading whitespace."""
    return _INVALID_XML_CHARS.sub("", text or "").lstrip()


def _namespace_prefixes(xml_text: str) -> Dict[str, str]:
    """Map namespace URIs to the prefixes declared in the document."""
    prefixes: Dict[str, str] = {}
    for _, (prefix, uri) in ET.iterparse(io.StringIO(xml_text), events=("start-ns",)):
        prefixes.setdefault(uri, prefix)
    return prefixes


def _tag_name(tag: str, prefixes: Dict[str, str]) -> str:
    if tag.startswith("{"):
        uri, _, local = tag[1:].partition("}")
        prefix = prefixes.get(uri)
        return f"{prefix}:{local}" if prefix else local
    return tag


def _attribute_names(attrib: Dict[str, str], prefixes: Dict[str, str]) -> Dict[str, str]:
    return {_tag_name(k, prefixes): v for k, v in attrib.items()}


def _build_node(element: ET.Element, prefixes: Dict[str, str]) -> Node:
    text = element.text or ""
    attributes = _attribute_names(element.attrib, prefixes)
    if len(element) == 0:
        if attributes:
            return TextWrapper(text=text, attributes=attributes)
        return Scalar(text=text)

    grouped: Dict[str, List[Node]] = {}
    for sub in element:
        grouped.setdefault(_tag_name(sub.tag, prefixes), []).append(_build_node(sub, prefixes))

    children: Dict[str, Node] = {}
    for name, nodes in grouped.items():
        if len(nodes) == 1 and name not in ALWAYS_ARRAY_TAGS:
            children[name] = nodes[0]
        else:
            children[name] = Repeated(items=tuple(nodes))
    return Branch(children=children, attributes=attributes, text=text.strip())


def parse_wxr(xml_text: str) -> Branch:
    """Parse WXR text into a ``Branch`` representing the ``<rss>`` element.

    :raises IngestError: if the text is not well-formed XML or has no
        ``rss/channel`` element.
    """
    cleaned = _clean_xml(xml_text)
    if not cleaned:
        raise IngestError("WordPress export is empty")
    try:
        prefixes = _namespace_prefixes(cleaned)
        root = ET.fromstring(cleaned)
    except ET.ParseError as e:
        raise IngestError(f"Malformed WordPress export: {e}") from e

    if _tag_name(root.tag, prefixes) != "rss":
        raise IngestError(f"Unexpected root element <{root.tag}>, expected <rss>")
    tree = _build_node(root, prefixes)
    if not isinstance(tree, Branch) or not isinstance(child(tree, "channel"), Branch):
        raise IngestError("WordPress export has no <channel> element")
    return tree


def load_wxr_items(xml_text: str, *, strict: bool = False) -> List[Branch]:
    """Return the ``<item>`` nodes of a WXR document, in document order.

    Parse failures are logged and produce an empty list, so callers cannot
    tell "no items" from "unreadable export" unless ``strict`` is set, in
    which case :class:`IngestError` propagates.
    """
    try:
        tree = parse_wxr(xml_text)
    except IngestError as e:
        if strict:
            raise
        logger.error("Error parsing WordPress XML: %s", e)
        return []
    channel = child(tree, "channel")
    return [node for node in iter_nodes(child(channel, "item")) if isinstance(node, Branch)]


def read_wxr_file(path: str, *, strict: bool = False) -> List[Branch]:
    """Read a WXR export from ``path`` and return its items."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            xml_text = f.read()
    except OSError as e:
        if strict:
            raise IngestError(f"Could not read WordPress export {path}: {e}") from e
        logger.error("Could not read WordPress export %s: %s", path, e)
        return []
    logger.info("Read WordPress export %s", path)
    return load_wxr_items(xml_text, strict=strict)
