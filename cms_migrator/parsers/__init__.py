"""
Parsers and converters used by the migration pipeline.

Currently this subpackage exposes ``convert_html_to_markdown`` and
``is_blank`` from :mod:`cms_migrator.parsers.markdown_parser`.
"""

from .markdown_parser import convert_html_to_markdown, is_blank

__all__ = ["convert_html_to_markdown", "is_blank"]
