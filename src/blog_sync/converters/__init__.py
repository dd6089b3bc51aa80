"""Conversion of source files (Markdown, HTML) into post bodies and metadata."""

from .common import ConversionResult, normalize_tags, strip_leading_heading
from .markdown import extract_title, markdown_to_post
from .html import html_to_post


def convert(raw_text: str, format: str, path: str = "") -> ConversionResult:
    """Convert *raw_text* of the given source *format*.

    Args:
        raw_text: Decoded file content.
        format: ``"markdown"`` or ``"html"``.
        path: Relative path, used for title fallbacks and messages.

    Raises:
        ValueError: On an unknown format or unparseable input.
    """
    if format == "markdown":
        return markdown_to_post(raw_text, path)
    if format == "html":
        return html_to_post(raw_text)
    raise ValueError(f"Unsupported content format: {format}")


__all__ = [
    "ConversionResult",
    "convert",
    "extract_title",
    "html_to_post",
    "markdown_to_post",
    "normalize_tags",
    "strip_leading_heading",
]
