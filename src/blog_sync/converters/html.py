"""HTML documents to Markdown posts."""

from __future__ import annotations

import logging

from bs4 import BeautifulSoup
from markdownify import markdownify

from blog_sync.sync.fingerprint import normalize_body

from .common import ConversionResult, normalize_tags

logger = logging.getLogger(__name__)

_DROPPED_TAGS = ["script", "style", "noscript", "template"]


def _meta_content(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find("meta", attrs={"name": name})
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def html_to_post(text: str) -> ConversionResult:
    """Extract metadata from an HTML document and convert its body.

    Title precedence: ``<title>``, then the first ``<h1>``.  The heading
    repeating the title is removed from the body, as are scripts and
    styles.
    """
    soup = BeautifulSoup(text, "html.parser")
    warnings: list[str] = []
    metadata: dict = {}

    title = ""
    if soup.title is not None and soup.title.string:
        title = soup.title.string.strip()
    first_h1 = soup.find("h1")
    if not title and first_h1 is not None:
        title = first_h1.get_text(" ", strip=True)
    if title:
        metadata["title"] = title
    else:
        warnings.append("No <title> or <h1> found")

    description = _meta_content(soup, "description")
    if description:
        metadata["description"] = description

    tags = normalize_tags(_meta_content(soup, "keywords"))
    for tag in normalize_tags(_meta_content(soup, "tags")):
        if tag not in tags:
            tags.append(tag)
    if tags:
        metadata["tags"] = tags

    for element in soup(_DROPPED_TAGS):
        element.decompose()
    if (
        first_h1 is not None
        and title
        and first_h1.get_text(" ", strip=True) == title
    ):
        first_h1.decompose()

    root = soup.body if soup.body is not None else soup
    if soup.head is not None:
        soup.head.decompose()
    body = markdownify(str(root), heading_style="ATX")

    return ConversionResult(
        body=normalize_body(body), metadata=metadata, warnings=warnings
    )
