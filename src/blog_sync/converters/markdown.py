"""Markdown with optional YAML front matter."""

from __future__ import annotations

import logging
from pathlib import PurePosixPath

import frontmatter
import yaml

from blog_sync.sync.fingerprint import normalize_body

from .common import ConversionResult, normalize_tags, strip_leading_heading

logger = logging.getLogger(__name__)


def extract_title(body: str, path: str = "") -> str:
    """Return the first level-1 heading, else a title derived from *path*."""
    for line in body.strip().split("\n"):
        stripped = line.strip()
        if stripped.startswith("# "):
            return stripped[2:].strip()
    if path:
        stem = PurePosixPath(path).stem
        return stem.replace("-", " ").replace("_", " ").strip().title()
    return ""


def markdown_to_post(text: str, path: str = "") -> ConversionResult:
    """Split front matter from a Markdown document.

    The title comes from the ``title`` key when present; otherwise from the
    first ``# `` heading (which is then removed from the body) and finally
    from the file name.

    Raises:
        ValueError: If the front matter is not valid YAML or not a mapping.
    """
    try:
        post = frontmatter.loads(text)
    except (yaml.YAMLError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid front matter: {exc}") from exc

    warnings: list[str] = []
    metadata = dict(post.metadata)

    title = metadata.get("title")
    if title is None or not str(title).strip():
        title = extract_title(post.content, path)
        if not title:
            warnings.append("No title found in front matter or headings")
    title = str(title).strip()

    body = strip_leading_heading(post.content, title) if title else post.content
    if title:
        metadata["title"] = title

    if "tags" in metadata:
        metadata["tags"] = normalize_tags(metadata["tags"])

    return ConversionResult(
        body=normalize_body(body), metadata=metadata, warnings=warnings
    )
