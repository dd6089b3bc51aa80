"""Common types and utilities for format conversion."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class ConversionResult:
    """Result of converting one source file into a post.

    Attributes:
        body: Markdown body, normalised
        metadata: Post metadata (title, description, tags, ...)
        warnings: Non-fatal problems found while converting
    """

    body: str
    metadata: dict[str, Any] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def normalize_tags(raw: object) -> list[str]:
    """Coerce a tags value into a list of non-empty strings.

    Accepts a comma-separated string or a list.  Order is preserved and
    duplicates are dropped.

    Examples:
        >>> normalize_tags("python, sync ,python")
        ['python', 'sync']
        >>> normalize_tags(["a", 1])
        ['a', '1']
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        candidates = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        candidates = [str(v) for v in raw if v is not None]
    else:
        candidates = [str(raw)]

    tags: list[str] = []
    for tag in candidates:
        tag = tag.strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


def strip_leading_heading(body: str, title: str) -> str:
    """Drop the first ``# heading`` when it repeats *title*.

    Leading blank lines are skipped; anything other than a matching level-1
    heading leaves *body* unchanged.
    """
    lines = body.split("\n")
    for i, line in enumerate(lines):
        stripped = line.strip()
        if not stripped:
            continue
        if stripped.startswith("# ") and stripped[2:].strip() == title:
            return "\n".join(lines[i + 1 :])
        break
    return body
