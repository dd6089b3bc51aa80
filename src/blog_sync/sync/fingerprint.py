"""Deterministic content fingerprints.

A fingerprint is the SHA-256 hex digest of a canonical byte layout built
from the item's metadata and body::

    blog-sync/v1\\n<canonical metadata JSON>\\n\\0\\n<normalised body>

Normalisation makes the hash stable across platforms and editors:

* **Body** -- BOM stripped, CRLF / CR turned into LF, every line
  right-stripped, leading and trailing blank lines dropped.
* **Metadata** -- JSON with sorted keys, string values right-stripped,
  dates rendered as ISO 8601, sets sorted.  List order is kept because
  reordering tags changes the published post.
"""

from __future__ import annotations

import hashlib
import json
from datetime import date
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import ContentItem

_LAYOUT_VERSION = "blog-sync/v1"


def normalize_body(text: str) -> str:
    """Normalise line endings and insignificant whitespace in *text*."""
    text = text.lstrip("\ufeff")
    text = text.replace("\r\n", "\n").replace("\r", "\n")
    lines = [line.rstrip() for line in text.split("\n")]
    while lines and lines[-1] == "":
        lines.pop()
    while lines and lines[0] == "":
        lines.pop(0)
    return "\n".join(lines)


def _canonical_value(value: Any) -> Any:
    if isinstance(value, str):
        return value.rstrip()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _canonical_value(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_canonical_value(v) for v in value]
    # set iteration order depends on PYTHONHASHSEED
    if isinstance(value, (set, frozenset)):
        return sorted(
            (_canonical_value(v) for v in value),
            key=lambda v: json.dumps(v, sort_keys=True, default=str),
        )
    return value


def canonical_metadata(metadata: dict[str, Any]) -> str:
    """Serialise *metadata* to a canonical JSON string."""
    return json.dumps(
        _canonical_value(metadata),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        default=str,
    )


def fingerprint(item: ContentItem) -> str:
    """Compute the content hash of *item*.

    Any change to the body or to a metadata value yields a different
    digest; formatting-only differences (line endings, trailing
    whitespace, metadata key order) do not.
    """
    payload = "\n".join(
        [
            _LAYOUT_VERSION,
            canonical_metadata(item.metadata),
            "\0",
            normalize_body(item.body),
        ]
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()
