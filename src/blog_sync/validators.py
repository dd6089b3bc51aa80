"""
Input validation functions for blog-sync.

Checks posts and identifiers before they are sent to the publishing
service, so invalid input fails fast as a permanent error instead of
costing a round trip.
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .sync.models import ContentItem

_MAX_TITLE_LENGTH = 250
_REMOTE_ID_PATTERN = re.compile(r"[A-Za-z0-9._:-]+")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Title")
        reason: Description of validation failure (e.g., "cannot be empty")

    Returns:
        Formatted error message string
    """
    return f"{field_name} {reason}"


def validate_content(
    content: str, max_size: int = 1_000_000
) -> tuple[bool, str]:
    """
    Validate a post body.

    Args:
        content: The content to validate
        max_size: Maximum size in bytes (default: 1,000,000)

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.
    """
    if not content or not content.strip():
        return (
            False,
            format_validation_error("Content", "cannot be empty"),
        )

    content_bytes = len(content.encode("utf-8"))
    if content_bytes > max_size:
        return (
            False,
            format_validation_error(
                "Content", f"exceeds maximum size of {max_size} bytes"
            ),
        )

    return (True, "")


def validate_post(item: ContentItem) -> tuple[bool, str]:
    """
    Validate a content item before publishing.

    Validation rules:
        - Title cannot be empty or longer than 250 characters
        - Body must pass ``validate_content()``
        - ``tags`` metadata, when present, must be a list of strings

    Returns:
        Tuple of (is_valid, error_message).
    """
    title = item.title
    if not title:
        return (
            False,
            format_validation_error(
                f"Title of {item.path}", "cannot be empty"
            ),
        )
    if len(title) > _MAX_TITLE_LENGTH:
        return (
            False,
            format_validation_error(
                f"Title of {item.path}",
                f"exceeds {_MAX_TITLE_LENGTH} characters",
            ),
        )

    tags = item.metadata.get("tags")
    if tags is not None and (
        not isinstance(tags, list)
        or not all(isinstance(t, str) for t in tags)
    ):
        return (
            False,
            format_validation_error(
                f"Tags of {item.path}", "must be a list of strings"
            ),
        )

    return validate_content(item.body)


def validate_remote_id(remote_id: str) -> tuple[bool, str]:
    """
    Validate a remote post identifier before it is used in a URL.

    Returns:
        Tuple of (is_valid, error_message).
    """
    if not remote_id or not remote_id.strip():
        return (
            False,
            format_validation_error("Remote id", "cannot be empty"),
        )
    if not _REMOTE_ID_PATTERN.fullmatch(remote_id):
        return (
            False,
            format_validation_error(
                "Remote id", f"contains invalid characters: {remote_id!r}"
            ),
        )
    return (True, "")
