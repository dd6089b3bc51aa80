"""Turn the files under a source directory into ``ContentItem`` objects."""

from __future__ import annotations

import logging
from pathlib import Path

from blog_sync import converters
from blog_sync.config_schema import SyncSettings
from blog_sync.file_handler import decode_bytes, discover_content_files

from .models import ContentFormat, ContentItem

logger = logging.getLogger(__name__)


def load_content_items(
    root: Path, settings: SyncSettings
) -> list[ContentItem]:
    """Discover, decode and convert every publishable file under *root*.

    Files that cannot be converted are logged and left out of the run, so
    their stored mapping (if any) is untouched.

    Raises:
        ValueError: If *root* is not a directory.
    """
    items: list[ContentItem] = []
    for source in discover_content_files(
        root, settings.formats, settings.exclude
    ):
        text, encoding = decode_bytes(source.raw)
        if encoding != "utf-8":
            logger.debug("Decoded %s as %s", source.path, encoding)
        try:
            result = converters.convert(text, source.format, source.path)
        except ValueError as exc:
            logger.error("Skipping %s: %s", source.path, exc)
            continue
        for warning in result.warnings:
            logger.warning("%s: %s", source.path, warning)

        items.append(
            ContentItem(
                path=source.path,
                format=ContentFormat(source.format),
                body=result.body,
                metadata=result.metadata,
            )
        )

    logger.info("Loaded %d content item(s) from %s", len(items), root)
    return items
