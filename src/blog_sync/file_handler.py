"""File handler module: content discovery, encoding-aware reads, format detection.

Supplies the raw files the sync engine publishes.  Enumeration applies the
format allow-list and the exclusion globs, so everything returned here is a
publish candidate.
"""

from __future__ import annotations

import fnmatch
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

# =============================================================================
# Format Detection
# =============================================================================


_EXTENSION_FORMAT_MAP: dict[str, str] = {
    ".md": "markdown",
    ".markdown": "markdown",
    ".html": "html",
    ".htm": "html",
}


def detect_file_format(path: Path | str) -> str | None:
    """Return ``"markdown"`` or ``"html"`` from the extension, else ``None``."""
    return _EXTENSION_FORMAT_MAP.get(PurePosixPath(str(path)).suffix.lower())


# =============================================================================
# Discovery
# =============================================================================


@dataclass(frozen=True)
class SourceFile:
    """One publish candidate.

    Attributes:
        path: POSIX path relative to the source root.
        format: ``"markdown"`` or ``"html"``.
        raw: File content as bytes.
    """

    path: str
    format: str
    raw: bytes


def is_excluded(rel_path: str, patterns: Iterable[str]) -> bool:
    """Return ``True`` if *rel_path* or its file name matches any pattern."""
    name = PurePosixPath(rel_path).name
    return any(
        fnmatch.fnmatch(rel_path, pattern) or fnmatch.fnmatch(name, pattern)
        for pattern in patterns
    )


def discover_content_files(
    root: Path,
    formats: Iterable[str],
    exclude: Iterable[str] = (),
) -> list[SourceFile]:
    """Enumerate publishable files below *root*.

    Hidden files and directories are skipped.  Results are sorted by path
    so runs are deterministic.

    Args:
        root: Source directory.
        formats: Allowed formats (``"markdown"``, ``"html"``).
        exclude: Glob patterns matched against the relative path and the
            file name.

    Returns:
        Candidates with their raw bytes.

    Raises:
        ValueError: If *root* is not a directory.
    """
    if not root.is_dir():
        raise ValueError(f"Source directory not found: {root}")

    allowed = set(formats)
    patterns = list(exclude)
    found: list[SourceFile] = []

    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not d.startswith("."))
        for filename in filenames:
            if filename.startswith("."):
                continue
            full = Path(dirpath) / filename
            rel = full.relative_to(root).as_posix()
            fmt = detect_file_format(rel)
            if fmt is None or fmt not in allowed:
                continue
            if is_excluded(rel, patterns):
                logger.debug("Excluded %s", rel)
                continue
            found.append(SourceFile(path=rel, format=fmt, raw=full.read_bytes()))

    found.sort(key=lambda f: f.path)
    logger.info("Discovered %d content file(s) in %s", len(found), root)
    return found


# =============================================================================
# Decoding
# =============================================================================


def decode_bytes(raw: bytes) -> tuple[str, str]:
    """Decode *raw* with automatic encoding detection.

    Valid UTF-8 (with or without BOM) is taken as is; anything else goes
    through charset-normalizer.  Defaults to UTF-8 when detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8-sig"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    return decode_bytes(path.read_bytes())
