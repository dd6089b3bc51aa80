"""
YAML configuration files for blog-sync.

A repository usually carries ``.blog_sync/config.yml`` with its sync
settings, while credentials live in a per-user file or in the
environment.  This module finds those files, expands ``!include`` and
``${VAR}`` references, and merges them into one raw dict for
``config_schema.build_config()``.

Merge rule: files are layered from the per-user file up to the explicit
``BLOG_SYNC_CONFIG`` file.  Within a section (``publisher``, ``store``,
``sync``, ``logging``) individual keys of a higher file win, so a project
file can set ``sync.source`` without repeating the user's
``publisher.api_url``.
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BLOG_SYNC_CONFIG"
PROJECT_CONFIG_DIR = ".blog_sync"
PROJECT_CONFIG_NAMES = ("config.yml", "config.yaml")

# ${VAR} or ${VAR:-fallback}
_ENV_REF = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-fallback}`` references in *value*.

    Unset and empty variables both take the fallback (or ``""``).  Text
    that only looks like the start of a reference is kept verbatim.
    """
    return _ENV_REF.sub(
        lambda m: os.environ.get(m.group(1)) or m.group(2) or "", value
    )


def _expand(node: Any) -> Any:
    if isinstance(node, str):
        return interpolate_env_vars(node)
    if isinstance(node, list):
        return [_expand(v) for v in node]
    if isinstance(node, dict):
        return {key: _expand(v) for key, v in node.items()}
    return node


# ---------------------------------------------------------------------------
# Parsing
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """Safe YAML loader that also accepts ``!include <path>``.

    Relative include paths are resolved against the including file.
    """

    def __init__(self, stream, include_chain: tuple[Path, ...] = ()):
        super().__init__(stream)
        self.include_chain = include_chain

    def construct_include(self, node: yaml.ScalarNode) -> Any:
        origin = Path(self.name).resolve()
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = origin.parent / target
        target = target.resolve()

        if target in self.include_chain:
            cycle = " -> ".join(str(p) for p in (*self.include_chain, target))
            raise ValueError(f"Circular include detected: {cycle}")
        if not target.is_file():
            raise FileNotFoundError(
                f"Include file not found: {target} (referenced from {origin})"
            )
        return parse_config_file(target, _chain=self.include_chain)


ConfigLoader.add_constructor("!include", ConfigLoader.construct_include)


def parse_config_file(path: Path, *, _chain: tuple[Path, ...] = ()) -> Any:
    """Parse one YAML file, following ``!include`` directives.

    Raises:
        yaml.YAMLError: On malformed YAML.
        ValueError: On a circular include.
        FileNotFoundError: When an included file is missing.
    """
    path = Path(path).resolve()
    with path.open("r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh, include_chain=(*_chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery and merge
# ---------------------------------------------------------------------------


def user_config_path() -> Path:
    """Per-user config file (``~/.config/blog_sync/config.yml``)."""
    return Path.home() / ".config" / "blog_sync" / "config.yml"


def discover_config_files(project_root: Path | None = None) -> list[Path]:
    """Return the config files that exist, highest precedence first.

    Order:
        1. the file named by ``BLOG_SYNC_CONFIG``
        2. ``<project_root>/.blog_sync/config.yml`` (or ``config.yaml``;
           only the first one found is used)
        3. the per-user file

    *project_root* defaults to the current directory.
    """
    found: list[Path] = []

    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        path = Path(explicit).expanduser().resolve()
        if path.is_file():
            found.append(path)
        else:
            logger.warning("%s points to missing file %s", CONFIG_ENV_VAR, path)

    project_dir = (project_root or Path.cwd()) / PROJECT_CONFIG_DIR
    for name in PROJECT_CONFIG_NAMES:
        if (project_dir / name).is_file():
            found.append(project_dir / name)
            break

    if user_config_path().is_file():
        found.append(user_config_path())

    return found


def merge_sections(
    base: dict[str, Any], override: dict[str, Any]
) -> dict[str, Any]:
    """Layer *override* on top of *base*.

    Sections that are mappings in both are merged key by key; anything
    else in *override* replaces the value in *base*.
    """
    merged = dict(base)
    for section, value in override.items():
        current = merged.get(section)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[section] = {**current, **value}
        else:
            merged[section] = value
    return merged


def load_hierarchical_config(
    project_root: Path | None = None,
) -> dict[str, Any]:
    """Load every discovered config file and merge them.

    ``${VAR}`` references are expanded after merging, so a higher file can
    reference variables a lower one never mentions.

    Returns ``{}`` when there is no config file at all.
    """
    paths = discover_config_files(project_root)
    if not paths:
        logger.debug("No config files found, using built-in defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        data = parse_config_file(path)
        if data is None:
            continue
        if not isinstance(data, dict):
            logger.warning(
                "Ignoring config file %s: top level is a %s, not a mapping",
                path,
                type(data).__name__,
            )
            continue
        merged = merge_sections(merged, data)

    return _expand(merged)
