"""
YAML configuration files for bookmark-sync.

A config file holds up to two sections, ``sync`` and ``logging``, whose
keys are the fields of :class:`~bookmark_sync.config.SyncSettings` and
:class:`~bookmark_sync.config.LoggingSettings`::

    sync:
      api_url: ${BOOKMARK_SYNC_API_URL:-https://api.xbrowsersync.org}
      sync_id: !include secrets/sync_id.yml
      platform: firefox
    logging:
      level: DEBUG

Several files may apply at once (see :func:`discover_config_files`).
They are merged setting by setting, so a project file that only sets
``sync.platform`` keeps every other setting from the user-wide file.

Usage:
    from bookmark_sync.config_loader import load_hierarchical_config

    yaml_data = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any, Iterable

import yaml

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "BOOKMARK_SYNC_CONFIG"
PROJECT_CONFIG = Path(".bookmark_sync") / "config.yml"
USER_CONFIG = Path(".config") / "bookmark_sync" / "config.yml"
SECTIONS = ("sync", "logging")

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Replace ``${VAR}`` and ``${VAR:-default}`` with environment values.

    An unset or empty variable becomes its default, or ``""`` without one.
    A ``${`` with no closing brace is left as it is.
    """

    def _replace(match: re.Match) -> str:
        return os.environ.get(match.group(1)) or match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate(value: Any) -> Any:
    if isinstance(value, str):
        return interpolate_env_vars(value)
    if isinstance(value, dict):
        return {k: _interpolate(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_interpolate(item) for item in value]
    return value


# ---------------------------------------------------------------------------
# Reading one file
# ---------------------------------------------------------------------------


class _IncludeLoader(yaml.SafeLoader):
    """SafeLoader resolving ``!include`` against the including file.

    *chain* is the list of files being read, outermost first, and catches
    files that include each other.  ``yaml.SafeLoader`` itself is left
    without the tag.
    """

    def __init__(self, stream: Any, chain: tuple[Path, ...]) -> None:
        super().__init__(stream)
        self.chain = chain

    def include(self, node: yaml.ScalarNode) -> Any:
        target = Path(self.construct_scalar(node)).expanduser()
        if not target.is_absolute():
            target = self.chain[-1].parent / target
        return read_yaml(target.resolve(), self.chain)


_IncludeLoader.add_constructor("!include", _IncludeLoader.include)


def read_yaml(path: Path, chain: tuple[Path, ...] = ()) -> Any:
    """Parse *path*, following ``!include`` tags.

    Raises:
        FileNotFoundError: If *path* or an included file does not exist.
        ValueError: If files include each other.
        yaml.YAMLError: If a file is not valid YAML.
    """
    path = Path(path).resolve()
    if path in chain:
        trail = " -> ".join(str(p) for p in (*chain, path))
        raise ValueError(f"Circular include detected: {trail}")
    if not path.exists():
        source = f" (included from {chain[-1]})" if chain else ""
        raise FileNotFoundError(f"Config file not found: {path}{source}")

    with open(path, encoding="utf-8") as fh:
        loader = _IncludeLoader(fh, (*chain, path))
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


def read_config_file(path: Path) -> dict[str, dict[str, Any]]:
    """Return the settings sections of one config file, interpolated.

    Unknown top-level keys are ignored with a warning, as is a file whose
    root is not a mapping.

    Raises:
        ValueError: If a known section is not a mapping.
    """
    data = read_yaml(path)
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Config file %s has non-dict root (%s), skipping",
            path,
            type(data).__name__,
        )
        return {}

    sections: dict[str, dict[str, Any]] = {}
    for name, values in data.items():
        if name not in SECTIONS:
            logger.warning(
                "Ignoring unknown section '%s' in config file %s", name, path
            )
            continue
        if values is None:
            continue
        if not isinstance(values, dict):
            raise ValueError(
                f"Section '{name}' in config file {path} must be a mapping"
            )
        sections[name] = _interpolate(values)
    return sections


# ---------------------------------------------------------------------------
# Discovery and merge
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return the existing config files, highest precedence first.

    Search order:
        1. The file named by ``BOOKMARK_SYNC_CONFIG``
        2. ``.bookmark_sync/config.yml`` in the working directory
        3. ``~/.config/bookmark_sync/config.yml``
    """
    candidates: list[Path] = []
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())
    candidates.append(Path.cwd() / PROJECT_CONFIG)
    candidates.append(Path.home() / USER_CONFIG)
    return [p for p in candidates if p.exists()]


def load_hierarchical_config(
    paths: Iterable[Path] | None = None,
) -> dict[str, dict[str, Any]]:
    """Merge the settings of every config file.

    Args:
        paths: Files in precedence order, highest first.  Defaults to
            :func:`discover_config_files`.

    Returns:
        ``{"sync": {...}, "logging": {...}}`` holding only the sections
        some file sets; ``{}`` when there are no config files.  A setting
        from a higher-precedence file replaces the same setting from a
        lower one.
    """
    paths = list(discover_config_files() if paths is None else paths)
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, dict[str, Any]] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        for name, values in read_config_file(path).items():
            merged.setdefault(name, {}).update(values)
    return merged
