"""Configuration for bookmark-sync.

Settings are grouped into pydantic sections aggregated by ``AppConfig``.
Every section has defaults, so ``AppConfig()`` (zero-config) is valid for
the offline commands; the sync service additionally needs ``api_url``
and ``sync_id``, checked by :func:`validate_config`.

Precedence (highest to lowest):
    Explicit overrides > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    BOOKMARK_SYNC_API_URL: Sync service url
    BOOKMARK_SYNC_ID: 32-character hexadecimal sync ID
    BOOKMARK_SYNC_PLATFORM: chromium, firefox or opera (default: chromium)
    BOOKMARK_SYNC_STATE_DIR: Local state directory (default: .bookmark_sync)
    BOOKMARK_SYNC_PUSH_TIMEOUT: Seconds per remote push (default: 30)
    BOOKMARK_SYNC_TOOLBAR: Sync the bookmarks toolbar (default: true)
    BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS: Concurrent remote requests (default: 2)
    LOG_LEVEL / LOG_FILE: see :mod:`bookmark_sync.logger`
"""

from __future__ import annotations

import logging
import os
from typing import Any

from pydantic import BaseModel, Field

from bookmark_sync.constants import (
    DEFAULT_PLATFORM,
    DEFAULT_PUSH_TIMEOUT,
    DEFAULT_STATE_DIR,
    DESCRIPTION_MAX_LENGTH,
)
from bookmark_sync.native.platforms import PLATFORMS
from bookmark_sync.validators import validate_api_url, validate_sync_id

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncSettings(BaseModel):
    """Sync service connection and engine settings.

    ``api_url`` and ``sync_id`` are optional here so the offline commands
    work without them; env vars and overrides can supply them at runtime.
    """

    api_url: str | None = Field(
        default=None, description="Sync service url"
    )
    sync_id: str | None = Field(default=None, description="Sync ID")
    platform: str = Field(
        default=DEFAULT_PLATFORM, description="Browser platform profile"
    )
    state_dir: str = Field(
        default=DEFAULT_STATE_DIR, description="Local state directory"
    )
    push_timeout: float = Field(
        default=DEFAULT_PUSH_TIMEOUT,
        gt=0,
        le=600,
        description="Seconds a remote push may take (0-600]",
    )
    sync_bookmarks_toolbar: bool = Field(
        default=True, description="Sync the bookmarks toolbar"
    )
    description_max_length: int = Field(
        default=DESCRIPTION_MAX_LENGTH,
        ge=1,
        description="Maximum bookmark description length",
    )
    max_parallel_requests: int = Field(
        default=2,
        ge=1,
        le=10,
        description="Maximum concurrent requests to the sync service (1-10)",
    )

    model_config = {"frozen": True}


class LoggingSettings(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


class AppConfig(BaseModel):
    """Top-level configuration aggregating every section."""

    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = {"frozen": True}


def build_config(raw_data: dict | None) -> AppConfig:
    """Construct an ``AppConfig`` from the merged YAML dict.

    Missing sections get defaults.
    """
    if not raw_data:
        return AppConfig()
    return AppConfig(**raw_data)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


def validate_config(config: AppConfig, require_remote: bool = True) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Args:
        config: Config to validate.
        require_remote: Also require a valid ``api_url`` and ``sync_id``.

    Raises:
        ValueError: If a value is invalid or a required value is missing.
    """
    sync = config.sync
    if sync.platform not in PLATFORMS:
        raise ValueError(
            f"Invalid platform '{sync.platform}': must be one of "
            + ", ".join(sorted(PLATFORMS))
        )

    if require_remote or sync.api_url is not None:
        is_valid, error_msg = validate_api_url(sync.api_url)
        if not is_valid:
            raise ValueError(
                f"Invalid API url: {error_msg}. "
                "Set BOOKMARK_SYNC_API_URL or add 'api_url' to config.yml."
            )

    if require_remote or sync.sync_id is not None:
        is_valid, error_msg = validate_sync_id(sync.sync_id)
        if not is_valid:
            raise ValueError(
                f"Invalid sync ID: {error_msg}. "
                "Set BOOKMARK_SYNC_ID or add 'sync_id' to config.yml."
            )

    if not isinstance(logging.getLevelName(config.logging.level.upper()), int):
        raise ValueError(f"Invalid log level '{config.logging.level}'")


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def _get_number_env(
    key: str, cast: type, low: float, high: float | None
) -> Any:
    """Return a bounded number from env var, or None if unset."""
    raw = os.getenv(key)
    if raw is None:
        return None
    bounds = f"at least {low}" if high is None else f"between {low} and {high}"
    try:
        value = cast(raw)
    except ValueError:
        raise ValueError(
            f"Invalid {key} '{raw}': must be a number {bounds}"
        ) from None
    if value < low or (high is not None and value > high):
        raise ValueError(f"Invalid {key} '{raw}': must be a number {bounds}")
    return value


def load_config(
    overrides: dict[str, Any] | None = None,
    yaml_data: dict[str, Any] | None = None,
    require_remote: bool = True,
) -> AppConfig:
    """Load configuration with unified precedence.

    Resolution order for each ``sync`` field (highest to lowest):
        override > env var / .env > ``yaml_data["sync"]`` > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        overrides: ``sync`` field values given explicitly (CLI arguments);
            ``None`` values are ignored.
        yaml_data: Merged YAML config, as returned by
            :func:`bookmark_sync.config_loader.load_hierarchical_config`.
        require_remote: Passed to :func:`validate_config`.

    Returns:
        Validated ``AppConfig``.

    Raises:
        ValueError: If a value is invalid or a required value is missing.
    """
    base = build_config(yaml_data)
    fb = base.sync.model_dump()

    env_values: dict[str, Any] = {
        "api_url": os.getenv("BOOKMARK_SYNC_API_URL"),
        "sync_id": os.getenv("BOOKMARK_SYNC_ID"),
        "platform": os.getenv("BOOKMARK_SYNC_PLATFORM"),
        "state_dir": os.getenv("BOOKMARK_SYNC_STATE_DIR"),
        "sync_bookmarks_toolbar": _get_bool_env("BOOKMARK_SYNC_TOOLBAR"),
        "push_timeout": _get_number_env(
            "BOOKMARK_SYNC_PUSH_TIMEOUT", float, 1, 600
        ),
        "max_parallel_requests": _get_number_env(
            "BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS", int, 1, 10
        ),
    }

    merged = dict(fb)
    for source in (env_values, overrides or {}):
        merged.update({k: v for k, v in source.items() if v is not None})
    for key in ("api_url", "sync_id", "platform", "state_dir"):
        if isinstance(merged.get(key), str):
            merged[key] = merged[key].strip() or None
    if merged.get("platform") is None:
        merged["platform"] = DEFAULT_PLATFORM
    if merged.get("state_dir") is None:
        merged["state_dir"] = DEFAULT_STATE_DIR
    if merged.get("api_url"):
        merged["api_url"] = merged["api_url"].removesuffix("/")

    logging_section = base.logging.model_dump()
    if os.getenv("LOG_LEVEL"):
        logging_section["level"] = os.getenv("LOG_LEVEL")
    if os.getenv("LOG_FILE"):
        logging_section["file"] = os.getenv("LOG_FILE")

    config = AppConfig(
        sync=SyncSettings(**merged),
        logging=LoggingSettings(**logging_section),
    )
    validate_config(config, require_remote=require_remote)
    return config
