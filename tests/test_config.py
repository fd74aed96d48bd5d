"""Tests for bookmark_sync.config: env-var config loading and validation.

NOT to be confused with test_config_loader.py (hierarchical YAML config).
This tests the section models, validate_config() and load_config().
"""

import pytest
from pydantic import ValidationError

from bookmark_sync.config import (
    AppConfig,
    LoggingSettings,
    SyncSettings,
    build_config,
    load_config,
    validate_config,
)

API_URL = "https://api.example.com"
SYNC_ID = "0123456789abcdef0123456789abcdef"

ENV_VARS = (
    "BOOKMARK_SYNC_API_URL",
    "BOOKMARK_SYNC_ID",
    "BOOKMARK_SYNC_PLATFORM",
    "BOOKMARK_SYNC_STATE_DIR",
    "BOOKMARK_SYNC_TOOLBAR",
    "BOOKMARK_SYNC_PUSH_TIMEOUT",
    "BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS",
    "LOG_LEVEL",
    "LOG_FILE",
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def remote_env(monkeypatch):
    monkeypatch.setenv("BOOKMARK_SYNC_API_URL", API_URL)
    monkeypatch.setenv("BOOKMARK_SYNC_ID", SYNC_ID)


def remote_config(**sync):
    return AppConfig(sync=SyncSettings(api_url=API_URL, sync_id=SYNC_ID, **sync))


# -------------------------------------------------------------------------
# Section models
# -------------------------------------------------------------------------


class TestSectionModels:
    """Tests for defaults and field bounds."""

    def test_zero_config_defaults(self):
        config = AppConfig()
        assert config.sync.platform == "chromium"
        assert config.sync.state_dir == ".bookmark_sync"
        assert config.sync.push_timeout == 30.0
        assert config.sync.sync_bookmarks_toolbar is True
        assert config.logging.level == "INFO"

    def test_build_config_fills_missing_sections(self):
        config = build_config({"logging": {"level": "DEBUG"}})
        assert config.logging.level == "DEBUG"
        assert config.sync == SyncSettings()
        assert build_config(None) == AppConfig()

    @pytest.mark.parametrize("timeout", [0, -1, 601])
    def test_push_timeout_bounds(self, timeout):
        with pytest.raises(ValidationError):
            SyncSettings(push_timeout=timeout)

    def test_sections_are_frozen(self):
        with pytest.raises(ValidationError):
            LoggingSettings().level = "DEBUG"


# -------------------------------------------------------------------------
# validate_config()
# -------------------------------------------------------------------------


class TestValidateConfig:
    """Tests for validate_config(): remote settings, platform and log level."""

    def test_valid_config(self):
        validate_config(remote_config())  # should not raise

    def test_offline_config_without_remote(self):
        validate_config(AppConfig(), require_remote=False)

    def test_missing_remote_settings(self):
        with pytest.raises(ValueError, match="API url cannot be empty"):
            validate_config(AppConfig())

    def test_set_remote_settings_checked_even_offline(self):
        config = AppConfig(sync=SyncSettings(sync_id="short"))
        with pytest.raises(ValueError, match="32 hexadecimal"):
            validate_config(config, require_remote=False)

    def test_invalid_url_scheme(self):
        config = AppConfig(sync=SyncSettings(api_url="ftp://x", sync_id=SYNC_ID))
        with pytest.raises(ValueError, match="http\\(s\\) url"):
            validate_config(config)

    def test_unknown_platform(self):
        with pytest.raises(ValueError, match="Invalid platform 'netscape'"):
            validate_config(remote_config(platform="netscape"))

    def test_invalid_log_level(self):
        config = AppConfig(
            sync=SyncSettings(api_url=API_URL, sync_id=SYNC_ID),
            logging=LoggingSettings(level="LOUD"),
        )
        with pytest.raises(ValueError, match="Invalid log level 'LOUD'"):
            validate_config(config)


# -------------------------------------------------------------------------
# load_config()
# -------------------------------------------------------------------------


class TestLoadConfig:
    """Tests for load_config(): env vars, overrides, YAML and parsing."""

    def test_load_from_env_vars(self, remote_env):
        config = load_config()
        assert config.sync.api_url == API_URL
        assert config.sync.sync_id == SYNC_ID

    def test_missing_remote_raises(self):
        with pytest.raises(ValueError, match="BOOKMARK_SYNC_API_URL"):
            load_config()

    def test_offline_load_needs_nothing(self):
        config = load_config(require_remote=False)
        assert config.sync.api_url is None

    def test_overrides_beat_env(self, remote_env):
        config = load_config(overrides={"platform": "firefox", "sync_id": None})
        assert config.sync.platform == "firefox"
        assert config.sync.sync_id == SYNC_ID

    def test_env_beats_yaml(self, remote_env, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_PLATFORM", "opera")
        config = load_config(
            yaml_data={"sync": {"platform": "firefox", "state_dir": "/var/bs"}}
        )
        assert config.sync.platform == "opera"
        assert config.sync.state_dir == "/var/bs"

    def test_yaml_supplies_remote_settings(self):
        config = load_config(
            yaml_data={"sync": {"api_url": API_URL + "/", "sync_id": SYNC_ID}}
        )
        assert config.sync.api_url == API_URL

    def test_values_are_stripped(self, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_API_URL", f"  {API_URL}/  ")
        monkeypatch.setenv("BOOKMARK_SYNC_ID", f" {SYNC_ID} ")
        monkeypatch.setenv("BOOKMARK_SYNC_STATE_DIR", "   ")
        config = load_config()
        assert config.sync.api_url == API_URL
        assert config.sync.sync_id == SYNC_ID
        assert config.sync.state_dir == ".bookmark_sync"

    def test_logging_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "debug")
        monkeypatch.setenv("LOG_FILE", "/tmp/bs.log")
        config = load_config(require_remote=False)
        assert config.logging.level == "debug"
        assert config.logging.file == "/tmp/bs.log"

    # --- Boolean env var parsing ---

    @pytest.mark.parametrize("value", ["true", "1", "yes", "on", "TRUE"])
    def test_toolbar_truthy_values(self, monkeypatch, value):
        monkeypatch.setenv("BOOKMARK_SYNC_TOOLBAR", value)
        assert load_config(require_remote=False).sync.sync_bookmarks_toolbar

    @pytest.mark.parametrize("value", ["false", "0", "no", "off", "random"])
    def test_toolbar_falsy_values(self, monkeypatch, value):
        monkeypatch.setenv("BOOKMARK_SYNC_TOOLBAR", value)
        config = load_config(require_remote=False)
        assert config.sync.sync_bookmarks_toolbar is False

    # --- Numeric env var parsing ---

    def test_push_timeout_from_env(self, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_PUSH_TIMEOUT", "12.5")
        assert load_config(require_remote=False).sync.push_timeout == 12.5

    def test_max_parallel_from_env(self, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS", "10")
        config = load_config(require_remote=False)
        assert config.sync.max_parallel_requests == 10

    def test_max_parallel_non_numeric(self, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS", "abc")
        with pytest.raises(
            ValueError, match="Invalid BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS 'abc'"
        ):
            load_config(require_remote=False)

    @pytest.mark.parametrize("value", ["0", "-5", "11"])
    def test_max_parallel_out_of_range(self, monkeypatch, value):
        monkeypatch.setenv("BOOKMARK_SYNC_MAX_PARALLEL_REQUESTS", value)
        with pytest.raises(ValueError, match="must be a number between 1 and 10"):
            load_config(require_remote=False)

    def test_push_timeout_out_of_range(self, monkeypatch):
        monkeypatch.setenv("BOOKMARK_SYNC_PUSH_TIMEOUT", "0.5")
        with pytest.raises(ValueError, match="between 1 and 600"):
            load_config(require_remote=False)
