"""Tests for configuration loading and saving."""

from __future__ import annotations

from pathlib import Path

import pytest

from quotawatch.config import paths
from quotawatch.config.settings import Config
from quotawatch.config.settings import CookieSource
from quotawatch.config.settings import ProviderConfig
from quotawatch.config.settings import SourceMode
from quotawatch.config.settings import convert_config
from quotawatch.config.settings import load_config
from quotawatch.config.settings import save_config


class TestPaths:
    """Tests for platform paths."""

    def test_env_overrides(self, temp_config_dir: Path):
        """QUOTAWATCH_CONFIG_DIR and QUOTAWATCH_CACHE_DIR win over platformdirs."""
        assert paths.config_dir() == temp_config_dir
        assert paths.config_file() == temp_config_dir / "config.toml"
        assert paths.probe_workdir() == paths.cache_dir() / "probe"

    def test_ensure_directories(self, temp_config_dir: Path):
        """ensure_directories creates the probe working directory."""
        paths.ensure_directories()
        assert paths.probe_workdir().is_dir()


class TestConfig:
    """Tests for the Config struct."""

    def test_defaults(self):
        """Defaults match the documented settings."""
        config = Config()
        assert config.fetch.timeout == 30.0
        assert config.fetch.max_concurrent == 5
        assert config.fetch.poll_interval == 300.0
        assert config.notifications.session_quota is True
        assert config.credentials.use_keyring is True

    def test_provider_defaults(self):
        """Unknown providers get default settings."""
        settings = Config().get_provider_config("ollama")
        assert settings.source_mode is SourceMode.AUTO
        assert settings.cookie_source is CookieSource.AUTO
        assert settings.preferred_browsers == []
        assert settings.allow_fallback_browsers is True

    def test_enabled_when_list_empty(self):
        """An empty enabled_providers list enables everything."""
        assert Config().is_provider_enabled("codex")

    def test_enabled_list_restricts(self):
        """A non-empty list enables only the listed providers."""
        config = Config(enabled_providers=["claude"])
        assert config.is_provider_enabled("claude")
        assert not config.is_provider_enabled("codex")

    def test_explicit_disable_wins(self):
        """providers.<id>.enabled = false disables even a listed provider."""
        config = Config(
            enabled_providers=["claude"],
            providers={"claude": ProviderConfig(enabled=False)},
        )
        assert not config.is_provider_enabled("claude")

    def test_convert_config(self):
        """TOML-shaped dicts convert into typed structs."""
        config = convert_config(
            {
                "fetch": {"timeout": 10},
                "providers": {
                    "claude": {
                        "source_mode": "cli",
                        "cookie_source": "manual",
                        "preferred_browsers": ["firefox"],
                    }
                },
            }
        )
        claude = config.get_provider_config("claude")
        assert config.fetch.timeout == 10.0
        assert claude.source_mode is SourceMode.CLI
        assert claude.cookie_source is CookieSource.MANUAL
        assert claude.preferred_browsers == ["firefox"]

    def test_cookie_source_enabled(self):
        """Only ``off`` disables cookie use."""
        assert CookieSource.AUTO.is_enabled
        assert CookieSource.MANUAL.is_enabled
        assert not CookieSource.OFF.is_enabled


class TestLoadSave:
    """Tests for TOML persistence and environment overrides."""

    def test_missing_file_gives_defaults(self, temp_config_dir: Path):
        """No config file means default config."""
        assert load_config() == Config()

    def test_round_trip(self, temp_config_dir: Path):
        """Saved settings load back unchanged."""
        config = Config(
            enabled_providers=["codex", "ollama"],
            providers={"ollama": ProviderConfig(cookie_source=CookieSource.OFF)},
        )
        save_config(config)
        loaded = load_config()
        assert loaded.enabled_providers == ["codex", "ollama"]
        assert loaded.get_provider_config("ollama").cookie_source is CookieSource.OFF

    def test_env_enabled_providers(self, temp_config_dir: Path, monkeypatch):
        """QUOTAWATCH_ENABLED_PROVIDERS overrides the file."""
        save_config(Config(enabled_providers=["claude"]))
        monkeypatch.setenv("QUOTAWATCH_ENABLED_PROVIDERS", " codex, openrouter ,")
        assert load_config().enabled_providers == ["codex", "openrouter"]

    def test_env_poll_interval(self, temp_config_dir: Path, monkeypatch):
        """QUOTAWATCH_POLL_INTERVAL overrides fetch.poll_interval."""
        monkeypatch.setenv("QUOTAWATCH_POLL_INTERVAL", "60")
        assert load_config().fetch.poll_interval == 60.0

    def test_env_poll_interval_invalid_ignored(self, temp_config_dir: Path, monkeypatch):
        """A non-numeric interval leaves the default."""
        monkeypatch.setenv("QUOTAWATCH_POLL_INTERVAL", "soon")
        assert load_config().fetch.poll_interval == 300.0

    def test_invalid_file_raises(self, temp_config_dir: Path):
        """A config with the wrong types is rejected."""
        (temp_config_dir / "config.toml").write_text('[fetch]\ntimeout = "slow"\n')
        with pytest.raises(Exception):
            load_config()
