"""Configuration structures and loading for quotawatch."""

from __future__ import annotations

import os
import tomllib
from enum import StrEnum
from pathlib import Path
from typing import Literal

import msgspec

# Default values
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_CONCURRENT = 5
DEFAULT_POLL_INTERVAL = 300.0
DEFAULT_SECRET_CACHE_TTL = 1800.0


class CookieSource(StrEnum):
    """Where a cookie-backed provider may get its session from."""

    AUTO = "auto"  # Stored header or browser import
    MANUAL = "manual"  # Only the stored manual Cookie header
    OFF = "off"

    @property
    def is_enabled(self) -> bool:
        return self is not CookieSource.OFF


class SourceMode(StrEnum):
    """Which fetch strategies a provider may use."""

    AUTO = "auto"
    WEB = "web"
    CLI = "cli"
    API = "api"
    OAUTH = "oauth"


# Fetch configuration
class FetchConfig(msgspec.Struct, omit_defaults=True):
    """Fetch behavior settings."""

    timeout: float = DEFAULT_TIMEOUT
    max_concurrent: int = DEFAULT_MAX_CONCURRENT
    poll_interval: float = DEFAULT_POLL_INTERVAL


# Credentials configuration
class CredentialsConfig(msgspec.Struct, omit_defaults=True):
    """Credential management settings."""

    use_keyring: bool = True
    secret_cache_ttl: float = DEFAULT_SECRET_CACHE_TTL


class NotificationsConfig(msgspec.Struct, omit_defaults=True):
    """Notification settings."""

    session_quota: bool = True


# Per-provider configuration
class ProviderConfig(msgspec.Struct, omit_defaults=True):
    """Configuration for a specific provider."""

    enabled: bool = True
    source_mode: SourceMode = SourceMode.AUTO
    cookie_source: CookieSource = CookieSource.AUTO
    preferred_browsers: list[
        Literal["chrome", "firefox", "safari", "brave", "edge", "chromium", "arc", "opera", "vivaldi"]
    ] = []
    allow_fallback_browsers: bool = True
    binary: str | None = None


# Main configuration
class Config(msgspec.Struct, omit_defaults=True):
    """Main configuration structure."""

    enabled_providers: list[str] = []
    fetch: FetchConfig = msgspec.field(default_factory=FetchConfig)
    credentials: CredentialsConfig = msgspec.field(default_factory=CredentialsConfig)
    notifications: NotificationsConfig = msgspec.field(
        default_factory=NotificationsConfig
    )
    providers: dict[str, ProviderConfig] = msgspec.field(default_factory=dict)

    def get_provider_config(self, provider_id: str) -> ProviderConfig:
        """Get config for a provider, with defaults."""
        return self.providers.get(provider_id, ProviderConfig())

    def is_provider_enabled(self, provider_id: str) -> bool:
        """Check if a provider is enabled.

        A provider is enabled if:
        1. It's not explicitly disabled in providers config
        2. It's either in enabled_providers list OR enabled_providers is empty (all enabled)
        """
        provider_cfg = self.get_provider_config(provider_id)
        if not provider_cfg.enabled:
            return False
        if not self.enabled_providers:
            return True
        return provider_id in self.enabled_providers


def _load_from_toml(path: Path) -> dict:
    """Load configuration from TOML file."""
    if not path.exists():
        return {}

    with path.open("rb") as f:
        return tomllib.load(f)


def _save_to_toml(data: dict, path: Path) -> None:
    """Save configuration to TOML file."""
    import tomli_w

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("wb") as f:
        tomli_w.dump(data, f)


def convert_config(data: dict) -> Config:
    """Convert raw dict to Config struct."""
    return msgspec.convert(data, type=Config)


def _apply_env_overrides(config: Config) -> Config:
    """Apply environment variable overrides to config.

    QUOTAWATCH_ENABLED_PROVIDERS: Comma-separated list of providers
    QUOTAWATCH_POLL_INTERVAL: Seconds between background refreshes
    """
    if "QUOTAWATCH_ENABLED_PROVIDERS" in os.environ:
        providers_str = os.environ["QUOTAWATCH_ENABLED_PROVIDERS"]
        enabled = [p.strip() for p in providers_str.split(",") if p.strip()]
        config = msgspec.structs.replace(config, enabled_providers=enabled)

    if interval := os.environ.get("QUOTAWATCH_POLL_INTERVAL"):
        try:
            fetch = msgspec.structs.replace(config.fetch, poll_interval=float(interval))
        except ValueError:
            pass
        else:
            config = msgspec.structs.replace(config, fetch=fetch)

    return config


# Config state storage
_config: Config | None = None


def get_config() -> Config:
    """Get the current configuration (singleton)."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration from disk."""
    global _config
    _config = load_config()
    return _config


def load_config(path: Path | None = None) -> Config:
    """Load configuration from file with defaults."""
    from .paths import config_file

    config_path = path or config_file()

    raw_data = _load_from_toml(config_path)
    config = convert_config(raw_data) if raw_data else Config()

    return _apply_env_overrides(config)


def save_config(config: Config, path: Path | None = None) -> None:
    """Save configuration to file."""
    from .paths import config_file

    config_path = path or config_file()

    _save_to_toml(msgspec.to_builtins(config), config_path)

    global _config
    _config = config
