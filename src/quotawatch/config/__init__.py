"""Configuration management for quotawatch."""

from quotawatch.config.paths import cache_dir
from quotawatch.config.paths import config_dir
from quotawatch.config.paths import config_file
from quotawatch.config.settings import Config
from quotawatch.config.settings import CookieSource
from quotawatch.config.settings import ProviderConfig
from quotawatch.config.settings import SourceMode
from quotawatch.config.settings import get_config
from quotawatch.config.settings import load_config
from quotawatch.config.settings import reload_config
from quotawatch.config.settings import save_config

__all__ = [
    "Config",
    "CookieSource",
    "ProviderConfig",
    "SourceMode",
    "cache_dir",
    "config_dir",
    "config_file",
    "get_config",
    "load_config",
    "reload_config",
    "save_config",
]
