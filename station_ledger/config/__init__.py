"""Configuration package for runtime settings and startup validation."""

from .settings import LedgerSettings, SettingsLoadError, config_configure_logging, config_load_settings

__all__ = ["LedgerSettings", "SettingsLoadError", "config_configure_logging", "config_load_settings"]
