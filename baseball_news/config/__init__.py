"""Configuration module - settings and environment management."""

from baseball_news.config.settings import (
    ConfigurationError,
    FieldLimits,
    Settings,
    load_settings,
)

__all__ = [
    "ConfigurationError",
    "FieldLimits",
    "Settings",
    "load_settings",
]
