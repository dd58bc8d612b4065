"""tablehand configuration module."""

from tablehand.config.provider_modes import (
    effective_reasoning_provider,
    effective_record_store_provider,
)
from tablehand.config.settings import Settings, get_settings, reset_settings_cache, settings

__all__ = [
    "settings",
    "Settings",
    "get_settings",
    "reset_settings_cache",
    "effective_reasoning_provider",
    "effective_record_store_provider",
]
