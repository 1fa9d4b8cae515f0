"""Configuration module — exports Settings, the provider catalog, and a module-level singleton."""

from paperlens.config.providers import PROVIDER_PRESETS, ProviderPreset, get_preset
from paperlens.config.settings import Settings

settings = Settings()

__all__ = ["PROVIDER_PRESETS", "ProviderPreset", "Settings", "get_preset", "settings"]
