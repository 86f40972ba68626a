"""Configuration module for Guild."""

from guild.config.settings import Settings, VerificationConfig, get_settings

__all__ = ["Settings", "VerificationConfig", "get_settings"]
