"""Shared utilities for Guild."""

from guild.utils.exceptions import ConfigurationError, GuildError

__all__ = ["GuildError", "ConfigurationError"]
