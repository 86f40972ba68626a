"""Custom exceptions for Guild."""


class GuildError(Exception):
    """Base exception for all Guild errors."""

    pass


class ConfigurationError(GuildError):
    """Error in configuration or settings."""

    pass
