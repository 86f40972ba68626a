"""Registration, login and profile management."""

from guild.accounts.service import AccountService, AuthResult, ProfileUpdateResult, TokenPair

__all__ = ["AccountService", "AuthResult", "ProfileUpdateResult", "TokenPair"]
