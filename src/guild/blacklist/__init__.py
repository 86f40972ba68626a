"""Email blacklist gate and administration."""

from guild.blacklist.gate import BlacklistCheck, BlacklistGate, normalize_email
from guild.blacklist.service import (
    BlacklistHistory,
    BlacklistService,
    BulkRemovalResult,
    EmailStatus,
)

__all__ = [
    "BlacklistCheck",
    "BlacklistGate",
    "BlacklistHistory",
    "BlacklistService",
    "BulkRemovalResult",
    "EmailStatus",
    "normalize_email",
]
