"""Blacklist gate consulted before registration and login."""

from dataclasses import dataclass
from uuid import UUID

from guild.db.repositories.blacklist import BlacklistRepository


def normalize_email(email: str) -> str:
    """Canonical form used for every blacklist and account lookup."""
    return email.strip().lower()


@dataclass(frozen=True)
class BlacklistCheck:
    """Result of a blacklist lookup.

    Attributes:
        blocked: Whether an active entry exists for the email
        reason: The entry's reason (server-side use only)
        entry_id: The active entry, if any
    """

    blocked: bool
    reason: str | None = None
    entry_id: UUID | None = None


class BlacklistGate:
    """Answers whether an email is currently blocked in one organization.

    Only active entries count; removed entries are history.
    """

    def __init__(self, entries: BlacklistRepository):
        self.entries = entries

    async def check(self, email: str) -> BlacklistCheck:
        entry = await self.entries.get_active_by_email(normalize_email(email))
        if entry is None:
            return BlacklistCheck(blocked=False)
        return BlacklistCheck(blocked=True, reason=entry.reason, entry_id=entry.entry_id)
