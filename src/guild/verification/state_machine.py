"""Alumni verification state machine.

Pure functions: given a user's current state they return the complete set
of column values the transition writes, or raise if the transition is not
allowed. Callers apply the values in one UPDATE.

    PENDING  --approve-->        VERIFIED
    PENDING  --reject(reason)--> REJECTED
    REJECTED --batch change-->   PENDING

VERIFIED is terminal. The only way out of REJECTED is the user claiming a
different batch year; re-submitting the same year changes nothing.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from guild.core.exceptions import InvalidTransitionError
from guild.core.roles import UserRole, bypasses_verification
from guild.db.models.user import VerificationStatus


class VerificationAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"
    CHANGE_BATCH = "change_batch"


@dataclass(frozen=True)
class Transition:
    """Outcome of planning a transition.

    Attributes:
        from_status: Status before the transition
        to_status: Status after the transition
        values: Column values to write (empty for a no-op)
    """

    from_status: VerificationStatus
    to_status: VerificationStatus
    values: dict[str, Any] = field(default_factory=dict)

    @property
    def is_noop(self) -> bool:
        return not self.values

    @property
    def changes_status(self) -> bool:
        return self.from_status != self.to_status


def status_columns(status: VerificationStatus) -> dict[str, Any]:
    """The flag columns that must accompany a verification status."""
    return {
        "verification_status": status.value,
        "is_alumni_verified": status == VerificationStatus.VERIFIED,
        "pending_verification": status == VerificationStatus.PENDING,
    }


def effective_status(status: VerificationStatus | str, role: UserRole | str) -> VerificationStatus:
    """Status used for authorization decisions.

    SUPER_ADMIN and DEVELOPER accounts count as VERIFIED whatever is stored.
    """
    if bypasses_verification(role):
        return VerificationStatus.VERIFIED
    return VerificationStatus(status)


def plan_approval(
    current: VerificationStatus,
    admin_id: UUID,
    now: datetime,
    notes: str | None = None,
) -> Transition:
    """Plan PENDING -> VERIFIED.

    Approving an already VERIFIED user is a no-op so that a second,
    concurrent approval succeeds without writing.

    Raises:
        InvalidTransitionError: If the user is REJECTED
    """
    if current == VerificationStatus.VERIFIED:
        return Transition(current, current)
    if current != VerificationStatus.PENDING:
        raise InvalidTransitionError(current.value, VerificationAction.APPROVE.value)

    values = status_columns(VerificationStatus.VERIFIED)
    values.update(
        rejection_reason=None,
        rejected_at=None,
        rejected_by=None,
        verified_at=now,
        verified_by=admin_id,
        verification_notes=notes,
    )
    return Transition(current, VerificationStatus.VERIFIED, values)


def plan_rejection(
    current: VerificationStatus,
    admin_id: UUID,
    now: datetime,
    reason: str,
) -> Transition:
    """Plan PENDING -> REJECTED with a (validated, non-empty) reason.

    Raises:
        InvalidTransitionError: If the user is not PENDING
    """
    if current != VerificationStatus.PENDING:
        raise InvalidTransitionError(current.value, VerificationAction.REJECT.value)

    values = status_columns(VerificationStatus.REJECTED)
    values.update(
        rejection_reason=reason,
        rejected_at=now,
        rejected_by=admin_id,
        verified_at=None,
        verified_by=None,
    )
    return Transition(current, VerificationStatus.REJECTED, values)


def plan_batch_change(
    current: VerificationStatus,
    current_year: int,
    new_year: int,
    new_batch_id: UUID,
) -> Transition:
    """Plan a self-service batch year change.

    A different year moves the user to the new batch; from REJECTED it also
    reopens review (REJECTED -> PENDING) and clears the rejection reason.
    The same year is a no-op in every state.
    """
    if new_year == current_year:
        return Transition(current, current)

    values: dict[str, Any] = {"batch_year": new_year, "batch_id": new_batch_id}
    if current == VerificationStatus.REJECTED:
        values.update(status_columns(VerificationStatus.PENDING))
        values.update(rejection_reason=None, rejected_at=None, rejected_by=None)
        return Transition(current, VerificationStatus.PENDING, values)

    return Transition(current, current, values)
