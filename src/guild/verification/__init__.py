"""Alumni verification workflow."""

from guild.verification.authority import BatchAuthorityResolver
from guild.verification.service import (
    BatchChangeResult,
    BulkApprovalResult,
    VerificationService,
)
from guild.verification.state_machine import (
    Transition,
    VerificationAction,
    effective_status,
    plan_approval,
    plan_batch_change,
    plan_rejection,
    status_columns,
)

__all__ = [
    "BatchAuthorityResolver",
    "BatchChangeResult",
    "BulkApprovalResult",
    "Transition",
    "VerificationAction",
    "VerificationService",
    "effective_status",
    "plan_approval",
    "plan_batch_change",
    "plan_rejection",
    "status_columns",
]
