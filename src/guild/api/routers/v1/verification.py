"""Verification administration endpoints.

Batch admins act on the batches they are assigned to; SUPER_ADMIN and
DEVELOPER act on every batch. Authority is re-checked against the target
user's current batch on every call.
"""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from guild.api.dependencies import AppSettings, DbSession, require_roles
from guild.api.schemas.auth import ApproverResponse, UserResponse
from guild.api.schemas.verification import (
    ApproveRequest,
    BulkApproveRequest,
    BulkApproveResponse,
    PendingListResponse,
    RejectRequest,
    VerificationDetailResponse,
    VerificationStatsResponse,
)
from guild.core.roles import ADMIN_ROLES
from guild.db.models.user import User, VerificationStatus
from guild.verification.service import VerificationService

router = APIRouter(prefix="/admin/verification", tags=["verification"])

VerificationAdmin = Annotated[User, Depends(require_roles(*ADMIN_ROLES))]


def _service(db: DbSession, admin: User, settings: AppSettings) -> VerificationService:
    return VerificationService(db, admin.organization_id, settings)


@router.get("/pending", response_model=PendingListResponse, summary="List pending registrations")
async def list_pending(
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    batch_year: int | None = None,
    search: str | None = None,
) -> PendingListResponse:
    users, total = await _service(db, admin, settings).list_pending(
        admin, page=page, limit=limit, batch_year=batch_year, search=search
    )
    return PendingListResponse(
        items=[UserResponse.model_validate(u) for u in users],
        total=total,
        page=page,
        limit=limit,
    )


@router.get("/stats", response_model=VerificationStatsResponse, summary="Verification counts")
async def verification_stats(
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
) -> VerificationStatsResponse:
    counts = await _service(db, admin, settings).stats(admin)
    return VerificationStatsResponse(
        pending=counts[VerificationStatus.PENDING],
        verified=counts[VerificationStatus.VERIFIED],
        rejected=counts[VerificationStatus.REJECTED],
        total=sum(counts.values()),
    )


@router.post(
    "/bulk-approve",
    response_model=BulkApproveResponse,
    summary="Approve several users",
    description="Authority is checked for each user; failures are reported, not raised.",
)
async def bulk_approve(
    request: BulkApproveRequest,
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
) -> BulkApproveResponse:
    result = await _service(db, admin, settings).bulk_approve(
        admin, request.user_ids, request.notes
    )
    await db.commit()
    return BulkApproveResponse(
        verified=result.verified,
        skipped=result.skipped,
        forbidden=result.forbidden,
        not_found=result.not_found,
    )


@router.get(
    "/{user_id}",
    response_model=VerificationDetailResponse,
    summary="Verification details for a user",
)
async def verification_details(
    user_id: UUID,
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
) -> VerificationDetailResponse:
    user, approvers = await _service(db, admin, settings).details(admin, user_id)
    return VerificationDetailResponse(
        user=UserResponse.model_validate(user),
        approvers=[ApproverResponse.model_validate(a) for a in approvers],
        verification_notes=user.verification_notes,
        rejected_by=user.rejected_by,
        verified_by=user.verified_by,
    )


@router.post("/{user_id}/approve", response_model=UserResponse, summary="Approve a user")
async def approve(
    user_id: UUID,
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
    request: ApproveRequest | None = None,
) -> UserResponse:
    notes = request.notes if request else None
    user = await _service(db, admin, settings).approve(admin, user_id, notes)
    await db.commit()
    return UserResponse.model_validate(user)


@router.post(
    "/{user_id}/reject",
    response_model=UserResponse,
    summary="Reject a user",
    description="A non-blank reason is required. Rejection does not blacklist the email.",
)
async def reject(
    user_id: UUID,
    request: RejectRequest,
    db: DbSession,
    settings: AppSettings,
    admin: VerificationAdmin,
) -> UserResponse:
    user = await _service(db, admin, settings).reject(admin, user_id, request.reason)
    await db.commit()
    return UserResponse.model_validate(user)
