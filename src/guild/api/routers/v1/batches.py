"""Batch directory and batch admin assignment endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from guild.api.dependencies import (
    AppSettings,
    CurrentUser,
    DbSession,
    require_feature,
    require_verified_alumni,
)
from guild.api.schemas.auth import ApproverResponse, UserResponse
from guild.api.schemas.batches import (
    AssignAdminRequest,
    BatchAdminAssignmentResponse,
    BatchDetailResponse,
    BatchListResponse,
    BatchMembersResponse,
    BatchResponse,
)
from guild.batches.service import BatchService
from guild.db.models.user import User

router = APIRouter(tags=["batches"])

VerifiedAlumnus = Annotated[User, Depends(require_verified_alumni)]


@router.get("/batches", response_model=BatchListResponse, summary="List batches")
async def list_batches(
    db: DbSession,
    settings: AppSettings,
    user: CurrentUser,
) -> BatchListResponse:
    batches = await BatchService(db, user.organization_id, settings).list_batches()
    return BatchListResponse(items=[BatchResponse.model_validate(b) for b in batches])


@router.get("/batches/{year}", response_model=BatchDetailResponse, summary="Batch with its admins")
async def get_batch(
    year: int,
    db: DbSession,
    settings: AppSettings,
    user: CurrentUser,
) -> BatchDetailResponse:
    details = await BatchService(db, user.organization_id, settings).get_batch(year)
    return BatchDetailResponse(
        batch_id=details.batch.batch_id,
        year=details.batch.year,
        name=details.batch.name,
        total_members=details.batch.total_members,
        admins=[ApproverResponse.model_validate(a) for a in details.admins],
    )


@router.get(
    "/batches/{year}/members",
    response_model=BatchMembersResponse,
    summary="Verified members of a batch",
    description="Only verified alumni (and super admins) may browse the directory.",
    dependencies=[Depends(require_feature("DIRECTORY"))],
)
async def list_members(
    year: int,
    db: DbSession,
    settings: AppSettings,
    user: VerifiedAlumnus,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
    search: str | None = None,
) -> BatchMembersResponse:
    members, total = await BatchService(db, user.organization_id, settings).list_members(
        year, page=page, limit=limit, search=search
    )
    return BatchMembersResponse(
        year=year,
        items=[UserResponse.model_validate(m) for m in members],
        total=total,
        page=page,
        limit=limit,
    )


@router.post(
    "/admin/batches/{year}/admins",
    response_model=BatchAdminAssignmentResponse,
    status_code=201,
    summary="Assign a batch admin",
)
async def assign_admin(
    year: int,
    request: AssignAdminRequest,
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
) -> BatchAdminAssignmentResponse:
    assignment = await BatchService(db, actor.organization_id, settings).assign_admin(
        actor, year, request.user_id
    )
    await db.commit()
    return BatchAdminAssignmentResponse.model_validate(assignment)


@router.delete(
    "/admin/batches/{year}/admins/{user_id}",
    response_model=BatchAdminAssignmentResponse,
    summary="Revoke a batch admin",
)
async def revoke_admin(
    year: int,
    user_id: UUID,
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
) -> BatchAdminAssignmentResponse:
    assignment = await BatchService(db, actor.organization_id, settings).revoke_admin(
        actor, year, user_id
    )
    await db.commit()
    return BatchAdminAssignmentResponse.model_validate(assignment)
