"""Blacklist administration endpoints (SUPER_ADMIN and DEVELOPER only)."""

from typing import Annotated, Literal
from uuid import UUID

from fastapi import APIRouter, Query

from guild.api.dependencies import AppSettings, CurrentUser, DbSession
from guild.api.schemas.blacklist import (
    AuditEventResponse,
    BlacklistAddRequest,
    BlacklistEntryResponse,
    BlacklistHistoryResponse,
    BlacklistListResponse,
    BlacklistRemoveRequest,
    BlacklistStatsResponse,
    BulkRemoveRequest,
    BulkRemoveResponse,
    EmailStatusResponse,
)
from guild.blacklist.gate import normalize_email
from guild.blacklist.service import BlacklistService
from guild.db.models.user import User

router = APIRouter(prefix="/admin/verification/blacklist", tags=["blacklist"])


def _service(db: DbSession, actor: User, settings: AppSettings) -> BlacklistService:
    return BlacklistService(db, actor.organization_id, settings)


@router.post(
    "",
    response_model=BlacklistEntryResponse,
    status_code=201,
    summary="Blacklist an email",
)
async def add_entry(
    request: BlacklistAddRequest,
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
) -> BlacklistEntryResponse:
    entry = await _service(db, actor, settings).add(actor, request.email, request.reason)
    await db.commit()
    return BlacklistEntryResponse.model_validate(entry)


@router.get("", response_model=BlacklistListResponse, summary="List blacklist entries")
async def list_entries(
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
    status: Literal["active", "removed", "all"] = "active",
    search: str | None = None,
    page: Annotated[int, Query(ge=1)] = 1,
    limit: Annotated[int, Query(ge=1, le=100)] = 20,
) -> BlacklistListResponse:
    entries, total = await _service(db, actor, settings).list_entries(
        actor, status=status, search=search, page=page, limit=limit
    )
    return BlacklistListResponse(
        items=[BlacklistEntryResponse.model_validate(e) for e in entries],
        total=total,
        page=page,
        limit=limit,
        status=status,
    )


@router.get("/stats", response_model=BlacklistStatsResponse, summary="Blacklist counts")
async def blacklist_stats(
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
) -> BlacklistStatsResponse:
    return BlacklistStatsResponse(**await _service(db, actor, settings).stats(actor))


@router.get("/check", response_model=EmailStatusResponse, summary="Blacklist status of an email")
async def check_email(
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
    email: Annotated[str, Query(min_length=1)],
) -> EmailStatusResponse:
    result = await _service(db, actor, settings).email_status(actor, email)
    return EmailStatusResponse(email=normalize_email(email), status=result)


@router.get(
    "/history",
    response_model=BlacklistHistoryResponse,
    summary="Blacklist history of an email",
    description="Every entry for the email, removed ones included, plus related audit events.",
)
async def email_history(
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
    email: Annotated[str, Query(min_length=1)],
) -> BlacklistHistoryResponse:
    history = await _service(db, actor, settings).history(actor, email)
    return BlacklistHistoryResponse(
        email=history.email,
        entries=[BlacklistEntryResponse.model_validate(e) for e in history.entries],
        events=[AuditEventResponse.model_validate(e) for e in history.events],
    )


@router.post("/bulk-remove", response_model=BulkRemoveResponse, summary="Remove several entries")
async def bulk_remove(
    request: BulkRemoveRequest,
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
) -> BulkRemoveResponse:
    result = await _service(db, actor, settings).bulk_remove(
        actor, request.entry_ids, request.reason
    )
    await db.commit()
    return BulkRemoveResponse(
        removed=result.removed,
        already_removed=result.already_removed,
        not_found=result.not_found,
    )


@router.delete(
    "/{entry_id}",
    response_model=BlacklistEntryResponse,
    summary="Remove a blacklist entry",
    description="The entry is kept as history; the email may register again.",
)
async def remove_entry(
    entry_id: UUID,
    db: DbSession,
    settings: AppSettings,
    actor: CurrentUser,
    request: BlacklistRemoveRequest | None = None,
) -> BlacklistEntryResponse:
    entry = await _service(db, actor, settings).remove(
        actor, entry_id, request.reason if request else None
    )
    await db.commit()
    return BlacklistEntryResponse.model_validate(entry)
