"""Audit logging service for accountability and security forensics."""

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from guild.core.context import current_correlation_id, get_current_context_or_none
from guild.db.models.audit import AuditEvent, AuditEventType, AuditSeverity

MAX_QUERY_LIMIT = 1000

EventTypeFilter = AuditEventType | str | list[AuditEventType | str]


class AuditLogger:
    """Service for creating and querying audit events.

    Audit events are immutable, append-only logs of registration attempts,
    verification decisions, blacklist changes and subscription changes.
    """

    def __init__(self, db: AsyncSession):
        """Initialize audit logger with database session.

        Args:
            db: Async SQLAlchemy session for database operations
        """
        self.db = db

    async def log_event(
        self,
        event_type: AuditEventType | str,
        event_data: dict[str, Any],
        severity: AuditSeverity | str = AuditSeverity.INFO,
        correlation_id: UUID | None = None,
        tenant_id: UUID | None = None,
        user_id: UUID | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditEvent:
        """Create an immutable audit log entry.

        Correlation id, client address and user agent default to the values
        of the active request context.

        Args:
            event_type: Type of event (verification.approved, blacklist.added, etc.)
            event_data: Structured event details (must be JSON serializable)
            severity: Event severity level (default: INFO)
            correlation_id: Request correlation ID for tracing related events
            tenant_id: Organization ID (null for platform events)
            user_id: User who triggered the event
            resource_type: Optional resource type (user, blacklist_entry, ...)
            resource_id: Optional resource ID
            ip_address: Client IP address
            user_agent: Client user agent string

        Returns:
            Created AuditEvent instance
        """
        if isinstance(event_type, AuditEventType):
            event_type = event_type.value
        if isinstance(severity, AuditSeverity):
            severity = severity.value

        ctx = get_current_context_or_none()
        if ctx is not None:
            ip_address = ip_address or ctx.ip_address
            user_agent = user_agent or ctx.user_agent

        event = AuditEvent(
            event_type=event_type,
            severity=severity,
            tenant_id=tenant_id,
            user_id=user_id,
            correlation_id=correlation_id or current_correlation_id(),
            resource_type=resource_type,
            resource_id=resource_id,
            event_data=event_data,
            ip_address=ip_address,
            user_agent=user_agent,
        )

        self.db.add(event)
        await self.db.flush()

        return event

    async def query_events(
        self,
        tenant_id: UUID | None = None,
        event_type: EventTypeFilter | None = None,
        resource_type: str | None = None,
        resource_id: str | None = None,
        correlation_id: UUID | None = None,
        start_date: datetime | None = None,
        end_date: datetime | None = None,
        severity: AuditSeverity | str | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> list[AuditEvent]:
        """Query audit events with filters, newest first.

        Args:
            tenant_id: Filter by organization
            event_type: Filter by one event type or any of several
            resource_type: Filter by resource type
            resource_id: Filter by resource ID
            correlation_id: Filter by request correlation ID
            start_date: Filter events after this date
            end_date: Filter events before this date
            severity: Filter by severity level
            limit: Max results (capped at 1000)
            offset: Pagination offset
        """
        conditions = _conditions(
            tenant_id=tenant_id,
            event_type=event_type,
            resource_type=resource_type,
            resource_id=resource_id,
            correlation_id=correlation_id,
            start_date=start_date,
            end_date=end_date,
            severity=severity,
        )
        query = (
            select(AuditEvent)
            .where(*conditions)
            # audit_id is UUIDv7, so it breaks created_at ties in insertion order
            .order_by(AuditEvent.created_at.desc(), AuditEvent.audit_id.desc())
            .limit(min(limit, MAX_QUERY_LIMIT))
            .offset(offset)
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def count_events(
        self,
        tenant_id: UUID | None = None,
        event_type: EventTypeFilter | None = None,
        start_date: datetime | None = None,
    ) -> int:
        conditions = _conditions(tenant_id=tenant_id, event_type=event_type, start_date=start_date)
        result = await self.db.execute(
            select(func.count()).select_from(AuditEvent).where(*conditions)
        )
        return result.scalar_one()


def _conditions(
    tenant_id: UUID | None = None,
    event_type: EventTypeFilter | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    correlation_id: UUID | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
    severity: AuditSeverity | str | None = None,
) -> list[ColumnElement[bool]]:
    conditions: list[ColumnElement[bool]] = []
    if tenant_id is not None:
        conditions.append(AuditEvent.tenant_id == tenant_id)
    if event_type is not None:
        types = event_type if isinstance(event_type, list) else [event_type]
        values = [t.value if isinstance(t, AuditEventType) else t for t in types]
        conditions.append(AuditEvent.event_type.in_(values))
    if resource_type is not None:
        conditions.append(AuditEvent.resource_type == resource_type)
    if resource_id is not None:
        conditions.append(AuditEvent.resource_id == resource_id)
    if correlation_id is not None:
        conditions.append(AuditEvent.correlation_id == correlation_id)
    if start_date is not None:
        conditions.append(AuditEvent.created_at >= start_date)
    if end_date is not None:
        conditions.append(AuditEvent.created_at <= end_date)
    if severity is not None:
        value = severity.value if isinstance(severity, AuditSeverity) else severity
        conditions.append(AuditEvent.severity == value)
    return conditions
