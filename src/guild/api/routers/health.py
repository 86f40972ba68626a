"""Liveness and readiness probes.

None of these routes need a tenant header or a token.
"""

import time
from datetime import UTC, datetime
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends
from sqlalchemy import func, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from guild.api.schemas.health import (
    CatalogCheck,
    ComponentCheck,
    DatabaseHealthResponse,
    HealthStatus,
    LivenessResponse,
    ReadinessResponse,
)
from guild.db.dependencies import get_db
from guild.db.models.subscription import Feature, SubscriptionPlan

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

APP_VERSION = "0.1.0"


@router.get("/health", response_model=LivenessResponse, summary="Liveness probe")
async def health_check() -> LivenessResponse:
    """200 while the process is up, whatever the state of the database."""
    return LivenessResponse(
        status=HealthStatus.HEALTHY, version=APP_VERSION, timestamp=datetime.now(UTC)
    )


@router.get("/health/db", response_model=DatabaseHealthResponse, summary="Database probe")
async def health_db(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> DatabaseHealthResponse:
    database = await _probe_database(db)
    return DatabaseHealthResponse(
        status=database.status,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=database,
    )


@router.get("/health/ready", response_model=ReadinessResponse, summary="Readiness probe")
async def health_ready(
    db: Annotated[AsyncSession, Depends(get_db)],
) -> ReadinessResponse:
    """Ready once the database answers and the feature catalog is seeded.

    An unseeded catalog reports DEGRADED rather than UNHEALTHY: core
    routes still work, only feature-gated ones refuse.
    """
    checks = ["database"]
    database = await _probe_database(db)
    catalog = None
    if database.status == HealthStatus.HEALTHY:
        checks.append("feature_catalog")
        catalog = await _probe_catalog(db)

    status = database.status
    if catalog is not None and catalog.status != HealthStatus.HEALTHY:
        status = catalog.status

    return ReadinessResponse(
        status=status,
        version=APP_VERSION,
        timestamp=datetime.now(UTC),
        database=database,
        feature_catalog=catalog,
        checks=checks,
    )


async def _probe_database(db: AsyncSession) -> ComponentCheck:
    start = time.perf_counter()
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        logger.warning("database_probe_failed", error=str(e)[:200])
        return ComponentCheck(
            status=HealthStatus.UNHEALTHY,
            message="Database unreachable",
            latency_ms=_elapsed_ms(start),
        )
    return ComponentCheck(status=HealthStatus.HEALTHY, latency_ms=_elapsed_ms(start))


async def _probe_catalog(db: AsyncSession) -> CatalogCheck:
    features = (await db.execute(select(func.count()).select_from(Feature))).scalar_one()
    plans = (
        await db.execute(
            select(func.count())
            .select_from(SubscriptionPlan)
            .where(SubscriptionPlan.is_active.is_(True))
        )
    ).scalar_one()

    if not features or not plans:
        return CatalogCheck(
            status=HealthStatus.DEGRADED,
            message="Feature catalog not seeded",
            features=features,
            active_plans=plans,
        )
    return CatalogCheck(status=HealthStatus.HEALTHY, features=features, active_plans=plans)


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 2)
