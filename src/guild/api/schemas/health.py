"""Health and readiness response schemas."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


class ComponentCheck(BaseModel):
    """Outcome of probing one dependency."""

    status: HealthStatus
    message: str | None = None
    latency_ms: float | None = None


class CatalogCheck(ComponentCheck):
    """Feature catalog probe; gated routes refuse everything until it is seeded."""

    features: int = 0
    active_plans: int = 0


class LivenessResponse(BaseModel):
    status: HealthStatus = Field(..., description="Overall health status")
    version: str = Field(..., description="Application version")
    timestamp: datetime = Field(..., description="Check timestamp")


class DatabaseHealthResponse(LivenessResponse):
    database: ComponentCheck


class ReadinessResponse(DatabaseHealthResponse):
    """Readiness of the database and the seeded feature catalog."""

    feature_catalog: CatalogCheck | None = Field(
        default=None, description="Skipped when the database is unreachable"
    )
    checks: list[str] = Field(default_factory=list, description="Probes that ran")

    model_config = {
        "json_schema_extra": {
            "example": {
                "status": "healthy",
                "version": "0.1.0",
                "timestamp": "2026-01-30T12:00:00Z",
                "database": {"status": "healthy", "latency_ms": 1.5},
                "feature_catalog": {"status": "healthy", "features": 23, "active_plans": 4},
                "checks": ["database", "feature_catalog"],
            }
        }
    }
