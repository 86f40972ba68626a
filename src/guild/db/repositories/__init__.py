"""Database repositories for clean data access."""

from .base import BaseRepository, TenantRepository
from .batch import BatchAdminRepository, BatchRepository
from .blacklist import BlacklistRepository
from .organization import OrganizationRepository
from .subscription import FeatureRepository, OrganizationFeatureRepository, PlanRepository
from .user import UserRepository

__all__ = [
    "BaseRepository",
    "TenantRepository",
    "OrganizationRepository",
    "UserRepository",
    "BatchRepository",
    "BatchAdminRepository",
    "BlacklistRepository",
    "FeatureRepository",
    "PlanRepository",
    "OrganizationFeatureRepository",
]
