"""API v1 routers."""

from fastapi import APIRouter

from .auth import router as auth_router
from .batches import router as batches_router
from .blacklist import router as blacklist_router
from .features import router as features_router
from .organization import router as organization_router
from .users import router as users_router
from .verification import router as verification_router

# Create v1 router that includes all v1 endpoints
router = APIRouter(prefix="/v1")

router.include_router(auth_router)
router.include_router(users_router)
# Blacklist routes share the /admin/verification prefix and must match
# before /admin/verification/{user_id}
router.include_router(blacklist_router)
router.include_router(verification_router)
router.include_router(batches_router)
router.include_router(features_router)
router.include_router(organization_router)

__all__ = [
    "router",
    "auth_router",
    "batches_router",
    "blacklist_router",
    "features_router",
    "organization_router",
    "users_router",
    "verification_router",
]
