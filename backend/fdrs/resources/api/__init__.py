"""Resources API routers."""

from fastapi import APIRouter

from . import admin, profile, resources

router = APIRouter()
router.include_router(resources.router)
router.include_router(admin.router)
router.include_router(profile.router)

__all__ = ["router"]
