"""
API v1 package.

Contains the applicant and admin routes of the registration API.
"""

from fastapi import APIRouter

from src.api.v1.admin import router as admin_router
from src.api.v1.routes import router as applicant_router

router = APIRouter()
router.include_router(applicant_router)
router.include_router(admin_router)

__all__ = ["router"]
