"""
API router configuration - combines all API endpoints under /api.
"""
from fastapi import APIRouter, Depends

from dental_lab.api.v1 import auth, billing, cases, dentists, health, settings, staff, users, workflow
from dental_lab.dependencies import get_token_identity, require_role
from dental_lab.models.enums import RoleName

authenticated = [Depends(get_token_identity)]

# Create main API router
api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(cases.router, prefix="/cases", tags=["cases"], dependencies=authenticated)
api_router.include_router(workflow.router, prefix="/workflow", tags=["workflow"], dependencies=authenticated)
api_router.include_router(billing.router, prefix="/billing", tags=["billing"], dependencies=authenticated)
api_router.include_router(dentists.router, prefix="/dentists", tags=["dentists"], dependencies=authenticated)
api_router.include_router(staff.router, prefix="/staff", tags=["staff"], dependencies=authenticated)
api_router.include_router(
    users.router,
    prefix="/users",
    tags=["users"],
    dependencies=authenticated + [Depends(require_role(RoleName.ADMIN))]
)
api_router.include_router(settings.router, prefix="/settings", tags=["settings"], dependencies=authenticated)
