"""API v1 router configuration."""

from fastapi import APIRouter

from api.v1.routes.access import router as access_router
from api.v1.routes.employees import platform_router
from api.v1.routes.employees import router as employees_router
from api.v1.routes.invitations import invitations_router, workspace_invitations_router
from api.v1.routes.workspaces import router as workspaces_router

router = APIRouter()
router.include_router(access_router)
router.include_router(workspaces_router)
router.include_router(workspace_invitations_router)
router.include_router(invitations_router)
router.include_router(employees_router)
router.include_router(platform_router)
