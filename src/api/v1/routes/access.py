"""Identity sync and role access routes."""

from fastapi import APIRouter, Depends, Request

from api.dependencies.auth import CurrentUser
from api.v1.dependencies import CurrentAccess, get_identity_service
from api.v1.schemas.access import AccessResponse, UserResponse
from core.config import settings
from core.rate_limit import limiter
from domain.entities.resolution import NoRole
from domain.services.identity_service import IdentityService
from domain.services.route_gate import ROUTE_TABLE

router = APIRouter(tags=["access"])


@router.post(
    "/auth/sync",
    response_model=UserResponse,
    summary="Link the caller's identity to a local user",
    responses={
        200: {"description": "Local user for the verified identity"},
        401: {"description": "Missing or invalid token"},
        403: {"description": "Email already linked to another identity"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def sync_user(
    request: Request,
    user: CurrentUser,
    service: IdentityService = Depends(get_identity_service),
) -> UserResponse:
    """Get or create the local user for the bearer token's identity."""
    local = await service.sync_user(
        external_auth_id=user.external_id,
        email=user.email,
        display_name=user.display_name,
    )
    return UserResponse(
        id=local.id,
        email=local.email,
        display_name=local.display_name,
        is_active=local.is_active,
    )


@router.get(
    "/me/access",
    response_model=AccessResponse,
    summary="Resolve the caller's role",
    responses={
        200: {"description": "Resolved role, workspace and landing page"},
        503: {"description": "Role resolution unavailable, retry"},
    },
)
@limiter.limit("60/minute")  # type: ignore[untyped-decorator]
async def get_access(request: Request, access: CurrentAccess) -> AccessResponse:
    """Resolve the caller's single role and workspace. Never cached."""
    resolution = access.resolution
    if isinstance(resolution, NoRole):
        return AccessResponse(
            user_id=access.user.id,
            role=None,
            workspace_id=None,
            home=settings.login_path,
        )
    return AccessResponse(
        user_id=access.user.id,
        role=resolution.role.value,
        workspace_id=resolution.workspace_id,
        home=ROUTE_TABLE[resolution.role].home,
    )
