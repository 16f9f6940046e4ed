"""Workspace API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from api.v1.dependencies import CurrentAccess, CurrentPrincipal, get_workspace_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.workspace import WorkspaceCreate, WorkspaceResponse
from core.rate_limit import limiter
from domain.entities.workspace import Workspace
from domain.services.workspace_service import WorkspaceService

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


def _to_response(workspace: Workspace) -> WorkspaceResponse:
    return WorkspaceResponse(
        id=workspace.id,
        name=workspace.name,
        owner_user_id=workspace.owner_user_id,
        created_at=workspace.created_at,
        updated_at=workspace.updated_at,
    )


@router.post(
    "",
    response_model=WorkspaceResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a workspace",
    responses={
        201: {"description": "Workspace created; caller is its admin"},
        409: {"model": ErrorResponse, "description": "Caller already holds a role"},
    },
)
@limiter.limit("5/minute")  # type: ignore[untyped-decorator]
async def create_workspace(
    request: Request,
    body: WorkspaceCreate,
    principal: CurrentPrincipal,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceResponse:
    """Provision a client workspace for a caller with no role."""
    workspace, _ = await service.create_owner_workspace(principal.id, body.name)
    return _to_response(workspace)


@router.get(
    "/{workspace_id}",
    response_model=WorkspaceResponse,
    summary="Get workspace",
    responses={404: {"model": ErrorResponse, "description": "Not found"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def get_workspace(
    request: Request,
    workspace_id: UUID,
    access: CurrentAccess,
    service: WorkspaceService = Depends(get_workspace_service),
) -> WorkspaceResponse:
    """Get a workspace the caller is scoped to."""
    return _to_response(await service.get_workspace(access.resolution, workspace_id))
