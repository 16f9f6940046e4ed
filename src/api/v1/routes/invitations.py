"""Invitation API routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, status

from api.v1.dependencies import CurrentAccess, CurrentPrincipal, get_invitation_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.invitation import (
    AcceptInvitationRequest,
    AcceptInvitationResponse,
    CreateInvitationRequest,
    InvitationCreatedResponse,
    InvitationListResponse,
    InvitationPreviewResponse,
    InvitationResponse,
)
from core.rate_limit import limiter
from domain.entities.grant import ProfileFields
from domain.services.invitation_service import InvitationService

# Invitation lifecycle routes
invitations_router = APIRouter(
    prefix="/invitations",
    tags=["invitations"],
)

# Workspace-scoped invitation listing
workspace_invitations_router = APIRouter(
    prefix="/workspaces/{workspace_id}/invitations",
    tags=["invitations"],
)


@invitations_router.post(
    "",
    response_model=InvitationCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create invitation",
    responses={
        201: {"description": "Invitation created"},
        403: {"model": ErrorResponse, "description": "Inviter may not issue this invitation"},
        404: {"model": ErrorResponse, "description": "Workspace not found"},
        409: {"model": ErrorResponse, "description": "Pending invitation already exists"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def create_invitation(
    request: Request,
    body: CreateInvitationRequest,
    principal: CurrentPrincipal,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationCreatedResponse:
    """Invite platform staff (super_admin only) or an employee (admin or super_admin)."""
    invitation, raw_token = await service.create_invitation(
        inviter_id=principal.id,
        email=body.email,
        target_role=body.target_role,
        workspace_id=body.workspace_id,
    )
    return InvitationCreatedResponse(
        data=InvitationResponse.from_entity(invitation),
        token=raw_token,
    )


@invitations_router.get(
    "/preview",
    response_model=InvitationPreviewResponse,
    summary="Preview invitation",
    responses={
        200: {"description": "Invitation is acceptable"},
        400: {"model": ErrorResponse, "description": "Invalid or expired invitation"},
    },
)
@limiter.limit("20/minute")  # type: ignore[untyped-decorator]
async def preview_invitation(
    request: Request,
    token: str = Query(..., min_length=1),
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationPreviewResponse:
    """Show what an invitation offers without accepting it."""
    invitation = await service.preview_invitation(token)
    return InvitationPreviewResponse(
        email=invitation.email,
        target_role=invitation.target_role.value,
        workspace_id=invitation.workspace_id,
        expires_at=invitation.expires_at,
    )


@invitations_router.post(
    "/accept",
    response_model=AcceptInvitationResponse,
    summary="Accept invitation",
    responses={
        200: {"description": "Invitation accepted and grant written"},
        400: {"model": ErrorResponse, "description": "Invalid or expired invitation"},
        409: {"model": ErrorResponse, "description": "Invitee already holds a role"},
        502: {"model": ErrorResponse, "description": "Identity provider failed"},
    },
)
@limiter.limit("5/minute")  # type: ignore[untyped-decorator]
async def accept_invitation(
    request: Request,
    body: AcceptInvitationRequest,
    service: InvitationService = Depends(get_invitation_service),
) -> AcceptInvitationResponse:
    """Accept an invitation with its raw token. No prior sign-in needed."""
    result = await service.accept_invitation(
        token=body.token,
        email=body.email,
        profile=ProfileFields(full_name=body.full_name, phone=body.phone),
        password=body.password,
    )
    return AcceptInvitationResponse(
        user_id=result.user_id,
        role=result.role.value,
        workspace_id=result.workspace_id,
    )


@invitations_router.delete(
    "/{invitation_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Revoke invitation",
    responses={
        204: {"description": "Invitation revoked"},
        403: {"model": ErrorResponse, "description": "Only the inviter or a super admin"},
        404: {"model": ErrorResponse, "description": "Invitation not found"},
        409: {"model": ErrorResponse, "description": "Invitation is no longer pending"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def revoke_invitation(
    request: Request,
    invitation_id: UUID,
    principal: CurrentPrincipal,
    service: InvitationService = Depends(get_invitation_service),
) -> None:
    """Revoke a pending invitation."""
    await service.revoke_invitation(invitation_id, by_user_id=principal.id)
    return None


@workspace_invitations_router.get(
    "",
    response_model=InvitationListResponse,
    summary="List workspace invitations",
    responses={
        200: {"description": "Invitations targeting the workspace"},
        403: {"model": ErrorResponse, "description": "Employees cannot list invitations"},
        404: {"model": ErrorResponse, "description": "Not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_workspace_invitations(
    request: Request,
    workspace_id: UUID,
    access: CurrentAccess,
    service: InvitationService = Depends(get_invitation_service),
) -> InvitationListResponse:
    """List all invitations for a workspace."""
    invitations = await service.list_workspace_invitations(access.resolution, workspace_id)
    data = [InvitationResponse.from_entity(inv) for inv in invitations]
    return InvitationListResponse(data=data, meta={"total": len(data)})
