"""Pydantic schemas for Invitation API."""

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from domain.entities.invitation import Invitation


def _validate_email(v: str) -> str:
    v = v.strip().lower()
    if "@" not in v or "." not in v.split("@")[-1]:
        raise ValueError("Invalid email address")
    return v


class CreateInvitationRequest(BaseModel):
    """Schema for creating an invitation."""

    email: str = Field(..., min_length=3, max_length=255)
    target_role: Literal["platform_staff", "employee"]
    workspace_id: UUID | None = Field(
        None,
        description="Target workspace. Omit as an admin to use your own workspace.",
    )

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic email validation."""
        return _validate_email(v)


class AcceptInvitationRequest(BaseModel):
    """Schema for accepting an invitation.

    Sent by a possibly unauthenticated invitee; the password is used only
    if a new identity-provider account has to be created.
    """

    token: str = Field(..., min_length=1)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=8, max_length=128)
    full_name: str | None = Field(None, max_length=255)
    phone: str | None = Field(None, max_length=50)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic email validation."""
        return _validate_email(v)


class InvitationResponse(BaseModel):
    """Schema for Invitation response. Never includes the token or its hash."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "workspace_id": "456e4567-e89b-12d3-a456-426614174000",
                "email": "user@example.com",
                "target_role": "employee",
                "status": "pending",
                "invited_by": "789e4567-e89b-12d3-a456-426614174000",
                "created_at": "2026-02-01T10:00:00",
                "expires_at": "2026-03-03T10:00:00",
            }
        },
    )

    id: UUID
    workspace_id: UUID | None
    email: str
    target_role: str
    status: str
    invited_by: UUID
    created_at: datetime
    expires_at: datetime
    accepted_at: datetime | None = None

    @classmethod
    def from_entity(cls, invitation: Invitation) -> "InvitationResponse":
        return cls(
            id=invitation.id,
            workspace_id=invitation.workspace_id,
            email=invitation.email,
            target_role=invitation.target_role.value,
            status=invitation.status.value,
            invited_by=invitation.invited_by,
            created_at=invitation.created_at,
            expires_at=invitation.expires_at,
            accepted_at=invitation.accepted_at,
        )


class InvitationListResponse(BaseModel):
    """Schema for list of Invitations response."""

    data: list[InvitationResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class InvitationCreatedResponse(BaseModel):
    """Schema for invitation creation response (includes raw token)."""

    data: InvitationResponse
    token: str = Field(
        ...,
        description="Raw invitation token. Share this with the invitee. "
        "This value is only shown once.",
    )


class InvitationPreviewResponse(BaseModel):
    """What an invitee sees before accepting."""

    email: str
    target_role: str
    workspace_id: UUID | None
    expires_at: datetime


class AcceptInvitationResponse(BaseModel):
    """Schema for accepting an invitation response."""

    user_id: UUID
    role: str
    workspace_id: UUID
    message: str = "Invitation accepted successfully"
