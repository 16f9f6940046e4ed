"""Pydantic schemas for identity sync and access API."""

from uuid import UUID

from pydantic import BaseModel


class UserResponse(BaseModel):
    """Schema for the local user linked to the caller's identity."""

    id: UUID
    email: str
    display_name: str | None = None
    is_active: bool


class AccessResponse(BaseModel):
    """Schema for the caller's resolved role.

    ``role`` is null when the caller has no role; ``home`` is then the
    login path.
    """

    user_id: UUID
    role: str | None
    workspace_id: UUID | None
    home: str
