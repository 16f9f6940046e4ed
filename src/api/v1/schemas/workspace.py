"""Pydantic schemas for Workspace and employee API."""

from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from domain.entities.grant import AdminGrant, EmployeeAssignment


class WorkspaceCreate(BaseModel):
    """Schema for provisioning a client workspace."""

    name: str = Field(..., min_length=1, max_length=255)


class WorkspaceResponse(BaseModel):
    """Schema for Workspace response."""

    model_config = ConfigDict(
        from_attributes=True,
        json_schema_extra={
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "name": "Acme Ltd",
                "owner_user_id": "456e4567-e89b-12d3-a456-426614174000",
                "created_at": "2026-02-01T10:00:00",
                "updated_at": "2026-02-01T10:00:00",
            }
        },
    )

    id: UUID
    name: str
    owner_user_id: Optional[UUID]
    created_at: datetime
    updated_at: datetime


class EmployeeUpdate(BaseModel):
    """Schema for updating an employee (all fields optional)."""

    full_name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    is_active: Optional[bool] = None


class EmployeeResponse(BaseModel):
    """Schema for an employee assignment."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    workspace_id: UUID
    full_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    invited_by: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_entity(cls, assignment: EmployeeAssignment) -> "EmployeeResponse":
        return cls.model_validate(assignment)


class EmployeeListResponse(BaseModel):
    """Schema for list of employees response."""

    data: List[EmployeeResponse]
    meta: dict[str, Any] = Field(default_factory=dict)


class StaffResponse(BaseModel):
    """Schema for a platform staff grant."""

    model_config = ConfigDict(from_attributes=True)

    user_id: UUID
    role: str
    workspace_id: Optional[UUID]
    created_at: datetime

    @classmethod
    def from_entity(cls, grant: AdminGrant) -> "StaffResponse":
        return cls(
            user_id=grant.user_id,
            role=grant.role.value,
            workspace_id=grant.workspace_id,
            created_at=grant.created_at,
        )


class StaffListResponse(BaseModel):
    """Schema for list of platform staff response."""

    data: List[StaffResponse]
    meta: dict[str, Any] = Field(default_factory=dict)
