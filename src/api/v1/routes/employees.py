"""Employee management and platform staff routes."""

from uuid import UUID

from fastapi import APIRouter, Depends, Request, status

from api.v1.dependencies import CurrentAccess, get_employee_service
from api.v1.schemas.common import ErrorResponse
from api.v1.schemas.workspace import (
    EmployeeListResponse,
    EmployeeResponse,
    EmployeeUpdate,
    StaffListResponse,
    StaffResponse,
)
from core.rate_limit import limiter
from domain.entities.grant import ProfileFields
from domain.services.employee_service import EmployeeService

router = APIRouter(
    prefix="/workspaces/{workspace_id}/employees",
    tags=["employees"],
)

platform_router = APIRouter(prefix="/platform", tags=["platform"])


@router.get(
    "",
    response_model=EmployeeListResponse,
    summary="List employees",
    responses={
        403: {"model": ErrorResponse, "description": "Not a workspace admin"},
        404: {"model": ErrorResponse, "description": "Not found"},
    },
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_employees(
    request: Request,
    workspace_id: UUID,
    access: CurrentAccess,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeeListResponse:
    """List the employees of a workspace."""
    employees = await service.list_employees(access.resolution, workspace_id)
    data = [EmployeeResponse.from_entity(e) for e in employees]
    return EmployeeListResponse(data=data, meta={"total": len(data)})


@router.patch(
    "/{user_id}",
    response_model=EmployeeResponse,
    summary="Update employee",
    responses={
        403: {"model": ErrorResponse, "description": "Not a workspace admin"},
        404: {"model": ErrorResponse, "description": "Not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def update_employee(
    request: Request,
    workspace_id: UUID,
    user_id: UUID,
    body: EmployeeUpdate,
    access: CurrentAccess,
    service: EmployeeService = Depends(get_employee_service),
) -> EmployeeResponse:
    """Update an employee's profile or active flag."""
    updated = await service.update_employee(
        access.resolution,
        workspace_id,
        user_id,
        ProfileFields(full_name=body.full_name, phone=body.phone, is_active=body.is_active),
    )
    return EmployeeResponse.from_entity(updated)


@router.delete(
    "/{user_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Deactivate employee",
    responses={
        403: {"model": ErrorResponse, "description": "Not a workspace admin"},
        404: {"model": ErrorResponse, "description": "Not found"},
    },
)
@limiter.limit("10/minute")  # type: ignore[untyped-decorator]
async def deactivate_employee(
    request: Request,
    workspace_id: UUID,
    user_id: UUID,
    access: CurrentAccess,
    service: EmployeeService = Depends(get_employee_service),
) -> None:
    """Deactivate an employee. Their next role resolution yields no role."""
    await service.deactivate_employee(access.resolution, workspace_id, user_id)
    return None


@platform_router.get(
    "/staff",
    response_model=StaffListResponse,
    summary="List platform staff",
    responses={403: {"model": ErrorResponse, "description": "super_admin only"}},
)
@limiter.limit("30/minute")  # type: ignore[untyped-decorator]
async def list_platform_staff(
    request: Request,
    access: CurrentAccess,
    service: EmployeeService = Depends(get_employee_service),
) -> StaffListResponse:
    """List every platform staff grant."""
    grants = await service.list_platform_staff(access.resolution)
    data = [StaffResponse.from_entity(g) for g in grants]
    return StaffListResponse(data=data, meta={"total": len(data)})
