"""Employee and platform staff management, scoped to the caller's workspace."""

from collections.abc import Callable
from uuid import UUID

import structlog

from core.exceptions import EmployeeNotFoundError, ForbiddenError
from domain.entities.grant import AdminGrant, EmployeeAssignment, ProfileFields
from domain.entities.resolution import Admin, ResolutionResult, SuperAdmin
from domain.entities.workspace import PLATFORM_WORKSPACE_ID
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.workspace_scope import require_workspace

logger = structlog.get_logger()


class EmployeeService:
    """Service layer for reading and editing employee assignments.

    Every call is checked against the caller's resolved workspace before
    storage is touched. super_admin may read any workspace but only a
    workspace's own admin may edit its employees.
    """

    def __init__(self, uow_factory: Callable[[], IUnitOfWork]) -> None:
        self._uow_factory = uow_factory

    async def list_employees(
        self, resolution: ResolutionResult, workspace_id: UUID
    ) -> list[EmployeeAssignment]:
        """List the employees of a workspace."""
        require_workspace(resolution, workspace_id, allow_cross_workspace_read=True)
        self._require_manager(resolution)

        async with self._uow_factory() as uow:
            return await uow.grants.get_employees(workspace_id)  # type: ignore[no-any-return]

    async def update_employee(
        self,
        resolution: ResolutionResult,
        workspace_id: UUID,
        employee_user_id: UUID,
        fields: ProfileFields,
    ) -> EmployeeAssignment:
        """Update an employee's profile fields.

        Raises:
            WorkspaceMismatchError: If the workspace is not the caller's.
            ForbiddenError: If the caller is not the workspace admin.
            EmployeeNotFoundError: If the user is not an employee of the workspace.
        """
        require_workspace(resolution, workspace_id)
        self._require_manager(resolution)

        async with self._uow_factory() as uow:
            assignment = await uow.grants.get_employee_assignment(employee_user_id)
            if not assignment or assignment.workspace_id != workspace_id:
                raise EmployeeNotFoundError()

            updated = await uow.grants.update_employee(employee_user_id, fields)
            await uow.commit()

        logger.info(
            "employee_updated",
            workspace_id=str(workspace_id),
            employee_user_id=str(employee_user_id),
            updated_by=str(resolution.user_id),  # type: ignore[union-attr]
        )
        return updated  # type: ignore[no-any-return]

    async def deactivate_employee(
        self,
        resolution: ResolutionResult,
        workspace_id: UUID,
        employee_user_id: UUID,
    ) -> EmployeeAssignment:
        """Deactivate an employee. A deactivated employee resolves to no role."""
        return await self.update_employee(
            resolution, workspace_id, employee_user_id, ProfileFields(is_active=False)
        )

    async def list_platform_staff(self, resolution: ResolutionResult) -> list[AdminGrant]:
        """List every platform_staff grant. super_admin only."""
        if not isinstance(resolution, SuperAdmin):
            raise ForbiddenError("Only a super admin can list platform staff")
        require_workspace(resolution, None, resource_scoped=False)

        async with self._uow_factory() as uow:
            return await uow.grants.get_platform_staff(PLATFORM_WORKSPACE_ID)  # type: ignore[no-any-return]

    @staticmethod
    def _require_manager(resolution: ResolutionResult) -> None:
        if not isinstance(resolution, (Admin, SuperAdmin)):
            raise ForbiddenError("Only workspace admins can manage employees")
