"""Grant repository protocol (admin grants and employee assignments)."""

from typing import Protocol
from uuid import UUID

from domain.entities.grant import AdminGrant, EmployeeAssignment, ProfileFields


class IGrantRepository(Protocol):
    """Repository interface for AdminGrant and EmployeeAssignment entities."""

    async def get_admin_grants(self, user_id: UUID) -> list[AdminGrant]:
        """Get every admin grant held by a user."""
        ...

    async def add_admin_grant(self, grant: AdminGrant) -> AdminGrant:
        """Insert an admin grant.

        Raises:
            ConstraintViolationError: If the (user, workspace) pair already exists.
        """
        ...

    async def get_platform_staff(self, platform_workspace_id: UUID) -> list[AdminGrant]:
        """Get every platform_staff grant."""
        ...

    async def get_employee_assignment(self, user_id: UUID) -> EmployeeAssignment | None:
        """Get the single employee assignment of a user, if any."""
        ...

    async def add_employee_assignment(self, assignment: EmployeeAssignment) -> EmployeeAssignment:
        """Insert an employee assignment.

        Raises:
            ConstraintViolationError: If the user already has an assignment.
        """
        ...

    async def get_employees(self, workspace_id: UUID) -> list[EmployeeAssignment]:
        """Get all employee assignments for a workspace."""
        ...

    async def update_employee(self, user_id: UUID, fields: ProfileFields) -> EmployeeAssignment:
        """Update the profile fields of an employee assignment."""
        ...
