"""SQLAlchemy implementation of Grant repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.exceptions import ConstraintViolationError
from domain.entities.grant import (
    AdminGrant,
    EmployeeAssignment,
    ProfileFields,
    Role,
)
from infrastructure.database.models import AdminGrantModel, EmployeeAssignmentModel


class SQLAlchemyGrantRepository:
    """SQLAlchemy implementation of IGrantRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- Admin grants ---

    async def get_admin_grants(self, user_id: UUID) -> list[AdminGrant]:
        """Get every admin grant held by a user, oldest first."""
        stmt = (
            select(AdminGrantModel)
            .where(AdminGrantModel.user_id == user_id)
            .order_by(AdminGrantModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._grant_to_entity(model) for model in result.scalars()]

    async def add_admin_grant(self, grant: AdminGrant) -> AdminGrant:
        """Insert an admin grant."""
        model = AdminGrantModel(
            id=grant.id,
            user_id=grant.user_id,
            workspace_id=grant.workspace_id,
            role=grant.role.value,
            created_at=grant.created_at,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(AdminGrantModel.__tablename__) from e
        return self._grant_to_entity(model)

    async def get_platform_staff(self, platform_workspace_id: UUID) -> list[AdminGrant]:
        """Get every platform_staff grant."""
        stmt = (
            select(AdminGrantModel)
            .where(
                AdminGrantModel.workspace_id == platform_workspace_id,
                AdminGrantModel.role == Role.PLATFORM_STAFF.value,
            )
            .order_by(AdminGrantModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._grant_to_entity(model) for model in result.scalars()]

    # --- Employee assignments ---

    async def get_employee_assignment(self, user_id: UUID) -> EmployeeAssignment | None:
        """Get the single employee assignment of a user, if any."""
        model = await self._get_assignment_model(user_id)
        return self._assignment_to_entity(model) if model else None

    async def add_employee_assignment(self, assignment: EmployeeAssignment) -> EmployeeAssignment:
        """Insert an employee assignment."""
        model = EmployeeAssignmentModel(
            id=assignment.id,
            user_id=assignment.user_id,
            workspace_id=assignment.workspace_id,
            full_name=assignment.full_name,
            phone=assignment.phone,
            is_active=assignment.is_active,
            invited_by=assignment.invited_by,
            created_at=assignment.created_at,
            updated_at=assignment.updated_at,
        )
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(EmployeeAssignmentModel.__tablename__) from e
        return self._assignment_to_entity(model)

    async def get_employees(self, workspace_id: UUID) -> list[EmployeeAssignment]:
        """Get all employee assignments for a workspace."""
        stmt = (
            select(EmployeeAssignmentModel)
            .where(EmployeeAssignmentModel.workspace_id == workspace_id)
            .order_by(EmployeeAssignmentModel.created_at)
        )
        result = await self._session.execute(stmt)
        return [self._assignment_to_entity(model) for model in result.scalars()]

    async def update_employee(self, user_id: UUID, fields: ProfileFields) -> EmployeeAssignment:
        """Update the profile fields of an employee assignment.

        Fields left as None are not touched.
        """
        model = await self._get_assignment_model(user_id)
        if not model:
            raise ValueError(f"Employee assignment for {user_id} not found")

        if fields.full_name is not None:
            model.full_name = fields.full_name
        if fields.phone is not None:
            model.phone = fields.phone
        if fields.is_active is not None:
            model.is_active = fields.is_active
        model.updated_at = utcnow()

        await self._session.flush()
        return self._assignment_to_entity(model)

    async def _get_assignment_model(self, user_id: UUID) -> EmployeeAssignmentModel | None:
        stmt = select(EmployeeAssignmentModel).where(EmployeeAssignmentModel.user_id == user_id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    def _grant_to_entity(self, model: AdminGrantModel) -> AdminGrant:
        """Convert ORM model to domain entity."""
        return AdminGrant(
            id=model.id,
            user_id=model.user_id,
            role=Role(model.role),
            workspace_id=model.workspace_id,
            created_at=model.created_at,
        )

    def _assignment_to_entity(self, model: EmployeeAssignmentModel) -> EmployeeAssignment:
        """Convert ORM model to domain entity."""
        return EmployeeAssignment(
            id=model.id,
            user_id=model.user_id,
            workspace_id=model.workspace_id,
            full_name=model.full_name,
            phone=model.phone,
            is_active=model.is_active,
            invited_by=model.invited_by,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )
