"""Workspace service: provisions a client workspace for a new owner."""

from collections.abc import Callable
from uuid import UUID

import structlog

from core.exceptions import (
    AlreadyHasRoleError,
    ConstraintViolationError,
    ForbiddenError,
    WorkspaceMismatchError,
)
from domain.entities.grant import AdminGrant, Role
from domain.entities.resolution import ResolutionResult
from domain.entities.workspace import Workspace
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.role_resolver import RoleResolver
from domain.services.workspace_scope import require_workspace

logger = structlog.get_logger()


class WorkspaceService:
    """Service layer for Workspace business logic."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        role_resolver: RoleResolver,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolver = role_resolver

    async def create_owner_workspace(self, user_id: UUID, name: str) -> tuple[Workspace, AdminGrant]:
        """Create a workspace and make the caller its admin.

        Only a principal with no role may provision a workspace; an
        employee or an existing admin never gains a second role this way.

        Raises:
            AlreadyHasRoleError: If the user already resolves to a role.
            ForbiddenError: If the user is unknown or deactivated.
        """
        if await self._resolver.resolve(user_id):
            raise AlreadyHasRoleError()

        async with self._uow_factory() as uow:
            user = await uow.users.get(user_id)
            if not user or not user.is_active:
                raise ForbiddenError("Account is not active")

            await uow.lock_principal(user.email)
            # Re-check under the lock; a concurrent signup or acceptance may have won.
            if (
                user.is_super_admin
                or await uow.grants.get_admin_grants(user.id)
                or await uow.grants.get_employee_assignment(user.id)
            ):
                raise AlreadyHasRoleError()

            workspace = await uow.workspaces.create(
                Workspace(name=name.strip(), owner_user_id=user.id)
            )
            try:
                grant = await uow.grants.add_admin_grant(
                    AdminGrant(user_id=user.id, role=Role.ADMIN, workspace_id=workspace.id)
                )
            except ConstraintViolationError as e:
                raise AlreadyHasRoleError() from e
            await uow.commit()

        logger.info(
            "workspace_created",
            workspace_id=str(workspace.id),
            owner_user_id=str(user_id),
        )
        return workspace, grant

    async def get_workspace(self, resolution: ResolutionResult, workspace_id: UUID) -> Workspace:
        """Get a workspace the caller is scoped to."""
        require_workspace(resolution, workspace_id, allow_cross_workspace_read=True)

        async with self._uow_factory() as uow:
            workspace = await uow.workspaces.get(workspace_id)
            if not workspace:
                raise WorkspaceMismatchError()
            return workspace
