"""Role resolution: one principal, one role, one workspace."""

import asyncio
from collections.abc import Awaitable, Callable
from uuid import UUID

import structlog

from core.config import settings
from core.exceptions import ResolutionError, StorageError
from domain.entities.resolution import (
    NO_ROLE,
    Admin,
    Employee,
    PlatformStaff,
    ResolutionResult,
    SuperAdmin,
)
from domain.entities.user import User
from domain.entities.workspace import PLATFORM_WORKSPACE_ID, is_platform_workspace
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class RoleResolver:
    """Read-only decision function mapping a principal to its single role.

    Branches are checked in strict priority order and the first match wins:
    super_admin flag, platform grant, client admin grant, employee
    assignment. If the storage invariants hold a user can only match one
    branch; the order makes the outcome safe if they ever do not.

    Results are never cached; a revoked grant takes effect on the next call.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        timeout_seconds: float = settings.role_resolution_timeout_ms / 1000,
    ) -> None:
        self._uow_factory = uow_factory
        self._timeout = timeout_seconds

    async def resolve(self, user_id: UUID) -> ResolutionResult:
        """Resolve the role of a user by internal id.

        Returns:
            Exactly one resolution variant, or NO_ROLE.

        Raises:
            ResolutionError: If storage failed or the deadline passed. Never
                coerced to NO_ROLE.
        """

        async def _lookup() -> ResolutionResult:
            async with self._uow_factory() as uow:
                return await self._resolve_user(uow, await uow.users.get(user_id))

        return await self._with_deadline(_lookup)

    async def resolve_external(self, external_auth_id: str) -> ResolutionResult:
        """Resolve the role of a user by the identity provider's subject id."""

        async def _lookup() -> ResolutionResult:
            async with self._uow_factory() as uow:
                user = await uow.users.get_by_external_auth_id(external_auth_id)
                return await self._resolve_user(uow, user)

        return await self._with_deadline(_lookup)

    async def _with_deadline(
        self, lookup: Callable[[], Awaitable[ResolutionResult]]
    ) -> ResolutionResult:
        try:
            result = await asyncio.wait_for(lookup(), timeout=self._timeout)
        except TimeoutError as e:
            logger.warning("role_resolution_failed", reason="timeout", timeout=self._timeout)
            raise ResolutionError("Role resolution timed out") from e
        except (StorageError, OSError) as e:
            logger.warning("role_resolution_failed", reason="storage", error=str(e))
            raise ResolutionError() from e

        logger.debug(
            "role_resolved",
            role=getattr(result, "role", None),
            workspace_id=str(getattr(result, "workspace_id", None)),
        )
        return result

    async def _resolve_user(self, uow: IUnitOfWork, user: User | None) -> ResolutionResult:
        if user is None or not user.is_active:
            return NO_ROLE

        if user.is_super_admin:
            return SuperAdmin(user_id=user.id)

        grants = sorted(await uow.grants.get_admin_grants(user.id), key=lambda g: g.created_at)

        if any(is_platform_workspace(g.workspace_id) for g in grants):
            return PlatformStaff(user_id=user.id, workspace_id=PLATFORM_WORKSPACE_ID)

        admin_grant = next((g for g in grants if g.workspace_id is not None), None)
        if admin_grant is not None and admin_grant.workspace_id is not None:
            return Admin(user_id=user.id, workspace_id=admin_grant.workspace_id)

        assignment = await uow.grants.get_employee_assignment(user.id)
        if assignment is not None and assignment.is_active:
            return Employee(user_id=user.id, workspace_id=assignment.workspace_id)

        return NO_ROLE
