"""Dependency injection factories for API v1."""

from dataclasses import dataclass
from functools import lru_cache
from typing import Annotated, Callable

from fastapi import Depends

from api.dependencies.auth import CurrentUser
from domain.entities.resolution import ResolutionResult
from domain.entities.user import User
from domain.services.employee_service import EmployeeService
from domain.services.identity_service import IdentityService
from domain.services.invitation_service import InvitationService
from domain.services.role_resolver import RoleResolver
from domain.services.route_gate import RouteAuthorizationGate
from domain.services.workspace_service import WorkspaceService
from infrastructure.auth.identity_admin import SupabaseIdentityAdmin
from infrastructure.database.session import async_session_factory
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork


def get_uow_factory() -> Callable[[], SQLAlchemyUnitOfWork]:
    """Factory for creating Unit of Work instances."""

    def factory() -> SQLAlchemyUnitOfWork:
        return SQLAlchemyUnitOfWork(async_session_factory)

    return factory


@lru_cache
def get_role_resolver() -> RoleResolver:
    """Get Role resolver instance."""
    return RoleResolver(get_uow_factory())


@lru_cache
def get_identity_service() -> IdentityService:
    """Get Identity service instance."""
    return IdentityService(get_uow_factory(), identity_admin=SupabaseIdentityAdmin())


@lru_cache
def get_invitation_service() -> InvitationService:
    """Get Invitation service instance."""
    return InvitationService(
        get_uow_factory(),
        role_resolver=get_role_resolver(),
        identity_service=get_identity_service(),
    )


@lru_cache
def get_workspace_service() -> WorkspaceService:
    """Get Workspace service instance."""
    return WorkspaceService(get_uow_factory(), role_resolver=get_role_resolver())


@lru_cache
def get_employee_service() -> EmployeeService:
    """Get Employee service instance."""
    return EmployeeService(get_uow_factory())


@lru_cache
def get_route_gate() -> RouteAuthorizationGate:
    """Get Route authorization gate instance."""
    return RouteAuthorizationGate(get_role_resolver())


# --- Caller identity and role ---


async def get_current_principal(
    token_user: CurrentUser,
    identity_service: IdentityService = Depends(get_identity_service),
) -> User:
    """Dependency to get the local user for the token, linking it on first use."""
    return await identity_service.sync_user(
        external_auth_id=token_user.external_id,
        email=token_user.email,
        display_name=token_user.display_name,
    )


CurrentPrincipal = Annotated[User, Depends(get_current_principal)]


@dataclass
class Access:
    """The caller's local user and freshly resolved role."""

    user: User
    resolution: ResolutionResult


async def get_current_access(
    principal: CurrentPrincipal,
    resolver: RoleResolver = Depends(get_role_resolver),
) -> Access:
    """Dependency resolving the caller's role on every request.

    Raises:
        ResolutionError: If resolution failed; rendered as 503, never as no role.
    """
    return Access(user=principal, resolution=await resolver.resolve(principal.id))


CurrentAccess = Annotated[Access, Depends(get_current_access)]
