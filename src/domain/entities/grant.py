"""Grant domain entities: admin grants and employee assignments."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from uuid import UUID, uuid4

from core.clock import utcnow
from domain.entities.workspace import is_platform_workspace


class Role(StrEnum):
    """The four roles a principal can resolve to."""

    SUPER_ADMIN = "super_admin"
    PLATFORM_STAFF = "platform_staff"
    ADMIN = "admin"
    EMPLOYEE = "employee"


ADMIN_GRANT_ROLES = frozenset({Role.SUPER_ADMIN, Role.PLATFORM_STAFF, Role.ADMIN})

# Roles an invitation may target. Admin grants for workspace owners are
# only written by signup provisioning.
INVITABLE_ROLES = frozenset({Role.PLATFORM_STAFF, Role.EMPLOYEE})


@dataclass
class AdminGrant:
    """Binds a user to a workspace as admin, super_admin or platform_staff.

    Workspace shape per role:
        super_admin     -> workspace_id is None
        platform_staff  -> workspace_id is the platform workspace
        admin           -> any other, non-null workspace
    """

    user_id: UUID
    role: Role
    workspace_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Reject grants whose workspace does not fit their role."""
        self.role = Role(self.role)
        if self.role not in ADMIN_GRANT_ROLES:
            raise ValueError(f"Admin grants cannot carry role {self.role}")
        if self.role == Role.SUPER_ADMIN and self.workspace_id is not None:
            raise ValueError("super_admin grants must not carry a workspace")
        if self.role == Role.PLATFORM_STAFF and not is_platform_workspace(self.workspace_id):
            raise ValueError("platform_staff grants must carry the platform workspace")
        if self.role == Role.ADMIN and (
            self.workspace_id is None or is_platform_workspace(self.workspace_id)
        ):
            raise ValueError("admin grants must carry a client workspace")


@dataclass
class EmployeeAssignment:
    """Binds a user to exactly one workspace as an employee."""

    user_id: UUID
    workspace_id: UUID
    full_name: str | None = None
    phone: str | None = None
    is_active: bool = True
    invited_by: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def role(self) -> Role:
        return Role.EMPLOYEE


@dataclass
class ProfileFields:
    """Profile data supplied when accepting an invitation or editing an employee."""

    full_name: str | None = None
    phone: str | None = None
    is_active: bool | None = None
