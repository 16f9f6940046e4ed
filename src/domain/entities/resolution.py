"""Role resolution result types.

A principal resolves to exactly one of the variants below, or to
``NO_ROLE``. Each variant fixes the nullability of its workspace id, so
``SuperAdmin`` has none and every other variant always has one.
"""

from dataclasses import dataclass
from typing import ClassVar, Union
from uuid import UUID

from domain.entities.grant import Role


@dataclass(frozen=True)
class SuperAdmin:
    user_id: UUID
    role: ClassVar[Role] = Role.SUPER_ADMIN

    @property
    def workspace_id(self) -> None:
        return None


@dataclass(frozen=True)
class PlatformStaff:
    user_id: UUID
    workspace_id: UUID
    role: ClassVar[Role] = Role.PLATFORM_STAFF


@dataclass(frozen=True)
class Admin:
    user_id: UUID
    workspace_id: UUID
    role: ClassVar[Role] = Role.ADMIN


@dataclass(frozen=True)
class Employee:
    user_id: UUID
    workspace_id: UUID
    role: ClassVar[Role] = Role.EMPLOYEE


@dataclass(frozen=True)
class NoRole:
    """The principal has no role. A legitimate outcome, not an error."""

    def __bool__(self) -> bool:
        return False


NO_ROLE = NoRole()

Resolution = Union[SuperAdmin, PlatformStaff, Admin, Employee]
ResolutionResult = Union[Resolution, NoRole]
