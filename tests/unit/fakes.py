"""In-memory transactional store for concurrency tests.

Unlike ``FakeUnitOfWork`` this keeps real state across units of work:
writes are applied immediately and undone on rollback, the pending-only
status transition is a compare-and-set, uniqueness is enforced like the
database constraints, and ``lock_principal`` holds a per-key lock until
the unit of work exits. Every repository call yields to the event loop so
concurrent callers interleave.
"""

import asyncio
from collections import defaultdict
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from core.clock import utcnow
from core.exceptions import ConstraintViolationError, StorageError
from domain.entities.grant import AdminGrant, EmployeeAssignment, ProfileFields, Role
from domain.entities.invitation import Invitation, InvitationStatus
from domain.entities.user import User, normalize_email
from domain.entities.workspace import Workspace


class FakeIdentityAdmin:
    """Identity provider stand-in handing out one stable subject id per email."""

    def __init__(self) -> None:
        self.accounts: dict[str, str] = {}
        self.calls: list[str] = []

    async def ensure_account(self, email: str, password: str) -> str:
        self.calls.append(email)
        if email not in self.accounts:
            self.accounts[email] = f"ext-{uuid4()}"
        return self.accounts[email]


class InMemoryStore:
    def __init__(self) -> None:
        self.users: dict[UUID, User] = {}
        self.workspaces: dict[UUID, Workspace] = {}
        self.admin_grants: list[AdminGrant] = []
        self.assignments: dict[UUID, EmployeeAssignment] = {}
        self.invitations: dict[UUID, Invitation] = {}
        self.locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self.fail_reads = False
        self.read_delay = 0.0

    def uow_factory(self) -> Callable[[], "InMemoryUnitOfWork"]:
        return lambda: InMemoryUnitOfWork(self)


class _Repo:
    def __init__(self, uow: "InMemoryUnitOfWork") -> None:
        self._uow = uow
        self._store = uow.store

    async def _tick(self) -> None:
        if self._store.fail_reads:
            raise StorageError()
        await asyncio.sleep(self._store.read_delay)


class InMemoryUserRepository(_Repo):
    async def get(self, id: UUID) -> User | None:
        await self._tick()
        user = self._store.users.get(id)
        return replace(user) if user else None

    async def get_by_email(self, email: str) -> User | None:
        await self._tick()
        email = normalize_email(email)
        return next((replace(u) for u in self._store.users.values() if u.email == email), None)

    async def get_by_external_auth_id(self, external_auth_id: str) -> User | None:
        await self._tick()
        return next(
            (
                replace(u)
                for u in self._store.users.values()
                if u.external_auth_id == external_auth_id
            ),
            None,
        )

    async def create(self, user: User) -> User:
        await self._tick()
        if any(u.email == user.email for u in self._store.users.values()):
            raise ConstraintViolationError("users")
        self._store.users[user.id] = replace(user)
        self._uow.undo(lambda: self._store.users.pop(user.id, None))
        return replace(user)

    async def link_external_auth_id(self, id: UUID, external_auth_id: str) -> User:
        await self._tick()
        previous = self._store.users[id]
        self._store.users[id] = replace(previous, external_auth_id=external_auth_id)
        self._uow.undo(lambda: self._store.users.__setitem__(id, previous))
        return replace(self._store.users[id])


class InMemoryWorkspaceRepository(_Repo):
    async def get(self, id: UUID) -> Workspace | None:
        await self._tick()
        workspace = self._store.workspaces.get(id)
        return replace(workspace) if workspace else None

    async def create(self, workspace: Workspace) -> Workspace:
        await self._tick()
        self._store.workspaces[workspace.id] = replace(workspace)
        self._uow.undo(lambda: self._store.workspaces.pop(workspace.id, None))
        return replace(workspace)


class InMemoryGrantRepository(_Repo):
    async def get_admin_grants(self, user_id: UUID) -> list[AdminGrant]:
        await self._tick()
        return [replace(g) for g in self._store.admin_grants if g.user_id == user_id]

    async def add_admin_grant(self, grant: AdminGrant) -> AdminGrant:
        await self._tick()
        if any(
            g.user_id == grant.user_id and g.workspace_id == grant.workspace_id
            for g in self._store.admin_grants
        ):
            raise ConstraintViolationError("admin_grants")
        stored = replace(grant)
        self._store.admin_grants.append(stored)
        self._uow.undo(lambda: self._store.admin_grants.remove(stored))
        return replace(grant)

    async def get_platform_staff(self, platform_workspace_id: UUID) -> list[AdminGrant]:
        await self._tick()
        return [
            replace(g)
            for g in self._store.admin_grants
            if g.role == Role.PLATFORM_STAFF and g.workspace_id == platform_workspace_id
        ]

    async def get_employee_assignment(self, user_id: UUID) -> EmployeeAssignment | None:
        await self._tick()
        assignment = self._store.assignments.get(user_id)
        return replace(assignment) if assignment else None

    async def add_employee_assignment(self, assignment: EmployeeAssignment) -> EmployeeAssignment:
        await self._tick()
        if assignment.user_id in self._store.assignments:
            raise ConstraintViolationError("employee_assignments")
        self._store.assignments[assignment.user_id] = replace(assignment)
        self._uow.undo(lambda: self._store.assignments.pop(assignment.user_id, None))
        return replace(assignment)

    async def get_employees(self, workspace_id: UUID) -> list[EmployeeAssignment]:
        await self._tick()
        return [replace(a) for a in self._store.assignments.values() if a.workspace_id == workspace_id]

    async def update_employee(self, user_id: UUID, fields: ProfileFields) -> EmployeeAssignment:
        await self._tick()
        previous = self._store.assignments[user_id]
        changes: dict[str, Any] = {
            k: v
            for k, v in (
                ("full_name", fields.full_name),
                ("phone", fields.phone),
                ("is_active", fields.is_active),
            )
            if v is not None
        }
        self._store.assignments[user_id] = replace(previous, **changes)
        self._uow.undo(lambda: self._store.assignments.__setitem__(user_id, previous))
        return replace(self._store.assignments[user_id])


class InMemoryInvitationRepository(_Repo):
    async def create(self, invitation: Invitation) -> Invitation:
        await self._tick()
        self._store.invitations[invitation.id] = replace(invitation)
        self._uow.undo(lambda: self._store.invitations.pop(invitation.id, None))
        return replace(invitation)

    async def get_by_id(self, id: UUID) -> Invitation | None:
        await self._tick()
        invitation = self._store.invitations.get(id)
        return replace(invitation) if invitation else None

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        await self._tick()
        return next(
            (replace(i) for i in self._store.invitations.values() if i.token_hash == token_hash),
            None,
        )

    async def get_for_workspace(self, workspace_id: UUID | None) -> list[Invitation]:
        await self._tick()
        return [replace(i) for i in self._store.invitations.values() if i.workspace_id == workspace_id]

    async def get_pending_for_workspace_email(
        self, workspace_id: UUID | None, email: str
    ) -> Invitation | None:
        await self._tick()
        now = utcnow()
        return next(
            (
                replace(i)
                for i in self._store.invitations.values()
                if i.workspace_id == workspace_id
                and i.email == email
                and i.status == InvitationStatus.PENDING
                and i.expires_at > now
            ),
            None,
        )

    async def transition_status(
        self, id: UUID, to_status: InvitationStatus, at: datetime | None = None
    ) -> bool:
        await self._tick()
        previous = self._store.invitations.get(id)
        if previous is None or previous.status != InvitationStatus.PENDING:
            return False
        accepted_at = (at or utcnow()) if to_status == InvitationStatus.ACCEPTED else None
        self._store.invitations[id] = replace(previous, status=to_status, accepted_at=accepted_at)
        self._uow.undo(lambda: self._store.invitations.__setitem__(id, previous))
        return True

    async def expire_old_invitations(self, now: datetime) -> int:
        count = 0
        for invitation in list(self._store.invitations.values()):
            if invitation.status == InvitationStatus.PENDING and invitation.expires_at <= now:
                await self.transition_status(invitation.id, InvitationStatus.EXPIRED)
                count += 1
        return count


class InMemoryUnitOfWork:
    def __init__(self, store: InMemoryStore) -> None:
        self.store = store
        self.users = InMemoryUserRepository(self)
        self.workspaces = InMemoryWorkspaceRepository(self)
        self.grants = InMemoryGrantRepository(self)
        self.invitations = InMemoryInvitationRepository(self)
        self._undo: list[Callable[[], Any]] = []
        self._held: list[asyncio.Lock] = []

    def undo(self, action: Callable[[], Any]) -> None:
        self._undo.append(action)

    async def lock_principal(self, key: str) -> None:
        lock = self.store.locks[key]
        await lock.acquire()
        self._held.append(lock)

    async def commit(self) -> None:
        self._undo.clear()

    async def rollback(self) -> None:
        while self._undo:
            self._undo.pop()()

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        return self

    async def __aexit__(self, exc_type: Any, *args: Any) -> None:
        try:
            await self.rollback()
        finally:
            while self._held:
                self._held.pop().release()
