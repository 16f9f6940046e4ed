"""Unit tests for WorkspaceService."""

from uuid import UUID, uuid4

import pytest

from core.exceptions import AlreadyHasRoleError, ForbiddenError, WorkspaceMismatchError
from domain.entities.grant import AdminGrant, EmployeeAssignment, Role
from domain.entities.resolution import Admin, Employee, SuperAdmin
from domain.entities.user import User
from domain.entities.workspace import Workspace
from domain.services.role_resolver import RoleResolver
from domain.services.workspace_service import WorkspaceService
from tests.unit.fakes import InMemoryStore, InMemoryUnitOfWork


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def resolver(store: InMemoryStore) -> RoleResolver:
    return RoleResolver(store.uow_factory())


@pytest.fixture
def service(store: InMemoryStore, resolver: RoleResolver) -> WorkspaceService:
    return WorkspaceService(store.uow_factory(), resolver)


@pytest.fixture
def signup(store: InMemoryStore) -> User:
    user = User(email="founder@example.com", external_auth_id="ext-founder")
    store.users[user.id] = user
    return user


# --- create_owner_workspace ---


class TestCreateOwnerWorkspace:
    @pytest.mark.asyncio
    async def test_creates_workspace_and_admin_grant(
        self,
        service: WorkspaceService,
        resolver: RoleResolver,
        store: InMemoryStore,
        signup: User,
    ) -> None:
        workspace, grant = await service.create_owner_workspace(signup.id, "  Acme  ")

        assert workspace.name == "Acme"
        assert workspace.owner_user_id == signup.id
        assert grant.role == Role.ADMIN
        assert grant.workspace_id == workspace.id
        assert workspace.id in store.workspaces
        assert await resolver.resolve(signup.id) == Admin(
            user_id=signup.id, workspace_id=workspace.id
        )

    @pytest.mark.asyncio
    async def test_existing_admin_cannot_provision_again(
        self, service: WorkspaceService, store: InMemoryStore, signup: User
    ) -> None:
        await service.create_owner_workspace(signup.id, "Acme")

        with pytest.raises(AlreadyHasRoleError):
            await service.create_owner_workspace(signup.id, "Second")

        assert len(store.workspaces) == 1

    @pytest.mark.asyncio
    async def test_employee_cannot_provision(
        self, service: WorkspaceService, store: InMemoryStore, signup: User
    ) -> None:
        store.assignments[signup.id] = EmployeeAssignment(user_id=signup.id, workspace_id=uuid4())

        with pytest.raises(AlreadyHasRoleError):
            await service.create_owner_workspace(signup.id, "Acme")

        assert not store.workspaces

    @pytest.mark.asyncio
    async def test_super_admin_cannot_provision(
        self, service: WorkspaceService, store: InMemoryStore, signup: User
    ) -> None:
        store.users[signup.id].role = "super_admin"

        with pytest.raises(AlreadyHasRoleError):
            await service.create_owner_workspace(signup.id, "Acme")

    @pytest.mark.asyncio
    async def test_deactivated_employee_cannot_provision(
        self, service: WorkspaceService, store: InMemoryStore, signup: User
    ) -> None:
        store.assignments[signup.id] = EmployeeAssignment(
            user_id=signup.id, workspace_id=uuid4(), is_active=False
        )

        with pytest.raises(AlreadyHasRoleError):
            await service.create_owner_workspace(signup.id, "Acme")

    @pytest.mark.asyncio
    async def test_unknown_user(self, service: WorkspaceService) -> None:
        with pytest.raises(ForbiddenError):
            await service.create_owner_workspace(uuid4(), "Acme")

    @pytest.mark.asyncio
    async def test_grant_conflict_rolls_back_workspace(
        self, service: WorkspaceService, store: InMemoryStore, signup: User
    ) -> None:
        original = store.uow_factory()

        def racing_factory() -> InMemoryUnitOfWork:
            uow = original()
            add_admin_grant = uow.grants.add_admin_grant

            async def conflicting(grant: AdminGrant) -> AdminGrant:
                store.admin_grants.append(grant)
                return await add_admin_grant(grant)

            uow.grants.add_admin_grant = conflicting  # type: ignore[method-assign]
            return uow

        service = WorkspaceService(racing_factory, RoleResolver(original))

        with pytest.raises(AlreadyHasRoleError):
            await service.create_owner_workspace(signup.id, "Acme")

        assert not store.workspaces


# --- get_workspace ---


class TestGetWorkspace:
    @pytest.mark.asyncio
    async def test_own_workspace(
        self, service: WorkspaceService, store: InMemoryStore, user_id: UUID
    ) -> None:
        workspace = Workspace(name="Acme")
        store.workspaces[workspace.id] = workspace

        result = await service.get_workspace(
            Employee(user_id=user_id, workspace_id=workspace.id), workspace.id
        )

        assert result.name == "Acme"

    @pytest.mark.asyncio
    async def test_other_workspace_is_not_found(
        self, service: WorkspaceService, store: InMemoryStore, user_id: UUID
    ) -> None:
        workspace = Workspace(name="Acme")
        store.workspaces[workspace.id] = workspace

        with pytest.raises(WorkspaceMismatchError):
            await service.get_workspace(Admin(user_id=user_id, workspace_id=uuid4()), workspace.id)

    @pytest.mark.asyncio
    async def test_super_admin_reads_any(
        self, service: WorkspaceService, store: InMemoryStore, user_id: UUID
    ) -> None:
        workspace = Workspace(name="Acme")
        store.workspaces[workspace.id] = workspace

        result = await service.get_workspace(SuperAdmin(user_id=user_id), workspace.id)

        assert result.id == workspace.id

    @pytest.mark.asyncio
    async def test_missing_workspace(self, service: WorkspaceService, user_id: UUID) -> None:
        with pytest.raises(WorkspaceMismatchError):
            await service.get_workspace(SuperAdmin(user_id=user_id), uuid4())
