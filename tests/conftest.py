"""Pytest configuration and fixtures."""

import os
import sys
from collections.abc import AsyncGenerator, Awaitable, Callable
from pathlib import Path

# Disable rate limiting in tests
os.environ["RATE_LIMIT_ENABLED"] = "false"

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy import update
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from core.config import settings
from domain.services.employee_service import EmployeeService
from domain.services.identity_service import IdentityService
from domain.services.invitation_service import InvitationService
from domain.services.role_resolver import RoleResolver
from domain.services.route_gate import RouteAuthorizationGate
from domain.services.workspace_service import WorkspaceService
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser
from infrastructure.database.models import Base, UserModel, WorkspaceModel
from infrastructure.database.sqlalchemy_uow import SQLAlchemyUnitOfWork
from tests.unit.fakes import FakeIdentityAdmin

# Test database URL (SQLite in memory)
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

HeaderFactory = Callable[..., dict[str, str]]


@pytest.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    """Create a fresh in-memory database with the platform workspace seeded."""
    engine = create_async_engine(TEST_DATABASE_URL, echo=False, poolclass=StaticPool)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, expire_on_commit=False)
    async with factory() as session:
        session.add(WorkspaceModel(id=settings.platform_workspace_id, name="Platform"))
        await session.commit()
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
def uow_factory(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[], SQLAlchemyUnitOfWork]:
    return lambda: SQLAlchemyUnitOfWork(session_factory)


@pytest.fixture
def auth_provider() -> JWTAuthProvider:
    """Create auth provider for testing."""
    return JWTAuthProvider(
        secret_key="test-secret-key",
        algorithm="HS256",
        expire_minutes=30,
    )


@pytest.fixture
def identity_admin() -> FakeIdentityAdmin:
    return FakeIdentityAdmin()


@pytest.fixture
def app(
    session_factory: async_sessionmaker[AsyncSession],
    uow_factory: Callable[[], SQLAlchemyUnitOfWork],
    auth_provider: JWTAuthProvider,
    identity_admin: FakeIdentityAdmin,
) -> FastAPI:
    """
    Create the application wired to the test database.

    Every service runs against the in-memory database, the identity
    provider is faked and tokens are signed with the test secret.
    """
    from api.dependencies.auth import get_auth_provider
    from api.v1.dependencies import (
        get_employee_service,
        get_identity_service,
        get_invitation_service,
        get_role_resolver,
        get_route_gate,
        get_workspace_service,
    )
    from infrastructure.database.session import get_async_session
    from main import create_app

    resolver = RoleResolver(uow_factory, timeout_seconds=5)
    identity_service = IdentityService(uow_factory, identity_admin=identity_admin)
    invitation_service = InvitationService(
        uow_factory, role_resolver=resolver, identity_service=identity_service
    )
    workspace_service = WorkspaceService(uow_factory, role_resolver=resolver)
    employee_service = EmployeeService(uow_factory)
    route_gate = RouteAuthorizationGate(resolver, backoff_seconds=0.001)

    async def override_get_async_session() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app = create_app()
    app.dependency_overrides[get_auth_provider] = lambda: auth_provider
    app.dependency_overrides[get_role_resolver] = lambda: resolver
    app.dependency_overrides[get_identity_service] = lambda: identity_service
    app.dependency_overrides[get_invitation_service] = lambda: invitation_service
    app.dependency_overrides[get_workspace_service] = lambda: workspace_service
    app.dependency_overrides[get_employee_service] = lambda: employee_service
    app.dependency_overrides[get_route_gate] = lambda: route_gate
    app.dependency_overrides[get_async_session] = override_get_async_session
    return app


@pytest.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client (no auth)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c


@pytest.fixture
def auth_headers_for(auth_provider: JWTAuthProvider) -> HeaderFactory:
    """Build bearer headers for an identity, keyed on the email by default."""

    def make(email: str, external_id: str | None = None) -> dict[str, str]:
        user = TokenUser(external_id=external_id or f"ext-{email}", email=email)
        return {"Authorization": f"Bearer {auth_provider.create_token(user)}"}

    return make


@pytest.fixture
def make_super_admin(
    session_factory: async_sessionmaker[AsyncSession],
) -> Callable[[str], Awaitable[None]]:
    """Flag an already synced user as the super admin."""

    async def promote(email: str) -> None:
        async with session_factory() as session:
            await session.execute(
                update(UserModel).where(UserModel.email == email).values(role="super_admin")
            )
            await session.commit()

    return promote
