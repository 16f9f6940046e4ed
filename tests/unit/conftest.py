"""Shared fixtures for unit tests."""

from typing import Any
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from domain.entities.user import User
from tests.unit.fakes import FakeIdentityAdmin, InMemoryUnitOfWork


class FakeUnitOfWork:
    """Fake Unit of Work with all 4 repository mocks for unit testing."""

    def __init__(self) -> None:
        self.users = AsyncMock()
        self.workspaces = AsyncMock()
        self.grants = AsyncMock()
        self.invitations = AsyncMock()
        self.locked_keys: list[str] = []
        self.committed = False
        self.rolled_back = False

    async def lock_principal(self, key: str) -> None:
        self.locked_keys.append(key)

    async def commit(self) -> None:
        self.committed = True

    async def rollback(self) -> None:
        self.rolled_back = True

    async def __aenter__(self) -> "FakeUnitOfWork":
        return self

    async def __aexit__(self, *args: Any) -> None:
        pass


@pytest.fixture
def uow() -> FakeUnitOfWork:
    """Create a fresh FakeUnitOfWork."""
    return FakeUnitOfWork()


@pytest.fixture
def identity_admin() -> FakeIdentityAdmin:
    return FakeIdentityAdmin()


@pytest.fixture
def user_id() -> UUID:
    """A random user ID."""
    return uuid4()


@pytest.fixture
def workspace_id() -> UUID:
    """A random workspace ID."""
    return uuid4()


@pytest.fixture
def actor_id() -> UUID:
    """A random actor ID (distinct from user_id)."""
    return uuid4()


@pytest.fixture
def user(user_id: UUID) -> User:
    return User(id=user_id, email="person@example.com", external_auth_id="ext-person")


@pytest.fixture
def without_principal_lock(monkeypatch: pytest.MonkeyPatch) -> None:
    """Make the in-memory principal lock a no-op, as on a non-PostgreSQL backend."""

    async def _no_lock(self: InMemoryUnitOfWork, key: str) -> None:
        return None

    monkeypatch.setattr(InMemoryUnitOfWork, "lock_principal", _no_lock)
