"""Unit tests for authentication and access dependencies."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.security import HTTPAuthorizationCredentials

from api.dependencies.auth import get_current_user
from api.v1.dependencies import Access, get_current_access, get_current_principal
from core.exceptions import AuthenticationError, ErrorCode, ResolutionError
from domain.entities.resolution import Admin
from domain.entities.user import User
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser


@pytest.fixture
def mock_auth_provider() -> JWTAuthProvider:
    return JWTAuthProvider(secret_key="test-secret", algorithm="HS256", expire_minutes=30)


@pytest.fixture
def test_token_user() -> TokenUser:
    return TokenUser(external_id="ext-test", email="test@example.com", display_name="Test User")


@pytest.fixture
def principal() -> User:
    return User(email="test@example.com", external_auth_id="ext-test")


# --- get_current_user ---


class TestGetCurrentUser:
    @pytest.mark.asyncio
    async def test_returns_user_with_valid_token(
        self, mock_auth_provider: JWTAuthProvider, test_token_user: TokenUser
    ):
        token = mock_auth_provider.create_token(test_token_user)
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)

        result = await get_current_user(credentials, mock_auth_provider)

        assert result.email == test_token_user.email
        assert result.external_id == test_token_user.external_id

    @pytest.mark.asyncio
    async def test_raises_when_no_credentials(self, mock_auth_provider: JWTAuthProvider):
        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user(None, mock_auth_provider)

        assert exc_info.value.error_code == ErrorCode.UNAUTHORIZED

    @pytest.mark.asyncio
    async def test_raises_when_invalid_token(self, mock_auth_provider: JWTAuthProvider):
        credentials = HTTPAuthorizationCredentials(scheme="Bearer", credentials="invalid.jwt.token")

        with pytest.raises(AuthenticationError) as exc_info:
            await get_current_user(credentials, mock_auth_provider)

        assert exc_info.value.error_code == ErrorCode.INVALID_TOKEN


# --- get_current_principal ---


class TestGetCurrentPrincipal:
    @pytest.mark.asyncio
    async def test_syncs_token_identity(self, test_token_user: TokenUser, principal: User):
        identity_service = AsyncMock()
        identity_service.sync_user.return_value = principal

        result = await get_current_principal(test_token_user, identity_service)

        assert result is principal
        identity_service.sync_user.assert_awaited_once_with(
            external_auth_id="ext-test",
            email="test@example.com",
            display_name="Test User",
        )


# --- get_current_access ---


class TestGetCurrentAccess:
    @pytest.mark.asyncio
    async def test_resolves_on_every_request(self, principal: User):
        resolution = Admin(user_id=principal.id, workspace_id=uuid4())
        resolver = AsyncMock()
        resolver.resolve.return_value = resolution

        access = await get_current_access(principal, resolver)

        assert access == Access(user=principal, resolution=resolution)
        resolver.resolve.assert_awaited_once_with(principal.id)

    @pytest.mark.asyncio
    async def test_resolution_failure_propagates(self, principal: User):
        resolver = AsyncMock()
        resolver.resolve.side_effect = ResolutionError()

        with pytest.raises(ResolutionError):
            await get_current_access(principal, resolver)
