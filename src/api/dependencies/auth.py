"""Authentication dependencies for FastAPI."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core.exceptions import AuthenticationError, ErrorCode
from infrastructure.auth.jwt_provider import JWTAuthProvider
from infrastructure.auth.provider import TokenUser

# Security scheme for OpenAPI docs
security = HTTPBearer(auto_error=False)

# Singleton auth provider
_auth_provider: JWTAuthProvider | None = None


def get_auth_provider() -> JWTAuthProvider:
    """Get or create the auth provider singleton."""
    global _auth_provider
    if _auth_provider is None:
        _auth_provider = JWTAuthProvider()
    return _auth_provider


async def get_current_user(
    credentials: Annotated[
        HTTPAuthorizationCredentials | None,
        Depends(security),
    ],
    auth_provider: JWTAuthProvider = Depends(get_auth_provider),
) -> TokenUser:
    """
    Dependency to get the verified identity behind the bearer token.

    Raises:
        AuthenticationError: If no token provided or token is invalid
    """
    if not credentials:
        raise AuthenticationError(
            message="Authorization header required",
            error_code=ErrorCode.UNAUTHORIZED,
        )

    user = await auth_provider.validate_token(credentials.credentials)
    if not user:
        raise AuthenticationError(
            message="Invalid or expired token",
            error_code=ErrorCode.INVALID_TOKEN,
        )

    return user


CurrentUser = Annotated[TokenUser, Depends(get_current_user)]
