"""Authentication provider protocol."""

from dataclasses import dataclass
from typing import Optional, Protocol


@dataclass
class TokenUser:
    """The verified identity carried by a bearer token.

    ``external_id`` is the identity provider's subject id, stored on the
    local user as ``external_auth_id``.
    """

    external_id: str
    email: str
    display_name: Optional[str] = None


class IAuthProvider(Protocol):
    """Protocol for authentication providers."""

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate an authentication token.

        Args:
            token: The bearer token to validate

        Returns:
            TokenUser if valid, None if invalid
        """
        ...

    def create_token(self, user: TokenUser) -> str:
        """
        Create an authentication token for a user.

        Args:
            user: The user to create a token for

        Returns:
            The generated token string
        """
        ...
