"""User repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.user import User


class IUserRepository(Protocol):
    """Repository interface for User entities."""

    async def get(self, id: UUID) -> User | None:
        """Get a user by ID."""
        ...

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by normalised email."""
        ...

    async def get_by_external_auth_id(self, external_auth_id: str) -> User | None:
        """Get a user by the identity provider's subject id."""
        ...

    async def create(self, user: User) -> User:
        """Create a new user."""
        ...

    async def link_external_auth_id(self, id: UUID, external_auth_id: str) -> User:
        """Set the external auth id on a user that has none yet."""
        ...
