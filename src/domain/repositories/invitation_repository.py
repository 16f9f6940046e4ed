"""Invitation repository protocol."""

from datetime import datetime
from typing import Protocol
from uuid import UUID

from domain.entities.invitation import Invitation, InvitationStatus


class IInvitationRepository(Protocol):
    """Repository interface for Invitation entities."""

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        ...

    async def get_by_id(self, id: UUID) -> Invitation | None:
        """Get an invitation by its primary key."""
        ...

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by its hashed token."""
        ...

    async def get_for_workspace(self, workspace_id: UUID | None) -> list[Invitation]:
        """Get all invitations for a workspace (None for platform-level ones)."""
        ...

    async def get_pending_for_workspace_email(
        self, workspace_id: UUID | None, email: str
    ) -> Invitation | None:
        """Get a pending, unexpired invitation for a specific workspace and email."""
        ...

    async def transition_status(
        self,
        id: UUID,
        to_status: InvitationStatus,
        at: datetime | None = None,
    ) -> bool:
        """Atomically move an invitation out of ``pending``.

        Only a row still in ``pending`` is updated. Returns True when this
        call performed the transition, False when another caller already had.
        """
        ...

    async def expire_old_invitations(self, now: datetime) -> int:
        """Mark all past-due pending invitations expired. Returns count of updated rows."""
        ...
