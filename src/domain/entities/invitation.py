"""Invitation domain entity."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import UUID, uuid4

from core.clock import utcnow
from core.config import settings
from domain.entities.grant import Role


class InvitationStatus(StrEnum):
    """Status of an invitation.

    ``pending`` is the only non-terminal state; transitions out of it are
    one-way.
    """

    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    REVOKED = "revoked"


INVITATION_EXPIRY_DAYS = settings.invitation_expiry_days


@dataclass
class Invitation:
    """Domain entity for a time-bounded, single-use offer of a grant.

    ``workspace_id`` is None only for invitations that are not scoped to a
    tenant. The raw token is never stored, only its SHA-256 hash.
    """

    email: str
    target_role: Role
    token_hash: str
    invited_by: UUID
    workspace_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    status: InvitationStatus = InvitationStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    expires_at: datetime = field(
        default_factory=lambda: utcnow() + timedelta(days=INVITATION_EXPIRY_DAYS)
    )
    accepted_at: datetime | None = None

    def is_expired(self, now: datetime | None = None) -> bool:
        """Check if the invitation is past its expiry."""
        return (now or utcnow()) > self.expires_at

    @property
    def is_terminal(self) -> bool:
        return self.status != InvitationStatus.PENDING
