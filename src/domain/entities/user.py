"""User (principal) domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from core.clock import utcnow

# The only role value ever stored on the user row. Every other role is
# derived from grant records.
SUPER_ADMIN_FLAG = "super_admin"


@dataclass
class User:
    """Domain entity for an authenticated principal."""

    email: str
    external_auth_id: str | None = None
    id: UUID = field(default_factory=uuid4)
    role: str | None = None
    display_name: str | None = None
    is_active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Normalise the email and reject unknown stored roles."""
        self.email = normalize_email(self.email)
        if self.role is not None and self.role != SUPER_ADMIN_FLAG:
            raise ValueError(f"Unsupported stored role: {self.role}")
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_super_admin(self) -> bool:
        return self.role == SUPER_ADMIN_FLAG


def normalize_email(email: str) -> str:
    """Lower-case and trim an email address for comparison and storage."""
    return email.strip().lower()
