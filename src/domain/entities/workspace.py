"""Workspace domain entity."""

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID, uuid4

from core.clock import utcnow
from core.config import settings

# Reserved workspace id held only by platform_staff grants.
PLATFORM_WORKSPACE_ID: UUID = settings.platform_workspace_id


def is_platform_workspace(workspace_id: UUID | None) -> bool:
    """Check if a workspace id is the reserved platform workspace."""
    return workspace_id is not None and workspace_id == PLATFORM_WORKSPACE_ID


@dataclass
class Workspace:
    """Domain entity for a tenant workspace."""

    name: str
    owner_user_id: UUID | None = None
    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def __post_init__(self) -> None:
        """Ensure updated_at is always at least as recent as created_at."""
        if self.updated_at < self.created_at:
            self.updated_at = self.created_at

    @property
    def is_platform(self) -> bool:
        return is_platform_workspace(self.id)
