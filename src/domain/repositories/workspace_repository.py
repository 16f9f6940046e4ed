"""Workspace repository protocol."""

from typing import Protocol
from uuid import UUID

from domain.entities.workspace import Workspace


class IWorkspaceRepository(Protocol):
    """Repository interface for Workspace entities."""

    async def get(self, id: UUID) -> Workspace | None:
        """Get a workspace by ID."""
        ...

    async def create(self, workspace: Workspace) -> Workspace:
        """Create a new workspace."""
        ...
