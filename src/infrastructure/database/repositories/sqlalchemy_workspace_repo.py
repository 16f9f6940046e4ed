"""SQLAlchemy implementation of Workspace repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from domain.entities.workspace import Workspace
from infrastructure.database.models import WorkspaceModel


class SQLAlchemyWorkspaceRepository:
    """SQLAlchemy implementation of IWorkspaceRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID) -> Workspace | None:
        """Get a workspace by ID."""
        stmt = select(WorkspaceModel).where(WorkspaceModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, workspace: Workspace) -> Workspace:
        """Create a new workspace."""
        model = self._to_model(workspace)
        self._session.add(model)
        await self._session.flush()
        await self._session.refresh(model)
        return self._to_entity(model)

    def _to_entity(self, model: WorkspaceModel) -> Workspace:
        """Convert ORM model to domain entity."""
        return Workspace(
            id=model.id,
            name=model.name,
            owner_user_id=model.owner_user_id,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: Workspace) -> WorkspaceModel:
        """Convert domain entity to ORM model."""
        return WorkspaceModel(
            id=entity.id,
            name=entity.name,
            owner_user_id=entity.owner_user_id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
