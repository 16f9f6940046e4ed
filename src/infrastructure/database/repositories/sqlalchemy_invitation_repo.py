"""SQLAlchemy implementation of Invitation repository."""

from datetime import datetime
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.exceptions import ConstraintViolationError
from domain.entities.grant import Role
from domain.entities.invitation import Invitation, InvitationStatus
from infrastructure.database.models import InvitationModel


class SQLAlchemyInvitationRepository:
    """SQLAlchemy implementation of IInvitationRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, invitation: Invitation) -> Invitation:
        """Create a new invitation."""
        model = self._to_model(invitation)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(InvitationModel.__tablename__) from e
        await self._session.refresh(model)
        return self._to_entity(model)

    async def get_by_id(self, id: UUID) -> Invitation | None:
        """Get an invitation by its primary key."""
        stmt = select(InvitationModel).where(InvitationModel.id == id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_token_hash(self, token_hash: str) -> Invitation | None:
        """Get an invitation by its hashed token."""
        stmt = select(InvitationModel).where(InvitationModel.token_hash == token_hash)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_for_workspace(self, workspace_id: UUID | None) -> list[Invitation]:
        """Get all invitations for a workspace, newest first."""
        column = InvitationModel.workspace_id
        condition = column.is_(None) if workspace_id is None else column == workspace_id
        stmt = select(InvitationModel).where(condition).order_by(InvitationModel.created_at.desc())
        result = await self._session.execute(stmt)
        return [self._to_entity(model) for model in result.scalars()]

    async def get_pending_for_workspace_email(
        self, workspace_id: UUID | None, email: str
    ) -> Invitation | None:
        """Get a pending, unexpired invitation for a specific workspace and email."""
        column = InvitationModel.workspace_id
        stmt = (
            select(InvitationModel)
            .where(
                column.is_(None) if workspace_id is None else column == workspace_id,
                InvitationModel.email == email,
                InvitationModel.status == InvitationStatus.PENDING.value,
                InvitationModel.expires_at > utcnow(),
            )
            .limit(1)
        )
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def transition_status(
        self,
        id: UUID,
        to_status: InvitationStatus,
        at: datetime | None = None,
    ) -> bool:
        """Conditionally move a pending invitation to ``to_status``.

        The WHERE clause on ``status = 'pending'`` makes this a single
        compare-and-set: of concurrent callers exactly one sees rowcount 1.
        """
        values: dict = {"status": to_status.value}
        if to_status == InvitationStatus.ACCEPTED:
            values["accepted_at"] = at or utcnow()

        stmt = (
            update(InvitationModel)
            .where(
                InvitationModel.id == id,
                InvitationModel.status == InvitationStatus.PENDING.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount == 1  # type: ignore[attr-defined, no-any-return]

    async def expire_old_invitations(self, now: datetime) -> int:
        """Mark all past-due pending invitations expired. Returns count of updated rows."""
        stmt = (
            update(InvitationModel)
            .where(
                InvitationModel.status == InvitationStatus.PENDING.value,
                InvitationModel.expires_at <= now,
            )
            .values(status=InvitationStatus.EXPIRED.value)
            .execution_options(synchronize_session=False)
        )
        result = await self._session.execute(stmt)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    def _to_entity(self, model: InvitationModel) -> Invitation:
        """Convert ORM model to domain entity."""
        return Invitation(
            id=model.id,
            workspace_id=model.workspace_id,
            email=model.email,
            target_role=Role(model.target_role),
            token_hash=model.token_hash,
            invited_by=model.invited_by,
            status=InvitationStatus(model.status),
            created_at=model.created_at,
            expires_at=model.expires_at,
            accepted_at=model.accepted_at,
        )

    def _to_model(self, entity: Invitation) -> InvitationModel:
        """Convert domain entity to ORM model."""
        return InvitationModel(
            id=entity.id,
            workspace_id=entity.workspace_id,
            email=entity.email,
            target_role=entity.target_role.value,
            token_hash=entity.token_hash,
            invited_by=entity.invited_by,
            status=entity.status.value,
            created_at=entity.created_at,
            expires_at=entity.expires_at,
            accepted_at=entity.accepted_at,
        )
