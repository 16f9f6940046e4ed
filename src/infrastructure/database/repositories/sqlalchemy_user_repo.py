"""SQLAlchemy implementation of User repository."""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.clock import utcnow
from core.exceptions import ConstraintViolationError
from domain.entities.user import User, normalize_email
from infrastructure.database.models import UserModel


class SQLAlchemyUserRepository:
    """SQLAlchemy implementation of IUserRepository."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, id: UUID) -> User | None:
        """Get a user by ID."""
        model = await self._get_model(id)
        return self._to_entity(model) if model else None

    async def get_by_email(self, email: str) -> User | None:
        """Get a user by normalised email."""
        stmt = select(UserModel).where(UserModel.email == normalize_email(email))
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def get_by_external_auth_id(self, external_auth_id: str) -> User | None:
        """Get a user by the identity provider's subject id."""
        stmt = select(UserModel).where(UserModel.external_auth_id == external_auth_id)
        result = await self._session.execute(stmt)
        model = result.scalar_one_or_none()
        return self._to_entity(model) if model else None

    async def create(self, user: User) -> User:
        """Create a new user."""
        model = self._to_model(user)
        self._session.add(model)
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(UserModel.__tablename__) from e
        await self._session.refresh(model)
        return self._to_entity(model)

    async def link_external_auth_id(self, id: UUID, external_auth_id: str) -> User:
        """Set the external auth id on a user that has none yet."""
        model = await self._require_model(id)
        if model.external_auth_id is not None and model.external_auth_id != external_auth_id:
            raise ValueError(f"User {id} is already linked to another identity")
        model.external_auth_id = external_auth_id
        model.updated_at = utcnow()
        try:
            await self._session.flush()
        except IntegrityError as e:
            raise ConstraintViolationError(UserModel.__tablename__) from e
        return self._to_entity(model)

    async def _get_model(self, id: UUID) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.id == id)
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def _require_model(self, id: UUID) -> UserModel:
        model = await self._get_model(id)
        if not model:
            raise ValueError(f"User {id} not found")
        return model

    def _to_entity(self, model: UserModel) -> User:
        """Convert ORM model to domain entity."""
        return User(
            id=model.id,
            email=model.email,
            external_auth_id=model.external_auth_id,
            role=model.role,
            display_name=model.display_name,
            is_active=model.is_active,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )

    def _to_model(self, entity: User) -> UserModel:
        """Convert domain entity to ORM model."""
        return UserModel(
            id=entity.id,
            email=entity.email,
            external_auth_id=entity.external_auth_id,
            role=entity.role,
            display_name=entity.display_name,
            is_active=entity.is_active,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )
