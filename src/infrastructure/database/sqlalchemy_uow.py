"""SQLAlchemy Unit of Work implementation."""

from typing import Any, Optional

import structlog
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.exceptions import StorageError
from infrastructure.database.repositories.sqlalchemy_grant_repo import SQLAlchemyGrantRepository
from infrastructure.database.repositories.sqlalchemy_invitation_repo import SQLAlchemyInvitationRepository
from infrastructure.database.repositories.sqlalchemy_user_repo import SQLAlchemyUserRepository
from infrastructure.database.repositories.sqlalchemy_workspace_repo import SQLAlchemyWorkspaceRepository

logger = structlog.get_logger()


class SQLAlchemyUnitOfWork:
    """Unit of Work implementation using SQLAlchemy.

    Driver and connection failures raised inside the block surface as
    ``StorageError`` so callers never see SQLAlchemy types.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: Optional[AsyncSession] = None

    @property
    def users(self) -> SQLAlchemyUserRepository:
        """Get user repository."""
        return SQLAlchemyUserRepository(self._require_session())

    @property
    def workspaces(self) -> SQLAlchemyWorkspaceRepository:
        """Get workspace repository."""
        return SQLAlchemyWorkspaceRepository(self._require_session())

    @property
    def grants(self) -> SQLAlchemyGrantRepository:
        """Get admin grant and employee assignment repository."""
        return SQLAlchemyGrantRepository(self._require_session())

    @property
    def invitations(self) -> SQLAlchemyInvitationRepository:
        """Get invitation repository."""
        return SQLAlchemyInvitationRepository(self._require_session())

    async def lock_principal(self, key: str) -> None:
        """Take a transaction-scoped advisory lock on a principal key.

        Held until commit or rollback. Other dialects have no advisory
        locks and rely on the unique constraints alone.
        """
        session = self._require_session()
        if session.bind.dialect.name != "postgresql":
            return
        await session.execute(select(func.pg_advisory_xact_lock(func.hashtext(key))))

    async def commit(self) -> None:
        """Commit the current transaction."""
        if self._session:
            await self._session.commit()

    async def rollback(self) -> None:
        """Rollback the current transaction."""
        if self._session:
            await self._session.rollback()

    async def __aenter__(self) -> "SQLAlchemyUnitOfWork":
        """Enter the context manager and create session."""
        self._session = self._session_factory()
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Any,
    ) -> None:
        """Exit the context manager, rolling back on error, and cleanup."""
        if not self._session:
            return
        try:
            if exc_type:
                await self.rollback()
        finally:
            await self._session.close()
            self._session = None

        if isinstance(exc_val, SQLAlchemyError):
            logger.error("storage_error", error=str(exc_val))
            raise StorageError() from exc_val

    def _require_session(self) -> AsyncSession:
        if not self._session:
            raise RuntimeError("UnitOfWork not initialized. Use as context manager.")
        return self._session
