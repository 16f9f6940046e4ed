"""Identity service: keeps local users in step with the identity provider."""

from collections.abc import Callable
from typing import Protocol

import structlog

from core.exceptions import (
    ConstraintViolationError,
    ForbiddenError,
    IdentityProviderError,
    StorageError,
)
from domain.entities.user import User, normalize_email
from domain.repositories.unit_of_work import IUnitOfWork

logger = structlog.get_logger()


class IIdentityAdmin(Protocol):
    """Administrative operations against the external identity provider."""

    async def ensure_account(self, email: str, password: str) -> str:
        """Create an account for the email, or return the id of the existing one.

        Returns:
            The provider's subject id for the account.

        Raises:
            IdentityProviderError: If the provider rejects or fails the request.
        """
        ...


class IdentityService:
    """Service layer linking provider accounts to local principals."""

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        identity_admin: IIdentityAdmin | None = None,
    ) -> None:
        self._uow_factory = uow_factory
        self._identity_admin = identity_admin

    async def sync_user(
        self,
        external_auth_id: str,
        email: str,
        display_name: str | None = None,
    ) -> User:
        """Get or create the local user for a verified provider identity.

        A user created ahead of time (for example by an invitation) is
        matched by email and linked on first sign-in. An external auth id,
        once linked, never changes.

        Raises:
            ForbiddenError: If the email is already linked to another identity.
            StorageError: If concurrent sign-ins kept colliding on the same user.
        """
        email = normalize_email(email)
        try:
            return await self._sync_locked(external_auth_id, email, display_name)
        except ConstraintViolationError as e:
            # A concurrent sign-in created or linked the user first; the second
            # pass finds it and applies the usual matching rules.
            logger.info("user_sync_retried", table=e.table)
            try:
                return await self._sync_locked(external_auth_id, email, display_name)
            except ConstraintViolationError as again:
                raise StorageError("Concurrent update, retry the request") from again

    async def _sync_locked(
        self, external_auth_id: str, email: str, display_name: str | None
    ) -> User:
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_external_auth_id(external_auth_id)
            if user:
                return user

            await uow.lock_principal(email)
            user = await uow.users.get_by_email(email)
            if user is None:
                user = await uow.users.create(
                    User(
                        email=email,
                        external_auth_id=external_auth_id,
                        display_name=display_name,
                    )
                )
                logger.info("user_created", user_id=str(user.id))
            elif user.external_auth_id is None:
                user = await uow.users.link_external_auth_id(user.id, external_auth_id)
                logger.info("user_linked", user_id=str(user.id))
            elif user.external_auth_id != external_auth_id:
                raise ForbiddenError("This email is linked to a different account")

            await uow.commit()
            return user

    async def ensure_account(self, email: str, password: str) -> str:
        """Return the provider subject id for an email, creating the account if needed.

        Safe to call repeatedly: an account left behind by an earlier,
        interrupted attempt is reused rather than duplicated.
        """
        email = normalize_email(email)
        async with self._uow_factory() as uow:
            user = await uow.users.get_by_email(email)
            if user and user.external_auth_id:
                return user.external_auth_id

        if self._identity_admin is None:
            raise IdentityProviderError("No identity provider is configured")
        return await self._identity_admin.ensure_account(email, password)
