"""Invitation service: issues, accepts and revokes single-use grant offers."""

import hashlib
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from uuid import UUID

import structlog

from core.clock import utcnow
from core.exceptions import (
    AlreadyEmployeeElsewhereError,
    ConstraintViolationError,
    DualRoleViolationError,
    DuplicateInvitationError,
    ForbiddenError,
    InvalidInvitationError,
    InvalidTokenError,
    InvariantViolationError,
    InvitationAlreadyUsedError,
    InvitationEmailMismatchError,
    InvitationExpiredError,
    InvitationNotFoundError,
    NotPendingError,
    StorageError,
    WorkspaceNotFoundError,
)
from domain.entities.grant import (
    INVITABLE_ROLES,
    AdminGrant,
    EmployeeAssignment,
    ProfileFields,
    Role,
)
from domain.entities.invitation import (
    INVITATION_EXPIRY_DAYS,
    Invitation,
    InvitationStatus,
)
from domain.entities.resolution import (
    Admin,
    Employee,
    ResolutionResult,
    SuperAdmin,
)
from domain.entities.user import User, normalize_email
from domain.entities.workspace import PLATFORM_WORKSPACE_ID, is_platform_workspace
from domain.repositories.unit_of_work import IUnitOfWork
from domain.services.identity_service import IdentityService
from domain.services.role_resolver import RoleResolver
from domain.services.workspace_scope import require_workspace

logger = structlog.get_logger()


@dataclass(frozen=True)
class AcceptanceResult:
    """The grant a successful acceptance produced."""

    user_id: UUID
    role: Role
    workspace_id: UUID


class InvitationService:
    """Service layer for the invitation lifecycle.

    An invitation moves out of ``pending`` exactly once. Every transition
    is a conditional update on the pending row, so of any number of
    concurrent accept or revoke calls at most one takes effect.
    """

    def __init__(
        self,
        uow_factory: Callable[[], IUnitOfWork],
        role_resolver: RoleResolver,
        identity_service: IdentityService,
        expiry_days: int = INVITATION_EXPIRY_DAYS,
    ) -> None:
        self._uow_factory = uow_factory
        self._resolver = role_resolver
        self._identity = identity_service
        self._expiry_days = expiry_days

    async def create_invitation(
        self,
        inviter_id: UUID,
        email: str,
        target_role: Role | str,
        workspace_id: UUID | None = None,
    ) -> tuple[Invitation, str]:
        """Create an invitation on behalf of a resolved inviter.

        Args:
            inviter_id: The user issuing the invitation.
            email: The address the invitation is bound to.
            target_role: ``platform_staff`` or ``employee``.
            workspace_id: Target workspace. Inferred for an admin inviter;
                required for a super_admin inviting an employee.

        Returns:
            Tuple of (Invitation, raw_token). The raw token is only
            available here and is never persisted.

        Raises:
            ForbiddenError: If the inviter may not issue this invitation.
            WorkspaceNotFoundError: If the target workspace does not exist.
            DuplicateInvitationError: If a pending invitation already exists.
            ResolutionError: If the inviter's role could not be resolved.
        """
        try:
            role = Role(target_role)
        except ValueError as e:
            raise ForbiddenError(f"Cannot invite to role {target_role}") from e
        if role not in INVITABLE_ROLES:
            raise ForbiddenError(f"Cannot invite to role {role}")

        resolution = await self._resolver.resolve(inviter_id)
        scoped_workspace_id = self._authorize_inviter(resolution, role, workspace_id)
        email = normalize_email(email)

        async with self._uow_factory() as uow:
            if role == Role.EMPLOYEE and not await uow.workspaces.get(scoped_workspace_id):
                raise WorkspaceNotFoundError(str(scoped_workspace_id))

            existing = await uow.invitations.get_pending_for_workspace_email(
                scoped_workspace_id, email
            )
            if existing:
                raise DuplicateInvitationError(email)

            raw_token = secrets.token_urlsafe(32)
            now = utcnow()
            invitation = Invitation(
                email=email,
                target_role=role,
                token_hash=self._hash_token(raw_token),
                invited_by=inviter_id,
                workspace_id=scoped_workspace_id,
                created_at=now,
                expires_at=now + timedelta(days=self._expiry_days),
            )
            created = await uow.invitations.create(invitation)
            await uow.commit()

        logger.info(
            "invitation_created",
            invitation_id=str(created.id),
            target_role=role.value,
            workspace_id=str(scoped_workspace_id),
            invited_by=str(inviter_id),
        )
        return created, raw_token

    async def accept_invitation(
        self,
        token: str,
        email: str,
        profile: ProfileFields,
        password: str,
    ) -> AcceptanceResult:
        """Accept an invitation and write the grant it offers.

        The identity-provider account is ensured before the local
        transaction opens. The status transition and the grant insert then
        commit together, so an invitation is never ``accepted`` without its
        grant and a grant is never written for a non-accepted invitation.

        Args:
            token: The raw invitation token.
            email: The email the caller claims; must match the invitation.
            profile: Profile fields recorded on the new grant.
            password: Password for a newly created provider account.

        Raises:
            InvalidInvitationError: Invalid token, already used or revoked,
                expired, or email mismatch. All render identically.
            DualRoleViolationError: If the invitee holds a conflicting role.
            AlreadyEmployeeElsewhereError: If the invitee is already an employee.
            IdentityProviderError: If the provider account could not be ensured.
            StorageError: If concurrent writers kept colliding on the same user.
        """
        token_hash = self._hash_token(token)
        try:
            async with self._uow_factory() as uow:
                invitation = await self._check_acceptable(
                    uow, await uow.invitations.get_by_token_hash(token_hash), email
                )

            external_auth_id = await self._identity.ensure_account(invitation.email, password)

            try:
                result = await self._accept_locked(invitation, email, external_auth_id, profile)
            except ConstraintViolationError as e:
                # A concurrent acceptance wrote the same user first. The failed
                # transaction is gone; the second pass sees the winner's rows.
                logger.info("invitation_accept_retried", table=e.table)
                try:
                    result = await self._accept_locked(
                        invitation, email, external_auth_id, profile
                    )
                except ConstraintViolationError as again:
                    raise StorageError("Concurrent update, retry the request") from again
        except InvalidInvitationError as e:
            logger.warning("invitation_rejected", reason=e.reason.value)
            raise
        except InvariantViolationError as e:
            logger.error(
                "invariant_violation",
                kind=e.error_code.value,
                user_id=e.user_id,
                target_role=invitation.target_role.value,
            )
            raise

        logger.info(
            "invitation_accepted",
            invitation_id=str(invitation.id),
            user_id=str(result.user_id),
            role=result.role.value,
            workspace_id=str(result.workspace_id),
        )
        return result

    async def _accept_locked(
        self,
        checked: Invitation,
        email: str,
        external_auth_id: str,
        profile: ProfileFields,
    ) -> AcceptanceResult:
        """Run the acceptance transaction under the principal lock.

        Raises:
            ConstraintViolationError: If a concurrent writer created or linked
                the same user first. The transaction has been rolled back.
        """
        async with self._uow_factory() as uow:
            await uow.lock_principal(checked.email)
            # Re-read under the principal lock; a concurrent caller may have won.
            invitation = await self._check_acceptable(
                uow, await uow.invitations.get_by_token_hash(checked.token_hash), email
            )
            user = await self._get_or_create_user(uow, invitation, external_auth_id, profile)
            await self._check_role_exclusion(uow, user, invitation)

            if not await uow.invitations.transition_status(
                invitation.id, InvitationStatus.ACCEPTED, at=utcnow()
            ):
                raise InvitationAlreadyUsedError()

            result = await self._insert_grant(uow, user, invitation, profile)
            await uow.commit()
        return result

    async def revoke_invitation(self, invitation_id: UUID, by_user_id: UUID) -> Invitation:
        """Revoke a pending invitation.

        Only the original inviter or a super_admin may revoke.

        Raises:
            InvitationNotFoundError: If the invitation does not exist.
            ForbiddenError: If the caller may not revoke it.
            NotPendingError: If it already left ``pending``.
        """
        resolution = await self._resolver.resolve(by_user_id)

        async with self._uow_factory() as uow:
            invitation = await uow.invitations.get_by_id(invitation_id)
            if not invitation:
                raise InvitationNotFoundError(str(invitation_id))

            if invitation.invited_by != by_user_id and not isinstance(resolution, SuperAdmin):
                raise ForbiddenError("Only the inviter or a super admin can revoke this invitation")

            if invitation.is_terminal:
                raise NotPendingError(str(invitation_id))

            now = utcnow()
            if invitation.is_expired(now):
                await uow.invitations.transition_status(invitation.id, InvitationStatus.EXPIRED)
                await uow.commit()
                raise NotPendingError(str(invitation_id))

            if not await uow.invitations.transition_status(
                invitation.id, InvitationStatus.REVOKED, at=now
            ):
                raise NotPendingError(str(invitation_id))
            await uow.commit()

        invitation.status = InvitationStatus.REVOKED
        logger.info(
            "invitation_revoked",
            invitation_id=str(invitation_id),
            revoked_by=str(by_user_id),
        )
        return invitation

    async def preview_invitation(self, token: str) -> Invitation:
        """Look up an acceptable invitation by raw token, without accepting it.

        Raises:
            InvalidInvitationError: On the same terminal outcomes as acceptance.
        """
        try:
            async with self._uow_factory() as uow:
                return await self._check_acceptable(
                    uow, await uow.invitations.get_by_token_hash(self._hash_token(token))
                )
        except InvalidInvitationError as e:
            logger.info("invitation_preview_rejected", reason=e.reason.value)
            raise

    async def list_workspace_invitations(
        self, resolution: ResolutionResult, workspace_id: UUID
    ) -> list[Invitation]:
        """List invitations targeting a workspace.

        super_admin may read any workspace's invitations. Employees may not
        list invitations at all.
        """
        require_workspace(resolution, workspace_id, allow_cross_workspace_read=True)
        if isinstance(resolution, Employee):
            raise ForbiddenError("Employees cannot list invitations")

        async with self._uow_factory() as uow:
            return await uow.invitations.get_for_workspace(workspace_id)  # type: ignore[no-any-return]

    async def expire_stale_invitations(self) -> int:
        """Mark every past-due pending invitation expired. Returns the count."""
        async with self._uow_factory() as uow:
            count = await uow.invitations.expire_old_invitations(utcnow())
            await uow.commit()
        if count:
            logger.info("invitations_expired", count=count)
        return count  # type: ignore[no-any-return]

    # --- Internal helpers ---

    @staticmethod
    def _authorize_inviter(
        resolution: ResolutionResult,
        target_role: Role,
        workspace_id: UUID | None,
    ) -> UUID:
        """Check the inviter may issue the invitation and return its workspace."""
        if target_role == Role.PLATFORM_STAFF:
            if not isinstance(resolution, SuperAdmin):
                raise ForbiddenError("Only a super admin can invite platform staff")
            if workspace_id is not None and not is_platform_workspace(workspace_id):
                raise ForbiddenError("Platform staff invitations target the platform workspace")
            return PLATFORM_WORKSPACE_ID

        if isinstance(resolution, Admin):
            if workspace_id is not None and workspace_id != resolution.workspace_id:
                raise ForbiddenError("Admins can only invite into their own workspace")
            return resolution.workspace_id

        if isinstance(resolution, SuperAdmin):
            if workspace_id is None or is_platform_workspace(workspace_id):
                raise ForbiddenError("Employee invitations need a client workspace")
            return workspace_id

        raise ForbiddenError("Not permitted to invite employees")

    async def _check_acceptable(
        self,
        uow: IUnitOfWork,
        invitation: Invitation | None,
        email: str | None = None,
    ) -> Invitation:
        """Raise the terminal outcome for an invitation, if it has one.

        A past-due invitation is expired whatever its stored status says;
        a still-pending one is marked expired on the way out.
        """
        if invitation is None:
            raise InvalidTokenError()

        now = utcnow()
        if invitation.is_expired(now):
            if invitation.status == InvitationStatus.PENDING:
                await uow.invitations.transition_status(invitation.id, InvitationStatus.EXPIRED)
                await uow.commit()
            raise InvitationExpiredError()

        if invitation.status != InvitationStatus.PENDING:
            raise InvitationAlreadyUsedError()

        if email is not None and normalize_email(email) != invitation.email:
            raise InvitationEmailMismatchError()

        if invitation.target_role == Role.EMPLOYEE and invitation.workspace_id is None:
            raise InvalidTokenError()

        return invitation

    @staticmethod
    async def _get_or_create_user(
        uow: IUnitOfWork,
        invitation: Invitation,
        external_auth_id: str,
        profile: ProfileFields,
    ) -> User:
        user = await uow.users.get_by_email(invitation.email)
        if user is None:
            return await uow.users.create(  # type: ignore[no-any-return]
                User(
                    email=invitation.email,
                    external_auth_id=external_auth_id,
                    display_name=profile.full_name,
                )
            )
        if user.external_auth_id is None:
            user = await uow.users.link_external_auth_id(user.id, external_auth_id)
        return user

    @staticmethod
    async def _check_role_exclusion(
        uow: IUnitOfWork, user: User, invitation: Invitation
    ) -> None:
        """Refuse a grant that would give the user a second role."""
        if user.is_super_admin or await uow.grants.get_admin_grants(user.id):
            raise DualRoleViolationError(str(user.id))

        assignment = await uow.grants.get_employee_assignment(user.id)
        if assignment is None:
            return
        if invitation.target_role == Role.EMPLOYEE:
            raise AlreadyEmployeeElsewhereError(str(user.id))
        raise DualRoleViolationError(str(user.id))

    @staticmethod
    async def _insert_grant(
        uow: IUnitOfWork,
        user: User,
        invitation: Invitation,
        profile: ProfileFields,
    ) -> AcceptanceResult:
        try:
            if invitation.target_role == Role.EMPLOYEE:
                assignment = await uow.grants.add_employee_assignment(
                    EmployeeAssignment(
                        user_id=user.id,
                        workspace_id=invitation.workspace_id,  # type: ignore[arg-type]
                        full_name=profile.full_name,
                        phone=profile.phone,
                        invited_by=invitation.invited_by,
                    )
                )
                return AcceptanceResult(user.id, Role.EMPLOYEE, assignment.workspace_id)

            await uow.grants.add_admin_grant(
                AdminGrant(
                    user_id=user.id,
                    role=Role.PLATFORM_STAFF,
                    workspace_id=PLATFORM_WORKSPACE_ID,
                )
            )
            return AcceptanceResult(user.id, Role.PLATFORM_STAFF, PLATFORM_WORKSPACE_ID)
        except ConstraintViolationError as e:
            if invitation.target_role == Role.EMPLOYEE:
                raise AlreadyEmployeeElsewhereError(str(user.id)) from e
            raise DualRoleViolationError(str(user.id)) from e

    @staticmethod
    def _hash_token(token: str) -> str:
        """Hash a raw invitation token using SHA-256."""
        return hashlib.sha256(token.encode()).hexdigest()
