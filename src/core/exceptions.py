"""Custom exceptions and error codes."""

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    """Standardized error codes for the API."""

    # Authentication errors (401)
    UNAUTHORIZED = "UNAUTHORIZED"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"

    # Authorization errors (403)
    FORBIDDEN = "FORBIDDEN"

    # Not found errors (404)
    NOT_FOUND = "NOT_FOUND"
    USER_NOT_FOUND = "USER_NOT_FOUND"
    WORKSPACE_NOT_FOUND = "WORKSPACE_NOT_FOUND"
    INVITATION_NOT_FOUND = "INVITATION_NOT_FOUND"
    EMPLOYEE_NOT_FOUND = "EMPLOYEE_NOT_FOUND"

    # Validation errors (400)
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_INVITATION = "INVALID_INVITATION"

    # Conflict errors (409)
    INVITATION_NOT_PENDING = "INVITATION_NOT_PENDING"
    DUPLICATE_INVITATION = "DUPLICATE_INVITATION"
    ALREADY_HAS_ROLE = "ALREADY_HAS_ROLE"
    DUAL_ROLE_VIOLATION = "DUAL_ROLE_VIOLATION"
    ALREADY_EMPLOYEE_ELSEWHERE = "ALREADY_EMPLOYEE_ELSEWHERE"

    # Rate limiting (429)
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"

    # Server errors (5xx)
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    ROLE_RESOLUTION_FAILED = "ROLE_RESOLUTION_FAILED"
    IDENTITY_PROVIDER_ERROR = "IDENTITY_PROVIDER_ERROR"


class InvitationFailure(StrEnum):
    """Why an invitation lookup ended in a terminal state.

    All values surface to the client as the same generic message; the
    value is only recorded in logs.
    """

    INVALID_TOKEN = "invalid_token"
    ALREADY_USED_OR_REVOKED = "already_used_or_revoked"
    EXPIRED = "expired"
    EMAIL_MISMATCH = "email_mismatch"


class AppException(Exception):
    """Base application exception."""

    def __init__(
        self,
        error_code: ErrorCode,
        message: str,
        status_code: int = 400,
        details: Any | None = None,
    ) -> None:
        self.error_code = error_code
        self.message = message
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ConstraintViolationError(Exception):
    """A storage-level uniqueness or integrity constraint rejected a write.

    Raised by repositories; services translate it into a domain error.
    """

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(f"Constraint violated on {table}")


class AuthenticationError(AppException):
    """Authentication failed."""

    def __init__(
        self,
        message: str = "Authentication required",
        error_code: ErrorCode = ErrorCode.UNAUTHORIZED,
    ) -> None:
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=401,
        )


class ForbiddenError(AppException):
    """An authorization precondition failed."""

    def __init__(self, message: str = "Access denied") -> None:
        super().__init__(
            error_code=ErrorCode.FORBIDDEN,
            message=message,
            status_code=403,
        )


class ResolutionError(AppException):
    """Role resolution could not be completed. Safe to retry."""

    def __init__(self, message: str = "Role resolution failed") -> None:
        super().__init__(
            error_code=ErrorCode.ROLE_RESOLUTION_FAILED,
            message=message,
            status_code=503,
        )


class StorageError(AppException):
    """The database could not be reached or the statement failed."""

    def __init__(self, message: str = "Storage unavailable") -> None:
        super().__init__(
            error_code=ErrorCode.DATABASE_ERROR,
            message=message,
            status_code=503,
        )


class IdentityProviderError(AppException):
    """The external identity provider rejected or failed a request."""

    def __init__(self, message: str = "Identity provider request failed") -> None:
        super().__init__(
            error_code=ErrorCode.IDENTITY_PROVIDER_ERROR,
            message=message,
            status_code=502,
        )


class WorkspaceNotFoundError(AppException):
    """Workspace not found."""

    def __init__(self, workspace_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.WORKSPACE_NOT_FOUND,
            message=f"Workspace not found: {workspace_id}",
            status_code=404,
            details={"workspace_id": workspace_id},
        )


class WorkspaceMismatchError(AppException):
    """The requested resource belongs to another workspace.

    Rendered as a generic 404 so the existence of other tenants'
    resources is never confirmed.
    """

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.NOT_FOUND,
            message="Resource not found",
            status_code=404,
        )


class EmployeeNotFoundError(AppException):
    """Employee assignment not found."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.NOT_FOUND,
            message="Resource not found",
            status_code=404,
        )


class InvitationNotFoundError(AppException):
    """Invitation not found."""

    def __init__(self, invitation_id: str = "") -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_NOT_FOUND,
            message="Invitation not found",
            status_code=404,
            details={"invitation_id": invitation_id} if invitation_id else None,
        )


class InvalidInvitationError(AppException):
    """Base for every terminal invitation lookup outcome."""

    reason: InvitationFailure = InvitationFailure.INVALID_TOKEN

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.INVALID_INVITATION,
            message="Invalid or expired invitation",
            status_code=400,
        )


class InvalidTokenError(InvalidInvitationError):
    """No invitation matches the token."""

    reason = InvitationFailure.INVALID_TOKEN


class InvitationAlreadyUsedError(InvalidInvitationError):
    """The invitation was already accepted or revoked."""

    reason = InvitationFailure.ALREADY_USED_OR_REVOKED


class InvitationExpiredError(InvalidInvitationError):
    """The invitation is past its expiry."""

    reason = InvitationFailure.EXPIRED


class InvitationEmailMismatchError(InvalidInvitationError):
    """The supplied email does not match the invitation email."""

    reason = InvitationFailure.EMAIL_MISMATCH


class NotPendingError(AppException):
    """The invitation is already in a terminal state."""

    def __init__(self, invitation_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.INVITATION_NOT_PENDING,
            message="Invitation is no longer pending",
            status_code=409,
            details={"invitation_id": invitation_id},
        )


class DuplicateInvitationError(AppException):
    """A pending invitation already exists for this email and workspace."""

    def __init__(self, email: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUPLICATE_INVITATION,
            message="A pending invitation already exists for this email",
            status_code=409,
            details={"email": email},
        )


class AlreadyHasRoleError(AppException):
    """The principal already holds a role and cannot be provisioned again."""

    def __init__(self) -> None:
        super().__init__(
            error_code=ErrorCode.ALREADY_HAS_ROLE,
            message="This account already has a role",
            status_code=409,
        )


class InvariantViolationError(AppException):
    """A write would break a role/workspace invariant.

    Never expected in normal flow; always logged as ``invariant_violation``.
    """

    def __init__(self, error_code: ErrorCode, message: str, user_id: str) -> None:
        self.user_id = user_id
        super().__init__(
            error_code=error_code,
            message=message,
            status_code=409,
        )


class DualRoleViolationError(InvariantViolationError):
    """The principal would hold both an admin grant and an employee assignment."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.DUAL_ROLE_VIOLATION,
            message="This account already holds a conflicting role",
            user_id=user_id,
        )


class AlreadyEmployeeElsewhereError(InvariantViolationError):
    """The principal is already an employee of a workspace."""

    def __init__(self, user_id: str) -> None:
        super().__init__(
            error_code=ErrorCode.ALREADY_EMPLOYEE_ELSEWHERE,
            message="This account is already an employee of a workspace",
            user_id=user_id,
        )
