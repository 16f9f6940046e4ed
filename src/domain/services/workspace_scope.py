"""Workspace scope enforcement for data-access paths."""

from enum import StrEnum
from uuid import UUID

import structlog

from core.exceptions import ForbiddenError, WorkspaceMismatchError
from domain.entities.resolution import NoRole, ResolutionResult, SuperAdmin

logger = structlog.get_logger()


class ScopeDecision(StrEnum):
    ALLOW = "allow"
    DENY = "deny"


def enforce(
    resolution: ResolutionResult,
    requested_workspace_id: UUID | None,
    *,
    allow_cross_workspace_read: bool = False,
) -> ScopeDecision:
    """Compare a resolved scope against the workspace a request targets.

    super_admin passes only for platform-wide requests (no workspace) or
    where the endpoint explicitly opts into cross-workspace reads. Every
    other role passes only on exact workspace id equality.
    """
    if isinstance(resolution, NoRole):
        return ScopeDecision.DENY

    if isinstance(resolution, SuperAdmin):
        if requested_workspace_id is None or allow_cross_workspace_read:
            return ScopeDecision.ALLOW
        return ScopeDecision.DENY

    if requested_workspace_id is not None and requested_workspace_id == resolution.workspace_id:
        return ScopeDecision.ALLOW
    return ScopeDecision.DENY


def require_workspace(
    resolution: ResolutionResult,
    requested_workspace_id: UUID | None,
    *,
    allow_cross_workspace_read: bool = False,
    resource_scoped: bool = True,
) -> None:
    """Raise unless ``enforce`` allows the request.

    Raises:
        WorkspaceMismatchError: For resources addressed by id (rendered 404).
        ForbiddenError: For route-level checks with no specific resource.
    """
    decision = enforce(
        resolution,
        requested_workspace_id,
        allow_cross_workspace_read=allow_cross_workspace_read,
    )
    if decision == ScopeDecision.ALLOW:
        return

    logger.info(
        "workspace_scope_denied",
        role=getattr(resolution, "role", None),
        resolved_workspace_id=str(getattr(resolution, "workspace_id", None)),
        requested_workspace_id=str(requested_workspace_id),
    )
    if resource_scoped:
        raise WorkspaceMismatchError()
    raise ForbiddenError("Not permitted for this workspace")
