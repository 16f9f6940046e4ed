"""Route authorization: which role may visit which page prefix."""

from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Union
from uuid import UUID

import structlog
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from core.config import settings
from core.exceptions import ResolutionError
from domain.entities.grant import Role
from domain.entities.resolution import NoRole, Resolution, ResolutionResult
from domain.services.role_resolver import RoleResolver

logger = structlog.get_logger()


def matches_prefix(path: str, prefix: str) -> bool:
    """True for the prefix itself or any path segment below it."""
    prefix = prefix.rstrip("/")
    return path == prefix or path.startswith(prefix + "/")


@dataclass(frozen=True)
class RouteRule:
    """Permitted prefixes for one role, with carved-out exclusions."""

    home: str
    allow: tuple[str, ...]
    exclude: tuple[str, ...] = ()

    def permits(self, path: str) -> bool:
        if any(matches_prefix(path, p) for p in self.exclude):
            return False
        return any(matches_prefix(path, p) for p in self.allow)


ROUTE_TABLE: Mapping[Role, RouteRule] = {
    Role.SUPER_ADMIN: RouteRule(home="/admin", allow=("/admin",), exclude=("/admin/support",)),
    Role.PLATFORM_STAFF: RouteRule(home="/admin/support", allow=("/admin/support",)),
    Role.ADMIN: RouteRule(home="/dashboard", allow=("/dashboard",)),
    Role.EMPLOYEE: RouteRule(home="/employees/dashboard", allow=("/employees/dashboard",)),
}

# Page prefixes the edge middleware runs the gate on.
GATED_PREFIXES: tuple[str, ...] = ("/admin", "/dashboard", "/employees")


def is_gated(path: str) -> bool:
    return any(matches_prefix(path, p) for p in GATED_PREFIXES)


@dataclass(frozen=True)
class Allow:
    resolution: Resolution


@dataclass(frozen=True)
class Redirect:
    target: str


@dataclass(frozen=True)
class Deny:
    reason: str


GateDecision = Union[Allow, Redirect, Deny]


class RouteAuthorizationGate:
    """Edge check run once per request before any handler.

    The gate is advisory with respect to data: handlers still enforce the
    workspace scope of every resource they touch.
    """

    def __init__(
        self,
        resolver: RoleResolver,
        route_table: Mapping[Role, RouteRule] = ROUTE_TABLE,
        login_path: str = settings.login_path,
        attempts: int = settings.role_resolution_attempts,
        backoff_seconds: float = settings.role_resolution_backoff_ms / 1000,
    ) -> None:
        self._resolver = resolver
        self._routes = route_table
        self._login_path = login_path
        self._attempts = max(1, attempts)
        self._backoff = backoff_seconds

    async def authorize(self, user_id: UUID | None, requested_path: str) -> GateDecision:
        """Decide on a request from an internal user id."""
        if user_id is None:
            return Redirect(self._login_path)
        return await self._authorize(lambda: self._resolver.resolve(user_id), requested_path)

    async def authorize_external(
        self, external_auth_id: str | None, requested_path: str
    ) -> GateDecision:
        """Decide on a request from the identity provider's subject id."""
        if external_auth_id is None:
            return Redirect(self._login_path)
        return await self._authorize(
            lambda: self._resolver.resolve_external(external_auth_id), requested_path
        )

    def decide(self, resolution: ResolutionResult, requested_path: str) -> GateDecision:
        """Map a resolution and a path to a decision. Pure."""
        if isinstance(resolution, NoRole):
            return Redirect(self._login_path)

        rule = self._routes.get(resolution.role)
        if rule is None:
            return Deny(reason=f"no route rule for role {resolution.role}")

        if rule.permits(requested_path):
            return Allow(resolution)

        logger.info(
            "route_redirected",
            role=resolution.role.value,
            path=requested_path,
            target=rule.home,
        )
        return Redirect(rule.home)

    async def _authorize(
        self,
        lookup: Callable[[], Awaitable[ResolutionResult]],
        requested_path: str,
    ) -> GateDecision:
        try:
            resolution = await self._resolve_with_retry(lookup)
        except ResolutionError as e:
            logger.error("route_gate_resolution_failed", path=requested_path, error=e.message)
            return Deny(reason="role resolution unavailable")
        return self.decide(resolution, requested_path)

    async def _resolve_with_retry(
        self, lookup: Callable[[], Awaitable[ResolutionResult]]
    ) -> ResolutionResult:
        async for attempt in AsyncRetrying(
            retry=retry_if_exception_type(ResolutionError),
            stop=stop_after_attempt(self._attempts),
            wait=wait_exponential(multiplier=self._backoff, max=self._backoff * 8),
            reraise=True,
        ):
            with attempt:
                return await lookup()
        raise ResolutionError()  # unreachable; AsyncRetrying reraises
