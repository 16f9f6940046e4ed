"""Edge middleware running the route authorization gate on page requests."""

from typing import Awaitable, Callable

import structlog
from fastapi.responses import ORJSONResponse, RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from core.config import settings
from core.exceptions import ErrorCode
from domain.services.route_gate import Allow, Deny, Redirect, RouteAuthorizationGate, is_gated
from infrastructure.auth.jwt_provider import JWTAuthProvider

logger = structlog.get_logger()


class RouteGateMiddleware(BaseHTTPMiddleware):
    """Redirect or refuse page requests the caller's role may not see.

    Only paths under the gated page prefixes are checked; API routes carry
    their own dependencies. Factories are looked up through the app's
    ``dependency_overrides`` so tests can swap them like any dependency.
    """

    def __init__(
        self,
        app: Callable,
        gate_factory: Callable[[], RouteAuthorizationGate],
        auth_provider_factory: Callable[[], JWTAuthProvider],
        cookie_name: str = settings.auth_cookie_name,
    ) -> None:
        super().__init__(app)
        self._gate_factory = gate_factory
        self._auth_provider_factory = auth_provider_factory
        self._cookie_name = cookie_name

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        path = request.url.path
        if not is_gated(path):
            return await call_next(request)

        gate = self._resolve(request, self._gate_factory)()
        external_id = await self._external_id(request)
        decision = await gate.authorize_external(external_id, path)

        if isinstance(decision, Redirect):
            return RedirectResponse(decision.target, status_code=307)
        if isinstance(decision, Deny):
            logger.warning("route_gate_denied", reason=decision.reason)
            return ORJSONResponse(
                status_code=503,
                headers={"Retry-After": "1"},
                content={
                    "error_code": ErrorCode.ROLE_RESOLUTION_FAILED.value,
                    "message": "Access could not be determined, please retry",
                    "details": None,
                },
            )

        assert isinstance(decision, Allow)
        request.state.resolution = decision.resolution
        return await call_next(request)

    async def _external_id(self, request: Request) -> str | None:
        token = self._bearer_token(request) or request.cookies.get(self._cookie_name)
        if not token:
            return None
        provider = self._resolve(request, self._auth_provider_factory)()
        user = await provider.validate_token(token)
        return user.external_id if user else None

    @staticmethod
    def _bearer_token(request: Request) -> str | None:
        scheme, _, credentials = request.headers.get("Authorization", "").partition(" ")
        if scheme.lower() == "bearer" and credentials:
            return credentials
        return None

    @staticmethod
    def _resolve(request: Request, factory: Callable) -> Callable:
        overrides = getattr(request.app, "dependency_overrides", {})
        return overrides.get(factory, factory)  # type: ignore[no-any-return]
