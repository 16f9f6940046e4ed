"""Main FastAPI application entry point."""

import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager, suppress

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import ORJSONResponse
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from api.dependencies.auth import get_auth_provider
from api.exception_handlers import setup_exception_handlers
from api.middleware.request_context import RequestContextMiddleware
from api.middleware.route_gate import RouteGateMiddleware
from api.middleware.security import SecurityHeadersMiddleware
from api.routes.health import API_VERSION
from api.routes.health import router as health_router
from api.routes.pages import router as pages_router
from api.v1 import router as v1_router
from api.v1.dependencies import get_invitation_service, get_route_gate
from core.config import settings
from core.logging import setup_logging
from core.rate_limit import limiter, rate_limit_exceeded_handler
from domain.services.invitation_service import InvitationService

logger = structlog.get_logger()

# Initialize structured logging
setup_logging()

EXPIRY_SWEEP_INTERVAL_SECONDS = 86400


async def run_expiry_sweep(
    service_factory: Callable[[], InvitationService] = get_invitation_service,
) -> None:
    """Run one expiry sweep; a failure is logged and the loop keeps going."""
    try:
        expired = await service_factory().expire_stale_invitations()
        logger.info("invitation_expiry_sweep_completed", expired_count=expired)
    except Exception:
        logger.exception("invitation_expiry_sweep_failed")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup/shutdown tasks."""

    async def invitation_expiry_loop() -> None:
        """Mark past-due pending invitations expired once a day.

        Acceptance already treats a past-due invitation as expired; the
        sweep only keeps stored statuses and listings accurate.
        """
        while True:
            await asyncio.sleep(EXPIRY_SWEEP_INTERVAL_SECONDS)
            await run_expiry_sweep()

    sweep_task = asyncio.create_task(invitation_expiry_loop())
    yield
    sweep_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweep_task


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        title=settings.app_name,
        description=(
            "## Multi-tenant Role Resolution\n\n"
            "Resolves every principal to exactly one role and workspace, "
            "manages single-use invitations and keeps every read and write "
            "inside the caller's workspace.\n\n"
            "### Roles\n"
            "- **super_admin**: platform owner, no workspace\n"
            "- **platform_staff**: support staff on the platform workspace\n"
            "- **admin**: owner of one client workspace\n"
            "- **employee**: member of exactly one client workspace\n\n"
            "### Authentication\n"
            "All endpoints except `/health`, invitation preview and invitation "
            "acceptance require a valid JWT in the Authorization header:\n"
            "```\nAuthorization: Bearer <your_token>\n```"
        ),
        version=API_VERSION,
        debug=settings.debug,
        openapi_tags=[
            {"name": "health", "description": "Health check endpoints"},
            {"name": "access", "description": "Identity sync and role resolution"},
            {"name": "workspaces", "description": "Workspace provisioning"},
            {"name": "invitations", "description": "Invitation lifecycle"},
            {"name": "employees", "description": "Employee management"},
            {"name": "platform", "description": "Platform staff"},
        ],
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    # Route gate runs inside request context so its logs carry the request id
    app.add_middleware(
        RouteGateMiddleware,
        gate_factory=get_route_gate,
        auth_provider_factory=get_auth_provider,
    )

    # Security & tracking middleware (LIFO order - last added = outermost)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestContextMiddleware)

    # GZip compression for responses > 1KB
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Setup exception handlers
    setup_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(pages_router)
    app.include_router(v1_router, prefix="/api/v1")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.host,
        port=settings.port,
        reload=not settings.is_production,
    )
