"""Rate limiting configuration using slowapi."""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import settings
from core.exceptions import ErrorCode

logger = structlog.get_logger()


def client_key(request: Request) -> str:
    """Rate limit key: the first X-Forwarded-For hop, else the peer address.

    Invitation acceptance is unauthenticated, so the key cannot be a user id.
    """
    forwarded = request.headers.get("X-Forwarded-For", "")
    first_hop = forwarded.split(",")[0].strip()
    return first_hop or get_remote_address(request)


limiter = Limiter(
    key_func=client_key,
    enabled=settings.rate_limit_enabled,
)


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle rate limit exceeded errors."""
    detail = exc.detail if isinstance(exc, RateLimitExceeded) else str(exc)
    logger.warning("rate_limit_exceeded", path=request.url.path, limit=str(detail))
    return JSONResponse(
        status_code=429,
        content={
            "error_code": ErrorCode.RATE_LIMIT_EXCEEDED.value,
            "message": f"Rate limit exceeded: {detail}",
            "details": {
                "retry_after": str(detail),
            },
        },
    )
