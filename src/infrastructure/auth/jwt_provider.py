"""JWT authentication provider implementation.

Verifies identity-provider JWTs (ES256 via JWKS) and locally-signed
tokens (HS256, used in tests). Only identity is read from a token; the
``role`` claim is ignored because roles are always resolved from storage.

Expected payload:
    {
        "sub": "provider-subject-id",
        "email": "user@example.com",
        "user_metadata": { "full_name": "Jane Doe" },
        "exp": 1234567890
    }
"""

import time
from datetime import timedelta
from typing import Any, Optional

import httpx
import structlog
from jose import JWTError, jwt
from jose.backends import ECKey

from core.clock import utcnow
from core.config import settings
from infrastructure.auth.provider import TokenUser

logger = structlog.get_logger()

# Module-level JWKS cache (fetched once, reused across requests)
_jwks_cache: dict[str, Any] | None = None
_last_refetch_at: float | None = None

# Unknown kids refetch at most this often
JWKS_MIN_REFETCH_SECONDS = 60.0


async def _get_jwks_keys() -> dict[str, Any]:
    """Fetch and cache JWKS keys from the identity provider."""
    global _jwks_cache
    if _jwks_cache is not None:
        return _jwks_cache

    jwks_url = settings.supabase_jwks_url
    if not jwks_url:
        return {}

    try:
        async with httpx.AsyncClient() as client:
            response = await client.get(jwks_url, timeout=10.0)
            response.raise_for_status()
            keys = {k["kid"]: k for k in response.json().get("keys", []) if k.get("kid")}
    except (httpx.HTTPError, ValueError) as e:
        logger.error("jwks_fetch_failed", url=jwks_url, error=str(e))
        return {}

    _jwks_cache = keys
    logger.info("jwks_fetched", count=len(keys))
    return keys


def clear_jwks_cache() -> None:
    """Drop cached keys so the next ES256 token triggers a refetch."""
    global _jwks_cache, _last_refetch_at
    _jwks_cache = None
    _last_refetch_at = None


async def _refetch_jwks_keys() -> dict[str, Any] | None:
    """Refetch JWKS for an unknown kid. Returns None while throttled."""
    global _jwks_cache, _last_refetch_at
    now = time.monotonic()
    if _last_refetch_at is not None and now - _last_refetch_at < JWKS_MIN_REFETCH_SECONDS:
        return None
    _last_refetch_at = now
    _jwks_cache = None
    return await _get_jwks_keys()


class JWTAuthProvider:
    """JWT-based authentication provider."""

    def __init__(
        self,
        secret_key: str = settings.jwt_secret_key,
        algorithm: str = settings.jwt_algorithm,
        expire_minutes: int = settings.jwt_expire_minutes,
    ) -> None:
        self._secret_key = secret_key
        self._algorithm = algorithm
        self._expire_minutes = expire_minutes

    async def validate_token(self, token: str) -> Optional[TokenUser]:
        """
        Validate a JWT and extract the identity it carries.

        Args:
            token: The JWT to validate

        Returns:
            TokenUser if valid, None if invalid, expired or incomplete
        """
        try:
            header = jwt.get_unverified_header(token)
            if header.get("alg") == "ES256":
                payload = await self._validate_es256(token, header)
            else:
                payload = jwt.decode(
                    token,
                    self._secret_key,
                    algorithms=[self._algorithm],
                    options={"verify_aud": False},
                )
        except JWTError:
            return None

        if payload is None:
            return None

        subject = payload.get("sub")
        email = payload.get("email")
        if not subject or not email:
            return None

        metadata = payload.get("user_metadata") or {}
        display_name = (
            metadata.get("full_name") or metadata.get("display_name") or metadata.get("name")
        )
        return TokenUser(external_id=str(subject), email=email, display_name=display_name)

    async def _validate_es256(self, token: str, header: dict) -> Optional[dict]:
        kid = header.get("kid")
        if not kid:
            return None

        key_data = (await _get_jwks_keys()).get(kid)
        if not key_data:
            # Unknown kid: the provider may have rotated keys.
            refreshed = await _refetch_jwks_keys()
            key_data = refreshed.get(kid) if refreshed is not None else None
            if not key_data:
                logger.warning("jwks_key_not_found", kid=kid, refetched=refreshed is not None)
                return None

        return jwt.decode(
            token,
            ECKey(key_data, algorithm="ES256"),
            algorithms=["ES256"],
            options={"verify_aud": False},
        )

    def create_token(self, user: TokenUser) -> str:
        """
        Create an HS256 token for a user (tests and local development).

        Args:
            user: The user to create a token for

        Returns:
            The generated JWT string
        """
        payload: dict = {
            "sub": user.external_id,
            "email": user.email,
            "aud": "authenticated",
            "exp": utcnow() + timedelta(minutes=self._expire_minutes),
            "user_metadata": {"full_name": user.display_name},
        }
        return jwt.encode(payload, self._secret_key, algorithm=self._algorithm)
