"""Identity provider admin client (Supabase GoTrue admin API)."""

from typing import Any

import httpx
import structlog

from core.config import settings
from core.exceptions import IdentityProviderError
from domain.entities.user import normalize_email

logger = structlog.get_logger()

# GoTrue answers 422 with one of these codes when the email is taken.
_EXISTS_CODES = frozenset({"email_exists", "user_already_exists"})
_PAGE_SIZE = 200


class SupabaseIdentityAdmin:
    """Creates and looks up provider accounts with the service role key."""

    def __init__(
        self,
        base_url: str = settings.supabase_url,
        service_role_key: str = settings.supabase_service_role_key,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._service_role_key = service_role_key
        self._timeout = timeout
        self._transport = transport

    async def ensure_account(self, email: str, password: str) -> str:
        """Create a confirmed account, or return the subject id of the existing one."""
        email = normalize_email(email)
        try:
            async with self._client() as client:
                return await self._create_or_find(client, email, password)
        except httpx.HTTPError as e:
            logger.error("identity_provider_unreachable", error=str(e))
            raise IdentityProviderError() from e

    async def _create_or_find(self, client: httpx.AsyncClient, email: str, password: str) -> str:
        response = await client.post(
            "/auth/v1/admin/users",
            json={"email": email, "password": password, "email_confirm": True},
        )
        if response.status_code in (200, 201):
            logger.info("identity_account_created", email_domain=email.split("@")[-1])
            return str(response.json()["id"])

        if self._is_exists_error(response):
            existing = await self._find_account_id(client, email)
            if existing:
                return existing

        logger.error(
            "identity_provider_error",
            status_code=response.status_code,
            body=response.text[:200],
        )
        raise IdentityProviderError()

    async def _find_account_id(self, client: httpx.AsyncClient, email: str) -> str | None:
        page = 1
        while True:
            response = await client.get(
                "/auth/v1/admin/users", params={"page": page, "per_page": _PAGE_SIZE}
            )
            if response.status_code != 200:
                raise IdentityProviderError()
            users: list[dict[str, Any]] = response.json().get("users", [])
            for user in users:
                if normalize_email(user.get("email") or "") == email:
                    return str(user["id"])
            if len(users) < _PAGE_SIZE:
                return None
            page += 1

    @staticmethod
    def _is_exists_error(response: httpx.Response) -> bool:
        if response.status_code != 422:
            return False
        try:
            body = response.json()
        except ValueError:
            return False
        return body.get("error_code") in _EXISTS_CODES or "already" in str(body.get("msg", ""))

    def _client(self) -> httpx.AsyncClient:
        if not self._base_url:
            raise IdentityProviderError("No identity provider is configured")
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
            headers={
                "apikey": self._service_role_key,
                "Authorization": f"Bearer {self._service_role_key}",
            },
        )
