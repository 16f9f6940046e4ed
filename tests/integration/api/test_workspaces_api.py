"""Integration tests for Workspaces and Employees API."""

from collections.abc import Callable
from typing import Any
from uuid import uuid4

import pytest
from httpx import AsyncClient

from core.config import settings
from tests.unit.fakes import FakeIdentityAdmin

HeaderFactory = Callable[..., dict[str, str]]

OWNER = "owner@example.com"
EMPLOYEE = "employee@example.com"


@pytest.fixture
def owner_headers(auth_headers_for: HeaderFactory) -> dict[str, str]:
    return auth_headers_for(OWNER)


@pytest.fixture
async def workspace(client: AsyncClient, owner_headers: dict[str, str]) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/workspaces", json={"name": "Acme"}, headers=owner_headers
    )
    assert response.status_code == 201
    return response.json()  # type: ignore[no-any-return]


@pytest.fixture
async def employee(
    client: AsyncClient,
    owner_headers: dict[str, str],
    workspace: dict[str, Any],
    auth_headers_for: HeaderFactory,
    identity_admin: FakeIdentityAdmin,
) -> tuple[str, dict[str, str]]:
    """Invite and accept an employee; returns (user_id, headers)."""
    created = await client.post(
        "/api/v1/invitations",
        json={"email": EMPLOYEE, "target_role": "employee"},
        headers=owner_headers,
    )
    accepted = await client.post(
        "/api/v1/invitations/accept",
        json={
            "token": created.json()["token"],
            "email": EMPLOYEE,
            "password": "correct-horse-battery",
            "full_name": "Em Ployee",
        },
    )
    assert accepted.status_code == 200
    headers = auth_headers_for(EMPLOYEE, identity_admin.accounts[EMPLOYEE])
    return accepted.json()["user_id"], headers


class TestCreateWorkspace:
    """Tests for POST /workspaces."""

    @pytest.mark.asyncio
    async def test_caller_becomes_admin(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
    ) -> None:
        access = await client.get("/api/v1/me/access", headers=owner_headers)

        assert workspace["name"] == "Acme"
        assert workspace["owner_user_id"] == access.json()["user_id"]
        assert access.json()["role"] == "admin"
        assert access.json()["workspace_id"] == workspace["id"]
        assert access.json()["home"] == "/dashboard"

    @pytest.mark.asyncio
    async def test_second_workspace_conflicts(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
    ) -> None:
        response = await client.post(
            "/api/v1/workspaces", json={"name": "Again"}, headers=owner_headers
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "ALREADY_HAS_ROLE"

    @pytest.mark.asyncio
    async def test_employee_cannot_create_workspace(
        self, client: AsyncClient, employee: tuple[str, dict[str, str]]
    ) -> None:
        _, headers = employee

        response = await client.post("/api/v1/workspaces", json={"name": "Mine"}, headers=headers)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_empty_name_rejected(
        self, client: AsyncClient, owner_headers: dict[str, str]
    ) -> None:
        response = await client.post("/api/v1/workspaces", json={"name": ""}, headers=owner_headers)

        assert response.status_code == 422


class TestGetWorkspace:
    """Tests for GET /workspaces/{id}."""

    @pytest.mark.asyncio
    async def test_admin_reads_own_workspace(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
    ) -> None:
        response = await client.get(f"/api/v1/workspaces/{workspace['id']}", headers=owner_headers)

        assert response.status_code == 200
        assert response.json()["id"] == workspace["id"]

    @pytest.mark.asyncio
    async def test_other_workspace_looks_missing(
        self,
        client: AsyncClient,
        workspace: dict[str, Any],
        auth_headers_for: HeaderFactory,
    ) -> None:
        other = auth_headers_for("other@example.com")
        await client.post("/api/v1/workspaces", json={"name": "Other"}, headers=other)

        existing = await client.get(f"/api/v1/workspaces/{workspace['id']}", headers=other)
        missing = await client.get(f"/api/v1/workspaces/{uuid4()}", headers=other)

        assert existing.status_code == missing.status_code == 404
        assert existing.json()["message"] == missing.json()["message"]

    @pytest.mark.asyncio
    async def test_platform_workspace_hidden_from_admin(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
    ) -> None:
        response = await client.get(
            f"/api/v1/workspaces/{settings.platform_workspace_id}", headers=owner_headers
        )

        assert response.status_code == 404


class TestEmployees:
    """Tests for /workspaces/{id}/employees."""

    @pytest.mark.asyncio
    async def test_update_employee(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
        employee: tuple[str, dict[str, str]],
    ) -> None:
        user_id, _ = employee

        response = await client.patch(
            f"/api/v1/workspaces/{workspace['id']}/employees/{user_id}",
            json={"phone": "555-0100"},
            headers=owner_headers,
        )

        assert response.status_code == 200
        assert response.json()["phone"] == "555-0100"
        assert response.json()["full_name"] == "Em Ployee"

    @pytest.mark.asyncio
    async def test_deactivated_employee_loses_role(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
        employee: tuple[str, dict[str, str]],
    ) -> None:
        user_id, headers = employee

        response = await client.delete(
            f"/api/v1/workspaces/{workspace['id']}/employees/{user_id}", headers=owner_headers
        )

        assert response.status_code == 204
        access = await client.get("/api/v1/me/access", headers=headers)
        assert access.json()["role"] is None
        assert access.json()["home"] == settings.login_path

    @pytest.mark.asyncio
    async def test_employee_cannot_manage_employees(
        self,
        client: AsyncClient,
        workspace: dict[str, Any],
        employee: tuple[str, dict[str, str]],
    ) -> None:
        _, headers = employee

        response = await client.get(f"/api/v1/workspaces/{workspace['id']}/employees", headers=headers)

        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_other_admin_cannot_see_employees(
        self,
        client: AsyncClient,
        workspace: dict[str, Any],
        employee: tuple[str, dict[str, str]],
        auth_headers_for: HeaderFactory,
    ) -> None:
        user_id, _ = employee
        other = auth_headers_for("other@example.com")
        await client.post("/api/v1/workspaces", json={"name": "Other"}, headers=other)

        listing = await client.get(f"/api/v1/workspaces/{workspace['id']}/employees", headers=other)
        update = await client.patch(
            f"/api/v1/workspaces/{workspace['id']}/employees/{user_id}",
            json={"is_active": False},
            headers=other,
        )

        assert listing.status_code == 404
        assert update.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_employee(
        self,
        client: AsyncClient,
        owner_headers: dict[str, str],
        workspace: dict[str, Any],
    ) -> None:
        response = await client.patch(
            f"/api/v1/workspaces/{workspace['id']}/employees/{uuid4()}",
            json={"phone": "1"},
            headers=owner_headers,
        )

        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_platform_staff_listing_is_super_admin_only(
        self, client: AsyncClient, owner_headers: dict[str, str], workspace: dict[str, Any]
    ) -> None:
        response = await client.get("/api/v1/platform/staff", headers=owner_headers)

        assert response.status_code == 403
