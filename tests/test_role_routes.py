"""HTTP tests covering the role store routes."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient

pytestmark = pytest.mark.asyncio


async def _create_role(client: AsyncClient, **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "roleKey": "sales_manager",
        "name": "Sales Manager",
        "description": "Owns the pipeline",
        "permissions": ["leads:*", "contacts:read"],
        "isSystemRole": False,
    }
    payload.update(overrides)
    response = await client.post("/roles/", json=payload)
    assert response.status_code == 201, response.text
    return response.json()


async def test_create_role_normalizes_permissions(async_client: AsyncClient) -> None:
    role = await _create_role(
        async_client,
        permissions=[
            "contacts:read",
            "leads:read",
            "leads:create",
            "leads:update",
            "leads:delete",
            "ghost:read",
            "calls:delete",
        ],
    )

    assert role["roleKey"] == "sales_manager"
    assert role["name"] == "Sales Manager"
    assert role["permissions"] == ["leads:*", "contacts:read"]
    assert role["isSystemRole"] is False
    assert role["id"]
    assert "createdAt" in role and "updatedAt" in role


async def test_create_super_admin_role(async_client: AsyncClient) -> None:
    role = await _create_role(
        async_client,
        roleKey="super_admin",
        name="Super Admin",
        permissions=["leads:read", "*"],
        isSystemRole=True,
    )

    assert role["permissions"] == ["*"]
    assert role["isSystemRole"] is True


async def test_padded_wildcard_does_not_make_super_admin(async_client: AsyncClient) -> None:
    role = await _create_role(async_client, permissions=[" * ", "leads:read"])

    assert role["permissions"] == ["leads:read"]


async def test_create_role_rejects_duplicate_key(async_client: AsyncClient) -> None:
    await _create_role(async_client)

    response = await async_client.post(
        "/roles/",
        json={"roleKey": "sales_manager", "name": "Other", "permissions": ["leads:read"]},
    )

    assert response.status_code == 409


async def test_create_role_validation_errors(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/roles/",
        json={"roleKey": "", "name": "  ", "permissions": ["ghost:read"]},
    )

    assert response.status_code == 400
    assert response.json() == {
        "roleKey": "Key is required",
        "name": "Name is required",
        "permissions": "At least one permission is required",
    }

    listing = await async_client.get("/roles/")
    assert listing.json() == []


async def test_create_role_rejects_malformed_key(async_client: AsyncClient) -> None:
    response = await async_client.post(
        "/roles/",
        json={"roleKey": "sales manager!", "name": "Sales", "permissions": ["leads:read"]},
    )

    assert response.status_code == 400
    assert "roleKey" in response.json()


async def test_get_role_and_matrix(async_client: AsyncClient) -> None:
    await _create_role(async_client, permissions=["leads:*", "calls:read"])

    response = await async_client.get("/roles/sales_manager")
    assert response.status_code == 200, response.text
    assert response.json()["permissions"] == ["leads:*", "calls:read"]

    response = await async_client.get("/roles/sales_manager/matrix")
    assert response.status_code == 200, response.text
    rows = {row["key"]: row for row in response.json()["modules"]}
    assert rows["leads"]["state"] == "full"
    assert rows["calls"]["granted"] == ["read"]
    assert rows["calls"]["state"] == "partial"


async def test_missing_role_returns_404(async_client: AsyncClient) -> None:
    assert (await async_client.get("/roles/nobody")).status_code == 404
    assert (await async_client.get("/roles/nobody/matrix")).status_code == 404
    response = await async_client.put(
        "/roles/nobody",
        json={"name": "Nobody", "permissions": ["leads:read"]},
    )
    assert response.status_code == 404
    assert (await async_client.delete("/roles/nobody")).status_code == 404


async def test_replace_role_keeps_key(async_client: AsyncClient) -> None:
    created = await _create_role(async_client)

    response = await async_client.put(
        "/roles/sales_manager",
        json={
            "roleKey": "ignored",
            "name": "Head of Sales",
            "description": None,
            "permissions": ["leads:read", "opportunities:*"],
            "isSystemRole": True,
        },
    )

    assert response.status_code == 200, response.text
    role = response.json()
    assert role["id"] == created["id"]
    assert role["roleKey"] == "sales_manager"
    assert role["name"] == "Head of Sales"
    assert role["description"] is None
    assert role["permissions"] == ["leads:read", "opportunities:*"]
    assert role["isSystemRole"] is True
    assert (await async_client.get("/roles/ignored")).status_code == 404


async def test_replace_role_cannot_clear_permissions(async_client: AsyncClient) -> None:
    await _create_role(async_client)

    response = await async_client.put(
        "/roles/sales_manager",
        json={"name": "Sales Manager", "permissions": []},
    )

    assert response.status_code == 400
    assert response.json() == {"permissions": "At least one permission is required"}
    stored = await async_client.get("/roles/sales_manager")
    assert stored.json()["permissions"] == ["leads:*", "contacts:read"]


async def test_delete_role(async_client: AsyncClient) -> None:
    await _create_role(async_client)

    response = await async_client.delete("/roles/sales_manager")

    assert response.status_code == 204
    assert (await async_client.get("/roles/sales_manager")).status_code == 404


async def test_list_roles_filters_system_roles(async_client: AsyncClient) -> None:
    await _create_role(async_client)
    await _create_role(async_client, roleKey="admin", name="Admin", permissions=["*"], isSystemRole=True)

    all_roles = (await async_client.get("/roles/")).json()
    assert [r["roleKey"] for r in all_roles] == ["admin", "sales_manager"]

    system = (await async_client.get("/roles/", params={"is_system_role": True})).json()
    assert [r["roleKey"] for r in system] == ["admin"]

    custom = (await async_client.get("/roles/", params={"is_system_role": False})).json()
    assert [r["roleKey"] for r in custom] == ["sales_manager"]


async def test_writes_are_audited(async_client: AsyncClient) -> None:
    await _create_role(async_client)
    await async_client.put(
        "/roles/sales_manager",
        json={"name": "Sales Manager", "permissions": ["leads:read", "contacts:read"]},
    )
    await async_client.delete("/roles/sales_manager")

    response = await async_client.get("/roles/audit-logs")

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["total"] == 3
    assert payload["page"] == 1
    actions = {entry["action"]: entry for entry in payload["items"]}
    assert set(actions) == {"create", "update", "delete"}
    assert all(entry["resourceId"] == "sales_manager" for entry in payload["items"])
    assert actions["create"]["details"]["permissions"] == ["leads:*", "contacts:read"]
    assert actions["update"]["details"]["granted"] == ["leads:read"]
    assert actions["update"]["details"]["revoked"] == ["leads:*"]

    filtered = (await async_client.get("/roles/audit-logs", params={"action": "delete"})).json()
    assert filtered["total"] == 1
    assert filtered["items"][0]["action"] == "delete"
