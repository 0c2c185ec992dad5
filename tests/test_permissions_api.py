import pytest

from helpers import ADMIN, STAFF, STUDENT, identity


@pytest.mark.asyncio
async def test_my_permissions_for_student(client):
    res = await client.get("/api/users/permissions/me", headers=STUDENT)
    assert res.status_code == 200

    data = res.json()
    assert data["role"] == "STUDENT"
    assert "submit" in data["permissions"]
    assert "moderate" not in data["permissions"]
    assert data["permissions"] == sorted(data["permissions"])
    details = {d["code"]: d["description"] for d in data["permission_details"]}
    assert details["submit"] == "Submit content"
    assert data["permissions"] == [d["code"] for d in data["permission_details"]]


@pytest.mark.asyncio
async def test_admin_gets_every_permission_but_the_wildcard(client):
    res = await client.get("/api/users/permissions/me", headers=ADMIN)
    data = res.json()
    assert data["role"] == "ADMIN"
    assert "*" not in data["permissions"]
    assert "manage_users" in data["permissions"]
    assert len(data["permissions"]) == 22


@pytest.mark.asyncio
async def test_missing_or_unknown_role_header_is_viewer(client):
    res = await client.get("/api/users/permissions/me")
    assert res.json() == {
        "role": "VIEWER",
        "permissions": ["view_public"],
        "permission_details": [{"code": "view_public", "description": "View public content"}],
    }

    res = await client.get("/api/users/permissions/me", headers=identity(role="superuser"))
    assert res.json()["role"] == "VIEWER"


@pytest.mark.asyncio
async def test_alias_role_header(client):
    res = await client.get("/api/users/permissions/me", headers=identity(role=" personnel "))
    assert res.json()["role"] == "STAFF"


@pytest.mark.asyncio
async def test_check_permission(client):
    res = await client.get("/api/users/permissions/check/MODERATE", headers=STAFF)
    assert res.json() == {"permission": "MODERATE", "has_permission": True, "role": "STAFF"}

    res = await client.get("/api/users/permissions/check/manage_users", headers=STAFF)
    assert res.json()["has_permission"] is False

    res = await client.get("/api/users/permissions/check/teleport", headers=ADMIN)
    assert res.status_code == 200
    assert res.json()["has_permission"] is False
