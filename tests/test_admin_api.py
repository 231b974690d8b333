"""Admin API tests — GET /api/admin/users."""

import pytest

from tasktrack.client import auth_headers


@pytest.mark.asyncio
async def test_admin_users_requires_token(client):
    r = await client.get("/api/admin/users")
    assert r.status_code == 401


@pytest.mark.asyncio
async def test_admin_users_forbidden_for_regular_user(client, make_user):
    user = await make_user("alice")
    r = await client.get("/api/admin/users", headers=auth_headers(user["token"]))
    assert r.status_code == 403
    assert r.json()["error"] == "Forbidden"


@pytest.mark.asyncio
async def test_admin_users_lists_regular_users_with_todos(client, make_user):
    alice = await make_user("alice")
    bob = await make_user("bob")
    admin = await make_user("root", role="admin")

    for text in ("one", "two"):
        await client.post("/api/todos", json={"text": text}, headers=auth_headers(alice["token"]))
    await client.post("/api/todos", json={"text": "admin's own"}, headers=auth_headers(admin["token"]))

    r = await client.get("/api/admin/users", headers=auth_headers(admin["token"]))
    assert r.status_code == 200
    users = {u["username"]: u for u in r.json()}

    # Admins themselves are not listed
    assert set(users) == {"alice", "bob"}

    assert users["alice"]["email"] == alice["user"]["email"]
    assert [t["text"] for t in users["alice"]["todos"]] == ["two", "one"]
    assert users["bob"]["id"] == bob["user"]["id"]
    assert users["bob"]["todos"] == []

    for u in users.values():
        assert "password_hash" not in u
        assert "password" not in u
