import pytest
from httpx import AsyncClient

from kublade.core.database.entities.users import Role
from kublade.core.database.repositories import RoleRepository, UserRepository

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio

NEW_USER = {
    "name": "Sam",
    "email": "sam@example.com",
    "password": "secret-password",
    "password_confirmation": "secret-password",
}


async def test_list_users(client: AsyncClient, owner, member, auth_headers):
    response = await client.get("/api/users", headers=await auth_headers(owner))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Users retrieved"
    assert [u["email"] for u in body["data"]["users"]] == [owner.email, member.email]
    assert body["data"]["links"] == {"next": None, "prev": None}


async def test_add_user_with_roles_and_permissions(client: AsyncClient, session, owner, auth_headers):
    role = await RoleRepository(session).create(Role(name="editors"))

    response = await client.post(
        "/api/users",
        json={**NEW_USER, "roles": [role.id], "permissions": ["projects.view"]},
        headers=await auth_headers(owner),
    )

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "User created"
    assert body["data"]["roles"] == ["editors"]
    assert body["data"]["permissions"] == ["projects.view"]


async def test_add_user_with_unknown_role(client: AsyncClient, owner, auth_headers):
    response = await client.post("/api/users", json={**NEW_USER, "roles": [999]}, headers=await auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["data"] == {"roles": ["Role 999 does not exist."]}


async def test_add_user_password_mismatch(client: AsyncClient, owner, auth_headers):
    payload = {**NEW_USER, "password_confirmation": "different-password"}

    response = await client.post("/api/users", json=payload, headers=await auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["message"] == "Validation failed"


async def test_add_user_duplicate_email(client: AsyncClient, owner, member, auth_headers):
    response = await client.post(
        "/api/users", json={**NEW_USER, "email": member.email}, headers=await auth_headers(owner)
    )

    assert response.status_code == 400
    assert response.json()["data"] == {"email": ["The email has already been taken."]}


async def test_update_user(client: AsyncClient, owner, member, auth_headers):
    response = await client.patch(
        f"/api/users/{member.id}",
        json={"name": "Renamed", "permissions": ["templates.view"]},
        headers=await auth_headers(owner),
    )

    assert response.status_code == 200
    assert response.json()["message"] == "User updated"
    assert response.json()["data"]["name"] == "Renamed"
    assert response.json()["data"]["permissions"] == ["templates.view"]


async def test_get_missing_user(client: AsyncClient, owner, auth_headers):
    response = await client.get("/api/users/999", headers=await auth_headers(owner))

    assert response.status_code == 404
    assert response.json() == {"status": "error", "message": "User not found"}


async def test_delete_user(client: AsyncClient, session, owner, member, auth_headers):
    response = await client.delete(f"/api/users/{member.id}", headers=await auth_headers(owner))

    assert response.status_code == 200
    assert response.json()["message"] == "User deleted"
    assert response.json()["data"]["email"] == member.email
    assert await UserRepository(session).get_by_id(member.id) is None


async def test_cannot_delete_self(client: AsyncClient, owner, auth_headers):
    response = await client.delete(f"/api/users/{owner.id}", headers=await auth_headers(owner))

    assert response.status_code == 400
    assert response.json() == {"status": "error", "message": "User not deleted"}


async def test_member_needs_permission(client: AsyncClient, member, auth_headers, grant):
    headers = await auth_headers(member)
    assert (await client.get("/api/users", headers=headers)).status_code == 401

    await grant(member, "users.view")
    assert (await client.get("/api/users", headers=headers)).status_code == 200
