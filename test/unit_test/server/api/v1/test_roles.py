import pytest
from httpx import AsyncClient

from kublade.core.database.entities.projects import Project
from kublade.core.database.entities.users import Role
from kublade.core.database.repositories import ProjectRepository, RoleRepository

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio


async def test_role_lifecycle(client: AsyncClient, owner, auth_headers):
    headers = await auth_headers(owner)

    created = await client.post(
        "/api/roles", json={"name": "viewers", "permissions": ["projects.view", "templates.view"]}, headers=headers
    )
    assert created.status_code == 200
    assert created.json()["message"] == "Role created"
    role_id = created.json()["data"]["id"]
    assert created.json()["data"]["permissions"] == ["projects.view", "templates.view"]

    updated = await client.patch(f"/api/roles/{role_id}", json={"permissions": ["projects.*"]}, headers=headers)
    assert updated.json()["message"] == "Role updated"
    assert updated.json()["data"]["permissions"] == ["projects.*"]

    listed = await client.get("/api/roles", headers=headers)
    assert listed.json()["message"] == "Roles retrieved"
    assert listed.json()["data"]["roles"][0]["permissions"] == ["projects.*"]

    deleted = await client.delete(f"/api/roles/{role_id}", headers=headers)
    assert deleted.json()["message"] == "Role deleted"

    missing = await client.get(f"/api/roles/{role_id}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Role not found"


async def test_duplicate_role_name(client: AsyncClient, session, owner, auth_headers):
    await RoleRepository(session).create(Role(name="admins"))

    response = await client.post("/api/roles", json={"name": "admins"}, headers=await auth_headers(owner))

    assert response.status_code == 400
    assert response.json()["data"] == {"name": ["The name has already been taken."]}


async def test_role_grants_reach_members(client: AsyncClient, session, owner, member, auth_headers):
    roles = RoleRepository(session)
    role = await roles.create(Role(name="auditors"))
    await roles.sync_permissions(role, ["roles.view"])
    headers = await auth_headers(member)
    assert (await client.get("/api/roles", headers=headers)).status_code == 401

    await client.patch(f"/api/users/{member.id}", json={"roles": [role.id]}, headers=await auth_headers(owner))

    assert (await client.get("/api/roles", headers=headers)).status_code == 200


async def test_permission_catalogue(client: AsyncClient, session, owner, auth_headers):
    project = await ProjectRepository(session).create(Project(user_id=owner.id, name="Catalogued"))

    response = await client.get("/api/permissions", headers=await auth_headers(owner))

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "Permissions retrieved"
    permissions = body["data"]["permissions"]
    assert permissions[0] == "*"
    assert "users.view" in permissions
    assert "projects.*" in permissions
    assert f"projects.{project.id}.update" in permissions
    assert f"projects.{project.id}.*" in permissions

    tree = body["data"]["tree"]
    assert tree["*"] is None
    assert "projects.*" in tree["projects"]
    assert tree["projects"]["projects.*"]["update"] is None
