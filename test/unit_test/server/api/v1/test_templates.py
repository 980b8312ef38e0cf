import pytest
from httpx import AsyncClient

from kublade.core.database.entities.templates import (
    Template,
    TemplateDirectory,
    TemplateField,
    TemplateFieldOption,
    TemplateFile,
    TemplatePort,
)
from kublade.core.database.repositories import TemplateRepository

# Mark all tests in this module as async
pytestmark = pytest.mark.asyncio

GIT_SOURCE = {
    "url": "https://git.example.com/org/templates",
    "branch": "main",
    "credentials": "deploy:secret",
    "username": "Kublade",
    "email": "bot@example.com",
    "base_path": "/nginx",
}


async def test_add_template_with_git_source(client: AsyncClient, owner, auth_headers):
    response = await client.post(
        "/api/templates", json={"name": "Nginx", "git_credentials": GIT_SOURCE}, headers=await auth_headers(owner)
    )

    assert response.status_code == 201
    template = response.json()["data"]["template"]
    assert template["name"] == "Nginx"
    assert template["git_credentials"]["url"] == GIT_SOURCE["url"]
    assert "credentials" not in template["git_credentials"]
    assert template["git_credentials"]["synced_at"] is None


async def test_update_detaches_git_source(client: AsyncClient, session, owner, auth_headers):
    templates = TemplateRepository(session)
    template = await templates.create(Template(user_id=owner.id, name="Nginx"))
    await templates.save_git_credentials(template.id, GIT_SOURCE)
    headers = await auth_headers(owner)

    renamed = await client.patch(f"/api/templates/{template.id}", json={"name": "Web"}, headers=headers)
    assert renamed.json()["data"]["template"]["git_credentials"] is not None

    detached = await client.patch(f"/api/templates/{template.id}", json={"git_credentials": None}, headers=headers)
    assert detached.status_code == 200
    assert detached.json()["message"] == "Template updated successfully"
    assert detached.json()["data"]["template"]["name"] == "Web"
    assert detached.json()["data"]["template"]["git_credentials"] is None


async def test_list_and_delete_templates(client: AsyncClient, session, owner, auth_headers):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    headers = await auth_headers(owner)

    listed = await client.get("/api/templates", headers=headers)
    assert listed.json()["message"] == "Templates retrieved successfully"
    assert [t["id"] for t in listed.json()["data"]["templates"]] == [template.id]

    deleted = await client.delete(f"/api/templates/{template.id}", headers=headers)
    assert deleted.json() == {"status": "success", "message": "Template deleted successfully"}

    missing = await client.get(f"/api/templates/{template.id}", headers=headers)
    assert missing.status_code == 404
    assert missing.json()["message"] == "Template not found"


async def test_template_tree_fields_and_ports(client: AsyncClient, session, owner, auth_headers):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    folder = TemplateDirectory(template_id=template.id, name="manifests")
    field = TemplateField(template_id=template.id, type="select", label="Size", key="size")
    session.add_all([folder, field])
    await session.flush()
    file = TemplateFile(
        template_id=template.id, template_directory_id=folder.id, name="deploy.yaml", mime_type="text/yaml"
    )
    option = TemplateFieldOption(template_field_id=field.id, label="Small", value="s", default=True)
    port = TemplatePort(template_id=template.id, group="web", claim="http", preferred_port=8080)
    session.add_all([file, option, port])
    await session.commit()
    headers = await auth_headers(owner)
    base = f"/api/templates/{template.id}"

    folders = await client.get(f"{base}/folders", headers=headers)
    assert [f["name"] for f in folders.json()["data"]["folders"]] == ["manifests"]

    fetched_file = await client.get(f"{base}/files/{file.id}", headers=headers)
    assert fetched_file.json()["data"]["file"]["template_directory_id"] == folder.id

    fields = await client.get(f"{base}/fields", headers=headers)
    assert fields.json()["data"]["fields"][0]["options"][0]["value"] == "s"

    ports = await client.get(f"{base}/ports/{port.id}", headers=headers)
    assert ports.json()["data"]["port"]["preferred_port"] == 8080


async def test_child_of_other_template_is_not_found(client: AsyncClient, session, owner, auth_headers):
    templates = TemplateRepository(session)
    first = await templates.create(Template(user_id=owner.id, name="A"))
    second = await templates.create(Template(user_id=owner.id, name="B"))
    file = TemplateFile(template_id=second.id, name="x.yaml")
    session.add(file)
    await session.commit()

    response = await client.get(f"/api/templates/{first.id}/files/{file.id}", headers=await auth_headers(owner))

    assert response.status_code == 404
    assert response.json()["message"] == "File not found"


async def test_nested_permission_is_bound_to_template(client: AsyncClient, session, owner, member, auth_headers, grant):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    await grant(member, f"templates.{template.id}.fields.*")
    headers = await auth_headers(member)

    assert (await client.get(f"/api/templates/{template.id}/fields", headers=headers)).status_code == 200
    assert (await client.get(f"/api/templates/{template.id}/ports", headers=headers)).status_code == 401


async def test_folder_lifecycle_trashes_subtree(client: AsyncClient, session, owner, auth_headers):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    headers = await auth_headers(owner)
    base = f"/api/templates/{template.id}"

    added = await client.post(f"{base}/folders", json={"name": "manifests"}, headers=headers)
    assert added.status_code == 201
    assert added.json()["message"] == "Folder added successfully"
    parent = added.json()["data"]["folder"]

    child = await client.post(f"{base}/folders", json={"name": "web", "parent_id": parent["id"]}, headers=headers)
    child_id = child.json()["data"]["folder"]["id"]
    file = await client.post(
        f"{base}/files",
        json={"name": "deploy.yaml", "mime_type": "text/yaml", "template_directory_id": child_id},
        headers=headers,
    )
    file_id = file.json()["data"]["file"]["id"]

    renamed = await client.patch(f"{base}/folders/{parent['id']}", json={"name": "k8s"}, headers=headers)
    assert renamed.json()["data"]["folder"]["name"] == "k8s"

    below_itself = await client.patch(
        f"{base}/folders/{parent['id']}", json={"name": "k8s", "parent_id": child_id}, headers=headers
    )
    assert below_itself.status_code == 400
    assert below_itself.json()["data"] == {"parent_id": ["A folder cannot be moved below itself."]}

    deleted = await client.delete(f"{base}/folders/{parent['id']}", headers=headers)
    assert deleted.json() == {"status": "success", "message": "Folder deleted successfully"}

    assert (await client.get(f"{base}/folders/{child_id}", headers=headers)).status_code == 404
    assert (await client.get(f"{base}/files/{file_id}", headers=headers)).status_code == 404


async def test_file_write_endpoints(client: AsyncClient, session, owner, auth_headers):
    templates = TemplateRepository(session)
    template = await templates.create(Template(user_id=owner.id, name="Nginx"))
    other = await templates.create(Template(user_id=owner.id, name="Other"))
    foreign_folder = TemplateDirectory(template_id=other.id, name="elsewhere")
    session.add(foreign_folder)
    await session.commit()
    headers = await auth_headers(owner)
    base = f"/api/templates/{template.id}"

    rejected = await client.post(
        f"{base}/files",
        json={"name": "a.yaml", "mime_type": "text/yaml", "template_directory_id": foreign_folder.id},
        headers=headers,
    )
    assert rejected.status_code == 400
    assert rejected.json()["data"] == {"template_directory_id": ["The selected template directory id is invalid."]}

    added = await client.post(
        f"{base}/files", json={"name": "a.yaml", "mime_type": "text/yaml", "content": "kind: Service"}, headers=headers
    )
    assert added.status_code == 201
    file_id = added.json()["data"]["file"]["id"]

    renamed = await client.patch(
        f"{base}/files/{file_id}", json={"name": "svc.yaml", "mime_type": "text/yaml"}, headers=headers
    )
    assert renamed.json()["message"] == "File updated successfully"
    assert renamed.json()["data"]["file"]["name"] == "svc.yaml"
    assert renamed.json()["data"]["file"]["content"] == "kind: Service"

    deleted = await client.delete(f"{base}/files/{file_id}", headers=headers)
    assert deleted.json()["message"] == "File deleted successfully"
    assert (await client.get(f"{base}/files", headers=headers)).json()["data"]["files"] == []


async def test_field_and_option_write_endpoints(client: AsyncClient, session, owner, auth_headers):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    headers = await auth_headers(owner)
    base = f"/api/templates/{template.id}"

    incomplete = await client.post(
        f"{base}/fields",
        json={"type": "input_range", "label": "Replicas", "key": "replicas", "min": 1, "max": 5},
        headers=headers,
    )
    assert incomplete.status_code == 400
    assert incomplete.json()["message"] == "Validation failed"

    added = await client.post(
        f"{base}/fields",
        json={"type": "input_range", "label": "Replicas", "key": "replicas", "min": 1, "max": 5, "step": 1},
        headers=headers,
    )
    assert added.status_code == 201
    field = added.json()["data"]["field"]
    assert (field["min"], field["max"], field["step"]) == (1, 5, 1)

    changed = await client.patch(
        f"{base}/fields/{field['id']}", json={"type": "select", "label": "Size", "key": "size"}, headers=headers
    )
    assert changed.json()["data"]["field"]["type"] == "select"
    assert changed.json()["data"]["field"]["min"] is None

    options_url = f"{base}/fields/{field['id']}/options"
    small = await client.post(options_url, json={"label": "Small", "value": "s", "default": True}, headers=headers)
    assert small.status_code == 201
    large = await client.post(options_url, json={"label": "Large", "value": "l", "default": True}, headers=headers)
    large_id = large.json()["data"]["option"]["id"]

    options = (await client.get(f"{base}/fields/{field['id']}", headers=headers)).json()["data"]["field"]["options"]
    assert {o["label"]: o["default"] for o in options} == {"Large": True, "Small": False}

    updated = await client.patch(f"{options_url}/{large_id}", json={"label": "Large", "value": "xl"}, headers=headers)
    assert updated.json()["data"]["option"]["value"] == "xl"

    removed = await client.delete(f"{options_url}/{large_id}", headers=headers)
    assert removed.json()["message"] == "Option deleted successfully"
    assert (await client.delete(f"{options_url}/{large_id}", headers=headers)).status_code == 404

    deleted = await client.delete(f"{base}/fields/{field['id']}", headers=headers)
    assert deleted.json()["message"] == "Field deleted successfully"
    assert (await client.get(f"{base}/fields", headers=headers)).json()["data"]["fields"] == []
    small_option = await session.get(TemplateFieldOption, small.json()["data"]["option"]["id"])
    assert small_option.deleted_at is not None


async def test_port_write_endpoints(client: AsyncClient, session, owner, auth_headers):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    headers = await auth_headers(owner)
    base = f"/api/templates/{template.id}"

    added = await client.post(f"{base}/ports", json={"group": "web", "claim": "http"}, headers=headers)
    assert added.status_code == 201
    port_id = added.json()["data"]["port"]["id"]

    updated = await client.patch(
        f"{base}/ports/{port_id}", json={"group": "web", "claim": "https", "preferred_port": 8443}, headers=headers
    )
    assert updated.json()["data"]["port"]["claim"] == "https"
    assert updated.json()["data"]["port"]["preferred_port"] == 8443

    out_of_range = await client.patch(
        f"{base}/ports/{port_id}", json={"group": "web", "preferred_port": 70000}, headers=headers
    )
    assert out_of_range.status_code == 400

    deleted = await client.delete(f"{base}/ports/{port_id}", headers=headers)
    assert deleted.json()["message"] == "Port deleted successfully"
    assert (await client.get(f"{base}/ports/{port_id}", headers=headers)).status_code == 404


async def test_write_permissions_are_separate_from_view(
    client: AsyncClient, session, owner, member, auth_headers, grant
):
    template = await TemplateRepository(session).create(Template(user_id=owner.id, name="Nginx"))
    await grant(member, f"templates.{template.id}.ports.view", f"templates.{template.id}.files.add")
    headers = await auth_headers(member)
    base = f"/api/templates/{template.id}"

    assert (await client.get(f"{base}/ports", headers=headers)).status_code == 200
    assert (await client.post(f"{base}/ports", json={"group": "web"}, headers=headers)).status_code == 401
    added = await client.post(f"{base}/files", json={"name": "a.yaml", "mime_type": "text/yaml"}, headers=headers)
    assert added.status_code == 201
