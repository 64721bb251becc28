"""API tests for permission and role management."""

PERMISSIONS = "/api/v1/admin/permissions"
ROLES = "/api/v1/admin/roles"


async def test_create_and_list_permissions(client, admin_headers):
    created = await client.post(
        PERMISSIONS, headers=admin_headers, json={"name": "x", "description": "Example"}
    )

    assert created.status_code == 201
    assert created.json()["name"] == "x"

    duplicate = await client.post(PERMISSIONS, headers=admin_headers, json={"name": "x"})
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["code"] == "PERMISSION_ALREADY_EXISTS"

    listed = await client.get(PERMISSIONS, headers=admin_headers)
    assert [p["name"] for p in listed.json()["permissions"]] == ["x"]


async def test_create_role_with_permissions(client, admin_headers):
    read = (await client.post(PERMISSIONS, headers=admin_headers, json={"name": "read"})).json()
    write = (await client.post(PERMISSIONS, headers=admin_headers, json={"name": "write"})).json()

    created = await client.post(
        ROLES,
        headers=admin_headers,
        json={"name": "Editor", "permission_ids": [write["id"], read["id"]]},
    )

    assert created.status_code == 201
    assert created.json()["permission_ids"] == sorted([read["id"], write["id"]])

    duplicate = await client.post(ROLES, headers=admin_headers, json={"name": "Editor"})
    assert duplicate.status_code == 409

    listed = await client.get(ROLES, headers=admin_headers)
    assert [r["name"] for r in listed.json()["roles"]] == ["Editor"]


async def test_role_with_unknown_permission(client, admin_headers):
    response = await client.post(
        ROLES, headers=admin_headers, json={"name": "Broken", "permission_ids": [77]}
    )

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "PERMISSION_NOT_FOUND"


async def test_access_control_requires_staff(client, patient_headers):
    response = await client.post(PERMISSIONS, headers=patient_headers, json={"name": "y"})
    assert response.status_code == 403
