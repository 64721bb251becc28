"""API tests for admin user management."""

from medidiagnose.core.security import verify_password
from medidiagnose.models.enums import UserRole
from medidiagnose.models.user import User

USERS = "/api/v1/admin/users"


async def test_list_users_filters(client, admin_headers, make_user):
    await make_user("active@example.com")
    await make_user("suspended@example.com", is_active=False)
    await make_user("doc@example.com", UserRole.DOCTOR, full_name="Doctor Strange")

    suspended = await client.get(USERS, headers=admin_headers, params={"status": "Suspended"})
    assert [u["email"] for u in suspended.json()["users"]] == ["suspended@example.com"]

    active = await client.get(USERS, headers=admin_headers, params={"status": "Active"})
    assert active.json()["pagination"]["total"] == 3

    doctors = await client.get(USERS, headers=admin_headers, params={"role": "Doctor"})
    emails = {u["email"] for u in doctors.json()["users"]}
    assert "doc@example.com" in emails

    search = await client.get(USERS, headers=admin_headers, params={"search": "strange"})
    assert [u["email"] for u in search.json()["users"]] == ["doc@example.com"]


async def test_list_users_rejects_large_page(client, admin_headers):
    response = await client.get(USERS, headers=admin_headers, params={"limit": 500})
    assert response.status_code == 400


async def test_user_payload_has_no_password(client, admin_headers, admin_user):
    response = await client.get(f"{USERS}/{admin_user.id}", headers=admin_headers)

    assert response.status_code == 200
    user = response.json()["user"]
    assert "password" not in user
    assert user["role"] == "Administrator"


async def test_get_unknown_user(client, admin_headers):
    response = await client.get(f"{USERS}/9999", headers=admin_headers)

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "USER_NOT_FOUND"


async def test_create_user(client, admin_headers, admin_user, session_factory):
    response = await client.post(
        USERS,
        headers=admin_headers,
        json={"email": "Nurse@Example.com", "password": "secret123", "role": "Staff"},
    )

    assert response.status_code == 201
    body = response.json()
    assert body["message"] == "User created successfully"
    created = body["user"]
    assert created["email"] == "nurse@example.com"
    assert created["is_active"] is True
    assert created["is_staff"] is True
    assert created["is_superuser"] is False
    assert created["created_by"] == admin_user.id

    duplicate = await client.post(
        USERS,
        headers=admin_headers,
        json={"email": "nurse@example.com", "password": "secret123"},
    )
    assert duplicate.status_code == 409


async def test_update_user(client, admin_headers, make_user):
    user = await make_user("change@example.com")
    await make_user("taken@example.com")

    clash = await client.patch(
        f"{USERS}/{user.id}", headers=admin_headers, json={"email": "taken@example.com"}
    )
    assert clash.status_code == 409

    noop = await client.patch(f"{USERS}/{user.id}", headers=admin_headers, json={})
    assert noop.json()["message"] == "No changes"

    response = await client.patch(
        f"{USERS}/{user.id}",
        headers=admin_headers,
        json={"full_name": "Changed", "role": "Doctor"},
    )
    assert response.status_code == 200
    updated = response.json()["user"]
    assert updated["full_name"] == "Changed"
    assert updated["role"] == "Doctor"
    assert updated["is_staff"] is True


async def test_suspend_user(client, admin_headers, make_user):
    user = await make_user()

    response = await client.patch(
        f"{USERS}/{user.id}/status", headers=admin_headers, json={"is_active": False}
    )

    assert response.status_code == 200
    assert response.json()["user"]["is_active"] is False


async def test_replace_roles_and_permissions(client, admin_headers, make_user):
    user = await make_user()
    perm = (await client.post("/api/v1/admin/permissions", headers=admin_headers, json={"name": "scans:read"})).json()
    role = (
        await client.post(
            "/api/v1/admin/roles",
            headers=admin_headers,
            json={"name": "Reader", "permission_ids": [perm["id"]]},
        )
    ).json()

    roles = await client.patch(
        f"{USERS}/{user.id}/roles", headers=admin_headers, json={"role_ids": [role["id"]]}
    )
    assert roles.json()["user"]["role_ids"] == [role["id"]]

    perms = await client.patch(
        f"{USERS}/{user.id}/permissions",
        headers=admin_headers,
        json={"permission_ids": [perm["id"]]},
    )
    assert perms.json()["user"]["permission_ids"] == [perm["id"]]

    missing = await client.patch(
        f"{USERS}/{user.id}/roles", headers=admin_headers, json={"role_ids": [role["id"], 404]}
    )
    assert missing.status_code == 404
    assert missing.json()["error"]["details"]["missing_ids"] == [404]


async def test_reset_password(client, admin_headers, make_user, session_factory):
    user = await make_user()
    user_id = user.id

    response = await client.post(
        f"{USERS}/{user_id}/reset-password",
        headers=admin_headers,
        json={"newPassword": "brand-new-pass"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Password reset successfully"
    async with session_factory() as session:
        stored = await session.get(User, user_id)
        assert verify_password("brand-new-pass", stored.password)
        assert stored.password_reset_at is not None


async def test_delete_user(client, admin_headers, make_user, session_factory):
    user = await make_user()
    user_id = user.id

    response = await client.delete(f"{USERS}/{user_id}", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["message"] == "User deleted successfully"
    async with session_factory() as session:
        assert await session.get(User, user_id) is None


async def test_superuser_cannot_be_deleted(client, doctor_headers, make_user, session_factory):
    root = await make_user("root@example.com", UserRole.ADMINISTRATOR)
    root_id = root.id

    response = await client.delete(f"{USERS}/{root_id}", headers=doctor_headers)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "SUPERUSER_PROTECTED"
    async with session_factory() as session:
        assert (await session.get(User, root_id)).email == "root@example.com"


async def test_staff_cannot_demote_then_delete_superuser(
    client, doctor_headers, make_user, session_factory
):
    root = await make_user("root@example.com", UserRole.ADMINISTRATOR)
    root_id = root.id

    demote = await client.patch(f"{USERS}/{root_id}", headers=doctor_headers, json={"role": "Patient"})
    assert demote.status_code == 403
    assert demote.json()["error"]["code"] == "SUPERUSER_PROTECTED"

    delete = await client.delete(f"{USERS}/{root_id}", headers=doctor_headers)
    assert delete.status_code == 403

    async with session_factory() as session:
        stored = await session.get(User, root_id)
        assert stored is not None
        assert stored.is_superuser is True


async def test_staff_cannot_touch_superuser_account(client, doctor_headers, make_user):
    root = await make_user("root@example.com", UserRole.ADMINISTRATOR)

    reset = await client.post(
        f"{USERS}/{root.id}/reset-password",
        headers=doctor_headers,
        json={"newPassword": "taken-over-1"},
    )
    suspend = await client.patch(
        f"{USERS}/{root.id}/status", headers=doctor_headers, json={"is_active": False}
    )

    assert reset.status_code == 403
    assert suspend.status_code == 403


async def test_staff_cannot_create_administrator(client, doctor_headers):
    response = await client.post(
        USERS,
        headers=doctor_headers,
        json={"email": "boss@example.com", "password": "secret123", "role": "Administrator"},
    )

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "SUPERUSER_PROTECTED"


async def test_superuser_can_demote_then_delete_superuser(
    client, admin_headers, make_user, session_factory
):
    other = await make_user("second-admin@example.com", UserRole.ADMINISTRATOR)
    other_id = other.id

    demote = await client.patch(f"{USERS}/{other_id}", headers=admin_headers, json={"role": "Doctor"})
    assert demote.status_code == 200
    assert demote.json()["user"]["is_superuser"] is False

    delete = await client.delete(f"{USERS}/{other_id}", headers=admin_headers)
    assert delete.status_code == 200
    async with session_factory() as session:
        assert await session.get(User, other_id) is None


async def test_cannot_delete_self(client, doctor_headers, doctor_user):
    response = await client.delete(f"{USERS}/{doctor_user.id}", headers=doctor_headers)

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "SELF_DELETE"


async def test_superuser_changes_follow_token_capability(client, doctor_user, make_user, headers_for):
    root = await make_user("root@example.com", UserRole.ADMINISTRATOR)
    headers = headers_for(
        doctor_user, capabilities=["admin:access", "admin:manage_users", "clinical:read"]
    )

    response = await client.patch(
        f"{USERS}/{root.id}/status", headers=headers, json={"is_active": False}
    )

    assert response.status_code == 200
    assert response.json()["user"]["is_active"] is False
