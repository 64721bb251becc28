"""API tests for the admin dashboard, probe and activity log."""

import pytest

from medidiagnose.models.enums import UserRole


@pytest.mark.parametrize(
    "path",
    ["/api/v1/admin", "/api/v1/admin/dashboard-stats", "/api/v1/admin/logs", "/api/v1/admin/users"],
)
async def test_patient_token_forbidden(client, patient_headers, path):
    response = await client.get(path, headers=patient_headers)

    assert response.status_code == 403
    assert response.json()["error"]["code"] == "STAFF_REQUIRED"


async def test_missing_token_unauthorized(client):
    response = await client.get("/api/v1/admin")
    assert response.status_code == 401


async def test_probe_echoes_claims(client, doctor_headers, doctor_user):
    response = await client.get("/api/v1/admin", headers=doctor_headers)

    assert response.status_code == 200
    user = response.json()["user"]
    assert user["user_id"] == doctor_user.id
    assert user["is_staff"] is True


async def test_flags_come_from_token(client, patient_user, headers_for):
    response = await client.get("/api/v1/admin", headers=headers_for(patient_user, is_staff=True))
    assert response.status_code == 200


async def test_dashboard_stats(client, admin_headers, make_user, make_record):
    await make_user(role=UserRole.DOCTOR)
    await make_user(role=UserRole.DOCTOR, is_active=False)
    patient = await make_user()
    await make_record(patient, diagnosis="Abnormal rhythm")
    await make_record(patient, diagnosis="Normal")
    await make_record(patient)

    response = await client.get("/api/v1/admin/dashboard-stats", headers=admin_headers)

    assert response.status_code == 200
    stats = response.json()
    assert stats["total_scans"] == 3
    assert stats["total_users"] == 4
    # Admin counts too: superusers carry the staff flag.
    assert stats["active_doctors"] == 2
    assert stats["abnormal_rate"] == 33.3
    assert stats["system_uptime_seconds"] >= 0


async def test_activity_log_paginates_and_filters(client, admin_headers, make_user, make_record):
    patient = await make_user("logme@example.com")
    await make_record(patient, diagnosis="Clear")

    response = await client.get("/api/v1/admin/logs", headers=admin_headers, params={"limit": 2})

    assert response.status_code == 200
    body = response.json()
    assert len(body["logs"]) == 2
    assert body["pagination"]["total"] == 4
    assert body["pagination"]["has_next"] is True

    scans = await client.get(
        "/api/v1/admin/logs",
        headers=admin_headers,
        params={"action_type": "uploaded_scan"},
    )
    assert [e["action_type"] for e in scans.json()["logs"]] == ["uploaded_scan"]

    searched = await client.get(
        "/api/v1/admin/logs",
        headers=admin_headers,
        params={"user_search": "logme", "action_type": "all"},
    )
    assert {e["user_email"] for e in searched.json()["logs"]} == {"logme@example.com"}


async def test_activity_log_rejects_unknown_action_type(client, admin_headers):
    response = await client.get(
        "/api/v1/admin/logs", headers=admin_headers, params={"action_type": "teleport"}
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_action_types(client, admin_headers):
    response = await client.get("/api/v1/admin/logs/action-types", headers=admin_headers)

    values = [t["value"] for t in response.json()["action_types"]]
    assert "login" in values
    assert {"value": "uploaded_scan", "label": "Uploaded Scan"} in response.json()["action_types"]
