"""API tests for the patient dashboard."""

from datetime import timedelta

from medidiagnose.services.scheduling_service import SchedulingService

PATIENT = "/api/v1/patient"


def _booking(doctor_id: int, day, slot: str = "09:30") -> dict:
    return {
        "doctorId": doctor_id,
        "preferredDate": day.isoformat(),
        "timeSlot": slot,
        "reason": "Persistent cough",
    }


async def test_requires_token(client):
    response = await client.get(f"{PATIENT}/stats")
    assert response.status_code == 401


async def test_stats(client, patient_headers, patient_user, make_record):
    await make_record(patient_user)
    await make_record(patient_user, diagnosis="Concerning shadow")

    response = await client.get(f"{PATIENT}/stats", headers=patient_headers)

    stats = response.json()
    assert stats["total_scans"] == 2
    assert stats["pending_results"] == 1
    assert stats["completed_results"] == 1
    assert stats["abnormal_findings"] == 1
    assert stats["upcoming_appointments"] == 0
    assert stats["last_scan_at"] is not None


async def test_results_only_own(client, patient_headers, patient_user, make_user, make_record):
    other = await make_user("other@example.com")
    mine = await make_record(patient_user, diagnosis="Clear")
    theirs = await make_record(other, diagnosis="Clear")

    listing = await client.get(f"{PATIENT}/results", headers=patient_headers)
    assert [r["id"] for r in listing.json()["results"]] == [mine.id]
    assert listing.json()["pagination"]["total"] == 1

    own = await client.get(f"{PATIENT}/results/{mine.id}", headers=patient_headers)
    assert own.status_code == 200
    assert own.json()["status"] == "Completed"

    foreign = await client.get(f"{PATIENT}/results/{theirs.id}", headers=patient_headers)
    assert foreign.status_code == 404
    assert foreign.json()["error"]["code"] == "RESULT_NOT_FOUND"

    garbage = await client.get(f"{PATIENT}/results/not-a-number", headers=patient_headers)
    assert garbage.status_code == 404


async def test_results_status_filter_and_doctor_name(
    client, patient_headers, patient_user, doctor_user, make_record
):
    await make_record(patient_user)
    flagged = await make_record(patient_user, doctor_id=doctor_user.id, diagnosis="Abnormal growth")

    response = await client.get(f"{PATIENT}/results", headers=patient_headers, params={"status": "Alert"})

    results = response.json()["results"]
    assert [r["id"] for r in results] == [flagged.id]
    assert results[0]["doctor_name"] == "Dana Doctor"

    recent = await client.get(f"{PATIENT}/results/recent", headers=patient_headers, params={"limit": 1})
    assert len(recent.json()["results"]) == 1


async def test_profile_update(client, patient_headers):
    response = await client.patch(
        f"{PATIENT}/profile",
        headers=patient_headers,
        json={"phone": "555-0199", "date_of_birth": "1990-04-01"},
    )

    assert response.status_code == 200
    assert response.json()["message"] == "Profile updated successfully"

    profile = (await client.get(f"{PATIENT}/profile", headers=patient_headers)).json()["user"]
    assert profile["phone"] == "555-0199"
    assert profile["date_of_birth"] == "1990-04-01"
    assert profile["email"] == "patient@example.com"


async def test_available_doctors(client, patient_headers, doctor_user, admin_user):
    response = await client.get(f"{PATIENT}/doctors/available", headers=patient_headers)

    assert response.json()["doctors"] == [
        {"id": doctor_user.id, "name": "Dana Doctor", "email": "doctor@example.com"}
    ]


async def test_slots_and_booking(client, patient_headers, doctor_user):
    day = SchedulingService.today() + timedelta(days=1)

    slots = await client.get(
        f"{PATIENT}/appointments/slots",
        headers=patient_headers,
        params={"doctor_id": doctor_user.id, "date": day.isoformat()},
    )
    assert slots.status_code == 200
    assert len(slots.json()["slots"]) == 16

    booked = await client.post(
        f"{PATIENT}/appointments", headers=patient_headers, json=_booking(doctor_user.id, day)
    )
    assert booked.status_code == 201
    appointment = booked.json()["appointment"]
    assert appointment["doctor_name"] == "Dana Doctor"
    assert appointment["status"] == "scheduled"

    after = await client.get(
        f"{PATIENT}/appointments/slots",
        headers=patient_headers,
        params={"doctor_id": doctor_user.id, "date": day.isoformat()},
    )
    assert "09:30" not in after.json()["slots"]

    upcoming = await client.get(f"{PATIENT}/appointments/upcoming", headers=patient_headers)
    assert [a["id"] for a in upcoming.json()["appointments"]] == [appointment["id"]]


async def test_double_booking_conflict(client, patient_headers, doctor_user, make_user, headers_for):
    rival = await make_user("rival@example.com")
    day = SchedulingService.today() + timedelta(days=2)

    first = await client.post(
        f"{PATIENT}/appointments", headers=patient_headers, json=_booking(doctor_user.id, day)
    )
    second = await client.post(
        f"{PATIENT}/appointments", headers=headers_for(rival), json=_booking(doctor_user.id, day)
    )

    assert first.status_code == 201
    assert second.status_code == 409
    assert second.json()["error"]["code"] == "SLOT_UNAVAILABLE"


async def test_booking_rejects_past_and_off_grid(client, patient_headers, doctor_user):
    past = await client.post(
        f"{PATIENT}/appointments",
        headers=patient_headers,
        json=_booking(doctor_user.id, SchedulingService.today() - timedelta(days=1)),
    )
    assert past.status_code == 400

    off_grid = await client.post(
        f"{PATIENT}/appointments",
        headers=patient_headers,
        json=_booking(doctor_user.id, SchedulingService.today() + timedelta(days=1), "09:10"),
    )
    assert off_grid.status_code == 400
    assert off_grid.json()["error"]["code"] == "INVALID_TIME_SLOT"

    malformed = await client.post(
        f"{PATIENT}/appointments",
        headers=patient_headers,
        json=_booking(doctor_user.id, SchedulingService.today() + timedelta(days=1), "9am"),
    )
    assert malformed.status_code == 400


async def test_booking_unknown_doctor(client, patient_headers, patient_user):
    response = await client.post(
        f"{PATIENT}/appointments",
        headers=patient_headers,
        json=_booking(patient_user.id, SchedulingService.today() + timedelta(days=1)),
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "DOCTOR_NOT_FOUND"
