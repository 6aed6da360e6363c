"""
test_api_endpoints.py
=====================
API test cases for the telemedicine administration backend.
Tests cover:
 - Root health check and token endpoint
 - Users with derived fields
 - Appointment, record, reminder and feedback endpoints
 - Update / delete persistence
 - Input validation and not-found errors
 - Dashboard statistics
 - Report and export endpoints
"""

import json
import time
from datetime import datetime, timedelta, timezone


# --------------------------------------------------------------------------
# ROOT & AUTH
# --------------------------------------------------------------------------

def test_root_endpoint(client):
    """
    ✅ Test the root health check endpoint.
    Expected: 200 OK and "Telemedicine" message.
    """
    res = client.get("/")
    assert res.status_code == 200
    assert "Telemedicine" in res.json()["message"]


def test_token_endpoint(client):
    """
    ✅ Any username/password pair gets an access token.
    """
    res = client.post("/api/token/", json={"username": "sophie.martin", "password": "anything"})
    assert res.status_code == 200

    data = res.json()
    assert data["token_type"] == "access"
    assert data["access"]
    assert data["exp"] > time.time()


def test_token_requires_credentials(client):
    res = client.post("/api/token/", json={"username": "sophie.martin"})
    assert res.status_code == 400
    assert isinstance(res.json()["detail"], list)


# --------------------------------------------------------------------------
# USERS
# --------------------------------------------------------------------------

def test_list_all_users(client):
    res = client.get("/api/users/")
    assert res.status_code == 200

    users = res.json()
    assert len(users) == 6
    for u in users:
        assert "password" not in u
        assert "rating" not in u
        assert "recordCount" not in u


def test_list_doctors_with_derived_fields(client):
    """
    ✅ Doctors carry specialty, average rating and patient count.
    """
    res = client.get("/api/users/", params={"is_doctor": "true"})
    assert res.status_code == 200

    doctors = {d["id"]: d for d in res.json()}
    assert set(doctors) == {2, 4, 5}
    assert all(d["is_doctor"] for d in doctors.values())

    sophie = doctors[2]
    assert sophie["specialty"] == "Cardiology"
    assert sophie["rating"] == 4.5
    assert sophie["patientCount"] == 1
    assert doctors[4]["rating"] is None


def test_list_patients_with_derived_fields(client):
    res = client.get("/api/users/", params={"is_patient": "true"})
    assert res.status_code == 200

    patients = {p["id"]: p for p in res.json()}
    assert set(patients) == {1, 3, 6}
    assert patients[1]["lastAppointment"].startswith("2025-04-17T09:00:00")
    assert patients[1]["recordCount"] == 1
    assert patients[6]["lastAppointment"] is None
    assert patients[6]["recordCount"] == 0


def test_create_user(client):
    payload = {
        "username": "lea.moreau",
        "password": "s3cret",
        "email": "lea.moreau@example.com",
        "is_patient": True,
        "full_name": "Léa Moreau",
    }
    res = client.post("/api/users/", json=payload)
    assert res.status_code == 201

    data = res.json()
    assert isinstance(data["id"], int)
    assert data["username"] == "lea.moreau"
    assert "password" not in data

    res2 = client.get(f"/api/users/{data['id']}")
    assert res2.status_code == 200
    assert res2.json()["full_name"] == "Léa Moreau"


def test_create_user_duplicate_username(client):
    payload = {"username": "jean.dupont", "password": "x", "email": "jd@example.com"}
    res = client.post("/api/users/", json=payload)
    assert res.status_code == 400
    assert res.json()["detail"][0]["loc"] == ["body", "username"]


def test_user_not_found(client):
    """
    ✅ Test requesting a non-existing user.
    Expected: 404 with 'User not found' message.
    """
    res = client.get("/api/users/999")
    assert res.status_code == 404
    assert res.json()["detail"] == "User not found"


# --------------------------------------------------------------------------
# APPOINTMENTS
# --------------------------------------------------------------------------

def test_list_appointments_joins_names(client):
    res = client.get("/api/appointments/")
    assert res.status_code == 200

    appointments = res.json()
    assert [a["id"] for a in appointments] == [1, 2, 3]
    first = appointments[0]
    assert first["patientName"] == "Jean Dupont"
    assert first["doctorName"] == "Dr. Sophie Martin"
    assert first["datetime"].startswith("2025-04-15T10:30:00")
    assert first["mode"] == "video"


def test_list_appointments_by_status(client):
    res = client.get("/api/appointments/", params={"status": "pending"})
    assert res.status_code == 200
    assert [a["id"] for a in res.json()] == [2, 3]


def test_create_appointment_with_unknown_patient(client):
    """
    ✅ Foreign keys are not enforced; the joined name is simply null.
    """
    payload = {
        "patient": 99,
        "doctor": 2,
        "datetime": "2026-11-02T09:15:00Z",
        "mode": "chat",
    }
    res = client.post("/api/appointments/", json=payload)
    assert res.status_code == 201

    data = res.json()
    assert data["status"] == "pending"
    assert data["patientName"] is None
    assert data["doctorName"] == "Dr. Sophie Martin"
    assert data["datetime"].startswith("2026-11-02T09:15:00")


def test_invalid_appointment_input(client):
    """
    ✅ Test invalid input (missing mode).
    Expected: 400 with the list of field errors.
    """
    payload = {"patient": 1, "doctor": 2, "datetime": "2026-11-02T09:15:00Z"}
    res = client.post("/api/appointments/", json=payload)
    assert res.status_code == 400

    errors = res.json()["detail"]
    assert any(e["loc"][-1] == "mode" for e in errors)


def test_invalid_appointment_mode(client):
    payload = {"patient": 1, "doctor": 2, "datetime": "2026-11-02T09:15:00Z", "mode": "phone"}
    res = client.post("/api/appointments/", json=payload)
    assert res.status_code == 400


def test_update_appointment_persists(client):
    """
    ✅ PATCH applies the given fields and keeps the others.
    """
    res = client.patch("/api/appointments/2", json={"status": "confirmed"})
    assert res.status_code == 200
    assert res.json()["status"] == "confirmed"
    assert res.json()["mode"] == "chat"

    res2 = client.get("/api/appointments/2")
    assert res2.status_code == 200
    assert res2.json()["status"] == "confirmed"


def test_update_missing_appointment(client):
    res = client.patch("/api/appointments/999", json={"status": "confirmed"})
    assert res.status_code == 404
    assert res.json()["detail"] == "Appointment not found"


def test_delete_appointment(client):
    res = client.delete("/api/appointments/3")
    assert res.status_code == 204

    assert client.get("/api/appointments/3").status_code == 404
    assert client.delete("/api/appointments/3").status_code == 404
    assert [a["id"] for a in client.get("/api/appointments/").json()] == [1, 2]


# --------------------------------------------------------------------------
# MEDICAL RECORDS
# --------------------------------------------------------------------------

def test_list_records_for_patient(client):
    res = client.get("/api/records/", params={"patient": 1})
    assert res.status_code == 200

    records = res.json()
    assert len(records) == 1
    assert records[0]["diagnosis"] == "Grippe saisonnière"
    assert records[0]["file"] == "prescription_1.pdf"


def test_create_record_json(client):
    payload = {"patient": 3, "diagnosis": "Migraine", "treatment": "Repos"}
    res = client.post("/api/records/", json=payload)
    assert res.status_code == 201

    data = res.json()
    assert data["patientName"] == "Marie Leclerc"
    assert data["created_at"]
    assert data["file"] is None


def test_create_record_multipart(client):
    """
    ✅ Upload form: only the file name is stored.
    """
    res = client.post(
        "/api/records/",
        data={"patient": "1", "diagnosis": "Entorse", "treatment": "Attelle"},
        files={"file": ("radio.pdf", b"%PDF-1.4", "application/pdf")},
    )
    assert res.status_code == 201
    assert res.json()["file"] == "radio.pdf"
    assert res.json()["patient"] == 1


def test_create_record_invalid(client):
    res = client.post("/api/records/", json={"patient": 1, "diagnosis": ""})
    assert res.status_code == 400
    fields = {e["loc"][-1] for e in res.json()["detail"]}
    assert {"diagnosis", "treatment"} <= fields


# --------------------------------------------------------------------------
# REMINDERS & FEEDBACK
# --------------------------------------------------------------------------

def test_reminder_lifecycle(client):
    payload = {
        "patient": 6,
        "message": "Prise de sang à jeun",
        "date_time": "2026-12-01T08:00:00Z",
    }
    res = client.post("/api/reminders/", json=payload)
    assert res.status_code == 201
    reminder = res.json()
    assert reminder["patientName"] == "Camille Roux"
    assert reminder["status"] == "scheduled"

    res = client.patch(f"/api/reminders/{reminder['id']}", json={"status": "sent"})
    assert res.status_code == 200
    assert res.json()["status"] == "sent"
    assert res.json()["message"] == "Prise de sang à jeun"

    res = client.delete(f"/api/reminders/{reminder['id']}")
    assert res.status_code == 204
    ids = [r["id"] for r in client.get("/api/reminders/").json()]
    assert reminder["id"] not in ids


def test_delete_missing_reminder(client):
    res = client.delete("/api/reminders/999")
    assert res.status_code == 404
    assert res.json()["detail"] == "Reminder not found"


def test_create_feedback_rating_not_validated(client):
    payload = {"patient": 1, "doctor": 4, "rating": 7, "comment": "Très bien"}
    res = client.post("/api/feedbacks/", json=payload)
    assert res.status_code == 201
    assert res.json()["rating"] == 7
    assert res.json()["doctorName"] == "Dr. Thomas Bernard"


def test_stats(client):
    """
    ✅ Dashboard statistics are computed from the stored data.
    """
    res = client.get("/api/stats/")
    assert res.status_code == 200
    assert res.json() == {
        "totalAppointments": 3,
        "activePatients": 3,
        "activeDoctors": 3,
        "avgRating": 4.0,
    }


# --------------------------------------------------------------------------
# REPORTS & EXPORT
# --------------------------------------------------------------------------

def test_report_past_and_upcoming(client):
    tomorrow = datetime.now(timezone.utc) + timedelta(days=1)
    client.post("/api/appointments/", json={
        "patient": 1, "doctor": 2, "datetime": tomorrow.isoformat(), "mode": "video",
    })

    res = client.get("/api/reports/appointments/", params={"report_type": "upcoming"})
    assert res.status_code == 200
    data = res.json()
    assert data["count"] == 1
    assert data["items"][0]["patientName"] == "Jean Dupont"

    res = client.get("/api/reports/appointments/", params={"report_type": "past"})
    assert res.json()["count"] == 3


def test_report_with_date_range(client):
    res = client.get("/api/reports/appointments/", params={
        "start": "2025-04-16T00:00:00Z",
        "end": "2025-04-30T00:00:00Z",
    })
    assert res.status_code == 200
    assert [i["id"] for i in res.json()["items"]] == [2, 3]


def test_report_sent_reminders(client):
    res = client.get("/api/reports/reminders/", params={"report_type": "sent"})
    assert res.status_code == 200
    assert [i["id"] for i in res.json()["items"]] == [2]


def test_report_unknown_type_and_kind(client):
    res = client.get("/api/reports/appointments/", params={"report_type": "someday"})
    assert res.status_code == 400

    res = client.get("/api/reports/widgets/")
    assert res.status_code == 404


def test_export_csv(client):
    """
    ✅ CSV download: attachment filename and escaped comments.
    """
    res = client.get("/api/reports/feedbacks/export/", params={"format": "csv"})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/csv")
    assert 'filename="telemed_feedbacks_' in res.headers["content-disposition"]

    lines = res.text.splitlines()
    assert lines[0] == "patient,patientName,doctor,doctorName,rating,comment"
    assert lines[1] == '1,Jean Dupont,2,Dr. Sophie Martin,5,"Excellent médecin, très à l\'écoute."'


def test_export_json(client):
    res = client.get("/api/reports/patients/export/", params={"format": "json"})
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("application/json")

    rows = json.loads(res.text)
    assert [r["id"] for r in rows] == [1, 3, 6]
    assert all("password" not in r for r in rows)


def test_export_pdf_not_available(client):
    res = client.get("/api/reports/appointments/export/", params={"format": "pdf"})
    assert res.status_code == 501
    assert "not yet available" in res.json()["detail"]


def test_export_empty_dataset(client):
    """
    ✅ Nothing matches the report type: no file, 400 with an explanation.
    """
    res = client.get("/api/reports/appointments/export/", params={"report_type": "cancelled"})
    assert res.status_code == 400
    assert res.json()["detail"] == "No appointments to export."
