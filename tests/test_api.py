from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from consultorio import api_main, records, services
from consultorio.api_main import app, get_store
from consultorio.store import ClinicStore


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    api_main._checks = None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth(client):
    r = client.post("/api/auth/login", json={"password": "2577"})
    assert r.status_code == 200
    return {"Authorization": f"Bearer {r.json()['access_token']}"}


def test_login_rejects_wrong_password(client):
    r = client.post("/api/auth/login", json={"password": "0000"})
    assert r.status_code == 401
    assert r.json()["detail"] == "Senha incorreta."


def test_master_password_opens_master_session(client, store):
    r = client.post("/api/auth/login", json={"password": "140552"})
    assert r.json()["is_master"] is True
    assert store.is_master_session


def test_protected_routes_need_token(client):
    assert client.get("/api/patients").status_code == 401
    bad = client.get("/api/patients", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401


def test_first_login_starts_with_welcome(client, auth):
    r = client.get("/api/checks/current", headers=auth)
    assert r.json()["name"] == "welcome"
    assert client.post("/api/checks/dismiss", headers=auth).json() is None


def test_booking_and_completing_through_http(client, auth, ana):
    r = client.post(
        "/api/appointments",
        json={"patientId": ana.id, "date": "2024-06-10", "time": "14:00", "consultationTypeId": "ct-1"},
        headers=auth,
    )
    body = r.json()
    assert body["ok"] is True
    record = body["record"]
    assert (record["status"], record["price"], record["reminderSent"]) == ("scheduled", 150, False)

    done = client.post(f"/api/appointments/{record['id']}/complete", json={"paymentMethod": "Pix"}, headers=auth)
    assert done.json()["record"]["status"] == "completed"

    money = client.get("/api/transactions", params={"mode": "daily", "day": "2024-06-10"}, headers=auth).json()
    assert money["income"] == 150
    assert money["transactions"][0]["description"] == "Consulta - Ana (Pix)"

    again = client.post(f"/api/appointments/{record['id']}/cancel", headers=auth)
    assert again.status_code == 400


def test_domain_errors_map_to_status_codes(client, auth):
    assert client.post("/api/appointments/nope/cancel", headers=auth).status_code == 404
    holiday = client.post("/api/appointments", json={"date": "2024-09-07", "time": "10:00"}, headers=auth)
    assert holiday.status_code == 400
    assert client.post("/api/backup", json={"password": "x"}, headers=auth).status_code == 401


def test_availability_of_blocked_day(client, auth):
    client.post("/api/blocked-days", json={"date": "2024-06-15", "reason": "Congresso"}, headers=auth)
    day = client.get("/api/availability/2024-06-15", headers=auth).json()

    assert day["isBlocked"] is True
    assert day["form"] == {
        "timeEnabled": False,
        "typeEnabled": False,
        "submitEnabled": False,
        "reason": "Dia bloqueado na agenda",
    }
    assert client.delete("/api/blocked-days/2024-06-15", headers=auth).json()["ok"] is True


def test_reschedule_flow(client, auth, ana):
    created = client.post(
        "/api/appointments", json={"patientId": ana.id, "date": "2024-06-11", "time": "09:00"}, headers=auth
    ).json()["record"]

    staged = client.post(
        f"/api/appointments/{created['id']}/reschedule", json={"date": "2024-06-12", "time": "11:00"}, headers=auth
    ).json()
    assert staged["date"] == "2024-06-12"

    moved = client.post("/api/reschedule/confirm", headers=auth).json()["record"]
    assert (moved["id"], moved["date"], moved["time"]) == (created["id"], "2024-06-12", "11:00")


def test_reminder_whatsapp_and_logs(client, auth, ana):
    created = client.post(
        "/api/appointments", json={"patientId": ana.id, "date": "2024-06-11", "time": "09:00"}, headers=auth
    ).json()["record"]

    wa = client.get(f"/api/appointments/{created['id']}/whatsapp", headers=auth).json()
    assert wa["link"].startswith("https://wa.me/5511987654321")

    client.post(
        f"/api/appointments/{created['id']}/reminder",
        json={"source": "booking_confirmation", "message": wa["message"]},
        headers=auth,
    )
    logs = client.get("/api/notification-logs", headers=auth).json()
    assert len(logs) == 1
    assert logs[0]["type"] == "sms"
    assert client.get("/api/reminders/pending", headers=auth).json() == []


def test_backup_and_restore_endpoints(client, auth, ana):
    doc = client.post("/api/backup", json={"password": "2577"}, headers=auth).json()
    assert doc["filename"] == "backup_completo_clinica_10-06-2024_09-00.json"
    assert doc["document"]["patients"][0]["name"] == "Ana"

    doc["document"]["patients"] = []
    report = client.post("/api/restore", json={"password": "2577", "data": doc["document"]}, headers=auth).json()
    assert report["upserts"]["patients"] == 0
    assert client.get("/api/patients", headers=auth).json() == []


def test_dashboard_and_sync_status(client, auth, ana, store):
    summary = client.get("/api/dashboard", headers=auth).json()["summary"]
    assert summary["active_patients"] == 1

    status = client.get("/api/sync-status", headers=auth).json()
    assert status == {"degraded": False, "failures": []}

    toasts = client.get("/api/toasts", headers=auth).json()
    assert toasts[-1]["message"] == "Paciente cadastrado com sucesso!"


def test_settings_password_change(client, auth):
    r = client.post(
        "/api/settings/password",
        json={"oldPassword": "2577", "newPassword": "8888", "confirmPassword": "8888"},
        headers=auth,
    )
    assert r.json()["ok"] is True
    assert client.get("/api/settings", headers=auth).json()["onboarding"]["password_changed"] is True


def test_holidays_are_public(client):
    r = client.get("/api/holidays/2024")
    assert r.json()["2024-05-30"] == "Corpus Christi"


def test_logout_revokes_token(client, auth):
    assert client.post("/api/auth/logout", headers=auth).json() == {"ok": True}

    r = client.get("/api/patients", headers=auth)
    assert r.status_code == 401
    assert r.json()["detail"] == "Sessão inválida"


def test_new_login_replaces_previous_session(client, auth):
    client.post("/api/auth/login", json={"password": "2577"})
    assert client.get("/api/patients", headers=auth).status_code == 401


def test_reload_after_restart_resumes_chain_at_birthday(client, auth, ana, store, clock):
    records.update_patient(store, ana.id, {"date_of_birth": "1990-06-10"})
    assert client.get("/api/checks/current", headers=auth).json()["name"] == "welcome"

    # processo reiniciado: store vazio, mesmo token
    fresh = ClinicStore(clock=clock)
    app.dependency_overrides[get_store] = lambda: fresh
    api_main._checks = None

    current = client.get("/api/checks/current", headers=auth).json()
    assert current["name"] == "birthday"
    assert current["payload"][0]["name"] == "Ana"
    assert fresh.is_loaded


def test_daily_reminder_check_follows_sent_reminders(client, ana, store):
    appointment = services.create_appointment(store, ana.id, "2024-06-11", "10:00", "ct-1").record
    token = client.post("/api/auth/login", json={"password": "140552"}).json()["access_token"]
    headers = {"Authorization": f"Bearer {token}"}

    current = client.get("/api/checks/current", headers=headers).json()
    assert current["name"] == "reminder"
    assert current["payload"][0]["id"] == appointment.id

    client.post(f"/api/appointments/{appointment.id}/reminder", json={"source": "daily_check"}, headers=headers)
    assert client.get("/api/checks/current", headers=headers).json() == {"name": "reminder", "payload": []}


def test_masked_amounts_are_accepted(client, auth):
    r = client.post(
        "/api/transactions",
        json={"description": "Aluguel", "amount": "R$ 1.234,56", "type": "expense", "date": "2024-06-10"},
        headers=auth,
    )
    assert r.json()["record"]["amount"] == 1234.56

    ct = client.post("/api/consultation-types", json={"name": "Retorno", "price": 90}, headers=auth)
    assert ct.json()["record"]["price"] == 90


def test_patient_list_flags_filled_anamnesis(client, auth, ana):
    assert client.get("/api/patients", headers=auth).json()[0]["anamnesisComplete"] is False

    client.put(f"/api/patients/{ana.id}/anamnesis", json={"civilStatus": "Solteira"}, headers=auth)
    assert client.get("/api/patients", headers=auth).json()[0]["anamnesisComplete"] is True
