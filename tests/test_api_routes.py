"""
HTTP-level tests for the Flask API using the test client.
"""

import pytest

from src.api import auth
from src.api.app import create_app


@pytest.fixture
def client(engine):
    auth.sessions.clear()
    app = create_app(engine)
    app.config["TESTING"] = True
    with app.test_client() as c:
        yield c
    auth.sessions.clear()


def _login(client, api_key):
    resp = client.post("/api/auth/login", json={"api_key": api_key})
    assert resp.status_code == 200, resp.get_json()
    return {"Authorization": f"Bearer {resp.get_json()['token']}"}


# ── Auth ─────────────────────────────────────────────────────────────

def test_health_and_index(client):
    assert client.get("/health").get_json()["status"] == "healthy"
    assert client.get("/").get_json()["status"] == "running"


def test_login_requires_json_and_key(client):
    assert client.post("/api/auth/login", data="x").status_code == 400
    assert client.post("/api/auth/login", json={}).status_code == 400


def test_login_bad_key(client):
    resp = client.post("/api/auth/login", json={"api_key": "nope"})
    assert resp.status_code == 401
    assert "Authentication failed" in resp.get_json()["error"]


def test_login_and_profile(client):
    headers = _login(client, "key-patient")
    body = client.get("/api/user/profile", headers=headers).get_json()
    assert body["user"]["role"] == "patient"
    assert body["user"]["person_ids"] == [1, 3]


def test_login_query_failure_returns_502(client, engine):
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE portal_user_profiles")
    resp = client.post("/api/auth/login", json={"api_key": "key-patient"})
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "Error al cargar las historias clínicas"


def test_missing_token_rejected(client):
    assert client.get("/api/histories").status_code == 401


def test_logout_invalidates_session(client):
    headers = _login(client, "key-admin")
    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    assert client.get("/api/histories", headers=headers).status_code == 401


# ── Histories ────────────────────────────────────────────────────────

def test_list_histories_patient(client):
    headers = _login(client, "key-patient")
    body = client.get("/api/histories", headers=headers).get_json()
    assert body["count"] == 2
    first = body["records"][0]
    assert first["history_id"] == 3
    assert first["status_label"] == "Desconocido"
    assert first["created_at"] == "2024-03-10T00:00:00"


def test_list_histories_search(client):
    headers = _login(client, "key-admin")
    body = client.get("/api/histories?q=tor", headers=headers).get_json()
    names = [r["person"]["full_name"] for r in body["records"]]
    assert names == ["Carla Torres Quispe", "Ana Torres Quispe"]
    body = client.get("/api/histories?q=70123", headers=headers).get_json()
    assert [r["history_id"] for r in body["records"]] == [2]


def test_list_histories_restricted_role(client):
    headers = _login(client, "key-nurse")
    resp = client.get("/api/histories", headers=headers)
    assert resp.status_code == 403
    assert resp.get_json()["error"] == "Acceso Restringido"


def test_history_detail_codes(client):
    headers = _login(client, "key-clinician")
    ok = client.get("/api/histories/1", headers=headers)
    assert ok.status_code == 200
    person = ok.get_json()["history"]["record"]["person"]
    assert person["full_name"] == "Ana Torres Quispe"
    assert person["age"] is not None
    assert client.get("/api/histories/2", headers=headers).status_code == 403
    assert client.get("/api/histories/999", headers=headers).status_code == 404


# ── Dashboard and actions ────────────────────────────────────────────

def test_dashboard_admin(client):
    headers = _login(client, "key-admin")
    body = client.get("/api/dashboard", headers=headers).get_json()
    assert body["greeting"].endswith("Administrador")
    assert body["dashboard"]["role"] == "admin"
    assert body["dashboard"]["stats"]["total_histories"] == 5


def test_approve_request_requires_admin(client):
    headers = _login(client, "key-patient")
    assert client.post("/api/requests/1/approve", headers=headers).status_code == 403
    headers = _login(client, "key-admin")
    resp = client.post("/api/requests/1/approve", headers=headers)
    assert resp.status_code == 200
    assert resp.get_json()["status"] == "Aprobada"


def test_appointment_status_route(client):
    headers = _login(client, "key-clinician")
    resp = client.post("/api/appointments/2/status", headers=headers, json={"status": "Completada"})
    assert resp.status_code == 200
    resp = client.post("/api/appointments/2/status", headers=headers, json={"status": "Perdida"})
    assert resp.status_code == 400
    resp = client.post("/api/appointments/3/status", headers=headers, json={"status": "Completada"})
    assert resp.status_code == 403


def test_query_failure_returns_single_message(client, engine):
    headers = _login(client, "key-admin")
    with engine.begin() as conn:
        conn.exec_driver_sql("DROP TABLE paciente")
    resp = client.get("/api/histories", headers=headers)
    assert resp.status_code == 502
    assert resp.get_json()["error"] == "Error al cargar las historias clínicas"
