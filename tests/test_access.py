from datetime import datetime, timedelta, timezone

import jwt
from flask import jsonify

from extensions import db
from models import Task

KEY = "test-signing-key-0123456789abcdef0123"


def _token(role="admin", user_id=1, expires_in=timedelta(hours=1), key=KEY):
    now = datetime.now(timezone.utc)
    return jwt.encode(
        {"id": user_id, "email": "a@x.com", "role": role, "iat": now, "exp": now + expires_in},
        key,
        algorithm="HS256",
    )


def test_login_requires_fields(client):
    resp = client.post("/login", json={"email": "admin@uruti.com"})
    assert resp.status_code == 400
    assert resp.get_json()["error"] == "Email and password are required"


def test_login_rejects_bad_credentials(client, admin_user):
    resp = client.post("/login", json={"email": admin_user["email"], "password": "wrong-password"})
    assert resp.status_code == 401
    assert resp.get_json() == {"error": "Invalid credentials"}


def test_login_returns_token_and_user(client, admin_user):
    resp = client.post("/login", json={"email": admin_user["email"], "password": admin_user["password"]})
    assert resp.status_code == 200
    body = resp.get_json()
    assert body["user"] == {"id": admin_user["id"], "email": admin_user["email"], "role": "admin"}

    me = client.get("/api/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert me.status_code == 200
    assert me.get_json() == body["user"]


def test_missing_header_is_unauthorized(client):
    resp = client.get("/api/tasks")
    assert resp.status_code == 401
    assert "Missing or invalid token format" in resp.get_json()["error"]


def test_wrong_scheme_is_rejected_before_parsing(client, monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("token must not be parsed")

    monkeypatch.setattr("blueprints.auth.routes.verify_token", fail)
    for header in (f"Token {_token()}", f"bearer {_token()}", "Bearer"):
        resp = client.get("/api/tasks", headers={"Authorization": header})
        assert resp.status_code == 401
        assert "Missing or invalid token format" in resp.get_json()["error"]


def test_expired_token_is_unauthorized(client):
    token = _token(expires_in=timedelta(seconds=-1))
    resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Authentication token expired. Please log in again."


def test_invalid_token_is_unauthorized(client):
    token = _token(key="not-the-configured-key-0123456789abcdef")
    resp = client.get("/api/tasks", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.get_json()["error"] == "Authentication failed. Invalid token."


def test_intern_cannot_reach_admin_operations(app, client, intern_headers):
    resp = client.post("/api/tasks", json={"title": "Sneaky"}, headers=intern_headers)
    assert resp.status_code == 403
    with app.app_context():
        assert db.session.query(Task).count() == 0


def test_admin_cannot_use_intern_operations(client, admin_headers):
    resp = client.get("/api/interns/me/tasks", headers=admin_headers)
    assert resp.status_code == 403


def test_role_check_without_authentication_is_a_wiring_error(make_app, caplog):
    from role_required import role_required

    app = make_app()

    @app.route("/unguarded")
    @role_required("admin")
    def unguarded():
        return jsonify({"ok": True})

    resp = app.test_client().get("/unguarded")
    assert resp.status_code == 500
    assert resp.get_json()["error"] == "Internal server error"
    assert "without an authenticated caller on unguarded" in caplog.text


def test_unknown_routes_return_json(client):
    resp = client.get("/api/nowhere")
    assert resp.status_code == 404
    assert "error" in resp.get_json()


def test_login_reports_field_errors_when_fields_are_present(client, admin_user):
    resp = client.post("/login", json={"email": admin_user["email"], "password": "x" * 200})
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["error"] != "Email and password are required"
    assert "password" in body["details"]
