from datetime import timedelta

import jwt

from portal.middleware.auth import has_capability
from portal.models.session import PORTAL_SESSION


def _bearer(token):
    return {"Authorization": f"Bearer {token}"}


class TestCapabilities:
    def test_superadmin_has_everything(self):
        assert has_capability("superadmin", "trainers", "write")
        assert has_capability("superadmin", "anything", "at-all")

    def test_roles_are_scoped(self):
        assert has_capability("trainer", "batches", "export")
        assert not has_capability("trainer", "batches", "write")
        assert has_capability("supervisor", "participants", "read")
        assert not has_capability("supervisor", "participants", "write")
        assert has_capability("student", "exams", "take")
        assert not has_capability("student", "batches", "read")

    def test_unknown_role_has_nothing(self):
        assert not has_capability("visitor", "batches", "read")


class TestStaffLogin:
    def test_login_returns_role_and_user_without_password(self, client, admin_headers, app):
        resp = client.post("/auth/login", json={"username": "admin", "password": "secret123"})
        body = resp.get_json()
        assert resp.status_code == 200
        assert body["role"] == "superadmin"
        assert body["user"]["username"] == "admin"
        assert "password" not in body["user"]

    def test_trainer_role(self, client, trainer_headers):
        resp = client.get("/auth/me", headers=trainer_headers)
        assert resp.get_json()["role"] == "trainer"

    def test_wrong_password(self, client, admin_headers):
        resp = client.post("/auth/login", json={"username": "admin", "password": "wrong-one"})
        assert resp.status_code == 401

    def test_missing_fields(self, client):
        assert client.post("/auth/login", json={}).status_code == 400


class TestSessions:
    def test_logout_revokes_token(self, client, admin_headers):
        assert client.get("/auth/me", headers=admin_headers).status_code == 200
        assert client.post("/auth/logout", headers=admin_headers).status_code == 200
        resp = client.get("/auth/me", headers=admin_headers)
        assert resp.status_code == 401

    def test_token_without_session_row_is_rejected(self, client, app):
        token = jwt.encode({"jti": "made-up", "role": "superadmin"}, app.config["SECRET_KEY"], algorithm="HS256")
        assert client.get("/auth/me", headers=_bearer(token)).status_code == 401

    def test_token_signed_with_other_key_is_rejected(self, client, admin_headers, db):
        jti = db.portal_sessions.find_one()["jti"]
        token = jwt.encode({"jti": jti}, "someone-elses-key", algorithm="HS256")
        assert client.get("/auth/me", headers=_bearer(token)).status_code == 401

    def test_expired_session_row(self, app_ctx):
        session = PORTAL_SESSION.create("trainer", "t1", {}, timedelta(seconds=-1))
        assert PORTAL_SESSION.get_active(session["jti"]) is None

    def test_missing_header(self, client):
        resp = client.get("/auth/me")
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Authorization header missing or invalid"


class TestStudentLogin:
    def test_passkey_is_mobile(self, client, make_participant):
        make_participant("IITP001", mobile="9876543210")
        resp = client.post("/auth/student-login", json={"iitpNo": "IITP001", "passkey": "9876543210"})
        assert resp.status_code == 200
        body = resp.get_json()
        assert body["role"] == "student"
        assert body["user"]["iitpNo"] == "IITP001"

    def test_wrong_passkey(self, client, make_participant):
        make_participant("IITP001", mobile="9876543210")
        resp = client.post("/auth/student-login", json={"iitpNo": "IITP001", "passkey": "0000000000"})
        assert resp.status_code == 401
        assert resp.get_json()["error"] == "Invalid IITP No. or Passkey."

    def test_participant_without_mobile_cannot_log_in(self, client, make_participant):
        make_participant("IITP002", mobile="")
        resp = client.post("/auth/student-login", json={"iitpNo": "IITP002", "passkey": "x"})
        assert resp.status_code == 401
