import mongomock

from conftest import staff_headers
from portal import create_app
from portal.config import TestingConfig
from portal.commands import create_superadmin_command
from portal.models.staff import STAFF, ensure_primary_admin


def _add(client, headers, kind, username, **extra):
    payload = {"name": username.title(), "username": username, "password": "secret123", **extra}
    return client.post(f"/api/staff/{kind}", json=payload, headers=headers)


class TestStaffRoutes:
    def test_add_list_update_delete_supervisor(self, client, admin_headers):
        resp = _add(client, admin_headers, "supervisors", "super2", organization="Belden India")
        assert resp.status_code == 201
        staff_id = resp.get_json()["id"]

        supervisors = client.get("/api/staff/supervisors", headers=admin_headers).get_json()["supervisors"]
        assert [s["username"] for s in supervisors] == ["super2"]
        assert "password" not in supervisors[0]

        resp = client.put(f"/api/staff/supervisors/{staff_id}", json={"organization": "BSA Plant"},
                          headers=admin_headers)
        assert resp.status_code == 200
        supervisors = client.get("/api/staff/supervisors", headers=admin_headers).get_json()["supervisors"]
        assert supervisors[0]["organization"] == "BSA Plant"

        assert client.delete(f"/api/staff/supervisors/{staff_id}", headers=admin_headers).status_code == 200
        assert client.get("/api/staff/supervisors", headers=admin_headers).get_json()["supervisors"] == []

    def test_new_form_admin_can_log_in(self, client, admin_headers):
        assert _add(client, admin_headers, "formadmins", "forms1").status_code == 201
        resp = client.post("/auth/login", json={"username": "forms1", "password": "secret123"})
        assert resp.get_json()["role"] == "formadmin"

    def test_password_change_is_hashed(self, client, admin_headers, db):
        staff_id = _add(client, admin_headers, "formadmins", "forms1").get_json()["id"]
        client.put(f"/api/staff/formadmins/{staff_id}", json={"password": "newpass99"}, headers=admin_headers)

        assert db.formadmins.find_one({"username": "forms1"})["password"] != "newpass99"
        resp = client.post("/auth/login", json={"username": "forms1", "password": "newpass99"})
        assert resp.status_code == 200

    def test_validation_errors(self, client, admin_headers):
        resp = client.post("/api/staff/supervisors", json={"name": "X", "username": "ab"}, headers=admin_headers)
        assert resp.status_code == 400
        assert set(resp.get_json()["errors"]) == {"name", "username", "password"}

    def test_duplicate_username(self, client, admin_headers):
        _add(client, admin_headers, "formadmins", "forms1")
        assert _add(client, admin_headers, "formadmins", "forms1").status_code == 409

    def test_unknown_kind(self, client, admin_headers):
        assert client.get("/api/staff/janitors", headers=admin_headers).status_code == 404

    def test_update_and_delete_unknown_account(self, client, admin_headers):
        missing = "64b7f0000000000000000000"
        assert client.put(f"/api/staff/supervisors/{missing}", json={"name": "Someone"},
                          headers=admin_headers).status_code == 404
        assert client.delete(f"/api/staff/supervisors/{missing}", headers=admin_headers).status_code == 404

    def test_only_superadmins_manage_staff(self, client, supervisor_headers, trainer_headers):
        assert client.get("/api/staff/supervisors", headers=supervisor_headers).status_code == 403
        assert _add(client, trainer_headers, "formadmins", "forms1").status_code == 403


class TestAdminManagement:
    def test_primary_admin_adds_superadmins(self, client, admin_headers):
        resp = _add(client, admin_headers, "superadmins", "admin2")
        assert resp.status_code == 201
        admins = client.get("/api/staff/superadmins", headers=admin_headers).get_json()["superadmins"]
        added = next(a for a in admins if a["username"] == "admin2")
        assert added["canManageAdmins"] is False

    def test_superadmin_without_grant_cannot_manage_admins(self, app, client, admin_headers):
        _add(client, admin_headers, "superadmins", "admin2")
        second = staff_headers(app, client, "superadmin", "admin3")

        assert _add(client, second, "superadmins", "admin4").status_code == 403
        # other staff are still theirs to manage
        assert _add(client, second, "formadmins", "forms1").status_code == 201

    def test_granted_superadmin_can_manage_admins(self, client, admin_headers):
        _add(client, admin_headers, "superadmins", "admin2", canManageAdmins=True)
        resp = client.post("/auth/login", json={"username": "admin2", "password": "secret123"})
        granted = {"Authorization": f"Bearer {resp.get_json()['token']}"}
        assert _add(client, granted, "superadmins", "admin3").status_code == 201

    def test_superadmin_edits_own_profile_without_grant(self, app, client, admin_headers):
        second = staff_headers(app, client, "superadmin", "admin2")
        with app.app_context():
            own_id = next(a["id"] for a in STAFF.get_all("superadmin") if a["username"] == "admin2")

        resp = client.put(f"/api/staff/superadmins/{own_id}", json={"mobile": "9876543210"}, headers=second)
        assert resp.status_code == 200
        resp = client.put(f"/api/staff/superadmins/{own_id}", json={"canManageAdmins": True}, headers=second)
        assert resp.status_code == 403

    def test_primary_admin_cannot_be_deleted(self, app, client, admin_headers):
        with app.app_context():
            primary = STAFF.primary_admin_id()
        resp = client.get(f"/api/staff/superadmins/{primary}/primary", headers=admin_headers)
        assert resp.get_json()["isPrimary"] is True

        resp = client.delete(f"/api/staff/superadmins/{primary}", headers=admin_headers)
        assert resp.status_code == 409

    def test_other_superadmin_is_not_primary(self, client, admin_headers):
        admin2 = _add(client, admin_headers, "superadmins", "admin2").get_json()["id"]
        resp = client.get(f"/api/staff/superadmins/{admin2}/primary", headers=admin_headers)
        assert resp.get_json()["isPrimary"] is False
        assert client.delete(f"/api/staff/superadmins/{admin2}", headers=admin_headers).status_code == 200


class TestBootstrap:
    def test_primary_admin_seeded_from_config(self):
        class SeededConfig(TestingConfig):
            BOOTSTRAP_ADMIN_USERNAME = "root"
            BOOTSTRAP_ADMIN_PASSWORD = "secret123"

        app = create_app(SeededConfig, mongo_client=mongomock.MongoClient())
        client = app.test_client()
        resp = client.post("/auth/login", json={"username": "root", "password": "secret123"})
        assert resp.status_code == 200
        assert resp.get_json()["role"] == "superadmin"

        with app.app_context():
            assert STAFF.can_manage_admins(STAFF.primary_admin_id())

    def test_seed_is_skipped_once_a_superadmin_exists(self, app_ctx, db):
        assert ensure_primary_admin("root", "secret123") is not None
        assert ensure_primary_admin("other", "secret123") is None
        assert db.superadmins.count_documents({}) == 1

    def test_create_superadmin_command(self, app, db):
        runner = app.test_cli_runner()
        result = runner.invoke(create_superadmin_command,
                               ["--username", "root", "--name", "Root Admin", "--password", "secret123"])
        assert result.exit_code == 0, result.output
        assert "Created superadmin root" in result.output
        doc = db.superadmins.find_one({"username": "root"})
        assert doc["canManageAdmins"] is True
        assert doc["password"] != "secret123"

    def test_create_superadmin_command_rejects_duplicates(self, app):
        runner = app.test_cli_runner()
        args = ["--username", "root", "--password", "secret123"]
        assert runner.invoke(create_superadmin_command, args).exit_code == 0
        result = runner.invoke(create_superadmin_command, args)
        assert result.exit_code == 1
        assert "already taken" in result.output

    def test_command_is_registered(self, app):
        assert "create-superadmin" in app.cli.commands
