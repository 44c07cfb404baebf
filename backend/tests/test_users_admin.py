"""
User administration tests.

Verifies:
- Admins list, create, update and deactivate users
- Duplicate usernames and weak passwords are rejected
- An admin cannot lock themselves out or remove the last admin
- Deactivating a user revokes their tokens
- Cashiers cannot reach the user routes
"""

from shoppos.models import SessionToken, User
from shoppos.extensions import db

TEST_PASSWORD = "Password123"


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def login(client, username: str, password: str):
    return client.post("/api/auth/login", json={"username": username, "password": password})


class TestUserAdmin:

    def test_list_users(self, client, admin_headers, cashier_user):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        assert [u["username"] for u in resp.get_json()["items"]] == ["admin", "cashier"]
        assert "password_hash" not in resp.get_json()["items"][0]

        filtered = client.get("/api/users?q=CASH", headers=admin_headers).get_json()
        assert filtered["count"] == 1

    def test_create_user_can_log_in(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers,
                           json={"username": "mya", "password": "Counter42"})
        assert resp.status_code == 201
        assert resp.get_json()["role"] == "cashier"

        assert login(client, "mya", "Counter42").status_code == 200

    def test_duplicate_username(self, client, admin_headers, cashier_user):
        resp = client.post("/api/users", headers=admin_headers,
                           json={"username": "cashier", "password": TEST_PASSWORD})
        assert resp.status_code == 409

    def test_weak_password(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers,
                           json={"username": "mya", "password": "short"})
        assert resp.status_code == 400
        assert "8 characters" in resp.get_json()["error"]

    def test_unknown_role(self, client, admin_headers):
        resp = client.post("/api/users", headers=admin_headers,
                           json={"username": "mya", "password": TEST_PASSWORD, "role": "manager"})
        assert resp.status_code == 400

    def test_promote_and_reset_password(self, client, admin_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", headers=admin_headers,
                          json={"role": "admin", "password": "NewPass99"})
        assert resp.status_code == 200
        assert resp.get_json()["role"] == "admin"

        assert login(client, "cashier", TEST_PASSWORD).status_code == 401
        assert login(client, "cashier", "NewPass99").status_code == 200

    def test_unknown_field_rejected(self, client, admin_headers, cashier_user):
        resp = client.put(f"/api/users/{cashier_user.id}", headers=admin_headers, json={"username": "x"})
        assert resp.status_code == 400

    def test_missing_user(self, client, admin_headers):
        assert client.put("/api/users/9999", headers=admin_headers, json={"role": "admin"}).status_code == 404
        assert client.delete("/api/users/9999", headers=admin_headers).status_code == 404


class TestDeactivation:

    def test_delete_deactivates_and_revokes_tokens(self, client, admin_headers, cashier_user):
        token = login(client, "cashier", TEST_PASSWORD).get_json()["token"]
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 200

        resp = client.delete(f"/api/users/{cashier_user.id}", headers=admin_headers)

        assert resp.status_code == 200
        assert db.session.get(User, cashier_user.id).is_active is False
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
        assert db.session.query(SessionToken).filter_by(
            user_id=cashier_user.id, is_revoked=False).count() == 0
        assert login(client, "cashier", TEST_PASSWORD).status_code == 401

    def test_reactivate(self, client, admin_headers, cashier_user):
        client.delete(f"/api/users/{cashier_user.id}", headers=admin_headers)
        resp = client.put(f"/api/users/{cashier_user.id}", headers=admin_headers, json={"is_active": True})
        assert resp.status_code == 200
        assert login(client, "cashier", TEST_PASSWORD).status_code == 200

    def test_cannot_deactivate_self(self, client, admin_headers, admin_user):
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400
        assert db.session.get(User, admin_user.id).is_active is True

    def test_last_admin_cannot_be_demoted(self, client, admin_headers, admin_user):
        resp = client.put(f"/api/users/{admin_user.id}", headers=admin_headers, json={"role": "cashier"})
        assert resp.status_code == 400
        assert "active admin" in resp.get_json()["error"]

    def test_admin_demoted_when_another_admin_exists(self, client, admin_headers, admin_user, password_hash):
        other = User(username="owner", password_hash=password_hash, role="admin")
        db.session.add(other)
        db.session.commit()

        resp = client.put(f"/api/users/{admin_user.id}", headers=admin_headers, json={"role": "cashier"})
        assert resp.status_code == 200
        assert resp.get_json()["role"] == "cashier"


class TestCashierDenied:

    def test_cashier_gets_403(self, client, cashier_headers, cashier_user):
        assert client.get("/api/users", headers=cashier_headers).status_code == 403
        assert client.post("/api/users", headers=cashier_headers,
                           json={"username": "x", "password": TEST_PASSWORD}).status_code == 403
        assert client.delete(f"/api/users/{cashier_user.id}", headers=cashier_headers).status_code == 403
