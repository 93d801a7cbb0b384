"""
Tests for the authentication endpoints.
"""

from shared.config.constants import Roles
from tests.conftest import PASSWORDS, create_user, login_headers


class TestLogin:
    def test_login_success(self, client, waiter):
        response = client.post("/api/auth/login", json={
            "email": waiter.email,
            "password": PASSWORDS[Roles.WAITER],
        })

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"]
        assert data["token_type"] == "Bearer"
        assert data["user"] == {
            "id": waiter.uid,
            "email": waiter.email,
            "role": Roles.WAITER,
            "display_name": waiter.display_name,
        }

    def test_login_wrong_password(self, client, waiter):
        response = client.post("/api/auth/login", json={"email": waiter.email, "password": "nope"})
        assert response.status_code == 401

    def test_login_unknown_email(self, client, store):
        response = client.post("/api/auth/login", json={"email": "ghost@test.com", "password": "whatever"})
        assert response.status_code == 401

    def test_login_unapproved_staff(self, client, store):
        create_user(store, Roles.CASHIER, email="pending@test.com", approved=False)
        response = client.post("/api/auth/login", json={
            "email": "pending@test.com",
            "password": PASSWORDS[Roles.CASHIER],
        })
        assert response.status_code == 403

    def test_login_invalid_payload(self, client, store):
        response = client.post("/api/auth/login", json={"email": "not-an-email", "password": "x"})
        assert response.status_code == 422


class TestRegister:
    def test_register_signs_in_customer(self, client, store):
        response = client.post("/api/auth/register", json={
            "email": "carla@test.com",
            "password": "secret123",
            "first_name": "Carla",
            "last_name": "Diaz",
        })

        assert response.status_code == 201
        user = response.json()["user"]
        assert user["role"] == Roles.CUSTOMER
        assert user["display_name"] == "Carla Diaz"

        token = response.json()["access_token"]
        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == "carla@test.com"

    def test_register_duplicate_email(self, client, customer):
        response = client.post("/api/auth/register", json={
            "email": customer.email,
            "password": "secret123",
            "first_name": "Ann",
        })
        assert response.status_code == 409

    def test_register_short_password(self, client, store):
        response = client.post("/api/auth/register", json={
            "email": "short@test.com",
            "password": "123",
            "first_name": "Sam",
        })
        assert response.status_code == 422


class TestMe:
    def test_me(self, client, chef, chef_headers):
        response = client.get("/api/auth/me", headers=chef_headers)

        assert response.status_code == 200
        assert response.json()["id"] == chef.uid
        assert response.json()["role"] == Roles.CHEF

    def test_me_without_token(self, client):
        assert client.get("/api/auth/me").status_code == 401

    def test_me_with_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_me_with_wrong_scheme(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Basic abc"})
        assert response.status_code == 401


class TestStaffSignUpAndApproval:
    STAFF = {
        "email": "nia@test.com",
        "password": "secret123",
        "first_name": "Nia",
        "last_name": "Ng",
        "role": Roles.CHEF,
    }

    def test_sign_up_then_approval(self, client, admin_headers):
        response = client.post("/api/auth/register/staff", json=self.STAFF)
        assert response.status_code == 201
        account = response.json()
        assert account["approved"] is False
        assert "access_token" not in account

        credentials = {"email": self.STAFF["email"], "password": self.STAFF["password"]}
        assert client.post("/api/auth/login", json=credentials).status_code == 403

        pending = client.get("/api/admin/staff/pending", headers=admin_headers).json()
        assert [p["id"] for p in pending] == [account["id"]]

        approved = client.put(
            f"/api/admin/staff/{account['id']}/approval", headers=admin_headers, json={"approved": True}
        )
        assert approved.status_code == 200
        assert approved.json()["approved"] is True

        headers = login_headers(client, self.STAFF["email"], self.STAFF["password"])
        assert client.get("/api/auth/me", headers=headers).json()["role"] == Roles.CHEF

    def test_cannot_sign_up_as_admin(self, client, store):
        response = client.post("/api/auth/register/staff", json={**self.STAFF, "role": Roles.ADMIN})
        assert response.status_code == 422

    def test_only_admins_review(self, client, waiter, waiter_headers):
        assert client.get("/api/admin/staff/pending", headers=waiter_headers).status_code == 403
        response = client.put(
            f"/api/admin/staff/{waiter.uid}/approval", headers=waiter_headers, json={"approved": False}
        )
        assert response.status_code == 403

    def test_unknown_account(self, client, admin_headers):
        response = client.put("/api/admin/staff/missing/approval", headers=admin_headers, json={"approved": True})
        assert response.status_code == 404
