"""
Access gate tests.

Verifies:
- Unauthenticated requests return 401 with the JSON error shape
- Bearer token and session cookie both authenticate
- Permission and role checks return 403
- Self-registration is disabled
"""

import pytest

from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS - 401
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/users"),
            ("GET", "/api/products"),
            ("POST", "/api/products"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/customers"),
            ("GET", "/api/inventory"),
            ("PATCH", "/api/inventory/1/adjust"),
            ("GET", "/api/sales"),
            ("POST", "/api/sales"),
            ("PATCH", "/api/sales/1/status"),
        ],
    )
    def test_requires_auth(self, client, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["status"] == "fail"
        assert resp.json["message"]

    def test_invalid_token(self, client):
        resp = client.get("/api/auth/me", headers=auth_headers("not-a-real-token"))
        assert resp.status_code == 401


class TestLogin:

    def test_login_returns_token_and_user(self, client, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": DEFAULT_PASSWORD})

        assert resp.status_code == 200
        assert len(resp.json["token"]) == 64
        assert resp.json["data"]["user"]["role"] == "business_owner"
        assert "password_hash" not in resp.json["data"]["user"]
        assert "authjs.session-token=" in resp.headers.get("Set-Cookie", "")

    def test_login_is_case_insensitive_on_email(self, client, owner):
        assert get_auth_token(client, owner.email.upper()) is not None

    def test_wrong_password(self, client, owner):
        resp = client.post("/api/auth/login", json={"email": owner.email, "password": "Wrong123!"})
        assert resp.status_code == 401
        assert resp.json == {"status": "fail", "message": "Invalid email or password"}

    def test_missing_fields(self, client):
        resp = client.post("/api/auth/login", json={"email": "x@y.z"})
        assert resp.status_code == 400

    def test_inactive_user_cannot_login(self, client, salesperson, db_session):
        salesperson.is_active = False
        db_session.commit()
        assert get_auth_token(client, salesperson.email) is None

    def test_registration_disabled(self, client):
        resp = client.post("/api/auth/register", json={"email": "a@b.c", "password": DEFAULT_PASSWORD})
        assert resp.status_code == 403


class TestSessionUse:

    def test_cookie_authenticates(self, client, owner):
        token = get_auth_token(client, owner.email)
        resp = client.get("/api/auth/me", headers={"Cookie": f"authjs.session-token={token}"})
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["email"] == owner.email

    def test_bearer_wins_over_cookie(self, client, owner, salesperson):
        owner_token = get_auth_token(client, owner.email)
        sales_token = get_auth_token(client, salesperson.email)
        resp = client.get(
            "/api/auth/me",
            headers={
                "Authorization": f"Bearer {sales_token}",
                "Cookie": f"authjs.session-token={owner_token}",
            },
        )
        assert resp.json["data"]["user"]["email"] == salesperson.email

    def test_logout_revokes_token(self, client, owner):
        headers = auth_headers(get_auth_token(client, owner.email))
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_update_own_details(self, client, salesperson_headers):
        resp = client.patch("/api/auth/me", json={"first_name": "Tope"}, headers=salesperson_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["first_name"] == "Tope"

    def test_cannot_change_own_role(self, client, salesperson_headers):
        resp = client.patch("/api/auth/me", json={"role": "business_owner"}, headers=salesperson_headers)
        assert resp.status_code == 400

    def test_change_password(self, client, salesperson, salesperson_headers):
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "NewPass456!"},
            headers=salesperson_headers,
        )
        assert resp.status_code == 200
        assert get_auth_token(client, salesperson.email, "NewPass456!") is not None
        assert get_auth_token(client, salesperson.email) is None

    def test_change_password_rejects_weak(self, client, salesperson_headers):
        resp = client.post(
            "/api/auth/change-password",
            json={"current_password": DEFAULT_PASSWORD, "new_password": "short"},
            headers=salesperson_headers,
        )
        assert resp.status_code == 400


# =============================================================================
# PERMISSION AND ROLE CHECKS - 403
# =============================================================================


class TestForbidden:

    def test_salesperson_cannot_manage_inventory(self, client, salesperson_headers):
        resp = client.patch("/api/inventory/1/adjust", json={"adjustment": 5}, headers=salesperson_headers)
        assert resp.status_code == 403
        assert resp.json["details"]["required_permission"] == "manage_inventory"

    def test_salesperson_cannot_manage_suppliers(self, client, salesperson_headers):
        assert client.get("/api/suppliers", headers=salesperson_headers).status_code == 403

    def test_manager_cannot_manage_users(self, client, manager_headers):
        assert client.get("/api/users", headers=manager_headers).status_code == 403

    def test_manager_cannot_delete_products(self, client, manager_headers, make_product):
        product = make_product(stock=1)
        assert client.delete(f"/api/products/{product.id}", headers=manager_headers).status_code == 403

    def test_revoked_permission_takes_effect(self, client, owner_headers, salesperson, salesperson_headers):
        resp = client.patch(
            f"/api/users/{salesperson.id}/permissions",
            json={"permissions": {"manage_sales": False}},
            headers=owner_headers,
        )
        assert resp.status_code == 200
        resp = client.post("/api/sales", json={"items": []}, headers=salesperson_headers)
        assert resp.status_code == 403


def test_unknown_route_is_json_404(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.json["status"] == "fail"


def test_health(client, db_session):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json["checks"]["database"]["status"] == "healthy"
