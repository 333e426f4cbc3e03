"""
Staff account API tests (business owner only).

Verifies:
- Staff creation with role defaults and password strength
- Role assignment restrictions
- Permission toggles and their effect on the access gate
- Deactivation revokes sessions; owners cannot deactivate themselves
"""

import pytest

from conftest import DEFAULT_PASSWORD, auth_headers, get_auth_token


def _staff_body(**overrides):
    body = {
        "first_name": "Amaka",
        "last_name": "Obi",
        "email": "amaka@foamstock.test",
        "password": DEFAULT_PASSWORD,
        "role": "salesperson",
    }
    body.update(overrides)
    return body


class TestCreateStaff:

    def test_create_salesperson_with_defaults(self, client, owner_headers):
        resp = client.post("/api/users", json=_staff_body(), headers=owner_headers)

        assert resp.status_code == 201
        user = resp.json["data"]
        assert user["role"] == "salesperson"
        assert user["permissions"]["manage_sales"] is True
        assert user["permissions"]["view_profits"] is False
        assert "password_hash" not in user

        assert get_auth_token(client, "amaka@foamstock.test") is not None

    def test_cannot_create_business_owner(self, client, owner_headers):
        resp = client.post("/api/users", json=_staff_body(role="business_owner"), headers=owner_headers)
        assert resp.status_code == 400

    def test_weak_password_rejected(self, client, owner_headers):
        resp = client.post("/api/users", json=_staff_body(password="short"), headers=owner_headers)
        assert resp.status_code == 400
        assert "Password" in resp.json["message"]

    def test_duplicate_email_is_409(self, client, owner_headers, salesperson):
        resp = client.post("/api/users", json=_staff_body(email=salesperson.email.upper()), headers=owner_headers)
        assert resp.status_code == 409

    @pytest.mark.parametrize("headers_fixture", ["manager_headers", "salesperson_headers"])
    def test_only_owner_manages_users(self, client, request, headers_fixture):
        headers = request.getfixturevalue(headers_fixture)
        assert client.post("/api/users", json=_staff_body(), headers=headers).status_code == 403
        assert client.get("/api/users", headers=headers).status_code == 403


class TestUpdateStaff:

    def test_promote_to_manager(self, client, owner_headers, salesperson):
        resp = client.patch(f"/api/users/{salesperson.id}", json={"role": "sales_manager"}, headers=owner_headers)

        assert resp.status_code == 200
        assert resp.json["data"]["role"] == "sales_manager"

    def test_password_not_editable(self, client, owner_headers, salesperson):
        resp = client.patch(
            f"/api/users/{salesperson.id}", json={"password": "NewPass123!"}, headers=owner_headers
        )
        assert resp.status_code == 400

    def test_unknown_user_is_404(self, client, owner_headers):
        assert client.get("/api/users/9999", headers=owner_headers).status_code == 404

    def test_permission_catalogue(self, client, owner_headers):
        data = client.get("/api/users/permissions", headers=owner_headers).json["data"]
        assert "view_profits" in {p["name"] for p in data}


class TestPermissions:

    def test_grant_view_profits(self, client, owner_headers, manager, manager_headers, make_product):
        product = make_product()
        assert "unit_cost_cents" not in client.get(
            f"/api/products/{product.id}", headers=manager_headers
        ).json["data"]

        resp = client.patch(
            f"/api/users/{manager.id}/permissions",
            json={"permissions": {"view_profits": True}},
            headers=owner_headers,
        )

        assert resp.status_code == 200
        assert resp.json["data"]["permissions"]["view_profits"] is True
        assert client.get(
            f"/api/products/{product.id}", headers=manager_headers
        ).json["data"]["unit_cost_cents"] == 100

    @pytest.mark.parametrize(
        "permissions",
        [{"fly": True}, {"view_profits": "yes"}, {}],
    )
    def test_invalid_permission_payload(self, client, owner_headers, manager, permissions):
        resp = client.patch(
            f"/api/users/{manager.id}/permissions", json={"permissions": permissions}, headers=owner_headers
        )
        assert resp.status_code == 400


class TestActivation:

    def test_deactivate_revokes_sessions(self, client, owner_headers, salesperson):
        token = get_auth_token(client, salesperson.email)

        resp = client.patch(f"/api/users/{salesperson.id}/deactivate", headers=owner_headers)

        assert resp.status_code == 200
        assert resp.json["data"]["is_active"] is False
        assert client.get("/api/auth/me", headers=auth_headers(token)).status_code == 401
        assert get_auth_token(client, salesperson.email) is None

    def test_cannot_deactivate_self(self, client, owner_headers, owner):
        resp = client.patch(f"/api/users/{owner.id}/deactivate", headers=owner_headers)

        assert resp.status_code == 400
        assert resp.json["message"] == "You cannot deactivate your own account"

    def test_activate(self, client, owner_headers, salesperson):
        client.patch(f"/api/users/{salesperson.id}/deactivate", headers=owner_headers)

        resp = client.patch(f"/api/users/{salesperson.id}/activate", headers=owner_headers)

        assert resp.status_code == 200
        assert get_auth_token(client, salesperson.email) is not None
