"""
Authorization tests.

Verifies:
- Unauthenticated requests return 401
- Login issues a bearer token carrying the role's permissions
- Roles without a permission get 403 and the denial is audited
- Logout revokes the token
"""

import pytest

from solnet.models import SecurityEvent
from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/users"),
            ("GET", "/api/customers"),
            ("POST", "/api/devices"),
            ("GET", "/api/inventory"),
            ("GET", "/api/inventory/predictions"),
            ("POST", "/api/sales"),
            ("GET", "/api/expenses"),
            ("GET", "/api/loan-invoices"),
            ("GET", "/api/notifications"),
            ("GET", "/api/sms/settings"),
            ("GET", "/api/sms-queue"),
            ("GET", "/api/sms-campaigns"),
            ("GET", "/api/settings"),
            ("GET", "/api/dashboard/stats"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"

    def test_invalid_token_rejected(self, client, db_session):
        resp = client.get("/api/customers", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_permissions(self, client, technician_a):
        resp = client.post("/api/auth/login", json={"username": "tech_a", "password": PASSWORD})
        assert resp.status_code == 200
        body = resp.json
        assert body["token"]
        assert body["user"]["role"] == "technician"
        assert body["location_id"] == technician_a.location_id
        assert "REGISTER_DEVICES" in body["permissions"]
        assert "MANAGE_SMS_QUEUE" not in body["permissions"]

    def test_login_by_email(self, client, technician_a):
        resp = client.post("/api/auth/login", json={"email": "tech_a@solnet.local", "password": PASSWORD})
        assert resp.status_code == 200

    def test_wrong_password(self, client, technician_a):
        resp = client.post("/api/auth/login", json={"username": "tech_a", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_missing_fields(self, client, db_session):
        resp = client.post("/api/auth/login", json={"username": "tech_a"})
        assert resp.status_code == 400

    def test_logout_revokes_token(self, client, technician_a):
        token = get_auth_token(client, "tech_a", PASSWORD)
        headers = auth_headers(token)
        assert client.get("/api/customers", headers=headers).status_code == 200

        resp = client.post("/api/auth/logout", headers=headers)
        assert resp.status_code == 200
        assert client.get("/api/customers", headers=headers).status_code == 401

    def test_deactivated_user_cannot_login(self, client, db_session, technician_a):
        technician_a.is_active = False
        db_session.commit()
        resp = client.post("/api/auth/login", json={"username": "tech_a", "password": PASSWORD})
        assert resp.status_code == 401


# =============================================================================
# ROLE PERMISSIONS (403)
# =============================================================================


class TestRolePermissions:

    def test_technician_cannot_manage_sms_queue(self, client, db_session, technician_headers):
        resp = client.get("/api/sms-queue", headers=technician_headers)
        assert resp.status_code == 403
        assert resp.json["required_permission"] == "MANAGE_SMS_QUEUE"

    def test_denial_is_audited(self, client, db_session, technician_a, technician_headers):
        client.get("/api/settings", headers=technician_headers)
        event = db_session.query(SecurityEvent).filter_by(
            user_id=technician_a.id, event_type="PERMISSION_DENIED"
        ).first()
        assert event is not None
        assert event.success is False

    def test_sales_cannot_create_workers(self, client, db_session, sales_headers):
        resp = client.post(
            "/api/users",
            json={"username": "x", "email": "x@x.com", "password": "Password123!", "role": "admin"},
            headers=sales_headers,
        )
        assert resp.status_code == 403

    def test_admin_can_list_workers(self, client, db_session, admin_headers, technician_a):
        resp = client.get("/api/users", headers=admin_headers)
        assert resp.status_code == 200
        usernames = {u["username"] for u in resp.json["items"]}
        assert {"admin", "tech_a"} <= usernames

    def test_admin_creates_worker_with_weak_password(self, client, db_session, admin_headers, location_a):
        resp = client.post(
            "/api/users",
            json={
                "username": "newtech",
                "email": "newtech@solnet.local",
                "password": "short",
                "role": "technician",
                "location_id": location_a.id,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 400
