"""
Workers, roles, locations and the repair catalog.
"""

from solnet.models import SecurityEvent, User
from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# WORKERS
# =============================================================================


class TestWorkerAdmin:

    def test_create_worker(self, client, db_session, admin_headers, admin_user, location_b):
        resp = client.post(
            "/api/users",
            json={
                "username": "newdesk",
                "email": "NewDesk@SolNet.local",
                "password": PASSWORD,
                "role": "customer_service",
                "location_id": location_b.id,
                "first_name": "Liya",
            },
            headers=admin_headers,
        )
        assert resp.status_code == 201
        user = resp.json["user"]
        assert user["role"] == "customer_service"
        assert user["location_id"] == location_b.id

        event = db_session.query(SecurityEvent).filter_by(event_type="USER_CREATED").one()
        assert event.user_id == admin_user.id

    def test_duplicate_username(self, client, db_session, admin_headers, technician_a):
        resp = client.post(
            "/api/users",
            json={"username": "tech_a", "email": "other@solnet.local", "password": PASSWORD},
            headers=admin_headers,
        )
        assert resp.status_code == 409

    def test_unknown_role(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/users",
            json={"username": "x", "email": "x@solnet.local", "password": PASSWORD, "role": "owner"},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_filter_by_role(self, client, db_session, admin_headers, technician_a, sales_a):
        resp = client.get("/api/users?role=sales", headers=admin_headers)
        assert [u["username"] for u in resp.json["items"]] == ["sales_a"]

    def test_change_role(self, client, db_session, admin_headers, technician_a):
        resp = client.put(f"/api/users/{technician_a.id}", json={"role": "sales"}, headers=admin_headers)
        assert resp.json["user"]["role"] == "sales"

        token = get_auth_token(client, "tech_a", PASSWORD)
        login = client.get("/api/workers/profile", headers=auth_headers(token)).json
        assert "CREATE_SALE" in login["permissions"]

    def test_reset_password(self, client, db_session, admin_headers, technician_a):
        client.put(f"/api/users/{technician_a.id}", json={"password": "NewPass456!"}, headers=admin_headers)
        assert get_auth_token(client, "tech_a", PASSWORD) is None
        assert get_auth_token(client, "tech_a", "NewPass456!") is not None

    def test_deactivate_revokes_sessions(self, client, db_session, admin_headers, technician_a):
        token = get_auth_token(client, "tech_a", PASSWORD)
        resp = client.delete(f"/api/users/{technician_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(User, technician_a.id).is_active is False
        assert client.get("/api/customers", headers=auth_headers(token)).status_code == 401

    def test_cannot_deactivate_self(self, client, db_session, admin_headers, admin_user):
        resp = client.delete(f"/api/users/{admin_user.id}", headers=admin_headers)
        assert resp.status_code == 400


class TestWorkersList:

    def test_workers_scoped_to_location(self, client, db_session, technician_headers, technician_a, front_desk_b):
        resp = client.get("/api/workers", headers=technician_headers)
        usernames = {w["username"] for w in resp.json["items"]}
        assert "tech_a" in usernames
        assert "desk_b" not in usernames

    def test_admin_sees_all_workers(self, client, db_session, admin_headers, technician_a, front_desk_b):
        usernames = {w["username"] for w in client.get("/api/workers", headers=admin_headers).json["items"]}
        assert {"tech_a", "desk_b"} <= usernames

    def test_roles_listing(self, client, db_session, technician_headers):
        roles = {r["name"]: r for r in client.get("/api/roles", headers=technician_headers).json["roles"]}
        assert set(roles) == {"admin", "manager", "technician", "sales", "customer_service"}
        manager_codes = {p["code"] for p in roles["manager"]["permissions"]}
        assert "MANAGE_SMS_QUEUE" not in manager_codes
        assert "VIEW_FINANCE" in manager_codes


class TestProfile:

    def test_update_own_profile(self, client, db_session, technician_headers):
        resp = client.put(
            "/api/workers/profile",
            json={"first_name": " Yonas ", "phone": "0977000000"},
            headers=technician_headers,
        )
        assert resp.status_code == 200
        assert resp.json["user"]["first_name"] == "Yonas"

    def test_profile_cannot_change_role(self, client, db_session, technician_headers):
        resp = client.put("/api/workers/profile", json={"role": "admin"}, headers=technician_headers)
        assert resp.status_code == 400

    def test_password_change_needs_current(self, client, db_session, technician_headers):
        resp = client.put(
            "/api/workers/profile",
            json={"current_password": "Wrong123!", "new_password": "NewPass456!"},
            headers=technician_headers,
        )
        assert resp.status_code == 400

        resp = client.put(
            "/api/workers/profile",
            json={"current_password": PASSWORD, "new_password": "NewPass456!"},
            headers=technician_headers,
        )
        assert resp.status_code == 200
        assert get_auth_token(client, "tech_a", "NewPass456!") is not None


# =============================================================================
# LOCATIONS
# =============================================================================


class TestLocations:

    def test_public_active_list(self, client, db_session, location_a, location_b):
        client_resp = client.get("/api/locations/active")
        assert {l["code"] for l in client_resp.json["items"]} == {"MAIN", "BR2"}

    def test_create_normalizes_code(self, client, db_session, admin_headers):
        resp = client.post("/api/locations", json={"name": "Piassa", "code": " pia "}, headers=admin_headers)
        assert resp.status_code == 201
        assert resp.json["location"]["code"] == "PIA"

    def test_duplicate_code(self, client, db_session, admin_headers, location_a):
        resp = client.post("/api/locations", json={"name": "Dup", "code": "main"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_deactivate_hides_from_public_list(self, client, db_session, admin_headers, location_b):
        client.delete(f"/api/locations/{location_b.id}", headers=admin_headers)
        codes = {l["code"] for l in client.get("/api/locations/active").json["items"]}
        assert "BR2" not in codes

    def test_manager_cannot_manage_locations(self, client, db_session, location_a):
        from solnet.services.auth_service import create_user
        create_user("mgr", "mgr@solnet.local", PASSWORD, role="manager", location_id=location_a.id)
        headers = auth_headers(get_auth_token(client, "mgr", PASSWORD))
        resp = client.post("/api/locations", json={"name": "X", "code": "X"}, headers=headers)
        assert resp.status_code == 403


# =============================================================================
# CATALOG
# =============================================================================


class TestCatalog:

    def test_device_model_requires_existing_brand(self, client, db_session, admin_headers):
        resp = client.post("/api/models", json={"name": "ThinkPad T14", "brand_id": 999}, headers=admin_headers)
        assert resp.status_code == 404

    def test_model_names_unique_per_brand(self, client, db_session, admin_headers, lenovo):
        payload = {"name": "ThinkPad T14", "brand_id": lenovo.id}
        assert client.post("/api/models", json=payload, headers=admin_headers).status_code == 201
        assert client.post("/api/models", json=payload, headers=admin_headers).status_code == 409

    def test_filter_models_by_brand(self, client, db_session, admin_headers, lenovo):
        dell = client.post("/api/brands", json={"name": "Dell"}, headers=admin_headers).json["item"]
        client.post("/api/models", json={"name": "ThinkPad T14", "brand_id": lenovo.id}, headers=admin_headers)
        client.post("/api/models", json={"name": "XPS 13", "brand_id": dell["id"]}, headers=admin_headers)

        resp = client.get(f"/api/models?brand_id={dell['id']}", headers=admin_headers)
        assert [m["name"] for m in resp.json["items"]] == ["XPS 13"]

    def test_delete_deactivates(self, client, db_session, admin_headers, technician_headers, laptop_type):
        client.delete(f"/api/device-types/{laptop_type.id}", headers=admin_headers)
        assert client.get("/api/device-types", headers=technician_headers).json["count"] == 0
        resp = client.get("/api/device-types?include_inactive=1", headers=technician_headers)
        assert resp.json["count"] == 1

    def test_every_catalog_collection_is_routed(self, client, db_session, admin_headers):
        for segment in ("device-types", "brands", "models", "service-types", "predefined-problems"):
            resp = client.get(f"/api/{segment}", headers=admin_headers)
            assert resp.status_code == 200, segment
        assert client.get("/api/device_types", headers=admin_headers).status_code == 404

    def test_technician_reads_but_cannot_write(self, client, db_session, technician_headers):
        assert client.get("/api/brands", headers=technician_headers).status_code == 200
        assert client.post("/api/brands", json={"name": "HP"}, headers=technician_headers).status_code == 403

    def test_public_service_types(self, client, db_session, admin_headers):
        client.post("/api/service-types", json={"name": "Battery swap", "base_price_cents": 2500}, headers=admin_headers)
        client.post("/api/service-types", json={"name": "Internal audit", "is_public": False}, headers=admin_headers)
        names = [s["name"] for s in client.get("/api/public/service-types").json["items"]]
        assert names == ["Battery swap"]

    def test_negative_price_rejected(self, client, db_session, admin_headers):
        resp = client.post("/api/service-types", json={"name": "X", "base_price_cents": -1}, headers=admin_headers)
        assert resp.status_code == 400


class TestHealth:

    def test_health(self, client, db_session):
        assert client.get("/api/health").status_code == 200
