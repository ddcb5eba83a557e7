"""
Location scoping tests.

Workers only see and touch records of the location captured at login;
admins see every location and may filter by one.
"""

from solnet.models import Customer, Device, InventoryItem
from solnet.services.auth_service import create_user
from conftest import PASSWORD, auth_headers, get_auth_token


class TestCustomerScoping:

    def test_worker_lists_only_own_location(self, client, db_session, technician_headers, customer_a, customer_b):
        resp = client.get("/api/customers", headers=technician_headers)
        assert resp.status_code == 200
        ids = {c["id"] for c in resp.json["items"]}
        assert ids == {customer_a.id}

    def test_admin_lists_all_locations(self, client, db_session, admin_headers, customer_a, customer_b):
        resp = client.get("/api/customers", headers=admin_headers)
        ids = {c["id"] for c in resp.json["items"]}
        assert {customer_a.id, customer_b.id} <= ids

    def test_admin_filters_by_location(self, client, db_session, admin_headers, customer_a, customer_b, location_b):
        resp = client.get(f"/api/customers?location_id={location_b.id}", headers=admin_headers)
        ids = {c["id"] for c in resp.json["items"]}
        assert ids == {customer_b.id}

    def test_worker_cannot_request_other_location(self, client, db_session, technician_headers, location_b):
        resp = client.get(f"/api/customers?location_id={location_b.id}", headers=technician_headers)
        assert resp.status_code == 403

    def test_other_location_record_is_not_found(self, client, db_session, technician_headers, customer_b):
        resp = client.get(f"/api/customers/{customer_b.id}", headers=technician_headers)
        assert resp.status_code == 404

    def test_phone_lookup_is_scoped(self, client, db_session, technician_headers, customer_b):
        resp = client.get(f"/api/customers/by-phone/{customer_b.phone}", headers=technician_headers)
        assert resp.status_code == 404

    def test_worker_create_forces_own_location(self, client, db_session, front_desk_b, front_desk_b_headers, location_a):
        resp = client.post(
            "/api/customers",
            json={"name": "Dawit", "phone": "0933445566", "location_id": location_a.id},
            headers=front_desk_b_headers,
        )
        assert resp.status_code == 201
        assert resp.json["customer"]["location_id"] == front_desk_b.location_id

    def test_worker_update_cannot_move_location(self, client, db_session, front_desk_b_headers, customer_b, location_a):
        resp = client.put(
            f"/api/customers/{customer_b.id}",
            json={"notes": "VIP", "location_id": location_a.id},
            headers=front_desk_b_headers,
        )
        assert resp.status_code == 200
        refreshed = db_session.get(Customer, customer_b.id)
        assert refreshed.notes == "VIP"
        assert refreshed.location_id == customer_b.location_id


class TestDeviceScoping:

    def test_other_location_device_hidden(self, client, db_session, front_desk_b_headers, technician_headers, customer_a, laptop_type):
        resp = client.post(
            "/api/devices",
            json={"customer_id": customer_a.id, "device_type_id": laptop_type.id, "problem_description": "Cracked screen"},
            headers=technician_headers,
        )
        device_id = resp.json["device"]["id"]

        assert client.get(f"/api/devices/{device_id}", headers=front_desk_b_headers).status_code == 404
        listed = client.get("/api/devices", headers=front_desk_b_headers).json["items"]
        assert device_id not in {d["id"] for d in listed}

    def test_cannot_register_for_other_location_customer(self, client, db_session, front_desk_b_headers, customer_a, laptop_type):
        resp = client.post(
            "/api/devices",
            json={"customer_id": customer_a.id, "device_type_id": laptop_type.id, "problem_description": "No boot"},
            headers=front_desk_b_headers,
        )
        assert resp.status_code == 404
        assert db_session.query(Device).count() == 0

    def test_cannot_move_device_to_other_location_customer(
        self, client, db_session, front_desk_b_headers, customer_a, customer_b, laptop_type
    ):
        resp = client.post(
            "/api/devices",
            json={"customer_id": customer_b.id, "device_type_id": laptop_type.id, "problem_description": "No boot"},
            headers=front_desk_b_headers,
        )
        device_id = resp.json["device"]["id"]

        resp = client.put(f"/api/devices/{device_id}", json={"customer_id": customer_a.id}, headers=front_desk_b_headers)
        assert resp.status_code == 404
        assert db_session.get(Device, device_id).customer_id == customer_b.id


class TestSaleScoping:

    def test_cannot_sell_other_location_stock(self, client, db_session, ssd_item, location_b):
        create_user("sales_b", "sales_b@solnet.local", PASSWORD, role="sales", location_id=location_b.id)
        headers = auth_headers(get_auth_token(client, "sales_b", PASSWORD))

        assert client.get(f"/api/inventory/{ssd_item.id}", headers=headers).status_code == 404
        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 5}]},
            headers=headers,
        )
        assert resp.status_code == 404
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 20
