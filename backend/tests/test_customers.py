"""
Customer and appointment tests.
"""

from solnet.models import Appointment, Customer


class TestCustomers:

    def test_create_requires_name_and_phone(self, client, db_session, admin_headers):
        resp = client.post("/api/customers", json={"name": "No Phone"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_email_is_lowercased(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/customers",
            json={"name": "Hana", "phone": "0944556677", "email": "Hana@Example.COM"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["customer"]["email"] == "hana@example.com"

    def test_search(self, client, db_session, admin_headers, customer_a, customer_b):
        resp = client.get("/api/customers?search=tesfaye", headers=admin_headers)
        assert [c["id"] for c in resp.json["items"]] == [customer_b.id]

        resp = client.get("/api/customers/search?q=0911", headers=admin_headers)
        assert [c["id"] for c in resp.json["items"]] == [customer_a.id]

        assert client.get("/api/customers/search?q=", headers=admin_headers).json["count"] == 0

    def test_pagination(self, client, db_session, admin_headers, location_a):
        for n in range(5):
            db_session.add(Customer(name=f"Customer {n}", phone=f"09000000{n:02d}", location_id=location_a.id))
        db_session.commit()

        resp = client.get("/api/customers?page=2&per_page=2", headers=admin_headers)
        assert resp.json["count"] == 2
        assert resp.json["pagination"]["total"] == 5
        assert resp.json["pagination"]["total_pages"] == 3
        assert resp.json["pagination"]["has_next"] is True

    def test_phone_lookup(self, client, db_session, admin_headers, customer_a):
        resp = client.get(f"/api/customers/by-phone/{customer_a.phone}", headers=admin_headers)
        assert resp.json["customer"]["id"] == customer_a.id
        assert client.get("/api/customers/by-phone/0000", headers=admin_headers).status_code == 404

    def test_delete_deactivates(self, client, db_session, admin_headers, customer_a):
        resp = client.delete(f"/api/customers/{customer_a.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Customer, customer_a.id).is_active is False

        assert client.get("/api/customers", headers=admin_headers).json["count"] == 0
        resp = client.get("/api/customers?include_inactive=1", headers=admin_headers)
        assert resp.json["count"] == 1

    def test_history(self, client, db_session, admin_headers, technician_headers, customer_a, laptop_type, ssd_item):
        client.post(
            "/api/devices",
            json={"customer_id": customer_a.id, "device_type_id": laptop_type.id, "problem_description": "Fan noise"},
            headers=technician_headers,
        )
        client.post(
            "/api/sales",
            json={"customer_id": customer_a.id, "items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
            headers=admin_headers,
        )
        devices = client.get(f"/api/customers/{customer_a.id}/devices", headers=admin_headers).json
        sales = client.get(f"/api/customers/{customer_a.id}/sales", headers=admin_headers).json
        assert devices["count"] == 1
        assert sales["count"] == 1
        assert sales["items"][0]["items"][0]["quantity"] == 1

    def test_technician_cannot_edit(self, client, db_session, technician_headers, customer_a):
        resp = client.put(f"/api/customers/{customer_a.id}", json={"notes": "x"}, headers=technician_headers)
        assert resp.status_code == 403


class TestAppointments:

    def _create(self, client, headers, customer, **extra):
        payload = {
            "customer_id": customer.id,
            "title": "Screen replacement consult",
            "appointment_date": "2026-05-04T09:30:00Z",
            "duration_minutes": 30,
        }
        payload.update(extra)
        return client.post("/api/appointments", json=payload, headers=headers)

    def test_create_and_list_by_date(self, client, db_session, front_desk_b, front_desk_b_headers, customer_b):
        resp = self._create(client, front_desk_b_headers, customer_b)
        assert resp.status_code == 201
        appointment = resp.json["appointment"]
        assert appointment["status"] == "scheduled"
        assert appointment["location_id"] == front_desk_b.location_id

        self._create(client, front_desk_b_headers, customer_b, appointment_date="2026-05-05T09:30:00Z")

        listed = client.get("/api/appointments?date=2026-05-04", headers=front_desk_b_headers).json
        assert [a["id"] for a in listed["items"]] == [appointment["id"]]

    def test_status_change(self, client, db_session, front_desk_b_headers, customer_b):
        appointment_id = self._create(client, front_desk_b_headers, customer_b).json["appointment"]["id"]

        resp = client.put(
            f"/api/appointments/{appointment_id}/status",
            json={"status": "confirmed"},
            headers=front_desk_b_headers,
        )
        assert resp.json["appointment"]["status"] == "confirmed"

        resp = client.put(
            f"/api/appointments/{appointment_id}/status",
            json={"status": "postponed"},
            headers=front_desk_b_headers,
        )
        assert resp.status_code == 400

        resp = client.put(f"/api/appointments/{appointment_id}/status", json={}, headers=front_desk_b_headers)
        assert resp.status_code == 400

    def test_invalid_duration(self, client, db_session, front_desk_b_headers, customer_b):
        resp = self._create(client, front_desk_b_headers, customer_b, duration_minutes=0)
        assert resp.status_code == 400

    def test_unknown_customer(self, client, db_session, front_desk_b_headers):
        resp = client.post(
            "/api/appointments",
            json={"customer_id": 9999, "title": "x", "appointment_date": "2026-05-04T09:30:00Z"},
            headers=front_desk_b_headers,
        )
        assert resp.status_code == 404

    def test_delete(self, client, db_session, front_desk_b_headers, customer_b):
        appointment_id = self._create(client, front_desk_b_headers, customer_b).json["appointment"]["id"]
        assert client.delete(f"/api/appointments/{appointment_id}", headers=front_desk_b_headers).status_code == 200
        assert db_session.get(Appointment, appointment_id) is None

    def test_technician_cannot_book(self, client, db_session, technician_headers, customer_a):
        resp = self._create(client, technician_headers, customer_a)
        assert resp.status_code == 403
