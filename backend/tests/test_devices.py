"""
Repair ticket tests: intake, receipt numbers, status workflow, payment
status, public tracking and customer feedback.
"""

import re
from datetime import datetime, timezone

from solnet.models import Device, DeviceStatusHistory, Notification, SmsQueue
from solnet.services import device_service, tracking_service


RECEIPT_PATTERN = re.compile(r"^SolNet-\d{4}\d{2,}$")


def _register(client, headers, customer, device_type, **extra):
    payload = {
        "customer_id": customer.id,
        "device_type_id": device_type.id,
        "problem_description": "Does not power on",
    }
    payload.update(extra)
    return client.post("/api/devices", json=payload, headers=headers)


class TestIntake:

    def test_register_device(self, client, db_session, technician_headers, customer_a, laptop_type, lenovo):
        resp = _register(client, technician_headers, customer_a, laptop_type, brand_id=lenovo.id, estimated_cost_cents=4500)
        assert resp.status_code == 201
        device = resp.json["device"]
        assert device["status"] == "registered"
        assert device["payment_status"] == "pending"
        assert device["device_type"] == "Laptop"
        assert device["brand"] == "Lenovo"
        assert device["location_id"] == customer_a.location_id
        assert RECEIPT_PATTERN.match(resp.json["receipt_number"])

    def test_intake_writes_history_and_notifies_admins(self, client, db_session, admin_user, technician_headers, customer_a, laptop_type):
        resp = _register(client, technician_headers, customer_a, laptop_type)
        device_id = resp.json["device"]["id"]

        history = db_session.query(DeviceStatusHistory).filter_by(device_id=device_id).all()
        assert [h.status for h in history] == ["registered"]

        notes = db_session.query(Notification).filter_by(recipient_id=admin_user.id).all()
        assert any(n.related_entity_id == device_id for n in notes)

    def test_intake_queues_confirmation_sms(self, client, db_session, technician_headers, customer_a, laptop_type):
        resp = _register(client, technician_headers, customer_a, laptop_type)
        row = db_session.query(SmsQueue).filter_by(message_type="device_registration").one()
        assert row.phone == customer_a.phone
        assert resp.json["receipt_number"] in row.message

    def test_registration_sms_can_be_switched_off(self, client, db_session, admin_headers, technician_headers, customer_a, laptop_type):
        client.put("/api/sms/settings", json={"notify_device_registration": False}, headers=admin_headers)
        _register(client, technician_headers, customer_a, laptop_type)
        assert db_session.query(SmsQueue).count() == 0

    def test_missing_problem_description(self, client, db_session, technician_headers, customer_a, laptop_type):
        resp = client.post(
            "/api/devices",
            json={"customer_id": customer_a.id, "device_type_id": laptop_type.id},
            headers=technician_headers,
        )
        assert resp.status_code == 400

    def test_unknown_customer(self, client, db_session, technician_headers, laptop_type):
        resp = client.post(
            "/api/devices",
            json={"customer_id": 9999, "device_type_id": laptop_type.id, "problem_description": "x"},
            headers=technician_headers,
        )
        assert resp.status_code == 404


class TestReceiptNumbers:

    def test_collision_falls_back_to_full_id(self, app, db_session, technician_a, customer_a, laptop_type):
        first = device_service.create_device(
            {"customer_id": customer_a.id, "device_type_id": laptop_type.id, "problem_description": "a"},
            user=technician_a,
            location_id=customer_a.location_id,
        )
        # Force the short form of the next id to be taken
        device = Device(
            customer_id=customer_a.id,
            device_type_id=laptop_type.id,
            problem_description="b",
            receipt_number="PENDING-x",
        )
        db_session.add(device)
        db_session.flush()
        short = f"{first.receipt_number[:-2]}{device.id % 100:02d}"
        first.receipt_number = short
        db_session.flush()

        code = tracking_service.generate_receipt_number(device)
        assert code == f"{first.receipt_number[:-2]}{device.id:03d}"
        assert code != short
        db_session.rollback()

    def test_taken_fallback_gets_suffix(self, app, db_session, customer_a, laptop_type):
        devices = []
        for n in range(3):
            device = Device(
                customer_id=customer_a.id,
                device_type_id=laptop_type.id,
                problem_description=str(n),
                receipt_number=f"PENDING-{n}",
            )
            db_session.add(device)
            devices.append(device)
        db_session.flush()

        target = devices[2]
        now = datetime(2026, 10, 19, tzinfo=timezone.utc)
        devices[0].receipt_number = f"SolNet-1019{target.id % 100:02d}"
        devices[1].receipt_number = f"SolNet-1019{target.id:03d}"
        db_session.flush()

        code = tracking_service.generate_receipt_number(target, now=now)
        assert code == f"SolNet-1019{target.id:03d}-2"
        db_session.rollback()


class TestStatusWorkflow:

    def test_completed_with_cost_keeps_payment_pending(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type, total_cost_cents=8000).json["device"]["id"]
        resp = client.put(f"/api/devices/{device_id}/status", json={"status": "completed"}, headers=technician_headers)
        assert resp.status_code == 200
        assert resp.json["device"]["payment_status"] == "pending"
        assert resp.json["device"]["completed_at"] is not None

    def test_delivered_marks_paid(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type, total_cost_cents=8000).json["device"]["id"]
        resp = client.put(f"/api/devices/{device_id}/status", json={"status": "delivered"}, headers=technician_headers)
        device = resp.json["device"]
        assert device["payment_status"] == "paid"
        assert device["delivered_at"] is not None
        assert device["picked_up_at"] is not None

    def test_free_repair_completed_is_paid(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        resp = client.put(f"/api/devices/{device_id}/status", json={"status": "completed"}, headers=technician_headers)
        assert resp.json["device"]["payment_status"] == "paid"

    def test_any_status_may_follow_any_other(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        for status in ("ready_for_pickup", "diagnosed", "cancelled", "in_progress"):
            resp = client.put(f"/api/devices/{device_id}/status", json={"status": status}, headers=technician_headers)
            assert resp.status_code == 200

        history = client.get(f"/api/devices/{device_id}/history", headers=technician_headers).json["items"]
        assert [h["status"] for h in history] == ["in_progress", "cancelled", "diagnosed", "ready_for_pickup", "registered"]

    def test_invalid_status(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        resp = client.put(f"/api/devices/{device_id}/status", json={"status": "exploded"}, headers=technician_headers)
        assert resp.status_code == 400

    def test_status_change_queues_sms(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        client.put(f"/api/devices/{device_id}/status", json={"status": "ready_for_pickup"}, headers=technician_headers)
        row = db_session.query(SmsQueue).filter_by(message_type="status_update").one()
        assert "Ready for Pickup" in row.message

    def test_technician_cannot_change_payment(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        resp = client.put(f"/api/devices/{device_id}/payment", json={"payment_status": "paid"}, headers=technician_headers)
        assert resp.status_code == 403

    def test_sales_updates_payment(self, client, db_session, technician_headers, sales_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        resp = client.put(
            f"/api/devices/{device_id}/payment",
            json={"payment_status": "partial", "notes": "Half paid"},
            headers=sales_headers,
        )
        assert resp.status_code == 200
        assert resp.json["device"]["payment_status"] == "partial"
        assert "Half paid" in resp.json["device"]["repair_notes"]

    def test_active_repairs_exclude_closed(self, client, db_session, technician_headers, customer_a, laptop_type):
        open_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        closed_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        client.put(f"/api/devices/{closed_id}/status", json={"status": "delivered"}, headers=technician_headers)

        ids = {d["id"] for d in client.get("/api/devices/active-repairs", headers=technician_headers).json["items"]}
        assert open_id in ids
        assert closed_id not in ids


class TestPublicTracking:

    def test_track_by_receipt_number(self, client, db_session, technician_headers, customer_a, laptop_type):
        receipt = _register(client, technician_headers, customer_a, laptop_type).json["receipt_number"]
        resp = client.get(f"/api/public/track-device/{receipt.lower()}")
        assert resp.status_code == 200
        view = resp.json["device"]
        assert view["receipt_number"] == receipt
        assert view["customer_first_name"] == "Abebe"
        assert "customer_phone" not in view
        assert view["history"][0]["status"] == "registered"

    def test_track_by_device_id(self, client, db_session, technician_headers, customer_a, laptop_type):
        device_id = _register(client, technician_headers, customer_a, laptop_type).json["device"]["id"]
        resp = client.get(f"/api/public/track-device/{device_id}")
        assert resp.status_code == 200

    def test_unknown_code(self, client, db_session):
        resp = client.get("/api/public/track-device/SolNet-000000")
        assert resp.status_code == 404

    def test_public_feedback(self, client, db_session, technician_headers, customer_a, laptop_type):
        receipt = _register(client, technician_headers, customer_a, laptop_type).json["receipt_number"]
        resp = client.post("/api/public/feedback", json={"receipt_number": receipt, "rating": 5, "would_recommend": True})
        assert resp.status_code == 201

        resp = client.post("/api/public/feedback", json={"receipt_number": receipt, "rating": 9})
        assert resp.status_code == 400

        resp = client.post("/api/public/feedback", json={"rating": 4})
        assert resp.status_code == 400
