"""
In-app notification tests.
"""

from solnet.services import notification_service


def _notify(user, **kwargs):
    return notification_service.create_notification("device_registered", user.id, **kwargs)


class TestNotifications:

    def test_list_and_unread_count(self, client, db_session, technician_a, technician_headers):
        _notify(technician_a, title="One")
        _notify(technician_a, title="Two")

        resp = client.get("/api/notifications", headers=technician_headers)
        assert resp.status_code == 200
        assert resp.json["count"] == 2
        assert resp.json["unread_count"] == 2
        assert resp.json["items"][0]["type"] == "device_registered"

        resp = client.get("/api/notifications/unread-count", headers=technician_headers)
        assert resp.json["unread_count"] == 2

    def test_only_own_notifications(self, client, db_session, admin_user, technician_a, technician_headers):
        other = _notify(admin_user)
        assert client.get("/api/notifications", headers=technician_headers).json["count"] == 0
        resp = client.put(f"/api/notifications/{other.id}/read", headers=technician_headers)
        assert resp.status_code == 404

    def test_mark_read_and_all_read(self, client, db_session, technician_a, technician_headers):
        first = _notify(technician_a)
        _notify(technician_a)
        _notify(technician_a)

        resp = client.put(f"/api/notifications/{first.id}/read", headers=technician_headers)
        assert resp.json["notification"]["status"] == "read"
        assert resp.json["notification"]["read_at"] is not None

        resp = client.put("/api/notifications/mark-all-read", headers=technician_headers)
        assert resp.json["updated"] == 2
        assert notification_service.unread_count(technician_a.id) == 0

    def test_archive_and_status_filter(self, client, db_session, technician_a, technician_headers):
        note = _notify(technician_a)
        client.put(f"/api/notifications/{note.id}/archive", headers=technician_headers)

        archived = client.get("/api/notifications?status=archived", headers=technician_headers).json
        assert [n["id"] for n in archived["items"]] == [note.id]
        assert client.get("/api/notifications?status=unread", headers=technician_headers).json["count"] == 0
        assert client.get("/api/notifications?status=bogus", headers=technician_headers).status_code == 400

    def test_unknown_type(self, db_session, technician_a):
        try:
            notification_service.create_notification("no_such_type", technician_a.id)
        except ValueError as e:
            assert "no_such_type" in str(e)
        else:
            raise AssertionError("expected NotFoundError")


class TestPreferences:

    def test_defaults_cover_every_type(self, client, db_session, technician_headers):
        prefs = client.get("/api/notifications/preferences", headers=technician_headers).json["preferences"]
        by_type = {p["type"]: p for p in prefs}
        assert "sms_failed" in by_type
        assert by_type["low_stock"]["in_app_enabled"] is True
        assert by_type["low_stock"]["sms_enabled"] is False

    def test_disabled_type_is_not_delivered_to_admin(self, client, db_session, admin_user, admin_headers):
        resp = client.put(
            "/api/notifications/preferences/low_stock",
            json={"in_app_enabled": False},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["preference"]["in_app_enabled"] is False

        assert notification_service.notify_admins("low_stock", message="SSD low") == []

    def test_preference_requires_boolean(self, client, db_session, admin_headers):
        resp = client.put(
            "/api/notifications/preferences/low_stock",
            json={"in_app_enabled": "no"},
            headers=admin_headers,
        )
        assert resp.status_code == 400
