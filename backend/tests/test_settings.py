"""
App settings and business profile tests.
"""

from solnet.services import settings_service


class TestSettings:

    def test_upsert_and_read_category(self, client, db_session, admin_headers):
        resp = client.put(
            "/api/settings/general/currency",
            json={"value": "ETB", "description": "Display currency"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["setting"]["value"] == "ETB"

        client.put("/api/settings/general/currency", json={"value": "USD"}, headers=admin_headers)
        resp = client.get("/api/settings/general", headers=admin_headers)
        assert resp.json["settings"] == {"currency": "USD"}

    def test_value_is_required(self, client, db_session, admin_headers):
        resp = client.put("/api/settings/general/currency", json={}, headers=admin_headers)
        assert resp.status_code == 400

    def test_generic_api_masks_sms_token(self, client, db_session, admin_headers):
        client.put("/api/settings/sms/auth_token", json={"value": "abcdef123456"}, headers=admin_headers)
        resp = client.get("/api/settings/sms", headers=admin_headers)
        assert resp.json["settings"]["auth_token"] == "****3456"

        items = client.get("/api/settings?category=sms", headers=admin_headers).json["items"]
        assert items[0]["value"] == "****3456"
        assert settings_service.get_setting("sms", "auth_token") == "abcdef123456"

    def test_advanced_shorthand(self, client, db_session, admin_headers):
        assert client.get("/api/settings/advanced/debug", headers=admin_headers).status_code == 404
        client.put("/api/settings/advanced/debug", json={"value": True}, headers=admin_headers)
        resp = client.get("/api/settings/advanced/debug", headers=admin_headers)
        assert resp.json["setting"]["value"] is True

    def test_delete(self, client, db_session, admin_headers):
        client.put("/api/settings/general/currency", json={"value": "ETB"}, headers=admin_headers)
        assert client.delete("/api/settings/general/currency", headers=admin_headers).status_code == 200
        assert client.delete("/api/settings/general/currency", headers=admin_headers).status_code == 404

    def test_bool_setting_parses_strings(self, db_session):
        settings_service.upsert_setting("sms", "notify_status_updates", "off")
        assert settings_service.get_bool_setting("sms", "notify_status_updates", True) is False
        assert settings_service.get_bool_setting("sms", "missing", True) is True

    def test_workers_cannot_manage_settings(self, client, db_session, sales_headers):
        assert client.get("/api/settings", headers=sales_headers).status_code == 403


class TestBusinessProfile:

    def test_first_write_requires_name(self, client, db_session, admin_headers):
        resp = client.put("/api/business-profile", json={"phone": "0111"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_create_update_and_public_view(self, client, db_session, admin_headers, technician_headers):
        resp = client.put(
            "/api/business-profile",
            json={
                "business_name": "SolNet Computers",
                "phone": "0111234567",
                "tax_id": "TIN-0042",
                "monthly_revenue_target_cents": 5_000_000,
            },
            headers=admin_headers,
        )
        assert resp.status_code == 200

        client.put("/api/business-profile", json={"city": "Addis Ababa"}, headers=admin_headers)
        profile = client.get("/api/business-profile", headers=technician_headers).json["profile"]
        assert profile["business_name"] == "SolNet Computers"
        assert profile["city"] == "Addis Ababa"

        public = client.get("/api/public/business-info").json["business"]
        assert public["business_name"] == "SolNet Computers"
        assert "tax_id" not in public
        assert "monthly_revenue_target_cents" not in public

    def test_unknown_field_rejected(self, client, db_session, admin_headers):
        resp = client.put("/api/business-profile", json={"business_name": "X", "logo": "x"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_negative_target_rejected(self, client, db_session, admin_headers):
        resp = client.put(
            "/api/business-profile",
            json={"business_name": "X", "annual_revenue_target_cents": -1},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_public_info_without_profile(self, client, db_session):
        assert client.get("/api/public/business-info").json == {"business": None}
