"""
Global search and the accessories view over inventory.
"""

from solnet.models import Device, InventoryItem, Sale


def _device(db_session, customer, device_type, receipt="SolNet-101901"):
    device = Device(
        customer_id=customer.id,
        location_id=customer.location_id,
        device_type_id=device_type.id,
        brand_name="Lenovo",
        model_name="ThinkPad T480",
        problem_description="No power",
        receipt_number=receipt,
    )
    db_session.add(device)
    db_session.commit()
    return device


# =============================================================================
# SEARCH
# =============================================================================


class TestGlobalSearch:

    def test_matches_across_record_types(self, client, db_session, admin_headers, customer_a, laptop_type):
        device = _device(db_session, customer_a, laptop_type)
        sale = Sale(customer_id=customer_a.id, location_id=customer_a.location_id, total_cents=100)
        db_session.add(sale)
        db_session.commit()

        resp = client.get("/api/search?q=Abebe", headers=admin_headers)
        assert resp.status_code == 200
        assert [c["id"] for c in resp.json["customers"]] == [customer_a.id]
        assert [d["id"] for d in resp.json["devices"]] == [device.id]
        assert [s["id"] for s in resp.json["sales"]] == [sale.id]

    def test_receipt_number_search(self, client, db_session, admin_headers, customer_a, laptop_type):
        device = _device(db_session, customer_a, laptop_type)
        resp = client.get("/api/search?q=101901", headers=admin_headers)
        assert [d["id"] for d in resp.json["devices"]] == [device.id]
        assert resp.json["customers"] == []

    def test_blank_query_returns_empty_lists(self, client, db_session, admin_headers, customer_a):
        resp = client.get("/api/search?q=%20", headers=admin_headers)
        assert resp.json == {"devices": [], "customers": [], "sales": []}

    def test_other_location_hidden(self, client, db_session, technician_headers, customer_b, laptop_type):
        _device(db_session, customer_b, laptop_type)
        resp = client.get("/api/search?q=Sara", headers=technician_headers)
        assert resp.json["customers"] == []
        assert resp.json["devices"] == []

    def test_sections_follow_permissions(self, client, db_session, technician_headers, customer_a):
        sale = Sale(customer_id=customer_a.id, location_id=customer_a.location_id, total_cents=100)
        db_session.add(sale)
        db_session.commit()

        resp = client.get("/api/search?q=Abebe", headers=technician_headers)
        assert [c["id"] for c in resp.json["customers"]] == [customer_a.id]
        # technicians cannot view sales
        assert resp.json["sales"] == []

    def test_requires_auth(self, client, db_session):
        assert client.get("/api/search?q=x").status_code == 401


# =============================================================================
# ACCESSORIES
# =============================================================================


class TestAccessories:

    def test_create_files_under_accessories(self, client, db_session, admin_headers, ssd_item):
        resp = client.post(
            "/api/accessories",
            json={"name": "Laptop bag", "sku": "BAG-15", "category": "bags", "sale_price_cents": 1500},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["item"]["category"] == "accessories"

        resp = client.get("/api/accessories", headers=admin_headers)
        assert [i["sku"] for i in resp.json["items"]] == ["BAG-15"]

    def test_public_accessories(self, client, db_session, location_a):
        db_session.add_all([
            InventoryItem(
                location_id=location_a.id, name="Mouse", sku="MOUSE-1",
                category="accessories", quantity=3, is_public=True,
            ),
            InventoryItem(
                location_id=location_a.id, name="RAM 8GB", sku="RAM-8",
                category="memory", quantity=3, is_public=True,
            ),
        ])
        db_session.commit()

        resp = client.get("/api/public/accessories")
        assert resp.status_code == 200
        assert [i["name"] for i in resp.json["items"]] == ["Mouse"]
        assert "purchase_price_cents" not in resp.json["items"][0]
