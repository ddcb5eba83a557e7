"""
Suppliers and purchase orders: lifecycle, receiving into stock, scoping.
"""

from solnet.models import InventoryItem, PurchaseOrder, Supplier
from solnet.services.auth_service import create_user
from conftest import PASSWORD, auth_headers, get_auth_token


def _supplier(db_session, name="Addis Parts"):
    supplier = Supplier(name=name, phone="0911000000")
    db_session.add(supplier)
    db_session.commit()
    return supplier


def _order(client, headers, **body):
    resp = client.post("/api/purchase-orders", json=body, headers=headers)
    assert resp.status_code == 201, resp.json
    return resp.json["purchase_order"]


def _approved(client, headers, order_id):
    assert client.post(f"/api/purchase-orders/{order_id}/submit", headers=headers).status_code == 200
    assert client.post(f"/api/purchase-orders/{order_id}/approve", headers=headers).status_code == 200


# =============================================================================
# SUPPLIERS
# =============================================================================


class TestSuppliers:

    def test_create_and_list(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/suppliers",
            json={"name": "Addis Parts", "contact_person": "Hana", "payment_terms": "Net 30"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["supplier"]["is_active"] is True

        resp = client.get("/api/suppliers", headers=admin_headers)
        assert [s["name"] for s in resp.json["items"]] == ["Addis Parts"]

    def test_duplicate_name_is_conflict(self, client, db_session, admin_headers):
        _supplier(db_session)
        resp = client.post("/api/suppliers", json={"name": "addis parts"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_delete_deactivates(self, client, db_session, admin_headers):
        supplier = _supplier(db_session)
        resp = client.delete(f"/api/suppliers/{supplier.id}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(Supplier, supplier.id).is_active is False

        assert client.get("/api/suppliers", headers=admin_headers).json["count"] == 0
        resp = client.get("/api/suppliers?include_inactive=1", headers=admin_headers)
        assert resp.json["count"] == 1

    def test_technician_can_view_but_not_edit(self, client, db_session, technician_headers):
        assert client.get("/api/suppliers", headers=technician_headers).status_code == 200
        resp = client.post("/api/suppliers", json={"name": "X"}, headers=technician_headers)
        assert resp.status_code == 403


# =============================================================================
# PURCHASE ORDERS
# =============================================================================


class TestPurchaseOrders:

    def test_create_computes_totals(self, client, db_session, admin_headers, ssd_item):
        supplier = _supplier(db_session)
        order = _order(
            client,
            admin_headers,
            supplier_id=supplier.id,
            items=[
                {"inventory_item_id": ssd_item.id, "quantity": 10},
                {"name": "USB-C cable", "sku": "USB-C-1M", "quantity": 5, "unit_price_cents": 400},
            ],
        )
        assert order["status"] == "draft"
        assert order["order_number"].startswith("PO-")
        assert order["supplier_name"] == "Addis Parts"
        assert order["total_items"] == 2
        assert order["total_quantity"] == 15
        # SSD defaults to its purchase price of 3000
        assert order["total_estimated_cost_cents"] == 32000
        assert order["items"][0]["sku"] == "SSD-512"

    def test_new_stock_line_needs_name(self, client, db_session, admin_headers):
        resp = client.post("/api/purchase-orders", json={"items": [{"quantity": 1}]}, headers=admin_headers)
        assert resp.status_code == 400

    def test_unknown_priority_rejected(self, client, db_session, admin_headers):
        resp = client.post("/api/purchase-orders", json={"priority": "asap"}, headers=admin_headers)
        assert resp.status_code == 400

    def test_edit_only_while_draft(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 2}])

        resp = client.put(
            f"/api/purchase-orders/{order['id']}",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 4}], "notes": "rush"},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["purchase_order"]["total_quantity"] == 4

        client.post(f"/api/purchase-orders/{order['id']}/submit", headers=admin_headers)
        resp = client.put(f"/api/purchase-orders/{order['id']}", json={"notes": "late"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_empty_order_cannot_be_submitted(self, client, db_session, admin_headers):
        order = _order(client, admin_headers)
        resp = client.post(f"/api/purchase-orders/{order['id']}/submit", headers=admin_headers)
        assert resp.status_code == 400

    def test_invalid_transitions_are_conflicts(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 2}])
        assert client.post(f"/api/purchase-orders/{order['id']}/approve", headers=admin_headers).status_code == 409
        assert client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers).status_code == 409
        assert client.post(f"/api/purchase-orders/{order['id']}/reopen", headers=admin_headers).status_code == 409

    def test_receive_restocks_existing_item(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 10}])
        _approved(client, admin_headers, order["id"])

        resp = client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers)
        assert resp.status_code == 200
        received = resp.json["purchase_order"]
        assert received["status"] == "received"
        assert received["received_at"] is not None
        assert received["items"][0]["received_quantity"] == 10

        item = db_session.get(InventoryItem, ssd_item.id)
        assert item.quantity == 30
        assert item.last_restocked is not None

    def test_partial_receive(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 10}])
        _approved(client, admin_headers, order["id"])
        line_id = order["items"][0]["id"]

        resp = client.post(
            f"/api/purchase-orders/{order['id']}/receive",
            json={"items": [{"id": line_id, "received_quantity": 6}]},
            headers=admin_headers,
        )
        assert resp.status_code == 200
        assert resp.json["purchase_order"]["items"][0]["received_quantity"] == 6
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 26

    def test_receive_creates_new_item_at_order_location(self, client, db_session, admin_headers, location_a):
        supplier = _supplier(db_session)
        order = _order(
            client,
            admin_headers,
            supplier_id=supplier.id,
            items=[{"name": "USB-C cable", "sku": "USB-C-1M", "quantity": 5, "unit_price_cents": 400}],
        )
        _approved(client, admin_headers, order["id"])

        resp = client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers)
        assert resp.status_code == 200

        item = db_session.query(InventoryItem).filter_by(sku="USB-C-1M").one()
        assert item.quantity == 5
        assert item.location_id == location_a.id
        assert item.purchase_price_cents == 400
        assert item.supplier == "Addis Parts"
        assert resp.json["purchase_order"]["items"][0]["inventory_item_id"] == item.id

    def test_failed_receive_writes_nothing(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 10}])
        _approved(client, admin_headers, order["id"])

        resp = client.post(
            f"/api/purchase-orders/{order['id']}/receive",
            json={"items": [{"id": 9999, "received_quantity": 1}]},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 20
        assert db_session.get(PurchaseOrder, order["id"]).status == "approved"

    def test_received_order_is_final(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        _approved(client, admin_headers, order["id"])
        client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers)

        assert client.post(f"/api/purchase-orders/{order['id']}/receive", headers=admin_headers).status_code == 409
        assert client.post(f"/api/purchase-orders/{order['id']}/cancel", headers=admin_headers).status_code == 409
        assert client.delete(f"/api/purchase-orders/{order['id']}", headers=admin_headers).status_code == 409
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 21

    def test_cancel_records_reason_and_reopen(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        _approved(client, admin_headers, order["id"])

        resp = client.post(
            f"/api/purchase-orders/{order['id']}/cancel",
            json={"reason": "Supplier out of stock"},
            headers=admin_headers,
        )
        assert resp.json["purchase_order"]["status"] == "cancelled"
        assert resp.json["purchase_order"]["notes"] == "Cancelled: Supplier out of stock"

        resp = client.post(f"/api/purchase-orders/{order['id']}/reopen", headers=admin_headers)
        reopened = resp.json["purchase_order"]
        assert reopened["status"] == "draft"
        assert reopened["approved_at"] is None

    def test_cancel_without_reason(self, client, db_session, admin_headers):
        order = _order(client, admin_headers)
        resp = client.post(f"/api/purchase-orders/{order['id']}/cancel", headers=admin_headers)
        assert resp.json["purchase_order"]["notes"] == "Cancelled: No reason provided"

    def test_delete_draft(self, client, db_session, admin_headers, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        resp = client.delete(f"/api/purchase-orders/{order['id']}", headers=admin_headers)
        assert resp.status_code == 200
        assert db_session.get(PurchaseOrder, order["id"]) is None

    def test_list_filters_by_status(self, client, db_session, admin_headers, ssd_item):
        first = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        _order(client, admin_headers)
        client.post(f"/api/purchase-orders/{first['id']}/submit", headers=admin_headers)

        resp = client.get("/api/purchase-orders?status=submitted", headers=admin_headers)
        assert [o["id"] for o in resp.json["items"]] == [first["id"]]
        assert "items" not in resp.json["items"][0]

        resp = client.get("/api/purchase-orders?status=lost", headers=admin_headers)
        assert resp.status_code == 400

    def test_draft_from_predictions(self, client, db_session, admin_headers, ssd_item):
        ssd_item.quantity = 3
        db_session.commit()

        resp = client.post("/api/purchase-orders/from-predictions", json={}, headers=admin_headers)
        assert resp.status_code == 201
        order = resp.json["purchase_order"]
        assert order["priority"] == "high"
        assert order["items"][0]["inventory_item_id"] == ssd_item.id
        assert order["items"][0]["quantity"] == ssd_item.reorder_quantity

    def test_nothing_to_reorder(self, client, db_session, admin_headers, ssd_item):
        resp = client.post("/api/purchase-orders/from-predictions", json={}, headers=admin_headers)
        assert resp.status_code == 400


# =============================================================================
# PERMISSIONS AND SCOPING
# =============================================================================


class TestPurchaseOrderAccess:

    def test_manager_can_approve(self, client, db_session, location_a, ssd_item):
        create_user("manager_a", "manager_a@solnet.local", PASSWORD, role="manager", location_id=location_a.id)
        headers = auth_headers(get_auth_token(client, "manager_a", PASSWORD))

        order = _order(client, headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        _approved(client, headers, order["id"])
        assert db_session.get(PurchaseOrder, order["id"]).status == "approved"

    def test_sales_cannot_order(self, client, db_session, sales_headers):
        resp = client.post("/api/purchase-orders", json={}, headers=sales_headers)
        assert resp.status_code == 403

    def test_other_location_order_is_not_found(self, client, db_session, admin_headers, location_b, ssd_item):
        order = _order(client, admin_headers, items=[{"inventory_item_id": ssd_item.id, "quantity": 1}])
        create_user("manager_b", "manager_b@solnet.local", PASSWORD, role="manager", location_id=location_b.id)
        headers = auth_headers(get_auth_token(client, "manager_b", PASSWORD))

        assert client.get(f"/api/purchase-orders/{order['id']}", headers=headers).status_code == 404
        assert client.post(f"/api/purchase-orders/{order['id']}/submit", headers=headers).status_code == 404
        assert client.get("/api/purchase-orders", headers=headers).json["count"] == 0

    def test_cannot_order_other_location_item(self, client, db_session, location_b, ssd_item):
        create_user("manager_b", "manager_b@solnet.local", PASSWORD, role="manager", location_id=location_b.id)
        headers = auth_headers(get_auth_token(client, "manager_b", PASSWORD))

        resp = client.post(
            "/api/purchase-orders",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
            headers=headers,
        )
        assert resp.status_code == 404
