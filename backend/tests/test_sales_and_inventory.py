"""
Counter sales, stock movements and stockout predictions.
"""

from datetime import datetime, timedelta, timezone

from solnet.models import Customer, InventoryItem, Sale, SaleItem
from solnet.services import inventory_prediction_service as predictions
from solnet.services.auth_service import create_user
from conftest import PASSWORD, auth_headers, get_auth_token


# =============================================================================
# SALES
# =============================================================================


class TestSales:

    def test_sale_decrements_stock_and_updates_customer(self, client, db_session, sales_headers, ssd_item, customer_a):
        resp = client.post(
            "/api/sales",
            json={
                "customer_id": customer_a.id,
                "items": [{"inventory_item_id": ssd_item.id, "quantity": 2}],
                "tax_cents": 150,
                "discount_cents": 100,
                "payment_method": "card",
            },
            headers=sales_headers,
        )
        assert resp.status_code == 201
        sale = resp.json["sale"]
        assert sale["subtotal_cents"] == 10000
        assert sale["total_cents"] == 10050
        assert sale["items"][0]["line_total_cents"] == 10000

        assert db_session.get(InventoryItem, ssd_item.id).quantity == 18
        customer = db_session.get(Customer, customer_a.id)
        assert customer.total_spent_cents == 10050
        assert customer.total_visits == 1
        assert customer.last_visit_at is not None

    def test_unit_price_override(self, client, db_session, sales_headers, ssd_item):
        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 1, "unit_price_cents": 4200}]},
            headers=sales_headers,
        )
        assert resp.json["sale"]["total_cents"] == 4200

    def test_insufficient_stock_writes_nothing(self, client, db_session, sales_headers, ssd_item):
        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 21}]},
            headers=sales_headers,
        )
        assert resp.status_code == 409
        assert resp.json["details"]["items"][0]["on_hand"] == 20
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 20
        assert db_session.query(Sale).count() == 0

    def test_empty_items_rejected(self, client, db_session, sales_headers):
        resp = client.post("/api/sales", json={"items": []}, headers=sales_headers)
        assert resp.status_code == 400

    def test_bad_payment_method(self, client, db_session, sales_headers, ssd_item):
        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 1}], "payment_method": "barter"},
            headers=sales_headers,
        )
        assert resp.status_code == 400

    def test_todays_sales_total(self, client, db_session, sales_headers, ssd_item):
        for _ in range(2):
            client.post(
                "/api/sales",
                json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
                headers=sales_headers,
            )
        resp = client.get("/api/sales/today", headers=sales_headers)
        assert resp.json["count"] == 2
        assert resp.json["total_cents"] == 10000

    def test_technician_cannot_sell(self, client, db_session, technician_headers, ssd_item):
        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
            headers=technician_headers,
        )
        assert resp.status_code == 403

    def test_cannot_sell_other_location_stock(self, client, db_session, location_b, ssd_item):
        create_user("sales_b", "sales_b@solnet.local", PASSWORD, role="sales", location_id=location_b.id)
        headers = auth_headers(get_auth_token(client, "sales_b", PASSWORD))

        resp = client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 5}]},
            headers=headers,
        )
        assert resp.status_code == 404
        assert db_session.get(InventoryItem, ssd_item.id).quantity == 20
        assert db_session.query(Sale).count() == 0

    def test_cannot_sell_to_other_location_customer(self, client, db_session, sales_headers, ssd_item, customer_b):
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer_b.id, "items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
            headers=sales_headers,
        )
        assert resp.status_code == 404
        assert db_session.get(Customer, customer_b.id).total_visits == 0

    def test_admin_sells_any_location(self, client, db_session, admin_headers, ssd_item, customer_b):
        resp = client.post(
            "/api/sales",
            json={"customer_id": customer_b.id, "items": [{"inventory_item_id": ssd_item.id, "quantity": 1}]},
            headers=admin_headers,
        )
        assert resp.status_code == 201


# =============================================================================
# INVENTORY
# =============================================================================


class TestInventory:

    def test_duplicate_sku(self, client, db_session, admin_headers, ssd_item):
        resp = client.post("/api/inventory", json={"name": "Other", "sku": "SSD-512"}, headers=admin_headers)
        assert resp.status_code == 409

    def test_restock_and_adjust(self, client, db_session, admin_headers, ssd_item):
        resp = client.post(f"/api/inventory/{ssd_item.id}/restock", json={"quantity": 5}, headers=admin_headers)
        assert resp.status_code == 200
        item = db_session.get(InventoryItem, ssd_item.id)
        assert item.quantity == 25
        assert item.last_restocked is not None

        resp = client.post(f"/api/inventory/{ssd_item.id}/adjust", json={"quantity": -1}, headers=admin_headers)
        assert resp.status_code == 400

    def test_low_stock_list(self, client, db_session, admin_headers, ssd_item):
        ssd_item.quantity = 3
        db_session.commit()
        resp = client.get("/api/inventory/low-stock", headers=admin_headers)
        assert [i["sku"] for i in resp.json["items"]] == ["SSD-512"]

    def test_public_inventory_hides_costs(self, client, db_session, ssd_item):
        ssd_item.is_public = True
        db_session.commit()
        resp = client.get("/api/public/inventory")
        item = resp.json["items"][0]
        assert "purchase_price_cents" not in item
        assert item["in_stock"] is True


# =============================================================================
# PREDICTIONS
# =============================================================================


class TestPredictionMath:

    def test_days_until_stockout(self):
        assert predictions.days_until_stockout(10, 0) == -1
        assert predictions.days_until_stockout(10, 3) == 3

    def test_risk_levels(self):
        assert predictions.risk_level(0, 5, -1) == "critical"
        assert predictions.risk_level(4, 5, -1) == "high"
        assert predictions.risk_level(20, 5, 2) == "high"
        assert predictions.risk_level(20, 5, 6) == "medium"
        assert predictions.risk_level(20, 5, 30) == "low"
        assert predictions.risk_level(20, 5, -1) == "low"

    def test_recommended_reorder_at_reorder_point(self, db_session, ssd_item):
        ssd_item.quantity = ssd_item.reorder_point
        assert predictions.recommended_reorder(ssd_item, 1.0) == ssd_item.reorder_quantity

    def test_recommended_reorder_covers_lead_time(self, db_session, ssd_item):
        # 2/day over 7 lead + 7 safety days = 28 needed, 20 on hand
        assert predictions.recommended_reorder(ssd_item, 2.0) == 8


def _sell(db_session, item, quantity, days_ago):
    sale = Sale(
        location_id=item.location_id,
        total_cents=0,
        created_at=datetime.now(timezone.utc) - timedelta(days=days_ago),
    )
    sale.items.append(SaleItem(inventory_item_id=item.id, quantity=quantity, unit_price_cents=0, line_total_cents=0))
    db_session.add(sale)
    db_session.commit()


class TestPredictionEndpoints:

    def test_predictions_use_thirty_day_window(self, client, db_session, admin_headers, ssd_item):
        _sell(db_session, ssd_item, 60, days_ago=5)
        _sell(db_session, ssd_item, 90, days_ago=45)

        resp = client.get("/api/inventory/predictions", headers=admin_headers)
        assert resp.status_code == 200
        p = resp.json["items"][0]
        assert p["avg_daily_sales"] == 2.0
        assert p["days_until_stockout"] == 10
        assert p["risk_level"] == "low"
        assert p["predicted_stockout"] is not None

    def test_refresh_stores_snapshot(self, client, db_session, admin_headers, ssd_item):
        _sell(db_session, ssd_item, 30, days_ago=1)
        resp = client.post("/api/inventory/predictions/refresh", headers=admin_headers)
        assert resp.json["refreshed"] == 1
        assert db_session.get(InventoryItem, ssd_item.id).avg_daily_sales == 1.0

    def test_alerts(self, client, db_session, admin_headers, ssd_item):
        ssd_item.quantity = 0
        db_session.commit()
        alerts = client.get("/api/inventory/alerts", headers=admin_headers).json["alerts"]
        types = {a["type"] for a in alerts}
        assert {"low_stock", "reorder_required"} <= types
        assert alerts[0]["priority"] == "critical"
