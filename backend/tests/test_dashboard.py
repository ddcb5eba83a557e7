"""
Dashboard tiles and analytics summary.
"""

from datetime import date, timedelta

from solnet.models import Device, Expense, LoanInvoice, ServiceType


class TestDashboardStats:

    def test_tiles(self, client, db_session, admin_headers, technician_headers, customer_a, laptop_type, ssd_item):
        for _ in range(2):
            client.post(
                "/api/devices",
                json={"customer_id": customer_a.id, "device_type_id": laptop_type.id, "problem_description": "x"},
                headers=technician_headers,
            )
        device = db_session.query(Device).first()
        client.put(f"/api/devices/{device.id}/status", json={"status": "completed"}, headers=technician_headers)

        client.post(
            "/api/sales",
            json={"items": [{"inventory_item_id": ssd_item.id, "quantity": 16}]},
            headers=admin_headers,
        )
        db_session.add(LoanInvoice(
            customer_id=customer_a.id,
            location_id=customer_a.location_id,
            device_description="Dell XPS",
            total_cents=9000,
            paid_cents=1000,
            remaining_cents=8000,
            due_date=date.today() + timedelta(days=10),
            status="partial",
        ))
        db_session.commit()

        stats = client.get("/api/dashboard/stats", headers=admin_headers).json
        assert stats["total_customers"] == 1
        assert stats["active_repairs"] == 2
        assert stats["completed_today"] == 1
        assert stats["todays_revenue_cents"] == 80000
        assert stats["low_stock_count"] == 1
        assert stats["upcoming_appointments"] == 0
        assert stats["pending_loan_balance_cents"] == 8000

    def test_worker_sees_own_location(self, client, db_session, front_desk_b_headers, customer_a, customer_b):
        stats = client.get("/api/dashboard/stats", headers=front_desk_b_headers).json
        assert stats["total_customers"] == 1


class TestAnalytics:

    def test_summary_shape(self, client, db_session, admin_headers, location_a, technician_headers, customer_a, laptop_type):
        repair = ServiceType(name="Screen repair")
        db_session.add(repair)
        db_session.add(Expense(
            location_id=location_a.id,
            category="rent",
            description="Rent",
            amount_cents=5000,
            expense_date=date.today(),
        ))
        db_session.commit()
        client.post(
            "/api/devices",
            json={
                "customer_id": customer_a.id,
                "device_type_id": laptop_type.id,
                "service_type_id": repair.id,
                "problem_description": "Cracked",
            },
            headers=technician_headers,
        )
        client.put(
            "/api/business-profile",
            json={"business_name": "SolNet", "monthly_revenue_target_cents": 100000},
            headers=admin_headers,
        )

        summary = client.get("/api/analytics/summary?months=3", headers=admin_headers).json
        assert len(summary["months"]) == 3
        assert summary["months"][-1] == date.today().strftime("%Y-%m")
        assert summary["expenses_by_month"][-1]["total_cents"] == 5000
        assert summary["devices_by_status"]["registered"] == 1
        assert summary["top_service_types"] == [{"service_type": "Screen repair", "device_count": 1}]
        assert summary["revenue_target"]["monthly_target_cents"] == 100000
        assert summary["revenue_target"]["progress_percent"] == 0.0

    def test_months_bounds(self, client, db_session, admin_headers):
        assert client.get("/api/analytics/summary?months=0", headers=admin_headers).status_code == 400
        assert client.get("/api/analytics/summary?months=25", headers=admin_headers).status_code == 400

    def test_technician_cannot_view(self, client, db_session, technician_headers):
        assert client.get("/api/analytics/summary", headers=technician_headers).status_code == 403
