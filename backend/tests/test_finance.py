"""
Expense, budget and loan invoice tests.
"""

from datetime import date, timedelta

from solnet.models import Expense, LoanInvoice
from solnet.services import expense_service


def _expense(client, headers, **overrides):
    payload = {
        "category": "rent",
        "description": "Shop rent",
        "amount_cents": 150000,
        "expense_date": "2026-03-01",
    }
    payload.update(overrides)
    return client.post("/api/expenses", json=payload, headers=headers)


# =============================================================================
# EXPENSES
# =============================================================================


class TestExpenses:

    def test_create_and_list(self, client, db_session, admin_headers, location_a):
        resp = _expense(client, admin_headers)
        assert resp.status_code == 201
        assert resp.json["expense"]["location_id"] == location_a.id

        resp = client.get("/api/expenses", headers=admin_headers)
        assert resp.json["count"] == 1

    def test_amount_must_be_positive(self, client, db_session, admin_headers):
        assert _expense(client, admin_headers, amount_cents=0).status_code == 400
        assert _expense(client, admin_headers, amount_cents=-5).status_code == 400

    def test_missing_date(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/expenses",
            json={"category": "rent", "description": "x", "amount_cents": 100},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_update_and_delete(self, client, db_session, admin_headers):
        expense_id = _expense(client, admin_headers).json["expense"]["id"]
        resp = client.put(f"/api/expenses/{expense_id}", json={"amount_cents": 90000}, headers=admin_headers)
        assert resp.json["expense"]["amount_cents"] == 90000

        assert client.delete(f"/api/expenses/{expense_id}", headers=admin_headers).status_code == 200
        assert db_session.query(Expense).count() == 0

    def test_stats_group_by_month_and_category(self, client, db_session, admin_headers):
        _expense(client, admin_headers, amount_cents=1000, expense_date="2026-01-10")
        _expense(client, admin_headers, amount_cents=2000, expense_date="2026-02-03")
        _expense(client, admin_headers, category="utilities", amount_cents=500, expense_date="2026-02-20")

        stats = client.get("/api/expenses/stats", headers=admin_headers).json
        assert stats["total_cents"] == 3500
        assert stats["count"] == 3
        assert stats["by_month"] == [
            {"month": "2026-01", "total_cents": 1000},
            {"month": "2026-02", "total_cents": 2500},
        ]
        assert stats["by_category"][0] == {"category": "rent", "total_cents": 3000}

    def test_date_filter(self, client, db_session, admin_headers):
        _expense(client, admin_headers, expense_date="2026-01-10")
        _expense(client, admin_headers, expense_date="2026-02-10")
        resp = client.get("/api/expenses?date_from=2026-02-01", headers=admin_headers)
        assert resp.json["count"] == 1

    def test_sales_role_has_no_finance_access(self, client, db_session, sales_headers):
        assert client.get("/api/expenses", headers=sales_headers).status_code == 403


class TestExpenseCategories:

    def test_seed_is_idempotent(self, db_session):
        first = expense_service.seed_expense_categories()
        assert first > 0
        assert expense_service.seed_expense_categories() == 0

    def test_delete_deactivates(self, client, db_session, admin_headers):
        category_id = client.post(
            "/api/expense-categories", json={"name": "Marketing"}, headers=admin_headers
        ).json["category"]["id"]
        resp = client.delete(f"/api/expense-categories/{category_id}", headers=admin_headers)
        assert resp.json["category"]["is_active"] is False

        names = {c["name"] for c in client.get("/api/expense-categories", headers=admin_headers).json["items"]}
        assert "Marketing" not in names


class TestBudgets:

    def test_duplicate_period_conflicts(self, client, db_session, admin_headers):
        payload = {"category": "rent", "year": 2026, "month": 3, "amount_cents": 200000}
        assert client.post("/api/budgets", json=payload, headers=admin_headers).status_code == 201
        assert client.post("/api/budgets", json=payload, headers=admin_headers).status_code == 409

    def test_month_out_of_range(self, client, db_session, admin_headers):
        payload = {"category": "rent", "year": 2026, "month": 13, "amount_cents": 100}
        assert client.post("/api/budgets", json=payload, headers=admin_headers).status_code == 400


# =============================================================================
# LOAN INVOICES
# =============================================================================


def _invoice(client, headers, customer, **overrides):
    payload = {
        "customer_id": customer.id,
        "device_description": "HP EliteBook 840",
        "service_description": "Motherboard replacement",
        "total_cents": 10000,
        "due_date": (date.today() + timedelta(days=14)).isoformat(),
    }
    payload.update(overrides)
    return client.post("/api/loan-invoices", json=payload, headers=headers)


class TestLoanInvoices:

    def test_create_starts_pending(self, client, db_session, admin_headers, customer_a):
        resp = _invoice(client, admin_headers, customer_a)
        assert resp.status_code == 201
        invoice = resp.json["invoice"]
        assert invoice["status"] == "pending"
        assert invoice["remaining_cents"] == 10000
        assert invoice["paid_cents"] == 0

    def test_missing_due_date(self, client, db_session, admin_headers, customer_a):
        resp = client.post(
            "/api/loan-invoices",
            json={"customer_id": customer_a.id, "device_description": "x", "total_cents": 100},
            headers=admin_headers,
        )
        assert resp.status_code == 400

    def test_partial_then_full_payment(self, client, db_session, admin_headers, customer_a):
        invoice_id = _invoice(client, admin_headers, customer_a).json["invoice"]["id"]

        resp = client.post(
            f"/api/loan-invoices/{invoice_id}/payments",
            json={"amount_cents": 4000, "payment_method": "cash"},
            headers=admin_headers,
        )
        assert resp.status_code == 201
        assert resp.json["invoice"]["status"] == "partial"
        assert resp.json["invoice"]["remaining_cents"] == 6000
        assert resp.json["payment"]["amount_cents"] == 4000

        resp = client.post(
            f"/api/loan-invoices/{invoice_id}/payments",
            json={"amount_cents": 6000},
            headers=admin_headers,
        )
        assert resp.json["invoice"]["status"] == "paid"
        assert resp.json["invoice"]["remaining_cents"] == 0

        payments = client.get(f"/api/loan-invoices/{invoice_id}/payments", headers=admin_headers).json
        assert payments["count"] == 2

    def test_overpayment_rejected(self, client, db_session, admin_headers, customer_a):
        invoice_id = _invoice(client, admin_headers, customer_a).json["invoice"]["id"]
        resp = client.post(
            f"/api/loan-invoices/{invoice_id}/payments",
            json={"amount_cents": 10001},
            headers=admin_headers,
        )
        assert resp.status_code == 400
        assert db_session.get(LoanInvoice, invoice_id).paid_cents == 0

    def test_invalid_amounts(self, client, db_session, admin_headers, customer_a):
        invoice_id = _invoice(client, admin_headers, customer_a).json["invoice"]["id"]
        for amount in (0, -100, "12", None):
            resp = client.post(
                f"/api/loan-invoices/{invoice_id}/payments",
                json={"amount_cents": amount},
                headers=admin_headers,
            )
            assert resp.status_code == 400, amount

    def test_paid_invoice_rejects_payment(self, client, db_session, admin_headers, customer_a):
        invoice_id = _invoice(client, admin_headers, customer_a).json["invoice"]["id"]
        client.post(f"/api/loan-invoices/{invoice_id}/payments", json={"amount_cents": 10000}, headers=admin_headers)
        resp = client.post(f"/api/loan-invoices/{invoice_id}/payments", json={"amount_cents": 1}, headers=admin_headers)
        assert resp.status_code == 409

    def test_past_due_reads_as_overdue(self, client, db_session, admin_headers, customer_a):
        past = (date.today() - timedelta(days=1)).isoformat()
        invoice_id = _invoice(client, admin_headers, customer_a, due_date=past).json["invoice"]["id"]

        resp = client.get(f"/api/loan-invoices/{invoice_id}", headers=admin_headers)
        assert resp.json["invoice"]["status"] == "overdue"
        # Stored status is untouched
        assert db_session.get(LoanInvoice, invoice_id).status == "pending"

        overdue = client.get("/api/loan-invoices?status=overdue", headers=admin_headers).json
        assert [i["id"] for i in overdue["items"]] == [invoice_id]

    def test_unknown_customer(self, client, db_session, admin_headers):
        resp = client.post(
            "/api/loan-invoices",
            json={"customer_id": 9999, "device_description": "x", "total_cents": 100, "due_date": "2026-12-01"},
            headers=admin_headers,
        )
        assert resp.status_code == 404
