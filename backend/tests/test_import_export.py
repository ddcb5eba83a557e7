"""
Spreadsheet export and import tests.
"""

import io

from openpyxl import Workbook, load_workbook

from solnet.models import Customer, InventoryItem


def _xlsx(rows):
    wb = Workbook()
    for row in rows:
        wb.active.append(row)
    out = io.BytesIO()
    wb.save(out)
    out.seek(0)
    return out


def _upload(client, path, headers, data, filename):
    return client.post(
        path,
        data={"file": (data, filename)},
        headers=headers,
        content_type="multipart/form-data",
    )


class TestExport:

    def test_export_customers(self, client, db_session, admin_headers, customer_a, customer_b):
        resp = client.get("/api/import-export/export/customers", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.mimetype == "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

        rows = list(load_workbook(io.BytesIO(resp.data)).active.values)
        assert rows[0][:3] == ("id", "name", "phone")
        assert {r[2] for r in rows[1:]} == {customer_a.phone, customer_b.phone}

    def test_export_inventory_filtered_by_location(self, client, db_session, admin_headers, ssd_item, location_b):
        resp = client.get(f"/api/import-export/export/inventory?location_id={location_b.id}", headers=admin_headers)
        rows = list(load_workbook(io.BytesIO(resp.data)).active.values)
        assert len(rows) == 1

    def test_requires_permission(self, client, db_session, sales_headers):
        resp = client.get("/api/import-export/export/customers", headers=sales_headers)
        assert resp.status_code == 403


class TestImport:

    def test_import_customers_xlsx(self, client, db_session, admin_headers, admin_user, customer_a):
        data = _xlsx([
            ["name", "phone", "email"],
            ["Abebe K.", "0911223344", None],
            ["Meron", "0955667788", "meron@example.com"],
            ["", "0966778899", None],
        ])
        resp = _upload(client, "/api/import-export/import/customers", admin_headers, data, "customers.xlsx")
        assert resp.status_code == 200
        body = resp.json
        assert body["created"] == 1
        assert body["updated"] == 1
        assert [e["row"] for e in body["errors"]] == [4]

        meron = db_session.query(Customer).filter_by(phone="0955667788").one()
        assert meron.location_id == admin_user.location_id

    def test_import_customers_updates_by_phone(self, client, db_session, admin_headers, customer_a):
        data = io.BytesIO(f"name,phone,notes\nAbebe Kebede,{customer_a.phone},Prefers calls\n".encode())
        resp = _upload(client, "/api/import-export/import/customers", admin_headers, data, "customers.csv")
        assert resp.json["updated"] == 1
        assert db_session.get(Customer, customer_a.id).notes == "Prefers calls"

    def test_import_inventory_csv(self, client, db_session, admin_headers, ssd_item):
        data = io.BytesIO(
            b"sku,name,quantity,sale_price_cents\n"
            b"SSD-512,SSD 512GB,40,5200\n"
            b"RAM-16,RAM 16GB,10,3500\n"
            b"BAD-1,Broken,-3,100\n"
        )
        resp = _upload(client, "/api/import-export/import/inventory", admin_headers, data, "inventory.csv")
        body = resp.json
        assert body["created"] == 1
        assert body["updated"] == 1
        assert len(body["errors"]) == 1

        assert db_session.get(InventoryItem, ssd_item.id).quantity == 40
        assert db_session.query(InventoryItem).filter_by(sku="RAM-16").one().sale_price_cents == 3500

    def test_missing_file(self, client, db_session, admin_headers):
        resp = client.post("/api/import-export/import/customers", headers=admin_headers)
        assert resp.status_code == 400

    def test_unsupported_extension(self, client, db_session, admin_headers):
        resp = _upload(client, "/api/import-export/import/customers", admin_headers, io.BytesIO(b"x"), "data.txt")
        assert resp.status_code == 400
