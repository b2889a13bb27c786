"""HTTP surface: routing, request shapes, status codes and error bodies."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import text


def create_vendor(client, name="Anuj Kumar", **extra):
    response = client.post("/api/vendors", json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


def create_item(client, name="22mm"):
    response = client.post("/api/vendors/items", json={"name": name})
    assert response.status_code == 201, response.text
    return response.json()


def post_transaction(client, **body):
    return client.post("/api/items/transactions", json=body)


@pytest.fixture
def stocked(client):
    create_vendor(client)
    create_item(client)


class TestHealth:

    @pytest.mark.parametrize("path", ["/api/health", "/api"])
    def test_health(self, client, path):
        response = client.get(path)

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["message"] == "IN/OUT Management API is running"
        assert "timestamp" in body

    def test_unknown_route(self, client):
        response = client.get("/api/nothing-here")

        assert response.status_code == 404
        assert response.json() == {"error": "Not Found"}

    def test_unexpected_error_is_hidden(self, app):
        @app.get("/api/boom")
        def boom():
            raise RuntimeError("secret internals")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/api/boom")

        assert response.status_code == 500
        assert response.json() == {"error": "Something went wrong!"}


class TestVendorRoutes:

    def test_create_and_list(self, client):
        created = create_vendor(
            client,
            phone="9876543210",
            assignedWires=[{"wireName": "22mm", "payalType": "Golden", "pricePerKg": 380}],
        )

        assert created["assignedWires"][0]["pricePerKg"] == 380
        listed = client.get("/api/vendors").json()
        assert [v["name"] for v in listed] == ["Anuj Kumar"]
        assert listed[0]["assignedWires"][0]["wireName"] == "22mm"

    def test_duplicate_vendor(self, client):
        create_vendor(client)

        response = client.post("/api/vendors", json={"name": "Anuj Kumar"})

        assert response.status_code == 400
        assert response.json() == {"error": "Vendor already exists"}

    def test_missing_name_is_a_validation_error(self, client):
        response = client.post("/api/vendors", json={"phone": "123"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Validation failed"
        assert body["details"]

    def test_update_vendor(self, client):
        vendor = create_vendor(client)

        response = client.put(f"/api/vendors/{vendor['id']}", json={"address": "Agra"})

        assert response.status_code == 200
        assert response.json()["vendor"]["address"] == "Agra"

    def test_wire_assignments(self, client):
        vendor = create_vendor(client)
        wire = {"wireName": "22mm", "payalType": "Golden", "pricePerKg": 380}

        added = client.post(f"/api/vendors/{vendor['id']}/wires", json=wire)
        duplicate = client.post(f"/api/vendors/{vendor['id']}/wires", json=wire)

        assert added.status_code == 200
        assert duplicate.status_code == 400
        assignment_id = added.json()["assignedWires"][0]["id"]
        removed = client.delete(f"/api/vendors/{vendor['id']}/wires/{assignment_id}")
        assert removed.json()["assignedWires"] == []

    def test_delete_blocked_then_allowed(self, client, stocked):
        vendor_id = client.get("/api/vendors").json()[0]["id"]
        created = post_transaction(client, type="OUT", vendor="Anuj Kumar", item="22mm", qty=5)

        blocked = client.delete(f"/api/vendors/{vendor_id}")
        assert blocked.status_code == 400
        assert "1 transaction(s)" in blocked.json()["error"]

        client.delete(f"/api/items/transactions/{created.json()['id']}")
        allowed = client.delete(f"/api/vendors/{vendor_id}")
        assert allowed.status_code == 200
        assert allowed.json()["deletedVendor"]["name"] == "Anuj Kumar"

    def test_delete_blocked_by_payments(self, client):
        vendor = create_vendor(client)
        payment = client.post("/api/payments", json={
            "vendor": "Anuj Kumar", "wire": "22mm", "payalType": "Golden", "amount": 500,
            "date": "2024-03-01T00:00:00",
        }).json()

        blocked = client.delete(f"/api/vendors/{vendor['id']}")
        assert blocked.status_code == 400
        assert "1 payment(s)" in blocked.json()["error"]
        assert len(client.get("/api/payments").json()) == 1

        client.delete(f"/api/payments/{payment['id']}")
        assert client.delete(f"/api/vendors/{vendor['id']}").status_code == 200

    def test_delete_unknown_vendor(self, client):
        response = client.delete("/api/vendors/999")

        assert response.status_code == 404
        assert response.json() == {"error": "Vendor not found"}

    def test_vendor_item_prices(self, client, stocked):
        response = client.put("/api/vendors/prices", json={"vendor": "Anuj Kumar", "item": "22mm", "price": 95})

        assert response.status_code == 200
        assert client.get("/api/vendors/prices").json() == {"Anuj Kumar": {"22mm": 95}}
        assert client.get("/api/vendors/Anuj Kumar/items/22mm/price").json()["price"] == 95

    def test_price_lookup_prefers_vendor_assignment(self, client):
        client.post("/api/payal-price-chart/seed")
        client.post("/api/payal-price-chart", json={"wireThickness": "22mm", "payalType": "Golden", "pricePerKg": 400})
        create_vendor(
            client, assignedWires=[{"wireName": "22mm", "payalType": "Golden", "pricePerKg": 380}]
        )
        create_vendor(client, name="Ravi Traders")

        own = client.get("/api/vendors/Anuj Kumar/wires/22mm/price", params={"payalType": "Golden"})
        chart = client.get("/api/vendors/Ravi Traders/wires/22mm/price", params={"payalType": "Golden"})

        assert (own.json()["pricePerKg"], own.json()["source"]) == (380, "vendor")
        assert (chart.json()["pricePerKg"], chart.json()["source"]) == (400, "chart")

    def test_summary_and_transactions(self, client, stocked):
        post_transaction(client, type="OUT", vendor="Anuj Kumar", item="22mm", qty=10, price=5)
        post_transaction(
            client, type="IN", vendor="Anuj Kumar", item="22mm", qty=4, price=20, payalType="Golden"
        )

        summary = client.get("/api/vendors/Anuj Kumar/summary").json()
        listed = client.get("/api/vendors/Anuj Kumar/transactions").json()

        assert summary["net_amount"] == 30
        assert [t["type"] for t in listed] == ["IN", "OUT"]


class TestTransactionRoutes:

    def test_out_then_in(self, client, stocked):
        out = post_transaction(client, type="out", vendor="Anuj Kumar", item="22mm", qty=50, price=2)
        assert out.status_code == 201
        assert out.json()["srNo"] == 1
        assert out.json()["type"] == "OUT"
        assert out.json()["total"] == 100
        assert out.json()["payalType"] == ""

        back = post_transaction(
            client, type="IN", vendor="Anuj Kumar", item="22mm", qty=30, price=5,
            payalType="Golden", total=99999,
        )
        assert back.status_code == 201
        assert back.json()["total"] == 150
        assert back.json()["inDate"] is not None

        too_many = post_transaction(
            client, type="IN", vendor="Anuj Kumar", item="22mm", qty=25, price=5, payalType="Golden"
        )
        assert too_many.status_code == 400
        assert too_many.json()["error"] == "Only 20 units available. You requested 25 units."

        available = client.get("/api/items/inventory/available").json()
        assert available == [
            {"vendor": "Anuj Kumar", "item": "22mm", "totalOut": 50, "totalIn": 30, "available": 20},
        ]

    def test_in_without_history(self, client, stocked):
        response = post_transaction(
            client, type="IN", vendor="Anuj Kumar", item="22mm", qty=1, price=5, payalType="Golden"
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Item not available for import. Please export it first."}

    def test_in_requires_payal_type(self, client, stocked):
        response = post_transaction(client, type="IN", vendor="Anuj Kumar", item="22mm", qty=1, price=5)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.parametrize("body", [
        {"type": "SIDEWAYS", "vendor": "Anuj Kumar", "item": "22mm", "qty": 1},
        {"vendor": "Anuj Kumar", "item": "22mm", "qty": 1},
        {"type": "OUT", "vendor": "Anuj Kumar", "item": "22mm", "qty": 0},
        {"type": "OUT", "vendor": "Anuj Kumar", "item": "22mm", "qty": 1, "price": -1},
    ])
    def test_rejected_bodies(self, client, stocked, body):
        response = client.post("/api/items/transactions", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    @pytest.mark.parametrize("raw", [
        '{"type": "OUT", "vendor": "Anuj Kumar", "item": "22mm", "qty": Infinity}',
        '{"type": "OUT", "vendor": "Anuj Kumar", "item": "22mm", "qty": NaN}',
        '{"type": "OUT", "vendor": "Anuj Kumar", "item": "22mm", "qty": 1, "price": Infinity}',
    ])
    def test_non_finite_numbers(self, client, stocked, raw):
        response = client.post(
            "/api/items/transactions", content=raw, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"
        assert client.get("/api/items/transactions").json() == []

    def test_unknown_vendor(self, client, stocked):
        response = post_transaction(client, type="OUT", vendor="Nobody", item="22mm", qty=1)

        assert response.status_code == 400
        assert response.json() == {"error": "Vendor or item not found"}

    def test_list_by_type(self, client, stocked):
        post_transaction(client, type="OUT", vendor="Anuj Kumar", item="22mm", qty=3)
        post_transaction(client, type="IN", vendor="Anuj Kumar", item="22mm", qty=1, price=1, payalType="Moorni")

        assert [t["srNo"] for t in client.get("/api/items/transactions").json()] == [2, 1]
        assert [t["srNo"] for t in client.get("/api/items/transactions/in").json()] == [2]
        assert client.get("/api/items/transactions/sideways").status_code == 400

    def test_delete_transaction(self, client, stocked):
        created = post_transaction(client, type="OUT", vendor="Anuj Kumar", item="22mm", qty=3).json()

        assert client.delete(f"/api/items/transactions/{created['id']}").status_code == 200
        assert client.delete(f"/api/items/transactions/{created['id']}").status_code == 404
        assert client.get("/api/items/inventory/available").json() == []


class TestPriceChartRoutes:

    def test_seed_and_read(self, client):
        seeded = client.post("/api/payal-price-chart/seed")

        assert seeded.status_code == 201
        assert len(seeded.json()) == 16
        chart = client.get("/api/payal-price-chart").json()
        assert chart["32mm"]["Diamond"] == 900
        assert client.get("/api/payal-price-chart/22mm/Golden").json()["pricePerKg"] == 350

    def test_update_and_delete(self, client):
        client.post("/api/payal-price-chart/seed")

        updated = client.put("/api/payal-price-chart/22mm/Golden", json={"pricePerKg": 360})
        assert updated.json()["pricePerKg"] == 360

        assert client.delete("/api/payal-price-chart/22mm/Golden").status_code == 200
        assert client.get("/api/payal-price-chart/22mm/Golden").status_code == 404

        wiped = client.delete("/api/payal-price-chart/wire/28mm")
        assert wiped.json()["deletedCount"] == 4
        assert client.delete("/api/payal-price-chart/wire/28mm").status_code == 404

    def test_bad_thickness(self, client):
        response = client.post(
            "/api/payal-price-chart",
            json={"wireThickness": "99mm", "payalType": "Golden", "pricePerKg": 1},
        )

        assert response.status_code == 400


class TestPaymentRoutes:

    def test_create_list_and_stats(self, client):
        create_vendor(client)
        create_vendor(client, name="Ravi Traders")
        payments = [
            ("Anuj Kumar", "22mm", 500, "2024-03-01T00:00:00"),
            ("Anuj Kumar", "28mm", 250, "2024-03-05T00:00:00"),
            ("Ravi Traders", "22mm", 1000, "2024-03-03T00:00:00"),
        ]
        for vendor, wire, amount, date in payments:
            response = client.post("/api/payments", json={
                "vendor": vendor, "wire": wire, "payalType": "Golden", "amount": amount, "date": date,
            })
            assert response.status_code == 201, response.text

        listed = client.get("/api/payments").json()
        assert [p["amount"] for p in listed] == [250, 1000, 500]
        assert len(client.get("/api/payments/vendor/Anuj Kumar").json()) == 2
        assert len(client.get("/api/payments/vendor/Anuj Kumar/wire/22mm").json()) == 1

        stats = client.get("/api/payments/stats").json()
        assert stats["totalPayments"] == 3
        assert stats["totalAmount"] == 1750
        assert [s["vendor"] for s in stats["vendorStats"]] == ["Ravi Traders", "Anuj Kumar"]

    def test_amount_must_be_positive(self, client):
        create_vendor(client)

        response = client.post("/api/payments", json={
            "vendor": "Anuj Kumar", "wire": "22mm", "payalType": "Golden", "amount": 0,
            "date": "2024-03-01T00:00:00",
        })

        assert response.status_code == 400

    def test_update_and_delete(self, client):
        create_vendor(client)
        payment = client.post("/api/payments", json={
            "vendor": "Anuj Kumar", "wire": "22mm", "payalType": "Golden", "amount": 10,
            "date": "2024-03-01T00:00:00",
        }).json()

        updated = client.put(f"/api/payments/{payment['id']}", json={"amount": 15, "notes": "cash"})
        assert (updated.json()["amount"], updated.json()["notes"]) == (15, "cash")

        assert client.delete(f"/api/payments/{payment['id']}").status_code == 200
        assert client.put(f"/api/payments/{payment['id']}", json={"amount": 1}).status_code == 404


    def test_payment_without_vendor_row_is_still_listed(self, client, db):
        create_vendor(client)
        client.post("/api/payments", json={
            "vendor": "Anuj Kumar", "wire": "22mm", "payalType": "Golden", "amount": 500,
            "date": "2024-03-01T00:00:00",
        })
        # rows left behind by databases that predate the delete guard
        db.execute(text("DELETE FROM vendors WHERE name = 'Anuj Kumar'"))
        db.commit()

        listed = client.get("/api/payments")
        assert listed.status_code == 200
        assert listed.json()[0]["vendor"] == "Unknown Vendor"

        stats = client.get("/api/payments/stats").json()
        assert stats["vendorStats"] == [
            {"vendor": "Unknown Vendor", "totalAmount": 500, "paymentCount": 1},
        ]

    def test_non_finite_amount(self, client):
        create_vendor(client)

        response = client.post(
            "/api/payments",
            content='{"vendor": "Anuj Kumar", "wire": "22mm", "payalType": "Golden", '
                    '"amount": Infinity, "date": "2024-03-01T00:00:00"}',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert client.get("/api/payments").json() == []


class TestPrintStatusRoutes:

    def test_mark_and_clear(self, client):
        single = client.post("/api/print-status/mark-printed", json={"vendorName": "Anuj Kumar", "pageNumber": 1})
        assert single.status_code == 200
        assert single.json()["isPrinted"] is True

        batch = client.post("/api/print-status/mark-printed-batch", json={"pages": [
            {"vendorName": "Anuj Kumar", "pageNumber": 1},
            {"vendorName": "Anuj Kumar", "pageNumber": 2},
            {"vendorName": "Ravi Traders", "pageNumber": 1},
        ]})
        assert batch.status_code == 200
        assert len(client.get("/api/print-status").json()) == 3
        assert len(client.get("/api/print-status/vendor/Anuj Kumar").json()) == 2

        assert client.delete("/api/print-status/Anuj Kumar/2").status_code == 200
        assert client.delete("/api/print-status/Anuj Kumar/2").status_code == 404

        cleared = client.delete("/api/print-status/clear/vendor/Anuj Kumar")
        assert cleared.json()["deletedCount"] == 1
        assert client.delete("/api/print-status/clear/all").json()["deletedCount"] == 1


class TestVendorRecordRoutes:

    def test_upload_and_download(self, client):
        record = client.post("/api/vendor-transaction-records", json={
            "vendor": "Anuj Kumar", "wire": "22mm", "qtyOut": 10, "payablePrice": 400,
        }).json()
        assert record["design"] == "N/A"

        uploaded = client.post(
            f"/api/vendor-transaction-records/{record['id']}/upload-pdf",
            files={"pdf": ("bill.pdf", b"%PDF-1.4 bill", "application/pdf")},
        )
        assert uploaded.status_code == 200, uploaded.text
        assert uploaded.json()["record"]["pdfFile"].startswith("pdf-")

        downloaded = client.get(f"/api/vendor-transaction-records/{record['id']}/download-pdf")
        assert downloaded.status_code == 200
        assert downloaded.content == b"%PDF-1.4 bill"

        missing_image = client.get(f"/api/vendor-transaction-records/{record['id']}/download-image")
        assert missing_image.status_code == 404

    def test_rejected_upload(self, client, settings):
        record = client.post("/api/vendor-transaction-records", json={"vendor": "Anuj Kumar", "wire": "22mm"}).json()

        wrong_type = client.post(
            f"/api/vendor-transaction-records/{record['id']}/upload-image",
            files={"image": ("notes.txt", b"hello", "text/plain")},
        )
        too_big = client.post(
            f"/api/vendor-transaction-records/{record['id']}/upload-image",
            files={"image": ("photo.png", b"x" * 4096, "image/png")},
        )

        assert wrong_type.status_code == 400
        assert too_big.status_code == 400
        assert not settings.upload_dir.exists() or list(settings.upload_dir.iterdir()) == []

    def test_records_sorted_and_deleted(self, client):
        for wire, date in (("22mm", "2024-01-01T00:00:00"), ("28mm", "2024-02-01T00:00:00")):
            client.post("/api/vendor-transaction-records", json={"vendor": "Anuj Kumar", "wire": wire, "date": date})

        records = client.get("/api/vendor-transaction-records/vendor/Anuj Kumar").json()
        assert [r["wire"] for r in records] == ["28mm", "22mm"]

        assert client.delete(f"/api/vendor-transaction-records/{records[0]['id']}").status_code == 200
        assert len(client.get("/api/vendor-transaction-records").json()) == 1


class TestUserRoutes:

    def test_create_registers_vendor_and_item(self, client):
        response = client.post("/api/users", json={
            "vendorName": "Sita Devi", "itemName": "Payal Wire",
            "phone": "9876543210", "address": "Main Bazar, Agra",
        })

        assert response.status_code == 201, response.text
        assert response.json()["isActive"] is True
        assert [v["name"] for v in client.get("/api/vendors").json()] == ["Sita Devi"]
        assert [i["name"] for i in client.get("/api/vendors/items").json()] == ["Payal Wire"]

    @pytest.mark.parametrize("field,value", [
        ("phone", "12345"),
        ("phone", "98765abcde"),
        ("vendorName", "S"),
        ("address", "Agra"),
    ])
    def test_field_validation(self, client, field, value):
        body = {
            "vendorName": "Sita Devi", "itemName": "Payal Wire",
            "phone": "9876543210", "address": "Main Bazar, Agra",
        }
        body[field] = value

        response = client.post("/api/users", json=body)

        assert response.status_code == 400
        assert response.json()["error"] == "Validation failed"

    def test_soft_delete(self, client):
        user = client.post("/api/users", json={
            "vendorName": "Sita Devi", "itemName": "Payal Wire",
            "phone": "9876543210", "address": "Main Bazar, Agra",
        }).json()

        assert client.delete(f"/api/users/{user['id']}").status_code == 200
        assert client.get("/api/users").json() == []
        assert client.get(f"/api/users/{user['id']}").json()["isActive"] is False
