"""
Tests for the item, invoice, purchase and production endpoints.

Each test seeds the chart of accounts and works through HTTP only.
"""

from decimal import Decimal

import pytest


@pytest.fixture
def coa(client):
    return {a["code"]: a["id"] for a in client.post("/ledger/accounts/seed").json()}


@pytest.fixture
def cream(client, coa):
    item = client.post("/items", json={
        "code": "CRM-A",
        "name": "Cream A",
        "category": "Graded",
        "packing_type": "Bale",
        "weight_per_unit": 45,
    }).json()
    response = client.post(f"/items/{item['id']}/opening-stock", json={
        "qty": 100,
        "unit_cost": 10,
    })
    assert response.status_code == 201
    return response.json()


def draft_invoice(client, coa, cream, qty=10, rate=5):
    response = client.post("/invoices", json={
        "invoice_no": "INV-1",
        "customer_account_id": coa["103"],
        "items": [{"item_id": cream["id"], "qty": qty, "rate": rate}],
    })
    assert response.status_code == 201
    return response.json()


class TestItems:

    def test_opening_stock_sets_quantity_and_cost(self, cream):
        assert cream["kind"] == "Finished"
        assert Decimal(cream["stock_qty"]) == Decimal("100")
        assert Decimal(cream["avg_cost"]) == Decimal("10")
        assert Decimal(cream["stock_value"]) == Decimal("1000")

    def test_unknown_item_returns_404(self, client):
        response = client.get("/items/999")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "ITEM_NOT_FOUND"

    def test_align(self, client, cream):
        response = client.post(f"/items/{cream['id']}/align", json={
            "target_qty": 90,
            "target_value": 900,
            "reason": "count",
        })
        assert response.status_code == 200
        assert Decimal(response.json()["stock_qty"]) == Decimal("90")


class TestInvoices:

    def test_draft_is_listed_as_unposted(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream)
        assert invoice["status"] == "Unposted"
        assert Decimal(invoice["net_total"]) == Decimal("50")

        unposted = client.get("/invoices/unposted").json()
        assert [i["id"] for i in unposted] == [invoice["id"]]

    def test_review_then_post(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream)
        line_id = invoice["items"][0]["id"]

        response = client.patch(f"/invoices/{invoice['id']}", json={
            "items": [{"line_id": line_id, "rate": 6}],
        })
        assert response.status_code == 200
        assert Decimal(response.json()["gross_total"]) == Decimal("60")

        response = client.post(f"/invoices/{invoice['id']}/post")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "Posted"
        assert data["transaction_id"] == "SI-INV-1"
        assert Decimal(data["items"][0]["unit_cost"]) == Decimal("10")

        item = client.get(f"/items/{cream['id']}").json()
        assert Decimal(item["stock_qty"]) == Decimal("90")
        revenue = client.get(f"/ledger/accounts/{coa['401']}/balance").json()
        assert Decimal(revenue["balance"]) == Decimal("60")

    def test_oversell_returns_409_and_stays_unposted(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream, qty=150)

        response = client.post(f"/invoices/{invoice['id']}/post")
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "INSUFFICIENT_STOCK"
        assert client.get(f"/invoices/{invoice['id']}").json()["status"] == "Unposted"

    def test_oversell_with_override(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream, qty=150)

        response = client.post(f"/invoices/{invoice['id']}/post", json={
            "allow_negative_stock": True,
            "actor": "manager",
        })
        assert response.status_code == 200
        item = client.get(f"/items/{cream['id']}").json()
        assert Decimal(item["stock_qty"]) == Decimal("-50")

    def test_zero_rate_returns_400(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream, rate=0)
        response = client.post(f"/invoices/{invoice['id']}/post")
        assert response.status_code == 400
        assert response.json()["detail"]["code"] == "INVALID_RATE"

    def test_post_twice_returns_409(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream)
        client.post(f"/invoices/{invoice['id']}/post")
        response = client.post(f"/invoices/{invoice['id']}/post")
        assert response.status_code == 409

    def test_reverse(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream)
        client.post(f"/invoices/{invoice['id']}/post")

        response = client.post(f"/invoices/{invoice['id']}/reverse", json={
            "reason": "cancelled",
            "actor": "clerk",
        })
        assert response.status_code == 200
        assert response.json()["status"] == "Reversed"
        item = client.get(f"/items/{cream['id']}").json()
        assert Decimal(item["stock_qty"]) == Decimal("100")

    def test_ledger_reversal_of_invoice_returns_409(self, client, coa, cream):
        invoice = draft_invoice(client, coa, cream)
        client.post(f"/invoices/{invoice['id']}/post")

        response = client.post("/ledger/transactions/SI-INV-1/reverse", json={
            "reason": "cancelled",
            "actor": "clerk",
        })
        assert response.status_code == 409
        assert response.json()["detail"]["code"] == "DOCUMENT_OWNED_TRANSACTION"
        assert client.get(f"/invoices/{invoice['id']}").json()["status"] == "Posted"
        header = client.get("/ledger/transactions/SI-INV-1").json()
        assert header["status"] == "COMMITTED"
        assert header["source_document"] == "SalesInvoice"

        response = client.post(f"/invoices/{invoice['id']}/reverse", json={
            "reason": "cancelled",
            "actor": "clerk",
        })
        assert response.status_code == 200
        item = client.get(f"/items/{cream['id']}").json()
        assert Decimal(item["stock_qty"]) == Decimal("100")


class TestPurchasesAndProduction:

    def test_purchase_then_open_bales_then_output(self, client, coa):
        supplier = client.post("/ledger/accounts", json={
            "code": "210", "name": "Supplier", "account_type": "LIABILITY",
        }).json()
        raw = client.post("/items", json={
            "code": "RAW-CRM", "name": "Cream originals",
            "category": "Raw", "packing_type": "Kg", "kind": "Raw",
        }).json()
        graded = client.post("/items", json={
            "code": "CRM-B", "name": "Cream B",
            "category": "Graded", "packing_type": "Bale",
        }).json()

        response = client.post("/purchases", json={
            "batch_number": "B-1",
            "supplier_account_id": supplier["id"],
            "lines": [{
                "original_type": "Cream mixed",
                "item_id": raw["id"],
                "weight_kg": 1000,
                "cost_per_kg": 2,
            }],
        })
        assert response.status_code == 201
        purchase = response.json()
        assert purchase["transaction_id"] == "PI-B-1"
        assert client.get(f"/purchases/{purchase['id']}").status_code == 200

        response = client.post("/production/bale-openings", json={
            "item_id": raw["id"], "qty": 500, "reference": "O1",
        })
        assert response.status_code == 201
        assert Decimal(response.json()["value"]) == Decimal("1000")

        response = client.post("/production/outputs", json={
            "item_id": graded["id"], "qty": 20, "unit_cost": 50, "reference": "P1",
        })
        assert response.status_code == 201
        data = response.json()
        assert (data["serial_start"], data["serial_end"]) == (1, 20)
        assert data["transaction_id"] == "PROD-P1"

        wip = client.get(f"/ledger/accounts/{coa['106']}/balance").json()
        assert Decimal(wip["balance"]) == Decimal("0")

    def test_duplicate_batch_returns_409(self, client, coa):
        supplier = client.post("/ledger/accounts", json={
            "code": "210", "name": "Supplier", "account_type": "LIABILITY",
        }).json()
        body = {
            "batch_number": "B-1",
            "supplier_account_id": supplier["id"],
            "lines": [{"original_type": "Mixed", "weight_kg": 10, "cost_per_kg": 1}],
        }
        client.post("/purchases", json=body)
        response = client.post("/purchases", json=body)
        assert response.status_code == 409

    def test_raw_purchase_lands_in_raw_materials(self, client, coa):
        supplier = client.post("/ledger/accounts", json={
            "code": "210", "name": "Supplier", "account_type": "LIABILITY",
        }).json()
        raw = client.post("/items", json={
            "code": "RAW-CRM", "name": "Cream originals",
            "category": "Raw", "packing_type": "Kg", "kind": "Raw",
        }).json()
        client.post("/purchases", json={
            "batch_number": "B-1",
            "supplier_account_id": supplier["id"],
            "lines": [{
                "original_type": "Cream mixed", "item_id": raw["id"],
                "weight_kg": 100, "cost_per_kg": 2,
            }],
        })

        raw_materials = client.get(f"/ledger/accounts/{coa['104']}/balance").json()
        finished = client.get(f"/ledger/accounts/{coa['105']}/balance").json()
        assert Decimal(raw_materials["balance"]) == Decimal("200")
        assert Decimal(finished["balance"]) == Decimal("0")


class TestBundlesAndDirectSales:

    def test_bundle_purchase(self, client, coa):
        supplier = client.post("/ledger/accounts", json={
            "code": "210", "name": "Supplier", "account_type": "LIABILITY",
        }).json()
        graded = client.post("/items", json={
            "code": "CRM-A", "name": "Cream A",
            "category": "Graded", "packing_type": "Bale", "weight_per_unit": 45,
        }).json()

        response = client.post("/purchases/bundles", json={
            "batch_number": "BND-1",
            "supplier_account_id": supplier["id"],
            "items": [{"item_id": graded["id"], "qty": 10, "rate": 100}],
            "additional_costs": [{
                "cost_type": "Freight",
                "provider_account_id": supplier["id"],
                "amount": 50,
            }],
        })
        assert response.status_code == 201
        bundle = response.json()
        assert bundle["transaction_id"] == "BUN-BND-1"
        assert Decimal(bundle["lines"][0]["unit_cost"]) == Decimal("105")
        assert client.get(f"/purchases/bundles/{bundle['id']}").status_code == 200

        finished = client.get(f"/ledger/accounts/{coa['105']}/balance").json()
        assert Decimal(finished["balance"]) == Decimal("1050")

    def test_unknown_bundle_returns_404(self, client):
        response = client.get("/purchases/bundles/999")
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "BUNDLE_PURCHASE_NOT_FOUND"

    def test_direct_sale(self, client, coa):
        supplier = client.post("/ledger/accounts", json={
            "code": "210", "name": "Supplier", "account_type": "LIABILITY",
        }).json()
        client.post("/purchases", json={
            "batch_number": "B-1",
            "supplier_account_id": supplier["id"],
            "lines": [{"original_type": "Mixed", "weight_kg": 1000, "cost_per_kg": 1.5}],
        })

        response = client.post("/invoices/direct-sales", json={
            "invoice_no": "SINV-2001",
            "customer_account_id": coa["103"],
            "batch_number": "B-1",
            "weight_kg": 200,
            "rate": 3,
        })
        assert response.status_code == 201
        data = response.json()
        assert data["transaction_id"] == "DS-SINV-2001"
        assert Decimal(data["cost_of_sale"]) == Decimal("300")
        assert client.get(f"/invoices/direct-sales/{data['id']}").status_code == 200

        cost = client.get(f"/ledger/accounts/{coa['503']}/balance").json()
        assert Decimal(cost["balance"]) == Decimal("300")

    def test_direct_sale_from_unknown_batch_returns_404(self, client, coa):
        response = client.post("/invoices/direct-sales", json={
            "invoice_no": "SINV-2001",
            "customer_account_id": coa["103"],
            "batch_number": "NOPE",
            "weight_kg": 200,
            "rate": 3,
        })
        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "PURCHASE_NOT_FOUND"
