from fastapi.testclient import TestClient

import database
from main import app

BASE = "/api/orgs/org-1"


def add_product(client, **overrides):
    payload = {"name": "Rice", "sku": "RICE", "selling_price": 50.0, "cost_price": 40.0,
               "current_stock": 10, "barcode": "8901001"}
    payload.update(overrides)
    response = client.post(f"{BASE}/products", json=payload)
    assert response.status_code == 200
    return response.json()["id"]


def test_root(client):
    assert client.get("/").json() == {"message": "Shop CRM Backend Running"}


def test_search_endpoints(client):
    add_product(client)

    names = client.get(f"{BASE}/products/search", params={"q": "rice"}).json()
    assert [p["name"] for p in names] == ["Rice"]
    assert client.get(f"{BASE}/products/search", params={"q": "r"}).json() == []

    barcodes = client.get(f"{BASE}/products/barcode/search", params={"q": "890"}).json()
    assert [p["barcode"] for p in barcodes] == ["8901001"]
    assert client.get("/api/orgs/org-2/products/barcode/search", params={"q": "890"}).json() == []


def test_product_lookup_errors(client):
    assert client.get(f"{BASE}/products/not-an-id").status_code == 400
    assert client.get(f"{BASE}/products/65f000000000000000000000").status_code == 404
    assert client.get(f"{BASE}/products/barcode/0000").status_code == 404


def test_daily_stats_endpoints(client):
    url = f"{BASE}/stats/daily/2024-03-15"
    assert client.get(url).status_code == 404

    assert client.put(url, json={"total_sales_amount": 99.5, "total_bills": 1}).json() == {"ok": True}
    assert client.put(url, json={"total_bills": 4}).status_code == 200

    stats = client.get(url).json()
    assert stats["total_sales_amount"] == 99.5
    assert stats["total_bills"] == 4
    assert stats["total_items_sold"] == 0

    assert client.get(f"{BASE}/stats/daily/15-03-2024").status_code == 400
    assert client.put(url, json={"bogus": 1}).status_code == 422


def test_sale_flow(client):
    product_id = add_product(client)

    response = client.post(f"{BASE}/sales", json={
        "items": [{"product_id": product_id, "quantity": 2, "selling_price": 50.0}],
    })
    assert response.status_code == 200
    body = response.json()
    assert body["grand_total"] == 100.0
    assert body["invoice_number"].startswith("INV-")

    assert client.get(f"{BASE}/products/{product_id}").json()["current_stock"] == 8
    assert len(client.get(f"{BASE}/sales").json()) == 1

    too_many = client.post(f"{BASE}/sales", json={
        "items": [{"product_id": product_id, "quantity": 50, "selling_price": 50.0}],
    })
    assert too_many.status_code == 400


def test_customer_payment(client):
    customer_id = client.post(f"{BASE}/customers", json={
        "name": "Asha", "phone": "9000000001", "total_credit": 300.0,
    }).json()["id"]

    response = client.post(f"{BASE}/customers/{customer_id}/payments", json={"amount": 120.0})
    assert response.json() == {"ok": True, "total_credit": 180.0}

    ledger = client.get(f"{BASE}/customers/{customer_id}/transactions").json()
    assert sorted(e["type"] for e in ledger) == ["OPENING_BALANCE", "PAYMENT"]


def test_without_database_store_routes_are_unavailable(monkeypatch):
    monkeypatch.setattr(database, "db", None)
    app.dependency_overrides.clear()
    with TestClient(app) as client:
        assert client.get(f"{BASE}/products").status_code == 503
        assert client.get("/test").json()["database"] == "❌ Not Configured"
