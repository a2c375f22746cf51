"""API tests for orders: ownership, lifecycle, extra items and tax rows."""
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)

OWNER = {"X-User-Id": "vendedor-1"}
OTHER = {"X-User-Id": "vendedor-2"}


@pytest.fixture(autouse=True)
def clean_db():
    from core.database import Base, engine
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


def create_order(**overrides):
    product = client.post("/products", json={"name": "Painel", "unit_price": 100}).json()
    payload = {"product_id": product["id"], "quantity": 2, **overrides}
    resp = client.post("/orders", json=payload, headers=OWNER)
    assert resp.status_code == 200, resp.text
    return resp.json()


def test_order_requires_identity():
    resp = client.post("/orders", json={"extra_items": [{"name": "Projeto", "value": 50}]})
    assert resp.status_code == 401
    assert resp.json()["codigo"] == "unauthorized"
    assert client.get("/orders").status_code == 401


def test_create_order_keeps_tax_order():
    order = create_order(taxes=[{"tax_type": "ICMS", "percent": 10}, {"tax_type": "ISS", "percent": 5}])
    assert order["status"] == "pending"
    assert order["user_id"] == "vendedor-1"
    assert [(t["position"], t["tax_type"]) for t in order["taxes"]] == [(1, "ICMS"), (2, "ISS")]
    assert order["status_history"][0]["to_status"] == "pending"


def test_orders_are_scoped_to_owner():
    order = create_order()
    assert [o["id"] for o in client.get("/orders", headers=OWNER).json()] == [order["id"]]
    assert client.get("/orders", headers=OTHER).json() == []

    resp = client.get(f"/orders/{order['id']}", headers=OTHER)
    assert resp.status_code == 403
    assert resp.json()["codigo"] == "forbidden"
    assert client.post(
        f"/orders/{order['id']}/taxes", json={"tax_type": "ISS", "percent": 5}, headers=OTHER
    ).status_code == 403


def test_order_needs_content():
    resp = client.post("/orders", json={}, headers=OWNER)
    assert resp.status_code == 422


def test_main_product_needs_quantity():
    product = client.post("/products", json={"name": "Painel", "unit_price": 100}).json()
    resp = client.post("/orders", json={"product_id": product["id"]}, headers=OWNER)
    assert resp.status_code == 422


def test_unknown_product_in_order():
    resp = client.post("/orders", json={"lines": [{"product_id": 77, "quantity": 1}]}, headers=OWNER)
    assert resp.status_code == 404


def test_invalid_tax_percent_is_rejected():
    resp = client.post(
        "/orders",
        json={"extra_items": [{"name": "Projeto", "value": 50}], "taxes": [{"tax_type": "ICMS", "percent": 100}]},
        headers=OWNER,
    )
    assert resp.status_code == 422


def test_status_lifecycle():
    order = create_order()
    url = f"/orders/{order['id']}/status"

    assert client.patch(url, json={"status": "in_production"}, headers=OWNER).status_code == 200
    resp = client.patch(url, json={"status": "finished"}, headers=OWNER)
    assert resp.status_code == 200
    history = resp.json()["status_history"]
    assert [(h["from_status"], h["to_status"]) for h in history] == [
        (None, "pending"),
        ("pending", "in_production"),
        ("in_production", "finished"),
    ]

    resp = client.patch(url, json={"status": "pending"}, headers=OWNER)
    assert resp.status_code == 409
    assert resp.json()["codigo"] == "invalid_transition"


def test_tax_rows_append_and_keep_position():
    order = create_order(taxes=[{"tax_type": "ICMS", "percent": 10}])
    url = f"/orders/{order['id']}/taxes"

    pis = client.post(url, json={"tax_type": "PIS", "percent": 1.65}, headers=OWNER).json()
    iss = client.post(url, json={"tax_type": "ISS", "percent": 5}, headers=OWNER).json()
    assert (pis["position"], iss["position"]) == (2, 3)

    assert client.delete(f"{url}/{pis['id']}", headers=OWNER).status_code == 204
    updated = client.patch(f"{url}/{iss['id']}", json={"percent": 3}, headers=OWNER).json()
    assert updated["position"] == 3
    assert updated["percent"] == 3

    taxes = client.get(url, headers=OWNER).json()
    assert [t["tax_type"] for t in taxes] == ["ICMS", "ISS"]

    cofins = client.post(url, json={"tax_type": "COFINS", "percent": 7.6}, headers=OWNER).json()
    assert cofins["position"] == 4


def test_extra_items_crud():
    order = create_order()
    url = f"/orders/{order['id']}/extra-items"

    item = client.post(url, json={"name": "Instalação", "value": 150}, headers=OWNER).json()
    assert item["value"] == 150
    updated = client.patch(f"{url}/{item['id']}", json={"value": 175.5}, headers=OWNER).json()
    assert updated["value"] == 175.5
    assert len(client.get(url, headers=OWNER).json()) == 1

    assert client.delete(f"{url}/{item['id']}", headers=OWNER).status_code == 204
    assert client.get(url, headers=OWNER).json() == []
    assert client.delete(f"{url}/{item['id']}", headers=OWNER).status_code == 404


def test_lines_and_freight():
    order = create_order()
    other = client.post("/products", json={"name": "Porta", "unit_price": 40}).json()

    resp = client.post(f"/orders/{order['id']}/lines", json={"product_id": other["id"], "quantity": 3}, headers=OWNER)
    assert resp.status_code == 200, resp.text
    line = resp.json()["lines"][0]
    assert (line["product_name"], line["quantity"]) == ("Porta", 3)

    freight = client.patch(f"/orders/{order['id']}/freight", json={"freight_amount": 80}, headers=OWNER).json()
    assert freight["has_freight"] is True
    assert freight["freight_amount"] == 80

    assert client.delete(f"/orders/{order['id']}/lines/{line['id']}", headers=OWNER).status_code == 204
    assert client.get(f"/orders/{order['id']}", headers=OWNER).json()["lines"] == []


def test_product_in_order_cannot_be_deleted():
    order = create_order()
    assert client.delete(f"/products/{order['product_id']}").status_code == 422
