from decimal import Decimal

import pytest

from kasir.core.errors import StorageFailure
from kasir.core.security import create_access_token
from kasir.db.kv_store import KeyValueStore


def _create_product(client, headers, *, name: str, selling_price, cost_price, stock: int) -> dict:
    res = client.post(
        "/products",
        json={
            "name": name,
            "category": "Minuman",
            "sellingPrice": selling_price,
            "costPrice": cost_price,
            "stock": stock,
        },
        headers=headers,
    )
    assert res.status_code == 200, res.text
    return res.json()["product"]


def _stock_of(client, headers, product_id: str) -> int:
    res = client.get("/products", headers=headers)
    assert res.status_code == 200, res.text
    return next(p["stock"] for p in res.json()["products"] if p["id"] == product_id)


def _history(client, headers, product_id: str) -> list[dict]:
    res = client.get("/stock/history", params={"productId": product_id}, headers=headers)
    assert res.status_code == 200, res.text
    return res.json()["history"]


def test_sale_records_transaction_and_reduces_stock(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1", name="Siti")

    product = _create_product(
        client, admin, name="Kopi Susu", selling_price=10000, cost_price=6000, stock=10
    )

    res = client.post(
        "/transactions",
        json={"items": [{"productId": product["id"], "quantity": 3}], "discount": 0},
        headers=cashier,
    )
    assert res.status_code == 200, res.text
    body = res.json()
    assert body["success"] is True
    txn = body["transaction"]
    assert txn["subtotal"] == 30000
    assert txn["total"] == 30000
    assert txn["cogs"] == 18000
    assert txn["profit"] == 12000
    assert txn["paymentMethod"] == "cash"
    assert txn["cashierId"] == "cashier-1"
    assert txn["cashierName"] == "Siti"
    assert txn["items"][0]["productName"] == "Kopi Susu"
    assert txn["items"][0]["total"] == 30000
    assert txn["items"][0]["cogs"] == 18000

    assert _stock_of(client, cashier, product["id"]) == 7

    history = _history(client, cashier, product["id"])
    sale_entry = history[0]
    assert sale_entry["type"] == "sale"
    assert sale_entry["change"] == -3
    assert sale_entry["oldStock"] == 10
    assert sale_entry["newStock"] == 7
    assert sale_entry["referenceId"] == txn["id"]
    assert sale_entry["userId"] == "cashier-1"


def test_insufficient_stock_rejects_whole_cart(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")

    plenty = _create_product(client, admin, name="Teh", selling_price=5000, cost_price=2000, stock=50)
    scarce = _create_product(client, admin, name="Roti", selling_price=12000, cost_price=7000, stock=2)

    res = client.post(
        "/transactions",
        json={
            "items": [
                {"productId": plenty["id"], "quantity": 4},
                {"productId": scarce["id"], "quantity": 5},
            ]
        },
        headers=cashier,
    )
    assert res.status_code == 400, res.text
    body = res.json()
    assert body["code"] == "insufficient_stock"
    assert "Insufficient stock for Roti" in body["error"]
    assert "Available: 2" in body["error"]
    assert "Requested: 5" in body["error"]

    assert _stock_of(client, cashier, plenty["id"]) == 50
    assert _stock_of(client, cashier, scarce["id"]) == 2
    assert [e["type"] for e in _history(client, cashier, plenty["id"])] == ["restock"]

    listed = client.get("/transactions", headers=cashier)
    assert listed.status_code == 200, listed.text
    assert listed.json()["transactions"] == []


def test_duplicate_lines_are_summed_for_stock_check(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    product = _create_product(client, admin, name="Donat", selling_price=4000, cost_price=1500, stock=5)

    rejected = client.post(
        "/transactions",
        json={
            "items": [
                {"productId": product["id"], "quantity": 3},
                {"productId": product["id"], "quantity": 3},
            ]
        },
        headers=cashier,
    )
    assert rejected.status_code == 400, rejected.text
    assert rejected.json()["code"] == "insufficient_stock"
    assert _stock_of(client, cashier, product["id"]) == 5

    accepted = client.post(
        "/transactions",
        json={
            "items": [
                {"productId": product["id"], "quantity": 2},
                {"productId": product["id"], "quantity": 3},
            ]
        },
        headers=cashier,
    )
    assert accepted.status_code == 200, accepted.text
    assert _stock_of(client, cashier, product["id"]) == 0

    sales = [e for e in _history(client, cashier, product["id"]) if e["type"] == "sale"]
    assert len(sales) == 2
    for entry in sales:
        assert entry["newStock"] - entry["oldStock"] == entry["change"]
        assert entry["newStock"] >= 0


def test_discount_reduces_total_and_profit(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    product = _create_product(client, admin, name="Nasi Box", selling_price=25000, cost_price=15000, stock=10)

    res = client.post(
        "/transactions",
        json={
            "items": [{"productId": product["id"], "quantity": 2}],
            "discount": 5000,
            "paymentMethod": "transfer",
        },
        headers=cashier,
    )
    assert res.status_code == 200, res.text
    txn = res.json()["transaction"]
    assert txn["subtotal"] == 50000
    assert txn["discount"] == 5000
    assert txn["total"] == 45000
    assert txn["profit"] == 15000
    assert txn["paymentMethod"] == "transfer"


def test_discount_above_subtotal_is_rejected(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    product = _create_product(client, admin, name="Air Mineral", selling_price=3000, cost_price=1000, stock=10)

    res = client.post(
        "/transactions",
        json={"items": [{"productId": product["id"], "quantity": 1}], "discount": 3001},
        headers=cashier,
    )
    assert res.status_code == 400, res.text
    assert res.json()["code"] == "invalid_discount"
    assert _stock_of(client, cashier, product["id"]) == 10


def test_unknown_product_is_not_found(test_context, make_user):
    client, _ = test_context
    cashier = make_user("cashier-1")

    res = client.post(
        "/transactions",
        json={"items": [{"productId": "missing", "quantity": 1}]},
        headers=cashier,
    )
    assert res.status_code == 404, res.text
    assert res.json()["code"] == "not_found"


@pytest.mark.parametrize(
    "payload",
    [
        {"items": []},
        {"items": [{"productId": "p", "quantity": 0}]},
        {"items": [{"productId": "p", "quantity": "2"}]},
        {"items": [{"productId": "p", "quantity": 1}], "discount": -1},
        {"items": [{"productId": "p", "quantity": 1}], "discount": "100"},
        {"items": [{"productId": "p", "quantity": 1}], "paymentMethod": "bitcoin"},
        {"items": [{"productId": "p", "quantity": 1}], "tip": 500},
    ],
)
def test_malformed_sale_payload_is_invalid_input(test_context, make_user, payload):
    client, _ = test_context
    cashier = make_user("cashier-1")

    res = client.post("/transactions", json=payload, headers=cashier)
    assert res.status_code == 400, res.text
    body = res.json()
    assert body["code"] == "invalid_input"
    assert body["details"]


def test_sale_requires_authentication(test_context):
    client, _ = test_context

    res = client.post("/transactions", json={"items": [{"productId": "p", "quantity": 1}]})
    assert res.status_code == 401, res.text
    assert res.json()["code"] == "unauthorized"


def test_unknown_profile_is_unauthorized(test_context):
    client, _ = test_context
    headers = {"Authorization": f"Bearer {create_access_token('ghost')}"}

    res = client.get("/products", headers=headers)
    assert res.status_code == 401, res.text
    assert res.json()["error"] == "User profile not found"


def test_storage_failure_mid_sale_rolls_back_every_line(test_context, make_user, monkeypatch):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    first = _create_product(client, admin, name="Kopi", selling_price=10000, cost_price=5000, stock=10)
    second = _create_product(client, admin, name="Susu", selling_price=8000, cost_price=4000, stock=10)

    original_set = KeyValueStore.set

    def failing_set(self, key, value):
        if key.startswith("transaction:"):
            self.db.rollback()
            raise StorageFailure("Storage set failed")
        return original_set(self, key, value)

    monkeypatch.setattr(KeyValueStore, "set", failing_set)

    res = client.post(
        "/transactions",
        json={
            "items": [
                {"productId": first["id"], "quantity": 2},
                {"productId": second["id"], "quantity": 3},
            ]
        },
        headers=cashier,
    )
    assert res.status_code == 500, res.text
    assert res.json()["code"] == "storage_failure"

    monkeypatch.setattr(KeyValueStore, "set", original_set)
    assert _stock_of(client, cashier, first["id"]) == 10
    assert _stock_of(client, cashier, second["id"]) == 10
    assert all(e["type"] != "sale" for e in _history(client, cashier, first["id"]))
    assert client.get("/transactions", headers=cashier).json()["transactions"] == []


def test_list_transactions_newest_first_with_limit(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    product = _create_product(client, admin, name="Es Teh", selling_price=5000, cost_price=1000, stock=20)

    ids = []
    for quantity in (1, 2, 3):
        res = client.post(
            "/transactions",
            json={"items": [{"productId": product["id"], "quantity": quantity}]},
            headers=cashier,
        )
        assert res.status_code == 200, res.text
        ids.append(res.json()["transaction"]["id"])

    listed = client.get("/transactions", headers=cashier)
    assert listed.status_code == 200, listed.text
    assert [t["id"] for t in listed.json()["transactions"]] == list(reversed(ids))

    limited = client.get("/transactions", params={"limit": 2}, headers=cashier)
    assert [t["id"] for t in limited.json()["transactions"]] == [ids[2], ids[1]]


def test_daily_summary_totals(test_context, make_user):
    client, _ = test_context
    admin = make_user("admin-1", role="admin")
    cashier = make_user("cashier-1")
    product = _create_product(client, admin, name="Bakso", selling_price=15000, cost_price=9000, stock=20)

    first = client.post(
        "/transactions",
        json={"items": [{"productId": product["id"], "quantity": 2}]},
        headers=cashier,
    )
    second = client.post(
        "/transactions",
        json={"items": [{"productId": product["id"], "quantity": 1}], "discount": 1000},
        headers=cashier,
    )
    assert first.status_code == 200, first.text
    assert second.status_code == 200, second.text
    day = first.json()["transaction"]["date"]

    res = client.get("/transactions/summary", params={"date": day}, headers=cashier)
    assert res.status_code == 200, res.text
    summary = res.json()["summary"]
    assert summary["date"] == day
    assert summary["totalTransactions"] == 2
    assert summary["totalItems"] == 3
    assert Decimal(str(summary["totalSales"])) == Decimal("44000")
    assert Decimal(str(summary["totalCogs"])) == Decimal("27000")
    assert Decimal(str(summary["totalProfit"])) == Decimal("17000")

    empty = client.get("/transactions/summary", params={"date": "2001-01-01"}, headers=cashier)
    assert empty.json()["summary"]["totalTransactions"] == 0
