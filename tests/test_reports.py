from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from kasir.db.kv_store import KeyValueStore
from kasir.schemas.product import ProductCreate
from kasir.schemas.transaction import CartLineIn, TransactionCreate
from kasir.services.catalog_service import create_product
from kasir.services.reporting_service import period_key
from kasir.services.stock_ledger_service import book_opening_stock
from kasir.services.transaction_service import process_sale
from kasir.services.user_service import get_user


def _seed_sales(session_local, sales: list[tuple[datetime, int, int]]) -> dict[str, str]:
    """Create two products and record ``(when, quantity_a, quantity_b)`` sales."""
    db = session_local()
    try:
        store = KeyValueStore(db)
        actor = get_user(store, "cashier-1")
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        cheap = create_product(
            store, ProductCreate(name="Es Teh", selling_price=5000, cost_price=2000), now=created
        )
        pricey = create_product(
            store, ProductCreate(name="Ayam Bakar", selling_price=20000, cost_price=12000), now=created
        )
        book_opening_stock(store, cheap, 100, actor=actor, now=created)
        book_opening_stock(store, pricey, 100, actor=actor, now=created)
        store.commit()

        for when, quantity_a, quantity_b in sales:
            items = []
            if quantity_a:
                items.append(CartLineIn(product_id=cheap.id, quantity=quantity_a))
            if quantity_b:
                items.append(CartLineIn(product_id=pricey.id, quantity=quantity_b))
            process_sale(store, TransactionCreate(items=items), actor=actor, now=when)
        return {"cheap": cheap.id, "pricey": pricey.id}
    finally:
        db.close()


@pytest.mark.parametrize(
    ("day", "group_by", "expected"),
    [
        ("2024-01-05", "day", "2024-01-05"),
        ("2024-01-05", "month", "2024-01"),
        ("2024-01-01", "week", "2024-01-W1"),
        ("2024-01-07", "week", "2024-01-W1"),
        ("2024-01-08", "week", "2024-01-W2"),
        ("2024-01-29", "week", "2024-01-W5"),
        ("2024-02-01", "week", "2024-02-W1"),
    ],
)
def test_period_key(day, group_by, expected):
    assert period_key(date.fromisoformat(day), group_by) == expected


def test_sales_report_by_day(test_context, make_user):
    client, session_local = test_context
    admin = make_user("admin-1", role="admin")
    make_user("cashier-1")
    _seed_sales(
        session_local,
        [
            (datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc), 2, 0),
            (datetime(2024, 1, 5, 13, 0, tzinfo=timezone.utc), 0, 1),
            (datetime(2024, 1, 6, 10, 0, tzinfo=timezone.utc), 1, 0),
        ],
    )

    res = client.get(
        "/reports/sales",
        params={"startDate": "2024-01-05", "endDate": "2024-01-06", "groupBy": "day"},
        headers=admin,
    )
    assert res.status_code == 200, res.text
    report = res.json()["report"]
    assert [row["period"] for row in report] == ["2024-01-06", "2024-01-05"]
    assert report[1]["totalSales"] == 30000
    assert report[1]["transactionCount"] == 2
    assert report[1]["itemCount"] == 3
    assert report[0]["totalSales"] == 5000
    assert report[0]["transactionCount"] == 1


@pytest.mark.parametrize("group_by", ["day", "week", "month"])
def test_sales_report_totals_match_transactions(test_context, make_user, group_by):
    client, session_local = test_context
    admin = make_user("admin-1", role="admin")
    make_user("cashier-1")
    _seed_sales(
        session_local,
        [
            (datetime(2024, 1, 29, 9, 0, tzinfo=timezone.utc), 4, 4),
            (datetime(2024, 1, 30, 9, 0, tzinfo=timezone.utc), 2, 1),
            (datetime(2024, 1, 31, 23, 30, tzinfo=timezone.utc), 3, 0),
            (datetime(2024, 2, 1, 0, 15, tzinfo=timezone.utc), 0, 2),
            (datetime(2024, 2, 1, 12, 0, tzinfo=timezone.utc), 1, 1),
            (datetime(2024, 2, 8, 9, 0, tzinfo=timezone.utc), 5, 0),
            (datetime(2024, 2, 9, 9, 0, tzinfo=timezone.utc), 7, 7),
        ],
    )
    window = {"startDate": "2024-01-30", "endDate": "2024-02-08"}

    res = client.get("/reports/sales", params={**window, "groupBy": group_by}, headers=admin)
    assert res.status_code == 200, res.text
    report = res.json()["report"]
    assert len(report) >= 2

    listed = client.get("/transactions", params={**window, "limit": 1000}, headers=admin)
    assert listed.status_code == 200, listed.text
    transactions = listed.json()["transactions"]
    assert len(transactions) == 5

    def total(rows, field):
        return sum((Decimal(str(row[field])) for row in rows), Decimal("0"))

    assert total(transactions, "total") == Decimal("135000")
    assert total(report, "totalSales") == total(transactions, "total")
    assert total(report, "totalProfit") == total(transactions, "profit")
    assert total(report, "totalCogs") == total(transactions, "cogs")
    assert sum(row["itemCount"] for row in report) == sum(
        item["quantity"] for t in transactions for item in t["items"]
    )
    assert sum(row["transactionCount"] for row in report) == len(transactions)


def test_sales_report_by_week_and_month(test_context, make_user):
    client, session_local = test_context
    manager = make_user("manager-1", role="manager")
    make_user("cashier-1")
    _seed_sales(
        session_local,
        [
            (datetime(2024, 1, 7, 9, 0, tzinfo=timezone.utc), 1, 0),
            (datetime(2024, 1, 8, 9, 0, tzinfo=timezone.utc), 1, 0),
            (datetime(2024, 1, 31, 9, 0, tzinfo=timezone.utc), 1, 0),
            (datetime(2024, 2, 1, 9, 0, tzinfo=timezone.utc), 0, 1),
        ],
    )

    weekly = client.get("/reports/sales", params={"groupBy": "week"}, headers=manager)
    assert weekly.status_code == 200, weekly.text
    assert [row["period"] for row in weekly.json()["report"]] == [
        "2024-02-W1",
        "2024-01-W5",
        "2024-01-W2",
        "2024-01-W1",
    ]

    monthly = client.get("/reports/sales", params={"groupBy": "month"}, headers=manager).json()["report"]
    assert [(row["period"], row["totalSales"]) for row in monthly] == [
        ("2024-02", 20000),
        ("2024-01", 15000),
    ]

    unknown = client.get("/reports/sales", params={"groupBy": "year"}, headers=manager)
    assert unknown.status_code == 400, unknown.text
    assert unknown.json()["code"] == "invalid_input"


def test_product_report_sorted_by_revenue(test_context, make_user):
    client, session_local = test_context
    admin = make_user("admin-1", role="admin")
    make_user("cashier-1")
    ids = _seed_sales(
        session_local,
        [
            (datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc), 3, 1),
            (datetime(2024, 1, 6, 9, 0, tzinfo=timezone.utc), 1, 2),
        ],
    )

    res = client.get("/reports/products", headers=admin)
    assert res.status_code == 200, res.text
    report = res.json()["report"]
    assert [row["productId"] for row in report] == [ids["pricey"], ids["cheap"]]
    assert report[0]["quantitySold"] == 3
    assert report[0]["totalRevenue"] == 60000
    assert report[0]["totalCogs"] == 36000
    assert report[0]["totalProfit"] == 24000
    assert report[1]["productName"] == "Es Teh"
    assert report[1]["quantitySold"] == 4
    assert report[1]["totalProfit"] == 12000

    only_first_day = client.get(
        "/reports/products", params={"startDate": "2024-01-05", "endDate": "2024-01-05"}, headers=admin
    ).json()["report"]
    assert {row["productId"]: row["quantitySold"] for row in only_first_day} == {
        ids["pricey"]: 1,
        ids["cheap"]: 3,
    }


def test_reports_require_admin(test_context, make_user):
    client, _ = test_context
    cashier = make_user("cashier-1")

    assert client.get("/reports/sales", headers=cashier).status_code == 403
    assert client.get("/reports/products", headers=cashier).status_code == 403
