"""Read-only aggregations over stored transactions.

Nothing here is cached or persisted; every call rescans the transaction
records in the requested range.
"""

import math
from datetime import date, datetime

from kasir.core.errors import InvalidInput
from kasir.core.keys import transaction_prefix
from kasir.core.money import ZERO_MONEY, to_money
from kasir.core.time_utils import today_local
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.report import ProductSalesOut, SalesPeriodOut
from kasir.schemas.transaction import DailySummary, TransactionRecord
from kasir.services.transaction_service import load_transactions

GROUP_BY_VALUES = ("day", "week", "month")


def period_key(day: date, group_by: str) -> str:
    if group_by == "day":
        return day.isoformat()
    if group_by == "month":
        return day.isoformat()[:7]
    if group_by == "week":
        # Calendar-month slices of 7 days; days 29-31 land in W5.
        return f"{day.year}-{day.month:02d}-W{math.ceil(day.day / 7)}"
    raise InvalidInput(f"Unknown groupBy: {group_by}")


def sales_report(
    store: KeyValueStore,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    group_by: str = "day",
) -> list[SalesPeriodOut]:
    if group_by not in GROUP_BY_VALUES:
        raise InvalidInput(f"Unknown groupBy: {group_by}")

    buckets: dict[str, dict] = {}
    for txn in load_transactions(store, start_date=start_date, end_date=end_date):
        key = period_key(txn.date, group_by)
        bucket = buckets.setdefault(
            key,
            {
                "total_sales": ZERO_MONEY,
                "total_profit": ZERO_MONEY,
                "total_cogs": ZERO_MONEY,
                "transaction_count": 0,
                "item_count": 0,
            },
        )
        bucket["total_sales"] += txn.total
        bucket["total_profit"] += txn.profit
        bucket["total_cogs"] += txn.cogs
        bucket["transaction_count"] += 1
        bucket["item_count"] += sum(item.quantity for item in txn.items)

    return [
        SalesPeriodOut(
            period=key,
            total_sales=to_money(bucket["total_sales"]),
            total_profit=to_money(bucket["total_profit"]),
            total_cogs=to_money(bucket["total_cogs"]),
            transaction_count=bucket["transaction_count"],
            item_count=bucket["item_count"],
        )
        for key, bucket in sorted(buckets.items(), reverse=True)
    ]


def product_report(
    store: KeyValueStore,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[ProductSalesOut]:
    """Per-product totals from line snapshots; profit is gross of discounts."""
    rows: dict[str, dict] = {}
    for txn in load_transactions(store, start_date=start_date, end_date=end_date):
        for item in txn.items:
            row = rows.setdefault(
                item.product_id,
                {
                    "product_name": item.product_name,
                    "quantity_sold": 0,
                    "total_revenue": ZERO_MONEY,
                    "total_cogs": ZERO_MONEY,
                },
            )
            # Oldest first, so the last snapshot seen carries the current name.
            row["product_name"] = item.product_name
            row["quantity_sold"] += item.quantity
            row["total_revenue"] += item.total
            row["total_cogs"] += item.cogs

    report = [
        ProductSalesOut(
            product_id=product_id,
            product_name=row["product_name"],
            quantity_sold=row["quantity_sold"],
            total_revenue=to_money(row["total_revenue"]),
            total_cogs=to_money(row["total_cogs"]),
            total_profit=to_money(row["total_revenue"] - row["total_cogs"]),
        )
        for product_id, row in rows.items()
    ]
    report.sort(key=lambda row: (row.total_revenue, row.product_id), reverse=True)
    return report


def daily_summary(
    store: KeyValueStore,
    *,
    day: date | None = None,
    now: datetime | None = None,
) -> DailySummary:
    day = day or today_local(now)
    transactions = [
        TransactionRecord.model_validate(raw)
        for raw in store.values(transaction_prefix(day))
    ]
    return DailySummary(
        date=day,
        total_sales=sum((txn.total for txn in transactions), ZERO_MONEY),
        total_profit=sum((txn.profit for txn in transactions), ZERO_MONEY),
        total_cogs=sum((txn.cogs for txn in transactions), ZERO_MONEY),
        total_transactions=len(transactions),
        total_items=sum(item.quantity for txn in transactions for item in txn.items),
    )
