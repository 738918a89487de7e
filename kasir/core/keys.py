"""Record ids and key-value store key layout."""

from datetime import date, datetime, timezone

import shortuuid

PRODUCT_PREFIX = "product:"
STOCK_HISTORY_PREFIX = "stock_history:"
TRANSACTION_PREFIX = "transaction:"
ORDER_PREFIX = "order:"
PURCHASE_PREFIX = "purchase:"
USER_PREFIX = "user:"


def generate_id() -> str:
    return shortuuid.uuid()


def sortable_timestamp(value: datetime) -> str:
    # Fixed width, so lexicographic key order equals chronological order.
    return value.astimezone(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")


def product_key(product_id: str) -> str:
    return f"{PRODUCT_PREFIX}{product_id}"


def stock_history_prefix(product_id: str | None = None) -> str:
    if product_id is None:
        return STOCK_HISTORY_PREFIX
    return f"{STOCK_HISTORY_PREFIX}{product_id}:"


def stock_history_key(product_id: str, timestamp: datetime, entry_id: str) -> str:
    return f"{stock_history_prefix(product_id)}{sortable_timestamp(timestamp)}:{entry_id}"


def transaction_prefix(day: date | None = None) -> str:
    if day is None:
        return TRANSACTION_PREFIX
    return f"{TRANSACTION_PREFIX}{day.isoformat()}:"


def transaction_key(day: date, timestamp: datetime, transaction_id: str) -> str:
    return f"{transaction_prefix(day)}{sortable_timestamp(timestamp)}:{transaction_id}"


def order_key(order_id: str) -> str:
    return f"{ORDER_PREFIX}{order_id}"


def purchase_key(purchase_id: str) -> str:
    return f"{PURCHASE_PREFIX}{purchase_id}"


def user_key(user_id: str) -> str:
    return f"{USER_PREFIX}{user_id}"
