from datetime import date, datetime

from kasir.core.errors import InvalidDiscount, InvalidInput
from kasir.core.keys import TRANSACTION_PREFIX, generate_id, transaction_key
from kasir.core.money import line_amount, sum_money, to_money
from kasir.core.observability import log_event
from kasir.core.time_utils import local_date, utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.product import ProductRecord
from kasir.schemas.transaction import LineItem, TransactionCreate, TransactionRecord
from kasir.schemas.user import UserRecord
from kasir.services.locks import product_locks
from kasir.services.stock_ledger_service import deduct_lines, ensure_available, load_line_products


def price_lines(
    products: dict[str, ProductRecord], lines: list[tuple[str, int]]
) -> list[LineItem]:
    """Freeze name, prices and line totals from the current catalog state."""
    items = []
    for product_id, quantity in lines:
        product = products[product_id]
        items.append(
            LineItem(
                product_id=product.id,
                product_name=product.name,
                quantity=quantity,
                selling_price=product.selling_price,
                cost_price=product.cost_price,
                total=line_amount(product.selling_price, quantity),
                cogs=line_amount(product.cost_price, quantity),
            )
        )
    return items


def process_sale(
    store: KeyValueStore,
    payload: TransactionCreate,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> TransactionRecord:
    """
    Record a sale and take its items out of stock as one unit.

    Every line is validated before anything is written: unknown products,
    short stock (summed over repeated lines) and a discount above the subtotal
    all fail the sale with no stock change and no transaction stored.
    """
    lines = [(line.product_id, line.quantity) for line in payload.items]
    timestamp = now or utcnow()
    transaction_id = generate_id()

    with product_locks.hold(product_id for product_id, _ in lines):
        products = load_line_products(store, lines)
        ensure_available(products, lines)

        items = price_lines(products, lines)
        subtotal = sum_money(item.total for item in items)
        cogs = sum_money(item.cogs for item in items)
        discount = to_money(payload.discount)
        if discount > subtotal:
            raise InvalidDiscount(
                "Discount cannot exceed subtotal",
                details=[{"subtotal": float(subtotal), "discount": float(discount)}],
            )
        total = to_money(subtotal - discount)

        transaction = TransactionRecord(
            id=transaction_id,
            items=items,
            subtotal=subtotal,
            discount=discount,
            total=total,
            cogs=cogs,
            profit=to_money(total - cogs),
            payment_method=payload.payment_method,
            cashier_id=actor.id,
            cashier_name=actor.name,
            timestamp=timestamp,
            date=local_date(timestamp),
        )
        try:
            deduct_lines(
                store,
                products,
                lines,
                change_type="sale",
                actor=actor,
                reason=None,
                reference_id=transaction_id,
                now=timestamp,
            )
            store.set(
                transaction_key(transaction.date, timestamp, transaction_id),
                transaction.to_store(),
            )
            store.commit()
        except Exception:
            store.rollback()
            raise

    log_event(
        "sale.recorded",
        transaction_id=transaction_id,
        cashier_id=actor.id,
        items_count=len(items),
        total=float(total),
        payment_method=payload.payment_method,
    )
    return transaction


def load_transactions(
    store: KeyValueStore,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[TransactionRecord]:
    """Transactions whose local date falls in the inclusive range, oldest first."""
    if start_date and end_date and start_date > end_date:
        raise InvalidInput("startDate must be on or before endDate")
    transactions = []
    for key, raw in store.scan_prefix(TRANSACTION_PREFIX):
        # transaction:{yyyy-mm-dd}:...
        day = date.fromisoformat(key[len(TRANSACTION_PREFIX):len(TRANSACTION_PREFIX) + 10])
        if start_date and day < start_date:
            continue
        if end_date and day > end_date:
            continue
        transactions.append(TransactionRecord.model_validate(raw))
    transactions.sort(key=lambda txn: txn.timestamp)
    return transactions


def list_transactions(
    store: KeyValueStore,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
    limit: int = 100,
) -> list[TransactionRecord]:
    transactions = load_transactions(store, start_date=start_date, end_date=end_date)
    transactions.reverse()
    return transactions[:limit]
