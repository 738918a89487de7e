from collections.abc import Iterable
from datetime import datetime

from kasir.core.errors import InsufficientStock, InvalidInput
from kasir.core.keys import generate_id, stock_history_key, stock_history_prefix
from kasir.core.observability import log_event
from kasir.core.time_utils import utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.product import ProductRecord
from kasir.schemas.stock import StockAdjustIn, StockChangeType, StockHistoryEntry
from kasir.schemas.user import UserRecord
from kasir.services.catalog_service import get_product, save_product
from kasir.services.locks import product_locks

OPENING_STOCK_REASON = "Initial stock"


def apply_stock_change(
    store: KeyValueStore,
    product: ProductRecord,
    change: int,
    *,
    change_type: StockChangeType,
    actor: UserRecord,
    reason: str | None = None,
    reference_id: str | None = None,
    now: datetime | None = None,
) -> tuple[ProductRecord, StockHistoryEntry]:
    """
    Write the new stock level of ``product`` and append the matching history entry.

    The caller must hold the product lock and must have passed ``product`` in
    its freshest state. Nothing is committed here.
    """
    old_stock = product.stock
    new_stock = old_stock + change
    if new_stock < 0:
        raise InsufficientStock(
            product_id=product.id,
            product_name=product.name,
            available=old_stock,
            requested=-change,
        )

    timestamp = now or utcnow()
    updated = product.model_copy(update={"stock": new_stock, "updated_at": timestamp})
    entry = StockHistoryEntry(
        id=generate_id(),
        product_id=product.id,
        product_name=product.name,
        change=change,
        type=change_type,
        reason=reason,
        old_stock=old_stock,
        new_stock=new_stock,
        reference_id=reference_id,
        timestamp=timestamp,
        user_id=actor.id,
        user_name=actor.name,
    )
    save_product(store, updated)
    store.set(stock_history_key(product.id, timestamp, entry.id), entry.to_store())
    return updated, entry


def load_line_products(
    store: KeyValueStore, lines: Iterable[tuple[str, int]]
) -> dict[str, ProductRecord]:
    products: dict[str, ProductRecord] = {}
    for product_id, _ in lines:
        if product_id not in products:
            products[product_id] = get_product(store, product_id)
    return products


def ensure_available(products: dict[str, ProductRecord], lines: Iterable[tuple[str, int]]) -> None:
    """Raise ``InsufficientStock`` unless every product covers its summed demand."""
    requested: dict[str, int] = {}
    for product_id, quantity in lines:
        requested[product_id] = requested.get(product_id, 0) + quantity
    for product_id, quantity in requested.items():
        product = products[product_id]
        if product.stock < quantity:
            raise InsufficientStock(
                product_id=product.id,
                product_name=product.name,
                available=product.stock,
                requested=quantity,
            )


def deduct_lines(
    store: KeyValueStore,
    products: dict[str, ProductRecord],
    lines: Iterable[tuple[str, int]],
    *,
    change_type: StockChangeType,
    actor: UserRecord,
    reason: str | None,
    reference_id: str,
    now: datetime,
) -> list[StockHistoryEntry]:
    """Take every line out of stock, one history entry per line.

    ``products`` is updated in place so repeated product ids chain correctly.
    """
    entries = []
    for product_id, quantity in lines:
        updated, entry = apply_stock_change(
            store,
            products[product_id],
            -quantity,
            change_type=change_type,
            actor=actor,
            reason=reason,
            reference_id=reference_id,
            now=now,
        )
        products[product_id] = updated
        entries.append(entry)
    return entries


def book_opening_stock(
    store: KeyValueStore,
    product: ProductRecord,
    quantity: int,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> ProductRecord:
    if quantity <= 0:
        return product
    with product_locks.hold([product.id]):
        updated, _ = apply_stock_change(
            store,
            product,
            quantity,
            change_type="restock",
            actor=actor,
            reason=OPENING_STOCK_REASON,
            now=now,
        )
    return updated


def adjust_stock(
    store: KeyValueStore,
    product_id: str,
    payload: StockAdjustIn,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> tuple[ProductRecord, StockHistoryEntry]:
    with product_locks.hold([product_id]):
        product = get_product(store, product_id)
        if product.stock + payload.change < 0:
            raise InvalidInput(
                "Stock cannot be negative",
                details=[
                    {
                        "product_id": product_id,
                        "current_stock": product.stock,
                        "change": payload.change,
                    }
                ],
            )
        updated, entry = apply_stock_change(
            store,
            product,
            payload.change,
            change_type=payload.type,
            actor=actor,
            reason=payload.reason,
            now=now,
        )
        store.commit()

    log_event(
        "stock.adjusted",
        product_id=product_id,
        change=payload.change,
        type=payload.type,
        old_stock=entry.old_stock,
        new_stock=entry.new_stock,
        user_id=actor.id,
    )
    return updated, entry


def list_stock_history(
    store: KeyValueStore,
    *,
    product_id: str | None = None,
    limit: int = 50,
) -> list[StockHistoryEntry]:
    """Newest first, optionally for one product only."""
    rows = store.scan_prefix(stock_history_prefix(product_id))
    entries = [(StockHistoryEntry.model_validate(raw), key) for key, raw in rows]
    entries.sort(key=lambda item: (item[0].timestamp, item[1]), reverse=True)
    return [entry for entry, _ in entries[:limit]]
