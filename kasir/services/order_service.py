from datetime import datetime

from kasir.core.errors import InvalidInput, InvalidTransition, NotFound
from kasir.core.keys import ORDER_PREFIX, generate_id, order_key
from kasir.core.money import sum_money
from kasir.core.observability import log_event
from kasir.core.time_utils import tomorrow_local, utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.order import OrderCreate, OrderRecord, OrderStatus, OrderUpdate
from kasir.schemas.product import ProductRecord
from kasir.schemas.user import UserRecord
from kasir.services.catalog_service import find_product
from kasir.services.locks import order_locks, product_locks
from kasir.services.stock_ledger_service import deduct_lines, ensure_available, load_line_products
from kasir.services.transaction_service import price_lines

STATUS_RANK: dict[str, int] = {"pending": 0, "shipped": 1, "delivered": 2}


def _sort_key(order: OrderRecord):
    return (order.delivery_date, order.delivery_time, order.created_at)


def find_order(store: KeyValueStore, order_id: str) -> OrderRecord | None:
    raw = store.get(order_key(order_id))
    if raw is None:
        return None
    return OrderRecord.model_validate(raw)


def get_order(store: KeyValueStore, order_id: str) -> OrderRecord:
    order = find_order(store, order_id)
    if order is None:
        raise NotFound("Order not found")
    return order


def _save_order(store: KeyValueStore, order: OrderRecord) -> None:
    store.set(order_key(order.id), order.to_store())


def create_order(
    store: KeyValueStore,
    payload: OrderCreate,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> OrderRecord:
    """Store a pending order with current catalog prices. Stock is not touched."""
    lines = [(line.product_id, line.quantity) for line in payload.items]
    products = load_line_products(store, lines)
    items = price_lines(products, lines)
    created_at = now or utcnow()
    order = OrderRecord(
        id=generate_id(),
        customer_name=payload.customer_name,
        customer_phone=payload.customer_phone,
        customer_address=payload.customer_address,
        items=items,
        total_amount=sum_money(item.total for item in items),
        delivery_date=payload.delivery_date,
        delivery_time=payload.delivery_time,
        status="pending",
        stock_reduced=False,
        notes=payload.notes,
        created_by=actor.id,
        created_by_name=actor.name,
        created_at=created_at,
        updated_at=created_at,
    )
    _save_order(store, order)
    log_event("order.created", order_id=order.id, items_count=len(items), user_id=actor.id)
    return order


def list_orders(store: KeyValueStore, *, status: OrderStatus | None = None) -> list[OrderRecord]:
    orders = [OrderRecord.model_validate(raw) for raw in store.values(ORDER_PREFIX)]
    if status is not None:
        orders = [order for order in orders if order.status == status]
    orders.sort(key=_sort_key)
    return orders


def list_upcoming_orders(store: KeyValueStore, *, now: datetime | None = None) -> list[OrderRecord]:
    """Pending orders due tomorrow or earlier, overdue ones included."""
    horizon = tomorrow_local(now)
    return [
        order
        for order in list_orders(store, status="pending")
        if order.delivery_date <= horizon
    ]


def _check_transition(current: str, target: str) -> None:
    if current == target:
        return
    if current == "delivered":
        raise InvalidTransition("Delivered orders cannot change status")
    if STATUS_RANK[target] < STATUS_RANK[current]:
        raise InvalidTransition(f"Cannot move order from {current} back to {target}")


def _available_lines(
    store: KeyValueStore, lines: list[tuple[str, int]]
) -> tuple[dict[str, ProductRecord], list[tuple[str, int]], list[str]]:
    """Split order lines into those whose product still exists and the ids of deleted ones."""
    products: dict[str, ProductRecord] = {}
    missing: list[str] = []
    for product_id, _ in lines:
        if product_id in products or product_id in missing:
            continue
        product = find_product(store, product_id)
        if product is None:
            missing.append(product_id)
        else:
            products[product_id] = product
    present = [(product_id, quantity) for product_id, quantity in lines if product_id in products]
    return products, present, missing


def update_order(
    store: KeyValueStore,
    order_id: str,
    payload: OrderUpdate,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> OrderRecord:
    """
    Apply field edits and/or a status change to an order.

    The whole read-modify-write runs under the order's lock, so an edit can
    never write back a copy that predates a concurrent shipment.

    Leaving ``pending`` for the first time takes the order's items out of
    stock under the product locks; ``stockReduced`` guards against a second
    deduction, so re-sending a status is harmless. Orders do not reserve
    stock, so a shortage is only discovered here and leaves the order as it
    was. Lines whose product has been deleted from the catalog are skipped.
    """
    timestamp = now or utcnow()
    changes = payload.model_dump(exclude_none=True)
    target = changes.pop("status", None)

    with order_locks.hold([order_id]):
        order = get_order(store, order_id)
        if changes and order.status != "pending":
            raise InvalidInput("Only pending orders can be edited")
        if target is not None:
            _check_transition(order.status, target)

        needs_stock = target is not None and target != "pending" and not order.stock_reduced
        if not needs_stock:
            if not changes and (target is None or target == order.status):
                return order
            updated = order.model_copy(update={**changes, "updated_at": timestamp})
            if target is not None and target != order.status:
                updated = _mark_status(updated, target, actor=actor, at=timestamp)
            _save_order(store, updated)
            store.commit()
            return updated

        lines = [(item.product_id, item.quantity) for item in order.items]
        with product_locks.hold(product_id for product_id, _ in lines):
            updated = order.model_copy(update={**changes, "updated_at": timestamp})
            try:
                products, present, missing = _available_lines(store, lines)
                ensure_available(products, present)
                deduct_lines(
                    store,
                    products,
                    present,
                    change_type="order",
                    actor=actor,
                    reason=f"Order delivery: {order.customer_name}",
                    reference_id=order.id,
                    now=timestamp,
                )
                updated = updated.model_copy(
                    update={
                        "stock_reduced": True,
                        "shipped_at": timestamp,
                        "shipped_by": actor.id,
                        "shipped_by_name": actor.name,
                    }
                )
                updated = _mark_status(updated, target, actor=actor, at=timestamp)
                _save_order(store, updated)
                store.commit()
            except Exception:
                store.rollback()
                raise

    if missing:
        log_event(
            "order.items_skipped",
            level="warning",
            order_id=order.id,
            product_ids=missing,
        )
    log_event(
        "order.shipped",
        order_id=order.id,
        status=updated.status,
        items_count=len(present),
        user_id=actor.id,
    )
    return updated


def _mark_status(order: OrderRecord, status: str, *, actor: UserRecord, at: datetime) -> OrderRecord:
    update: dict = {"status": status}
    if status == "shipped" and order.shipped_at is None:
        update.update(shipped_at=at, shipped_by=actor.id, shipped_by_name=actor.name)
    if status == "delivered":
        update["delivered_at"] = at
    return order.model_copy(update=update)


def delete_order(store: KeyValueStore, order_id: str, *, actor: UserRecord) -> OrderRecord:
    """Remove an order. Stock already taken out for it is not put back."""
    with order_locks.hold([order_id]):
        order = get_order(store, order_id)
        store.delete(order_key(order_id))
        store.commit()
    log_event(
        "order.deleted",
        level="warning" if order.stock_reduced else "info",
        order_id=order_id,
        status=order.status,
        stock_reduced=order.stock_reduced,
        user_id=actor.id,
    )
    return order
