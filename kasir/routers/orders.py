from fastapi import APIRouter, Depends, Query

from kasir.core.api_docs import error_responses
from kasir.core.permissions import require_admin
from kasir.core.security_current import get_current_user, get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.order import (
    OrderCreate,
    OrderDeleteOut,
    OrderListOut,
    OrderSavedOut,
    OrderStatus,
    OrderUpdate,
)
from kasir.schemas.user import UserRecord
from kasir.services import order_service

router = APIRouter(prefix="/orders", tags=["orders"])


@router.post(
    "",
    response_model=OrderSavedOut,
    summary="Create delivery order",
    description="Snapshots current prices. Stock is taken only when the order ships.",
    responses=error_responses(400, 401, 404, 500),
)
def create_order(
    payload: OrderCreate,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(get_current_user),
):
    order = order_service.create_order(store, payload, actor=actor)
    store.commit()
    return OrderSavedOut(order=order)


@router.get(
    "",
    response_model=OrderListOut,
    summary="List orders",
    description="Sorted by delivery date and time, earliest first.",
    responses=error_responses(400, 401, 500),
)
def list_orders(
    status: OrderStatus | None = Query(default=None),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    return OrderListOut(orders=order_service.list_orders(store, status=status))


@router.get(
    "/upcoming",
    response_model=OrderListOut,
    summary="Upcoming deliveries",
    description="Pending orders due today or tomorrow, overdue ones included.",
    responses=error_responses(401, 500),
)
def list_upcoming_orders(
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    return OrderListOut(orders=order_service.list_upcoming_orders(store))


@router.put(
    "/{order_id}",
    response_model=OrderSavedOut,
    summary="Update order",
    description=(
        "Edits a pending order and/or moves it forward: pending, shipped, delivered. "
        "The first move out of pending takes the items out of stock."
    ),
    responses=error_responses(400, 401, 404, 500),
)
def update_order(
    order_id: str,
    payload: OrderUpdate,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(get_current_user),
):
    order = order_service.update_order(store, order_id, payload, actor=actor)
    return OrderSavedOut(order=order)


@router.delete(
    "/{order_id}",
    response_model=OrderDeleteOut,
    summary="Delete order",
    description="Stock already taken for a shipped order is not returned; `stockReduced` says whether any was.",
    responses=error_responses(401, 403, 404, 500),
)
def delete_order(
    order_id: str,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(require_admin),
):
    order = order_service.delete_order(store, order_id, actor=actor)
    return OrderDeleteOut(stock_reduced=order.stock_reduced)
