from datetime import date, datetime

from kasir.core.errors import InvalidInput, NotFound
from kasir.core.keys import PURCHASE_PREFIX, generate_id, purchase_key
from kasir.core.money import line_amount, sum_money
from kasir.core.observability import log_event
from kasir.core.time_utils import utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.purchase import PurchaseCreate, PurchaseItem, PurchaseRecord
from kasir.schemas.user import UserRecord


def create_purchase(
    store: KeyValueStore,
    payload: PurchaseCreate,
    *,
    actor: UserRecord,
    now: datetime | None = None,
) -> PurchaseRecord:
    items = [
        PurchaseItem(
            item_name=item.item_name,
            quantity=item.quantity,
            unit=item.unit,
            purchase_price=item.purchase_price,
            total=line_amount(item.purchase_price, item.quantity),
        )
        for item in payload.items
    ]
    purchase = PurchaseRecord(
        id=generate_id(),
        purchase_date=payload.purchase_date,
        supplier=payload.supplier,
        funding_source=payload.funding_source,
        funding_owner=payload.funding_owner,
        items=items,
        total_amount=sum_money(item.total for item in items),
        notes=payload.notes,
        created_by=actor.id,
        created_by_name=actor.name,
        created_at=now or utcnow(),
    )
    store.set(purchase_key(purchase.id), purchase.to_store())
    log_event(
        "purchase.recorded",
        purchase_id=purchase.id,
        funding_source=purchase.funding_source,
        total=float(purchase.total_amount),
        user_id=actor.id,
    )
    return purchase


def list_purchases(
    store: KeyValueStore,
    *,
    start_date: date | None = None,
    end_date: date | None = None,
) -> list[PurchaseRecord]:
    if start_date and end_date and start_date > end_date:
        raise InvalidInput("startDate must be on or before endDate")
    purchases = [PurchaseRecord.model_validate(raw) for raw in store.values(PURCHASE_PREFIX)]
    if start_date:
        purchases = [p for p in purchases if p.purchase_date >= start_date]
    if end_date:
        purchases = [p for p in purchases if p.purchase_date <= end_date]
    purchases.sort(key=lambda p: (p.purchase_date, p.created_at), reverse=True)
    return purchases


def get_purchase(store: KeyValueStore, purchase_id: str) -> PurchaseRecord:
    raw = store.get(purchase_key(purchase_id))
    if raw is None:
        raise NotFound("Purchase not found")
    return PurchaseRecord.model_validate(raw)


def delete_purchase(store: KeyValueStore, purchase_id: str, *, actor: UserRecord) -> None:
    purchase = get_purchase(store, purchase_id)
    store.delete(purchase_key(purchase_id))
    log_event(
        "purchase.deleted",
        purchase_id=purchase_id,
        total=float(purchase.total_amount),
        user_id=actor.id,
    )
