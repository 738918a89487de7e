from datetime import datetime

from kasir.core.errors import NotFound
from kasir.core.keys import PRODUCT_PREFIX, generate_id, product_key
from kasir.core.time_utils import utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.product import ProductCreate, ProductRecord, ProductUpdate
from kasir.services.locks import product_locks


def find_product(store: KeyValueStore, product_id: str) -> ProductRecord | None:
    raw = store.get(product_key(product_id))
    if raw is None:
        return None
    return ProductRecord.model_validate(raw)


def get_product(store: KeyValueStore, product_id: str) -> ProductRecord:
    product = find_product(store, product_id)
    if product is None:
        raise NotFound(f"Product {product_id} not found")
    return product


def save_product(store: KeyValueStore, product: ProductRecord) -> None:
    store.set(product_key(product.id), product.to_store())


def list_products(store: KeyValueStore) -> list[ProductRecord]:
    products = [ProductRecord.model_validate(raw) for raw in store.values(PRODUCT_PREFIX)]
    products.sort(key=lambda product: (product.name.lower(), product.id))
    return products


def create_product(
    store: KeyValueStore,
    payload: ProductCreate,
    *,
    now: datetime | None = None,
) -> ProductRecord:
    """
    Add a catalog entry with zero stock.

    Opening stock is booked afterwards through the stock ledger so that it has
    a history entry like every other stock movement.
    """
    created_at = now or utcnow()
    product = ProductRecord(
        id=generate_id(),
        name=payload.name,
        category=payload.category,
        selling_price=payload.selling_price,
        cost_price=payload.cost_price,
        stock=0,
        description=payload.description,
        created_at=created_at,
        updated_at=created_at,
    )
    save_product(store, product)
    return product


def update_product(
    store: KeyValueStore,
    product_id: str,
    payload: ProductUpdate,
    *,
    now: datetime | None = None,
) -> ProductRecord:
    changes = payload.model_dump(exclude_none=True)
    # Same lock as stock mutations: the record is rewritten whole, stock included.
    with product_locks.hold([product_id]):
        product = get_product(store, product_id)
        if not changes:
            return product
        updated = ProductRecord.model_validate(
            {**product.model_dump(), **changes, "updated_at": now or utcnow()}
        )
        save_product(store, updated)
        store.commit()
    return updated


def delete_product(store: KeyValueStore, product_id: str) -> ProductRecord:
    # Ledger entries and transactions keep their own name/price snapshots.
    with product_locks.hold([product_id]):
        product = get_product(store, product_id)
        store.delete(product_key(product_id))
        store.commit()
    return product
