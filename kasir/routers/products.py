from fastapi import APIRouter, Depends

from kasir.core.api_docs import error_responses
from kasir.core.permissions import require_admin
from kasir.core.security_current import get_current_user, get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.common import SuccessOut
from kasir.schemas.product import ProductCreate, ProductListOut, ProductSavedOut, ProductUpdate
from kasir.schemas.user import UserRecord
from kasir.services import catalog_service
from kasir.services.stock_ledger_service import book_opening_stock

router = APIRouter(prefix="/products", tags=["products"])


@router.get(
    "",
    response_model=ProductListOut,
    summary="List products",
    responses=error_responses(401, 500),
)
def list_products(
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    return ProductListOut(products=catalog_service.list_products(store))


@router.post(
    "",
    response_model=ProductSavedOut,
    summary="Create product",
    description="Adds a catalog entry. Opening stock above zero is booked as a `restock` history entry.",
    responses=error_responses(400, 401, 403, 500),
)
def create_product(
    payload: ProductCreate,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(require_admin),
):
    product = catalog_service.create_product(store, payload)
    product = book_opening_stock(store, product, payload.stock, actor=actor)
    store.commit()
    return ProductSavedOut(product=product)


@router.put(
    "/{product_id}",
    response_model=ProductSavedOut,
    summary="Update product",
    description="Edits catalog fields. Stock only changes through sales, orders and `/stock`.",
    responses=error_responses(400, 401, 403, 404, 500),
)
def update_product(
    product_id: str,
    payload: ProductUpdate,
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    product = catalog_service.update_product(store, product_id, payload)
    return ProductSavedOut(product=product)


@router.delete(
    "/{product_id}",
    response_model=SuccessOut,
    summary="Delete product",
    responses=error_responses(401, 403, 404, 500),
)
def delete_product(
    product_id: str,
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    catalog_service.delete_product(store, product_id)
    return SuccessOut()
