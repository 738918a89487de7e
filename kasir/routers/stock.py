from fastapi import APIRouter, Depends, Query

from kasir.core.api_docs import error_responses
from kasir.core.config import settings
from kasir.core.permissions import require_admin
from kasir.core.security_current import get_current_user, get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.stock import StockAdjustIn, StockAdjustOut, StockHistoryListOut
from kasir.schemas.user import UserRecord
from kasir.services.stock_ledger_service import adjust_stock, list_stock_history

router = APIRouter(prefix="/stock", tags=["stock"])
MAX_HISTORY_PAGE_SIZE = 500


@router.put(
    "/{product_id}",
    response_model=StockAdjustOut,
    summary="Adjust stock",
    description="Manual restock, correction, damage or return. The result may not go below zero.",
    responses=error_responses(400, 401, 403, 404, 500),
)
def put_stock(
    product_id: str,
    payload: StockAdjustIn,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(require_admin),
):
    product, entry = adjust_stock(store, product_id, payload, actor=actor)
    return StockAdjustOut(product=product, entry=entry)


@router.get(
    "/history",
    response_model=StockHistoryListOut,
    summary="Stock history",
    description="Newest movement first, for one product when `productId` is given.",
    responses=error_responses(400, 401, 500),
)
def get_stock_history(
    product_id: str | None = Query(default=None, alias="productId"),
    limit: int | None = Query(default=None, ge=1, le=MAX_HISTORY_PAGE_SIZE),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    history = list_stock_history(
        store,
        product_id=product_id,
        limit=limit or settings.stock_history_default_limit,
    )
    return StockHistoryListOut(history=history)
