from datetime import date

from fastapi import APIRouter, Depends, Query

from kasir.core.api_docs import error_responses
from kasir.core.permissions import require_admin, require_manager
from kasir.core.security_current import get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.common import SuccessOut
from kasir.schemas.purchase import PurchaseCreate, PurchaseListOut, PurchaseOut, PurchaseSavedOut
from kasir.schemas.user import UserRecord
from kasir.services import purchase_service

router = APIRouter(prefix="/purchases", tags=["purchases"])


@router.post(
    "",
    response_model=PurchaseSavedOut,
    summary="Record purchase",
    description="Bookkeeping only. Catalog stock is not changed.",
    responses=error_responses(400, 401, 403, 500),
)
def create_purchase(
    payload: PurchaseCreate,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(require_admin),
):
    purchase = purchase_service.create_purchase(store, payload, actor=actor)
    store.commit()
    return PurchaseSavedOut(purchase=purchase)


@router.get(
    "",
    response_model=PurchaseListOut,
    summary="List purchases",
    description="Newest purchase date first.",
    responses=error_responses(400, 401, 403, 500),
)
def list_purchases(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    purchases = purchase_service.list_purchases(store, start_date=start_date, end_date=end_date)
    return PurchaseListOut(purchases=purchases)


@router.get(
    "/{purchase_id}",
    response_model=PurchaseOut,
    summary="Get purchase",
    responses=error_responses(401, 403, 404, 500),
)
def get_purchase(
    purchase_id: str,
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    return PurchaseOut(purchase=purchase_service.get_purchase(store, purchase_id))


@router.delete(
    "/{purchase_id}",
    response_model=SuccessOut,
    summary="Delete purchase",
    responses=error_responses(401, 403, 404, 500),
)
def delete_purchase(
    purchase_id: str,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(require_manager),
):
    purchase_service.delete_purchase(store, purchase_id, actor=actor)
    store.commit()
    return SuccessOut()
