from datetime import date

from fastapi import APIRouter, Depends, Query

from kasir.core.api_docs import error_responses
from kasir.core.config import settings
from kasir.core.security_current import get_current_user, get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.transaction import (
    DailySummaryOut,
    TransactionCreate,
    TransactionCreateOut,
    TransactionListOut,
)
from kasir.schemas.user import UserRecord
from kasir.services.reporting_service import daily_summary
from kasir.services.transaction_service import list_transactions, process_sale

router = APIRouter(prefix="/transactions", tags=["transactions"])
MAX_TRANSACTION_PAGE_SIZE = 1000


@router.post(
    "",
    response_model=TransactionCreateOut,
    summary="Record sale",
    description=(
        "Prices the cart from the catalog, takes every line out of stock and "
        "stores the transaction. Any failing line rejects the whole sale."
    ),
    responses=error_responses(400, 401, 404, 500),
)
def create_transaction(
    payload: TransactionCreate,
    store: KeyValueStore = Depends(get_store),
    actor: UserRecord = Depends(get_current_user),
):
    transaction = process_sale(store, payload, actor=actor)
    return TransactionCreateOut(transaction=transaction)


@router.get(
    "",
    response_model=TransactionListOut,
    summary="List transactions",
    description="Newest first. Dates are calendar days in the store timezone, both ends inclusive.",
    responses=error_responses(400, 401, 500),
)
def get_transactions(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    limit: int | None = Query(default=None, ge=1, le=MAX_TRANSACTION_PAGE_SIZE),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    transactions = list_transactions(
        store,
        start_date=start_date,
        end_date=end_date,
        limit=limit or settings.transactions_default_limit,
    )
    return TransactionListOut(transactions=transactions)


@router.get(
    "/summary",
    response_model=DailySummaryOut,
    summary="Daily summary",
    description="Totals for one day, today in the store timezone when `date` is omitted.",
    responses=error_responses(400, 401, 500),
)
def get_daily_summary(
    day: date | None = Query(default=None, alias="date"),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(get_current_user),
):
    return DailySummaryOut(summary=daily_summary(store, day=day))
