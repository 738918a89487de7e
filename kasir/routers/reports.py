from datetime import date

from fastapi import APIRouter, Depends, Query

from kasir.core.api_docs import error_responses
from kasir.core.permissions import require_admin
from kasir.core.security_current import get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.report import GroupBy, ProductReportOut, SalesReportOut
from kasir.schemas.user import UserRecord
from kasir.services.reporting_service import product_report, sales_report

router = APIRouter(prefix="/reports", tags=["reports"])


@router.get(
    "/sales",
    response_model=SalesReportOut,
    summary="Sales by period",
    description=(
        "Buckets transactions by day, week or month, newest period first. "
        "Weeks are `YYYY-MM-W{1..5}` slices of the calendar month."
    ),
    responses=error_responses(400, 401, 403, 500),
)
def get_sales_report(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    group_by: GroupBy = Query(default="day", alias="groupBy"),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    report = sales_report(store, start_date=start_date, end_date=end_date, group_by=group_by)
    return SalesReportOut(report=report)


@router.get(
    "/products",
    response_model=ProductReportOut,
    summary="Sales by product",
    responses=error_responses(400, 401, 403, 500),
)
def get_product_report(
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_admin),
):
    report = product_report(store, start_date=start_date, end_date=end_date)
    return ProductReportOut(report=report)
