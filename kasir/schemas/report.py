from typing import Literal

from kasir.schemas.common import CamelModel, Money

GroupBy = Literal["day", "week", "month"]


class SalesPeriodOut(CamelModel):
    period: str
    total_sales: Money
    total_profit: Money
    total_cogs: Money
    transaction_count: int
    item_count: int


class ProductSalesOut(CamelModel):
    product_id: str
    product_name: str
    quantity_sold: int
    total_revenue: Money
    total_cogs: Money
    total_profit: Money


class SalesReportOut(CamelModel):
    report: list[SalesPeriodOut]


class ProductReportOut(CamelModel):
    report: list[ProductSalesOut]
