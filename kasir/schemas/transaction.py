from datetime import date, datetime
from decimal import Decimal
from typing import Literal

from pydantic import ConfigDict, Field

from kasir.schemas.common import CamelModel, Money, MoneyIn, Quantity, RequestModel

PaymentMethod = Literal["cash", "transfer", "credit_card", "debit_card"]


class LineItem(CamelModel):
    """Catalog facts frozen at the moment of sale or order creation."""

    product_id: str
    product_name: str
    quantity: int
    selling_price: Money
    cost_price: Money
    total: Money
    cogs: Money


class TransactionRecord(CamelModel):
    id: str
    items: list[LineItem]
    subtotal: Money
    discount: Money
    total: Money
    cogs: Money
    profit: Money
    payment_method: PaymentMethod
    cashier_id: str
    cashier_name: str
    timestamp: datetime
    date: date


class CartLineIn(RequestModel):
    product_id: str = Field(min_length=1)
    quantity: Quantity


class TransactionCreate(RequestModel):
    items: list[CartLineIn] = Field(min_length=1)
    discount: MoneyIn = Decimal("0.00")
    payment_method: PaymentMethod = "cash"

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "items": [{"productId": "product-id-here", "quantity": 3}],
                "discount": 0,
                "paymentMethod": "cash",
            }
        }
    )


class TransactionCreateOut(CamelModel):
    success: bool = True
    transaction: TransactionRecord


class TransactionListOut(CamelModel):
    transactions: list[TransactionRecord]


class DailySummary(CamelModel):
    date: date
    total_sales: Money
    total_profit: Money
    total_cogs: Money
    total_transactions: int
    total_items: int


class DailySummaryOut(CamelModel):
    summary: DailySummary
