from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, Field

from kasir.schemas.common import CamelModel, Money, RequestModel
from kasir.schemas.transaction import CartLineIn, LineItem

OrderStatus = Literal["pending", "shipped", "delivered"]

DELIVERY_TIME_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class OrderRecord(CamelModel):
    id: str
    customer_name: str
    customer_phone: str
    customer_address: str
    items: list[LineItem]
    total_amount: Money
    delivery_date: date
    delivery_time: str
    status: OrderStatus = "pending"
    stock_reduced: bool = False
    notes: str = ""
    created_by: str
    created_by_name: str
    created_at: datetime
    updated_at: datetime
    shipped_at: datetime | None = None
    shipped_by: str | None = None
    shipped_by_name: str | None = None
    delivered_at: datetime | None = None


class OrderCreate(RequestModel):
    customer_name: str = Field(min_length=1, max_length=120)
    customer_phone: str = Field(min_length=3, max_length=30)
    customer_address: str = Field(min_length=1, max_length=500)
    items: list[CartLineIn] = Field(min_length=1)
    delivery_date: date
    delivery_time: str = Field(default="10:00", pattern=DELIVERY_TIME_PATTERN)
    notes: str = Field(default="", max_length=500)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "customerName": "Budi",
                "customerPhone": "081234567890",
                "customerAddress": "Jl. Melati No. 5",
                "items": [{"productId": "product-id-here", "quantity": 2}],
                "deliveryDate": "2026-10-20",
                "deliveryTime": "10:00",
                "notes": "Call before delivery",
            }
        }
    )


class OrderUpdate(RequestModel):
    status: OrderStatus | None = None
    customer_name: str | None = Field(default=None, min_length=1, max_length=120)
    customer_phone: str | None = Field(default=None, min_length=3, max_length=30)
    customer_address: str | None = Field(default=None, min_length=1, max_length=500)
    delivery_date: date | None = None
    delivery_time: str | None = Field(default=None, pattern=DELIVERY_TIME_PATTERN)
    notes: str | None = Field(default=None, max_length=500)

    model_config = ConfigDict(
        json_schema_extra={"example": {"status": "shipped"}}
    )


class OrderSavedOut(CamelModel):
    success: bool = True
    order: OrderRecord


class OrderListOut(CamelModel):
    orders: list[OrderRecord]


class OrderDeleteOut(CamelModel):
    success: bool = True
    stock_reduced: bool
