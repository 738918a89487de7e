from datetime import datetime

from pydantic import ConfigDict, Field

from kasir.schemas.common import CamelModel, Money, MoneyIn, RequestModel


class ProductRecord(CamelModel):
    id: str
    name: str
    category: str = ""
    selling_price: Money
    cost_price: Money
    stock: int = Field(ge=0)
    description: str = ""
    created_at: datetime
    updated_at: datetime


class ProductCreate(RequestModel):
    name: str = Field(min_length=1, max_length=255)
    category: str = Field(default="", max_length=100)
    selling_price: MoneyIn
    cost_price: MoneyIn
    stock: int = Field(default=0, ge=0, strict=True)
    description: str = Field(default="", max_length=1000)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "name": "Kopi Susu Gula Aren",
                "category": "Minuman",
                "sellingPrice": 18000,
                "costPrice": 9000,
                "stock": 40,
                "description": "Es kopi susu 250ml",
            }
        }
    )


class ProductUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    category: str | None = Field(default=None, max_length=100)
    selling_price: MoneyIn | None = None
    cost_price: MoneyIn | None = None
    description: str | None = Field(default=None, max_length=1000)


class ProductListOut(CamelModel):
    products: list[ProductRecord]


class ProductSavedOut(CamelModel):
    success: bool = True
    product: ProductRecord
