from datetime import date, datetime
from typing import Literal

from pydantic import ConfigDict, Field, model_validator

from kasir.schemas.common import (
    CamelModel,
    DecimalQuantity,
    DecimalQuantityIn,
    Money,
    MoneyIn,
    RequestModel,
)

FundingSource = Literal["company", "personal", "owner", "loan"]


class PurchaseItem(CamelModel):
    item_name: str
    quantity: DecimalQuantity
    unit: str = "pcs"
    purchase_price: Money
    total: Money


class PurchaseRecord(CamelModel):
    """Money spent on supplies. Recording one never changes catalog stock."""

    id: str
    purchase_date: date
    supplier: str = ""
    funding_source: FundingSource
    funding_owner: str | None = None
    items: list[PurchaseItem]
    total_amount: Money
    notes: str = ""
    created_by: str
    created_by_name: str
    created_at: datetime


class PurchaseItemIn(RequestModel):
    item_name: str = Field(min_length=1, max_length=255)
    quantity: DecimalQuantityIn
    unit: str = Field(default="pcs", min_length=1, max_length=20)
    purchase_price: MoneyIn


class PurchaseCreate(RequestModel):
    purchase_date: date
    supplier: str = Field(default="", max_length=255)
    funding_source: FundingSource = "company"
    funding_owner: str | None = Field(default=None, max_length=120)
    items: list[PurchaseItemIn] = Field(min_length=1)
    notes: str = Field(default="", max_length=500)

    @model_validator(mode="after")
    def validate_funding_owner(self) -> "PurchaseCreate":
        owner = (self.funding_owner or "").strip() or None
        if self.funding_source == "personal" and owner is None:
            raise ValueError("fundingOwner is required when fundingSource is personal")
        self.funding_owner = owner if self.funding_source == "personal" else None
        return self

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "purchaseDate": "2026-10-19",
                "supplier": "Toko Sumber Rejeki",
                "fundingSource": "personal",
                "fundingOwner": "Pak Andi",
                "items": [
                    {"itemName": "Gula aren", "quantity": 2, "unit": "kg", "purchasePrice": 35000}
                ],
                "notes": "Paid cash at the market",
            }
        }
    )


class PurchaseSavedOut(CamelModel):
    success: bool = True
    purchase: PurchaseRecord


class PurchaseOut(CamelModel):
    purchase: PurchaseRecord


class PurchaseListOut(CamelModel):
    purchases: list[PurchaseRecord]
