from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field, field_validator, model_validator

from kasir.schemas.common import CamelModel, RequestModel, SignedChange
from kasir.schemas.product import ProductRecord

StockChangeType = Literal["sale", "restock", "adjustment", "damage", "return", "order"]
ManualStockChangeType = Literal["restock", "adjustment", "damage", "return"]


class StockHistoryEntry(CamelModel):
    """One immutable stock movement. Negative ``change`` means stock went down."""

    id: str
    product_id: str
    product_name: str
    change: int
    type: StockChangeType
    reason: str | None = None
    old_stock: int | None = None
    new_stock: int | None = None
    reference_id: str | None = None
    timestamp: datetime
    user_id: str
    user_name: str

    @model_validator(mode="after")
    def validate_snapshot(self) -> "StockHistoryEntry":
        if self.old_stock is not None and self.new_stock is not None:
            if self.new_stock - self.old_stock != self.change:
                raise ValueError("newStock - oldStock must equal change")
        if self.new_stock is not None and self.new_stock < 0:
            raise ValueError("newStock cannot be negative")
        return self


class StockAdjustIn(RequestModel):
    change: SignedChange = Field(
        ..., description="Positive adds stock, negative removes stock. Cannot be zero."
    )
    type: ManualStockChangeType = "adjustment"
    reason: str | None = Field(default=None, max_length=255)

    @field_validator("change")
    @classmethod
    def validate_non_zero_change(cls, value: int) -> int:
        if value == 0:
            raise ValueError("change cannot be zero")
        return value

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "change": -2,
                "type": "damage",
                "reason": "2 cups dropped during service",
            }
        }
    )


class StockAdjustOut(CamelModel):
    success: bool = True
    product: ProductRecord
    entry: StockHistoryEntry


class StockHistoryListOut(CamelModel):
    history: list[StockHistoryEntry]
