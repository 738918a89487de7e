from decimal import Decimal
from typing import Annotated, Any

from pydantic import (
    AfterValidator,
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)
from pydantic.alias_generators import to_camel

from kasir.core.money import to_money


def _reject_non_numeric(value: Any) -> Any:
    # Lax mode would accept "12000" or True; request bodies must carry real numbers.
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        raise ValueError("must be a number")
    return value


def _reject_non_integer(value: Any) -> Any:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("must be an integer")
    return value


# Stored and returned amounts: Decimal in Python, a JSON number on the wire.
Money = Annotated[
    Decimal,
    AfterValidator(to_money),
    PlainSerializer(float, return_type=float, when_used="json"),
]

# Amounts accepted from clients.
MoneyIn = Annotated[
    Decimal,
    BeforeValidator(_reject_non_numeric),
    Field(ge=0),
    AfterValidator(to_money),
]

Quantity = Annotated[int, BeforeValidator(_reject_non_integer), Field(gt=0)]
SignedChange = Annotated[int, BeforeValidator(_reject_non_integer)]

DecimalQuantity = Annotated[
    Decimal,
    PlainSerializer(float, return_type=float, when_used="json"),
]
DecimalQuantityIn = Annotated[
    Decimal,
    BeforeValidator(_reject_non_numeric),
    Field(gt=0),
]


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_store(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class RequestModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
        str_strip_whitespace=True,
    )


class SuccessOut(CamelModel):
    success: bool = True


class ErrorOut(BaseModel):
    error: str
    code: str
    request_id: str
    path: str
    details: list[dict] | None = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": "Insufficient stock for Kopi Susu. Available: 2, Requested: 10",
                "code": "insufficient_stock",
                "request_id": "8d8f2b00-6c79-4a45-8ff4-b0a5f2bc4bc2",
                "path": "/transactions",
                "details": [{"product_id": "product-id", "available": 2, "requested": 10}],
            }
        }
    )
