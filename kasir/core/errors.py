"""Domain errors raised by the ledger services.

Routers never translate these by hand: ``kasir.core.observability`` installs
one exception handler that renders any ``PosError`` as the JSON error body
with the status and code declared on the class.
"""


class PosError(Exception):
    status_code = 400
    code = "bad_request"

    def __init__(self, message: str, *, details: list[dict] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details


class Unauthorized(PosError):
    status_code = 401
    code = "unauthorized"


class Forbidden(PosError):
    status_code = 403
    code = "forbidden"


class NotFound(PosError):
    status_code = 404
    code = "not_found"


class InvalidInput(PosError):
    status_code = 400
    code = "invalid_input"


class InvalidDiscount(InvalidInput):
    code = "invalid_discount"


class InvalidTransition(InvalidInput):
    code = "invalid_transition"


class InsufficientStock(PosError):
    status_code = 400
    code = "insufficient_stock"

    def __init__(self, *, product_id: str, product_name: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for {product_name}. Available: {available}, Requested: {requested}",
            details=[
                {
                    "product_id": product_id,
                    "available": available,
                    "requested": requested,
                }
            ],
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class StorageFailure(PosError):
    status_code = 500
    code = "storage_failure"
