from sqlalchemy import text

from kasir.core.errors import PosError
from kasir.core.observability import (
    http_exception_handler,
    pos_error_handler,
    request_logging_middleware,
    setup_observability,
    unhandled_exception_handler,
    validation_exception_handler,
)
from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from kasir.core.config import settings
from kasir.db.session import engine
from kasir.routers import orders, products, purchases, reports, stock, transactions, users

app = FastAPI(
    title=settings.app_name,
    version="0.1.0",
    description=(
        "Backend API for a small-shop point of sale.\n\n"
        "Swagger quick test flow:\n"
        "1. Obtain an access token from the identity provider.\n"
        "2. Click **Authorize** and paste the bearer token.\n"
        "3. Register your profile with `POST /users` on a fresh store, then test "
        "`/products`, `/transactions`, `/orders`, `/stock` and `/reports`."
    ),
    swagger_ui_parameters={
        "persistAuthorization": True,
        "displayRequestDuration": True,
        "defaultModelsExpandDepth": 1,
    },
    openapi_tags=[
        {"name": "health", "description": "Service status and quick links."},
        {"name": "users", "description": "User profiles and roles."},
        {"name": "products", "description": "Product catalog."},
        {"name": "transactions", "description": "Checkout sales and daily summary."},
        {"name": "stock", "description": "Manual stock adjustments and movement history."},
        {"name": "orders", "description": "Delivery orders: pending, shipped, delivered."},
        {"name": "purchases", "description": "Supply purchases and their funding."},
        {"name": "reports", "description": "Sales by period and by product."},
    ],
)

setup_observability()
app.middleware("http")(request_logging_middleware)
app.add_exception_handler(PosError, pos_error_handler)
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(Exception, unhandled_exception_handler)

cors_origins = settings.cors_origins or ["http://localhost:3000"]
allow_all_origins = "*" in cors_origins
env_value = settings.env.lower().strip()
allow_origin_regex = settings.cors_origin_regex

if (
    not allow_origin_regex
    and env_value in {"dev", "development", "staging", "stage"}
):
    # Local web tooling runs on dynamic localhost ports.
    allow_origin_regex = r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$"

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if allow_all_origins else cors_origins,
    allow_origin_regex=allow_origin_regex,
    allow_credentials=not allow_all_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(users.router)
app.include_router(products.router)
app.include_router(transactions.router)
app.include_router(stock.router)
app.include_router(orders.router)
app.include_router(purchases.router)
app.include_router(reports.router)


@app.get("/", tags=["health"])
def root():
    return {
        "app": settings.app_name,
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/health",
        "ready": "/ready",
    }


@app.get("/health", tags=["health"])
def health():
    return {"ok": True}


@app.get("/ready", tags=["health"])
def ready():
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        return {"ok": False}
    return {"ok": True}
