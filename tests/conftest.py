import pytest
import os
from datetime import datetime, timezone
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret-key")

import kasir.models  # noqa: F401
from kasir.core.config import settings
from kasir.core.deps import get_db
from kasir.core.keys import user_key
from kasir.core.security import create_access_token
from kasir.db.base import Base
from kasir.db.kv_store import KeyValueStore
from kasir.main import app
from kasir.schemas.user import UserRecord
from kasir.services.locks import order_locks, product_locks


@pytest.fixture()
def test_context():
    original_secret = settings.secret_key
    settings.secret_key = "test-secret-key"

    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    session_local = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    Base.metadata.create_all(bind=engine)

    def override_get_db():
        db = session_local()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as client:
        yield client, session_local

    app.dependency_overrides.clear()
    Base.metadata.drop_all(bind=engine)
    settings.secret_key = original_secret
    order_locks.clear()
    product_locks.clear()


@pytest.fixture()
def make_user(test_context):
    """Seed a user profile straight into the store and return its bearer headers."""
    _, session_local = test_context

    def _make_user(user_id: str, role: str = "cashier", name: str | None = None) -> dict[str, str]:
        db = session_local()
        try:
            store = KeyValueStore(db)
            user = UserRecord(
                id=user_id,
                email=f"{user_id}@example.com",
                name=name or user_id.title(),
                role=role,
                created_at=datetime.now(timezone.utc),
            )
            store.set(user_key(user_id), user.to_store())
            store.commit()
        finally:
            db.close()
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _make_user
