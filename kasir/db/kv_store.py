"""Key-value access on top of the ``kv_store`` table.

Writes are flushed but never committed here: the caller owns the session and
decides when a group of writes becomes durable (``commit``) or is discarded
(``rollback``). That is what lets a multi-line sale land as a single unit.
"""

from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from kasir.core.errors import StorageFailure
from kasir.core.observability import log_event
from kasir.models.kv_entry import KVEntry


class KeyValueStore:
    def __init__(self, db: Session):
        self.db = db

    def get(self, key: str) -> Any | None:
        try:
            # Always hit the database: a locked re-read must not see a stale identity-map copy.
            entry = self.db.get(KVEntry, key, populate_existing=True)
        except SQLAlchemyError as exc:
            raise self._failure("get", key, exc) from exc
        return entry.value if entry is not None else None

    def set(self, key: str, value: Any) -> None:
        try:
            entry = self.db.get(KVEntry, key)
            if entry is None:
                self.db.add(KVEntry(key=key, value=value))
            else:
                entry.value = value
            self.db.flush()
        except SQLAlchemyError as exc:
            raise self._failure("set", key, exc) from exc

    def delete(self, key: str) -> bool:
        try:
            entry = self.db.get(KVEntry, key)
            if entry is None:
                return False
            self.db.delete(entry)
            self.db.flush()
        except SQLAlchemyError as exc:
            raise self._failure("delete", key, exc) from exc
        return True

    def scan_prefix(self, prefix: str) -> list[tuple[str, Any]]:
        """Return ``(key, value)`` pairs whose key starts with ``prefix``, in key order."""
        stmt = (
            select(KVEntry.key, KVEntry.value)
            .where(KVEntry.key.startswith(prefix, autoescape=True))
            .order_by(KVEntry.key.asc())
        )
        try:
            rows = self.db.execute(stmt).all()
        except SQLAlchemyError as exc:
            raise self._failure("scan", prefix, exc) from exc
        return [(key, value) for key, value in rows]

    def values(self, prefix: str) -> list[Any]:
        return [value for _, value in self.scan_prefix(prefix)]

    def commit(self) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            raise self._failure("commit", "-", exc) from exc

    def rollback(self) -> None:
        self.db.rollback()

    def _failure(self, operation: str, key: str, exc: Exception) -> StorageFailure:
        self.db.rollback()
        log_event("storage.failure", level="error", operation=operation, key=key, error=str(exc))
        return StorageFailure(f"Storage {operation} failed")
