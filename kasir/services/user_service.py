from datetime import datetime

from kasir.core.errors import Forbidden, InvalidInput, NotFound
from kasir.core.keys import USER_PREFIX, user_key
from kasir.core.observability import log_event
from kasir.core.time_utils import utcnow
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.user import UserCreate, UserRecord, UserUpdate

CREATOR_ROLES = {"admin", "manager"}


def find_user(store: KeyValueStore, user_id: str) -> UserRecord | None:
    raw = store.get(user_key(user_id))
    if raw is None:
        return None
    return UserRecord.model_validate(raw)


def get_user(store: KeyValueStore, user_id: str) -> UserRecord:
    user = find_user(store, user_id)
    if user is None:
        raise NotFound("User not found")
    return user


def list_users(store: KeyValueStore) -> list[UserRecord]:
    users = [UserRecord.model_validate(raw) for raw in store.values(USER_PREFIX)]
    users.sort(key=lambda user: user.created_at)
    return users


def create_user(
    store: KeyValueStore,
    payload: UserCreate,
    *,
    caller_id: str,
    now: datetime | None = None,
) -> UserRecord:
    """
    Register the profile of an identity that already exists at the identity provider.

    The very first profile may be registered by its own identity with any role
    (first-run setup). After that only an admin or manager may add profiles.
    """
    existing_users = store.scan_prefix(USER_PREFIX)
    if existing_users:
        caller = find_user(store, caller_id)
        if caller is None or caller.role not in CREATOR_ROLES:
            raise Forbidden("Only admin or manager can create users")
    elif payload.id != caller_id:
        raise Forbidden("The first user profile must belong to the caller")

    if find_user(store, payload.id) is not None:
        raise InvalidInput("User profile already exists")
    normalized_email = payload.email.strip().lower()
    for _, raw in existing_users:
        if str(raw.get("email", "")).lower() == normalized_email:
            raise InvalidInput("User with this email already exists")

    created_at = now or utcnow()
    user = UserRecord(
        id=payload.id,
        email=normalized_email,
        name=payload.name,
        role=payload.role,
        created_at=created_at,
        updated_at=created_at,
    )
    store.set(user_key(user.id), user.to_store())
    log_event("user.created", user_id=user.id, role=user.role, bootstrap=not existing_users)
    return user


def update_user(
    store: KeyValueStore,
    user_id: str,
    payload: UserUpdate,
    *,
    now: datetime | None = None,
) -> UserRecord:
    user = get_user(store, user_id)
    changes = payload.model_dump(exclude_none=True)
    if not changes:
        return user
    updated = user.model_copy(update={**changes, "updated_at": now or utcnow()})
    store.set(user_key(user_id), updated.to_store())
    log_event("user.updated", user_id=user_id, fields=sorted(changes))
    return updated
