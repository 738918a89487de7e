from fastapi import APIRouter, Depends

from kasir.core.api_docs import error_responses
from kasir.core.permissions import require_manager
from kasir.core.security import Identity
from kasir.core.security_current import get_current_user, get_identity, get_store
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.user import UserCreate, UserListOut, UserOut, UserRecord, UserSavedOut, UserUpdate
from kasir.services import user_service

router = APIRouter(tags=["users"])


@router.get(
    "/user",
    response_model=UserOut,
    summary="Current user",
    responses=error_responses(401, 500),
)
def get_me(user: UserRecord = Depends(get_current_user)):
    return UserOut(user=user)


@router.get(
    "/users",
    response_model=UserListOut,
    summary="List users",
    responses=error_responses(401, 403, 500),
)
def list_users(
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_manager),
):
    return UserListOut(users=user_service.list_users(store))


@router.post(
    "/users",
    response_model=UserSavedOut,
    summary="Register user profile",
    description=(
        "Links an identity-provider account to a role. On an empty store the "
        "caller may register their own profile; afterwards admin or manager only."
    ),
    responses=error_responses(400, 401, 403, 500),
)
def create_user(
    payload: UserCreate,
    store: KeyValueStore = Depends(get_store),
    identity: Identity = Depends(get_identity),
):
    user = user_service.create_user(store, payload, caller_id=identity.user_id)
    store.commit()
    return UserSavedOut(user=user)


@router.put(
    "/users/{user_id}",
    response_model=UserSavedOut,
    summary="Update user",
    responses=error_responses(400, 401, 403, 404, 500),
)
def update_user(
    user_id: str,
    payload: UserUpdate,
    store: KeyValueStore = Depends(get_store),
    _: UserRecord = Depends(require_manager),
):
    user = user_service.update_user(store, user_id, payload)
    store.commit()
    return UserSavedOut(user=user)
