from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from kasir.core.deps import get_db
from kasir.core.errors import Unauthorized
from kasir.core.security import Identity, IdentityVerifier, get_identity_verifier
from kasir.db.kv_store import KeyValueStore
from kasir.schemas.user import UserRecord
from kasir.services.user_service import find_user

bearer_scheme = HTTPBearer(auto_error=False)


def get_store(db: Session = Depends(get_db)) -> KeyValueStore:
    return KeyValueStore(db)


def get_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    verifier: IdentityVerifier = Depends(get_identity_verifier),
) -> Identity:
    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise Unauthorized("Unauthorized")
    return verifier.verify(credentials.credentials)


def get_current_user(
    identity: Identity = Depends(get_identity),
    store: KeyValueStore = Depends(get_store),
) -> UserRecord:
    user = find_user(store, identity.user_id)
    if user is None:
        raise Unauthorized("User profile not found")
    return user
