"""Bearer-token verification against the identity provider.

The provider signs HS256 access tokens with the shared ``SECRET_KEY``; the
subject claim is the user id under which the user's profile is stored.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Protocol
from uuid import uuid4

from jose import JWTError, jwt

from kasir.core.config import settings
from kasir.core.errors import Unauthorized

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None


class IdentityVerifier(Protocol):
    def verify(self, token: str) -> Identity: ...


class JWTIdentityVerifier:
    def __init__(self, secret_key: str | None = None, *, algorithm: str = ALGORITHM):
        self._secret_key = secret_key
        self.algorithm = algorithm

    @property
    def secret_key(self) -> str:
        return self._secret_key or settings.secret_key

    def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as exc:
            raise Unauthorized("Invalid token") from exc

        subject = payload.get("sub")
        if not subject:
            raise Unauthorized("Invalid token subject")

        token_type = payload.get("type")
        if token_type is not None and token_type != "access":
            raise Unauthorized("Invalid token type")

        return Identity(user_id=str(subject), email=payload.get("email"))


def create_access_token(
    subject: str,
    *,
    email: str | None = None,
    expires_delta: timedelta = timedelta(minutes=60),
    secret_key: str | None = None,
) -> str:
    """Mint a token the way the identity provider does; used by local tooling and tests."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "type": "access",
        "jti": str(uuid4()),
        "iat": int(now.timestamp()),
        "exp": int((now + expires_delta).timestamp()),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, secret_key or settings.secret_key, algorithm=ALGORITHM)


identity_verifier: IdentityVerifier = JWTIdentityVerifier()


def get_identity_verifier() -> IdentityVerifier:
    return identity_verifier
