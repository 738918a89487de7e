from collections.abc import Callable

from fastapi import Depends

from kasir.core.errors import Forbidden
from kasir.core.security_current import get_current_user
from kasir.schemas.user import UserRecord

# Least to most privileged; a role holds every capability of the roles below it.
ROLE_RANK: dict[str, int] = {
    "cashier": 0,
    "admin": 1,
    "manager": 2,
}


def role_at_least(role: str, minimum: str) -> bool:
    return ROLE_RANK.get((role or "").strip().lower(), -1) >= ROLE_RANK[minimum]


def require_role(minimum: str) -> Callable[[UserRecord], UserRecord]:
    if minimum not in ROLE_RANK:
        raise ValueError(f"Unknown role: {minimum}")

    def dependency(user: UserRecord = Depends(get_current_user)) -> UserRecord:
        if not role_at_least(user.role, minimum):
            allowed = " or ".join(role for role, rank in ROLE_RANK.items() if rank >= ROLE_RANK[minimum])
            raise Forbidden(f"Only {allowed} can perform this action")
        return user

    return dependency


require_admin = require_role("admin")
require_manager = require_role("manager")
