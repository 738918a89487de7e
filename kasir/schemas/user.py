from datetime import datetime
from typing import Literal

from pydantic import ConfigDict, Field

from kasir.schemas.common import CamelModel, RequestModel

Role = Literal["cashier", "admin", "manager"]


class UserRecord(CamelModel):
    id: str
    email: str
    name: str
    role: Role = "cashier"
    created_at: datetime
    updated_at: datetime | None = None


class UserCreate(RequestModel):
    id: str = Field(min_length=1, max_length=128, description="Subject id issued by the identity provider")
    email: str = Field(min_length=3, max_length=255)
    name: str = Field(min_length=1, max_length=100)
    role: Role = "cashier"

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "identity-subject-id",
                "email": "kasir@example.com",
                "name": "Siti",
                "role": "cashier",
            }
        }
    )


class UserUpdate(RequestModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    role: Role | None = None


class UserOut(CamelModel):
    user: UserRecord


class UserListOut(CamelModel):
    users: list[UserRecord]


class UserSavedOut(CamelModel):
    success: bool = True
    user: UserRecord
