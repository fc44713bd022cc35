# hrms_notify/models/account.py
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from hrms_notify.core.roles import EMPLOYEE


class AccountStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "Inactive"
    DELETED = "Deleted"


class Account(BaseModel):
    id: str
    email: str
    password_hash: str = Field(default="", repr=False)
    role: str = EMPLOYEE
    status: AccountStatus = AccountStatus.ACTIVE
    first_name: str = ""
    last_name: str = ""
    created_at: Optional[datetime] = None

    @property
    def is_deleted(self) -> bool:
        return self.status == AccountStatus.DELETED

    def to_dict(self) -> dict:
        # never includes the credential hash
        return {
            "id": self.id,
            "email": self.email,
            "role": self.role,
            "status": self.status.value,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }


class LoginIn(BaseModel):
    email: str
    password: str


class RefreshIn(BaseModel):
    refreshToken: str


class AccountCreateIn(BaseModel):
    email: str
    password: str
    firstName: str
    lastName: str
    role: str = EMPLOYEE


class RoleChangeIn(BaseModel):
    role: str


class StatusChangeIn(BaseModel):
    status: AccountStatus
