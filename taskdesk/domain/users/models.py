from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from taskdesk.constants import ROLE_ADMIN
from taskdesk.domain.common.models import Principal


@dataclass(frozen=True)
class User:
    id: str
    username: str
    email: str
    password_hash: str
    role: str
    is_active: bool
    last_login_at: Optional[datetime]
    profile_image: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN

    def to_principal(self) -> Principal:
        return Principal(id=self.id, role=self.role, is_active=self.is_active)


@dataclass(frozen=True)
class UserCriteria:
    search: Optional[str] = None
    role: Optional[str] = None
    is_active: Optional[bool] = None
    created_from: Optional[datetime] = None
