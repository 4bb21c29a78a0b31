from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Mapping, Optional, Sequence

from taskdesk.domain.users.models import User, UserCriteria


class UserRepository(ABC):
    @abstractmethod
    async def insert(self, user: User) -> None: ...

    @abstractmethod
    async def get(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]: ...

    @abstractmethod
    async def find_by_login(self, email_or_username: str) -> Optional[User]: ...

    @abstractmethod
    async def username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool: ...

    @abstractmethod
    async def email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool: ...

    @abstractmethod
    async def update_fields(self, user_id: str, fields: Mapping[str, Any], now_iso: str) -> bool: ...

    @abstractmethod
    async def find_active_by_role(self, role: str) -> Sequence[User]: ...

    @abstractmethod
    async def is_last_active_admin(self, user_id: str) -> bool:
        """True when user_id is the only active admin left."""

    @abstractmethod
    async def find(self, criteria: UserCriteria, offset: int, limit: int) -> Sequence[User]: ...

    @abstractmethod
    async def count(self, criteria: UserCriteria) -> int: ...


class PasswordHasher(ABC):
    @abstractmethod
    def hash(self, password: str) -> str: ...

    @abstractmethod
    def verify(self, password: str, password_hash: str) -> bool: ...


class AttemptCounter(ABC):
    """Failed-attempt counts keyed by client identity, kept outside the process."""

    @abstractmethod
    async def hit(self, key: str, now_iso: str) -> None: ...

    @abstractmethod
    async def count_since(self, key: str, since_iso: str) -> int: ...

    @abstractmethod
    async def reset(self, key: str) -> None: ...
