from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, Sequence, TypeVar

from taskdesk.constants import ROLE_ADMIN

T = TypeVar("T")


@dataclass(frozen=True)
class Principal:
    """The authenticated caller, resolved from a credential before any core call."""

    id: str
    role: str
    is_active: bool = True

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


@dataclass(frozen=True)
class Page(Generic[T]):
    items: Sequence[T]
    total: int
    page: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.total == 0:
            return 0
        return -(-self.total // self.page_size)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1

    def pagination(self) -> dict:
        return {
            "currentPage": self.page,
            "totalPages": self.total_pages,
            "total": self.total,
            "pageSize": self.page_size,
            "hasNextPage": self.has_next_page,
            "hasPrevPage": self.has_prev_page,
        }
