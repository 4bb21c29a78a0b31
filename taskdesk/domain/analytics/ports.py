from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Iterable, Optional, Sequence

from taskdesk.domain.tasks.models import TaskCriteria


class TaskStatsRepository(ABC):
    """Grouped read-only queries over tasks. No user data here; callers enrich."""

    @abstractmethod
    async def count(self, criteria: TaskCriteria) -> int: ...

    @abstractmethod
    async def status_counts(self, criteria: TaskCriteria, now_iso: str) -> dict[str, int]:
        """Single pass: total, one key per status, overdue, assigned."""

    @abstractmethod
    async def status_counts_by_owner(
        self, owner_ids: Iterable[str], now_iso: str
    ) -> dict[str, dict[str, int]]: ...

    @abstractmethod
    async def group_counts(self, criteria: TaskCriteria, column: str) -> Sequence[dict[str, Any]]:
        """Rows of value, count, completed; biggest groups first."""

    @abstractmethod
    async def created_at_values(self, criteria: TaskCriteria) -> Sequence[str]: ...

    @abstractmethod
    async def owner_totals(
        self, criteria: TaskCriteria, now_iso: str, recent_from_iso: Optional[str] = None
    ) -> Sequence[dict[str, Any]]:
        """Per owner: total, completed, overdue, assigned, recent; most tasks first."""

    @abstractmethod
    async def assigner_totals(self) -> Sequence[dict[str, Any]]: ...
