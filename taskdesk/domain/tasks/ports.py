from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping, Optional, Sequence

from taskdesk.domain.tasks.models import Task, TaskCriteria, TaskSort


class TaskRepository(ABC):
    @abstractmethod
    async def insert(self, task: Task) -> None: ...

    @abstractmethod
    async def get(self, task_id: str) -> Optional[Task]: ...

    @abstractmethod
    async def update_fields(self, task_id: str, fields: Mapping[str, Any], now_iso: str) -> bool:
        """
        Apply only the given columns. When "status" is among them the
        completion timestamp must be rewritten in the same statement.
        """

    @abstractmethod
    async def delete(self, task_id: str) -> bool: ...

    @abstractmethod
    async def find(
        self, criteria: TaskCriteria, sort: TaskSort, offset: int, limit: int
    ) -> Sequence[Task]: ...

    @abstractmethod
    async def count(self, criteria: TaskCriteria) -> int: ...
