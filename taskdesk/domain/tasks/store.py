from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from taskdesk.constants import DEFAULT_CATEGORY, DEFAULT_PRIORITY, TASK_STATUS_PENDING
from taskdesk.domain.common.errors import NotFound
from taskdesk.domain.common.ports import Clock, IdGenerator
from taskdesk.domain.common.time import to_iso
from taskdesk.domain.tasks.models import Task
from taskdesk.domain.tasks.ports import TaskRepository
from taskdesk.domain.tasks.rules import clean_task_fields, completion_timestamp

logger = logging.getLogger(__name__)

_UNSET: Any = object()


class TaskStore:
    """
    Task records with field validation and the completed_at invariant.

    Callers never supply completed_at or assigned_by directly: the first is
    derived from status here, the second is passed explicitly by the
    assignment workflow.
    """

    def __init__(self, repo: TaskRepository, clock: Clock, ids: IdGenerator) -> None:
        self._repo = repo
        self._clock = clock
        self._ids = ids

    async def create(self, fields: Mapping[str, Any], *, assigned_by: Optional[str] = None) -> Task:
        cleaned = clean_task_fields(fields, partial=False)
        now = self._clock.now()
        status = cleaned.get("status", TASK_STATUS_PENDING)
        task = Task(
            id=self._ids.new_id(),
            user_id=cleaned["user_id"],
            title=cleaned["title"],
            description=cleaned.get("description"),
            due_date=cleaned["due_date"],
            category=cleaned.get("category", DEFAULT_CATEGORY),
            priority=cleaned.get("priority", DEFAULT_PRIORITY),
            status=status,
            assigned_by=assigned_by,
            completed_at=completion_timestamp(None, None, status, now),
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(task)
        return await self.get(task.id)

    async def get(self, task_id: str) -> Task:
        task = await self._repo.get(task_id)
        if task is None:
            raise NotFound(f"Task {task_id} not found.")
        return task

    async def update(
        self, task_id: str, fields: Mapping[str, Any], *, assigned_by: Optional[str] = _UNSET
    ) -> Task:
        cleaned = clean_task_fields(fields, partial=True)
        if assigned_by is not _UNSET:
            cleaned["assigned_by"] = assigned_by
        ok = await self._repo.update_fields(task_id, cleaned, to_iso(self._clock.now()))
        if not ok:
            raise NotFound(f"Task {task_id} not found.")
        return await self.get(task_id)

    async def delete(self, task_id: str) -> None:
        if not await self._repo.delete(task_id):
            raise NotFound(f"Task {task_id} not found.")
