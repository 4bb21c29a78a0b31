from __future__ import annotations

import logging
from datetime import tzinfo
from typing import Any, Mapping, Optional

from taskdesk.domain.common.errors import Forbidden, InvalidParameter, NotFound
from taskdesk.domain.common.models import Page, Principal
from taskdesk.domain.common.ports import Clock
from taskdesk.domain.tasks.access import Operation, ensure_access
from taskdesk.domain.tasks.models import Task, TaskFilters, TaskListRequest
from taskdesk.domain.tasks.ports import TaskRepository
from taskdesk.domain.tasks.query import build_criteria, resolve_page, resolve_sort
from taskdesk.domain.tasks.store import TaskStore
from taskdesk.domain.users.ports import UserRepository

logger = logging.getLogger(__name__)


class TaskService:
    """
    Task use cases for a resolved principal: CRUD, listing and assignment.
    """

    def __init__(
        self,
        store: TaskStore,
        tasks: TaskRepository,
        users: UserRepository,
        clock: Clock,
        tz: tzinfo,
        default_page_size: int,
        max_page_size: int,
    ) -> None:
        self._store = store
        self._tasks = tasks
        self._users = users
        self._clock = clock
        self._tz = tz
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def _require_active_user(self, user_id: Any) -> None:
        user = await self._users.get(user_id) if isinstance(user_id, str) else None
        if user is None or not user.is_active:
            raise NotFound(f"User {user_id} not found.")

    @staticmethod
    def _require_active_principal(principal: Principal) -> None:
        if not principal.is_active:
            raise Forbidden("Account is deactivated.")

    async def create(self, principal: Principal, fields: Mapping[str, Any]) -> Task:
        fields = dict(fields)
        owner_id = fields.get("user_id") or principal.id
        fields["user_id"] = owner_id
        ensure_access(principal, owner_id, Operation.CREATE)

        assigned_by = None
        if owner_id != principal.id:
            await self._require_active_user(owner_id)
            assigned_by = principal.id

        task = await self._store.create(fields, assigned_by=assigned_by)
        logger.info("Task created id=%s owner=%s by=%s", task.id, task.user_id, principal.id)
        return task

    async def get(self, principal: Principal, task_id: str) -> Task:
        task = await self._store.get(task_id)
        ensure_access(principal, task.user_id, Operation.READ)
        return task

    async def update(self, principal: Principal, task_id: str, fields: Mapping[str, Any]) -> Task:
        task = await self._store.get(task_id)
        ensure_access(principal, task.user_id, Operation.UPDATE)

        fields = dict(fields)
        new_owner = fields.get("user_id", task.user_id)
        if new_owner == task.user_id:
            fields.pop("user_id", None)
            updated = await self._store.update(task_id, fields)
        else:
            if not principal.is_admin:
                logger.warning("Denied reassignment of task=%s by principal=%s", task_id, principal.id)
                raise Forbidden("Only admins can reassign tasks.")
            if new_owner is not None:
                await self._require_active_user(new_owner)
            # taking a task over yourself is not an assignment
            assigned_by = principal.id if new_owner != principal.id else None
            updated = await self._store.update(task_id, fields, assigned_by=assigned_by)
            logger.info("Task reassigned id=%s from=%s to=%s by=%s", task_id, task.user_id, new_owner, principal.id)

        logger.info("Task updated id=%s fields=%s by=%s", task_id, sorted(fields), principal.id)
        return updated

    async def delete(self, principal: Principal, task_id: str) -> None:
        task = await self._store.get(task_id)
        ensure_access(principal, task.user_id, Operation.DELETE)
        await self._store.delete(task_id)
        logger.info("Task deleted id=%s owner=%s by=%s", task_id, task.user_id, principal.id)

    async def list_tasks(self, principal: Principal, request: Optional[TaskListRequest] = None) -> Page[Task]:
        self._require_active_principal(principal)
        request = request or TaskListRequest()
        now = self._clock.now()

        criteria = build_criteria(principal, request.filters, now, self._tz)
        sort = resolve_sort(request.sort_by, request.sort_order)
        page, page_size = resolve_page(
            request.page, request.page_size, self._default_page_size, self._max_page_size
        )

        total = await self._tasks.count(criteria)
        items = await self._tasks.find(criteria, sort, offset=(page - 1) * page_size, limit=page_size)
        return Page(items=list(items), total=total, page=page, page_size=page_size)

    async def search(
        self,
        principal: Principal,
        q: Optional[str],
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Page[Task]:
        if not q or not q.strip():
            raise InvalidParameter("Search query is required.")
        request = TaskListRequest(filters=TaskFilters(search=q), page=page, page_size=page_size)
        return await self.list_tasks(principal, request)

    async def assign(self, principal: Principal, target_user_id: str, fields: Mapping[str, Any]) -> Task:
        """Admin creates a task owned by target_user_id."""
        if not principal.is_admin or not principal.is_active:
            logger.warning("Denied assignment to user=%s by principal=%s", target_user_id, principal.id)
            raise Forbidden("Admin access required.")
        await self._require_active_user(target_user_id)
        fields = dict(fields)
        fields["user_id"] = target_user_id
        task = await self.create(principal, fields)
        logger.info("Task assigned id=%s to=%s by=%s", task.id, target_user_id, principal.id)
        return task
