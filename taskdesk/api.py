"""
Outer facade for the routing layer.

Services raise DomainError subclasses; this module turns them into a typed
failure Result and turns successes into {"item": ...} or
{"items": [...], "pagination": {...}} payloads. Anything that is not a
DomainError is a bug and propagates.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Mapping, Optional

from taskdesk.bootstrap import Container
from taskdesk.constants import ACTIVITY_WINDOW_DAYS, TOP_USERS_LIMIT
from taskdesk.domain.common.errors import DomainError
from taskdesk.domain.common.models import Page, Principal
from taskdesk.domain.common.time import to_iso
from taskdesk.domain.tasks.models import Task, TaskFilters, TaskListRequest
from taskdesk.domain.users.models import User, UserCriteria
from taskdesk.domain.users.service import require_admin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Result:
    ok: bool
    data: dict = field(default_factory=dict)
    error: Optional[DomainError] = None

    @property
    def code(self) -> str:
        return "ok" if self.ok else self.error.code

    def to_dict(self) -> dict:
        if self.ok:
            return {"success": True, "data": self.data}
        return {"success": False, "error": self.error.to_dict()}


def task_to_dict(task: Task, now: datetime) -> dict:
    return {
        "id": task.id,
        "userId": task.user_id,
        "title": task.title,
        "description": task.description,
        "dueDate": to_iso(task.due_date),
        "category": task.category,
        "priority": task.priority,
        "status": task.status,
        "assignedBy": task.assigned_by,
        "completedAt": to_iso(task.completed_at) if task.completed_at else None,
        "isOverdue": task.is_overdue(now),
        "createdAt": to_iso(task.created_at),
        "updatedAt": to_iso(task.updated_at),
    }


def user_to_dict(user: User) -> dict:
    # never expose password_hash
    return {
        "id": user.id,
        "username": user.username,
        "email": user.email,
        "role": user.role,
        "isActive": user.is_active,
        "lastLogin": to_iso(user.last_login_at) if user.last_login_at else None,
        "profileImage": user.profile_image,
        "createdAt": to_iso(user.created_at),
        "updatedAt": to_iso(user.updated_at),
    }


class TaskDeskApi:
    def __init__(self, container: Container) -> None:
        self._c = container

    async def _call(self, op: str, awaitable: Awaitable[dict]) -> Result:
        try:
            data = await awaitable
        except DomainError as e:
            logger.info("%s failed: %s %s", op, e.code, e.message)
            return Result(ok=False, error=e)
        return Result(ok=True, data=data)

    def _tasks_page(self, page: Page[Task]) -> dict:
        now = self._c.clock.now()
        return {"items": [task_to_dict(t, now) for t in page.items], "pagination": page.pagination()}

    def _task_item(self, task: Task) -> dict:
        return {"item": task_to_dict(task, self._c.clock.now())}

    # ---- identity ----

    async def register(self, username: str, email: str, password: str) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.register(username, email, password))}
        return await self._call("register", run())

    async def login(self, email_or_username: str, password: str, client_key: Optional[str] = None) -> Result:
        async def run() -> dict:
            user = await self._c.identity.authenticate(email_or_username, password, client_key)
            return {"item": user_to_dict(user)}
        return await self._call("login", run())

    async def profile(self, principal: Principal) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.get_profile(principal))}
        return await self._call("profile", run())

    async def update_profile(self, principal: Principal, **changes: Any) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.update_profile(principal, **changes))}
        return await self._call("update_profile", run())

    async def set_profile_image(self, principal: Principal, reference: Optional[str]) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.set_profile_image(principal, reference))}
        return await self._call("set_profile_image", run())

    async def deactivate_account(self, principal: Principal) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.deactivate_self(principal))}
        return await self._call("deactivate_account", run())

    async def my_stats(self, principal: Principal) -> Result:
        async def run() -> dict:
            return {"item": (await self._c.analytics.user_stats(principal)).to_dict()}
        return await self._call("my_stats", run())

    # ---- tasks ----

    async def create_task(self, principal: Principal, fields: Mapping[str, Any]) -> Result:
        async def run() -> dict:
            return self._task_item(await self._c.tasks.create(principal, fields))
        return await self._call("create_task", run())

    async def get_task(self, principal: Principal, task_id: str) -> Result:
        async def run() -> dict:
            return self._task_item(await self._c.tasks.get(principal, task_id))
        return await self._call("get_task", run())

    async def update_task(self, principal: Principal, task_id: str, fields: Mapping[str, Any]) -> Result:
        async def run() -> dict:
            return self._task_item(await self._c.tasks.update(principal, task_id, fields))
        return await self._call("update_task", run())

    async def delete_task(self, principal: Principal, task_id: str) -> Result:
        async def run() -> dict:
            await self._c.tasks.delete(principal, task_id)
            return {"item": {"id": task_id, "deleted": True}}
        return await self._call("delete_task", run())

    async def list_tasks(
        self,
        principal: Principal,
        filters: Optional[TaskFilters] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None,
    ) -> Result:
        request = TaskListRequest(
            filters=filters or TaskFilters(),
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            page_size=page_size,
        )

        async def run() -> dict:
            return self._tasks_page(await self._c.tasks.list_tasks(principal, request))
        return await self._call("list_tasks", run())

    async def search_tasks(
        self, principal: Principal, q: Optional[str], page: Optional[int] = None, page_size: Optional[int] = None
    ) -> Result:
        async def run() -> dict:
            return self._tasks_page(await self._c.tasks.search(principal, q, page, page_size))
        return await self._call("search_tasks", run())

    async def assign_task(self, principal: Principal, target_user_id: str, fields: Mapping[str, Any]) -> Result:
        async def run() -> dict:
            return self._task_item(await self._c.tasks.assign(principal, target_user_id, fields))
        return await self._call("assign_task", run())

    # ---- analytics ----

    async def summary(self, principal: Principal, user_id: Optional[str] = None) -> Result:
        async def run() -> dict:
            return {"item": (await self._c.analytics.summary(principal, user_id)).to_dict()}
        return await self._call("summary", run())

    async def distribution(self, principal: Principal, dimension: str, user_id: Optional[str] = None) -> Result:
        async def run() -> dict:
            rows = await self._c.analytics.distribution(principal, dimension, user_id)
            return {"items": [{"value": v, "count": n} for v, n in rows]}
        return await self._call("distribution", run())

    async def daily_activity(
        self, principal: Principal, window_days: int = ACTIVITY_WINDOW_DAYS, user_id: Optional[str] = None
    ) -> Result:
        async def run() -> dict:
            days = await self._c.analytics.daily_activity(principal, window_days, user_id)
            return {"items": [d.to_dict() for d in days]}
        return await self._call("daily_activity", run())

    async def dashboard(self, admin: Principal) -> Result:
        async def run() -> dict:
            return {"item": await self._c.analytics.dashboard(admin)}
        return await self._call("dashboard", run())

    async def top_active_users(self, admin: Principal, limit: int = TOP_USERS_LIMIT) -> Result:
        async def run() -> dict:
            return {"items": [u.to_dict() for u in await self._c.analytics.top_active_users(admin, limit)]}
        return await self._call("top_active_users", run())

    async def weekly_comparison(self, admin: Principal) -> Result:
        async def run() -> dict:
            return {"item": (await self._c.analytics.weekly_comparison(admin)).to_dict()}
        return await self._call("weekly_comparison", run())

    async def reports(self, admin: Principal) -> Result:
        async def run() -> dict:
            analytics = self._c.analytics
            return {
                "item": {
                    "userActivity": [r.to_dict() for r in await analytics.user_activity_report(admin)],
                    "assignments": [a.to_dict() for a in await analytics.assignment_stats(admin)],
                    "weeklyComparison": (await analytics.weekly_comparison(admin)).to_dict(),
                }
            }
        return await self._call("reports", run())

    # ---- administration ----

    async def add_user(self, admin: Principal, username: str, email: str, password: str, role: str) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.add_user(admin, username, email, password, role))}
        return await self._call("add_user", run())

    async def assignable_users(self, admin: Principal) -> Result:
        async def run() -> dict:
            users = await self._c.identity.list_assignable_users(admin)
            return {"items": [user_to_dict(u) for u in users], "count": len(users)}
        return await self._call("assignable_users", run())

    async def list_users(
        self,
        admin: Principal,
        search: Optional[str] = None,
        role: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        page_size: int = 20,
    ) -> Result:
        async def run() -> dict:
            criteria = UserCriteria(search=search or None, role=role, is_active=is_active)
            users = await self._c.identity.list_users(admin, criteria, page, page_size)
            stats = await self._c.analytics.stats_for_users(admin, [u.id for u in users.items])
            items = [dict(user_to_dict(u), stats=stats[u.id].to_dict()) for u in users.items]
            return {"items": items, "pagination": users.pagination()}
        return await self._call("list_users", run())

    async def user_details(self, admin: Principal, user_id: str, page: int = 1, page_size: int = 10) -> Result:
        async def run() -> dict:
            require_admin(admin)
            user = await self._c.identity.get_user(admin, user_id)
            tasks = await self._c.tasks.list_tasks(
                admin, TaskListRequest(filters=TaskFilters(user_id=user_id), page=page, page_size=page_size)
            )
            analytics = self._c.analytics
            page_data = self._tasks_page(tasks)
            return {
                "item": {
                    "user": user_to_dict(user),
                    "stats": (await analytics.user_stats(admin, user_id)).to_dict(),
                    "categoryBreakdown": await analytics.breakdown(admin, "category", user_id),
                    "priorityBreakdown": await analytics.breakdown(admin, "priority", user_id),
                    "recentActivity": [
                        d.to_dict() for d in await analytics.daily_activity(admin, ACTIVITY_WINDOW_DAYS, user_id)
                    ],
                    "tasks": page_data["items"],
                },
                "pagination": page_data["pagination"],
            }
        return await self._call("user_details", run())

    async def update_user(
        self, admin: Principal, user_id: str, role: Optional[str] = None, is_active: Optional[bool] = None
    ) -> Result:
        async def run() -> dict:
            return {"item": user_to_dict(await self._c.identity.update_user(admin, user_id, role, is_active))}
        return await self._call("update_user", run())
