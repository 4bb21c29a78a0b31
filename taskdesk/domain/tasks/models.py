from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from taskdesk.constants import CLOSED_STATUSES


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    title: str
    description: Optional[str]
    due_date: datetime
    category: str
    priority: str
    status: str
    assigned_by: Optional[str]
    completed_at: Optional[datetime]
    created_at: datetime
    updated_at: datetime

    def is_overdue(self, now: datetime) -> bool:
        return is_overdue(self.status, self.due_date, now)


def is_overdue(status: str, due_date: datetime, now: datetime) -> bool:
    """Closed tasks are never overdue, whatever their due date."""
    if status in CLOSED_STATUSES:
        return False
    return due_date < now


@dataclass(frozen=True)
class TaskFilters:
    """Caller-supplied list parameters, before scoping."""

    group: Optional[str] = None
    status: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    search: Optional[str] = None
    # honoured for admins only
    user_id: Optional[str] = None
    assigned_by: Optional[str] = None
    is_assigned: Optional[bool] = None


@dataclass(frozen=True)
class TaskCriteria:
    """Resolved query contract handed to the task store. All clauses are ANDed."""

    owner_id: Optional[str] = None
    status: Optional[str] = None
    exclude_statuses: tuple[str, ...] = ()
    category: Optional[str] = None
    priority: Optional[str] = None
    due_from: Optional[datetime] = None
    due_before: Optional[datetime] = None
    created_from: Optional[datetime] = None
    created_before: Optional[datetime] = None
    search: Optional[str] = None
    assigned_by: Optional[str] = None
    is_assigned: Optional[bool] = None


@dataclass(frozen=True)
class TaskSort:
    column: str = "created_at"
    descending: bool = True


@dataclass(frozen=True)
class TaskListRequest:
    filters: TaskFilters = field(default_factory=TaskFilters)
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None
    page: Optional[int] = None
    page_size: Optional[int] = None
