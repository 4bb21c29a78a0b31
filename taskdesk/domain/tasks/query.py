"""
Translate caller list parameters into a scoped TaskCriteria.

Scope is decided here, not by filters: a non-admin is always pinned to
their own tasks whatever user_id they pass.
"""
from __future__ import annotations

from datetime import datetime, tzinfo
from typing import Optional

from taskdesk.constants import (
    CLOSED_STATUSES,
    DEFAULT_PAGE,
    DEFAULT_SORT_FIELD,
    DEFAULT_SORT_ORDER,
    GROUP_ALL,
    GROUP_COMPLETED,
    GROUP_OVERDUE,
    GROUP_TODAY,
    SORT_ASC,
    SORT_DESC,
    SORT_FIELDS,
    TASK_CATEGORIES,
    TASK_GROUPS,
    TASK_PRIORITIES,
    TASK_STATUS_COMPLETED,
    TASK_STATUSES,
)
from taskdesk.domain.common.errors import InvalidParameter
from taskdesk.domain.common.models import Principal
from taskdesk.domain.common.time import day_range
from taskdesk.domain.tasks.models import TaskCriteria, TaskFilters, TaskSort


def resolve_owner_scope(principal: Principal, requested_user_id: Optional[str]) -> Optional[str]:
    """Owner id the query is pinned to; None means all owners (admins only)."""
    if not principal.is_admin:
        return principal.id
    return requested_user_id or None


def _check_choice(name: str, value: Optional[str], allowed: tuple[str, ...]) -> None:
    if value is not None and value not in allowed:
        raise InvalidParameter(f"Unknown {name} {value!r}; expected one of: {', '.join(allowed)}")


def group_criteria(group: str, now: datetime, tz: tzinfo) -> dict:
    if group == GROUP_TODAY:
        start, next_day = day_range(now, tz)
        return {
            "due_from": start,
            "due_before": next_day,
            "exclude_statuses": (TASK_STATUS_COMPLETED,),
        }
    if group == GROUP_OVERDUE:
        # same predicate as Task.is_overdue
        return {"due_before": now, "exclude_statuses": CLOSED_STATUSES}
    if group == GROUP_COMPLETED:
        return {"status": TASK_STATUS_COMPLETED}
    if group == GROUP_ALL:
        return {"exclude_statuses": (TASK_STATUS_COMPLETED,)}
    raise InvalidParameter(f"Unknown group {group!r}; expected one of: {', '.join(TASK_GROUPS)}")


def build_criteria(principal: Principal, filters: TaskFilters, now: datetime, tz: tzinfo) -> TaskCriteria:
    _check_choice("category", filters.category, TASK_CATEGORIES)
    _check_choice("priority", filters.priority, TASK_PRIORITIES)

    clauses: dict = {
        "owner_id": resolve_owner_scope(principal, filters.user_id),
        "category": filters.category,
        "priority": filters.priority,
        "search": (filters.search or "").strip() or None,
    }
    if principal.is_admin:
        clauses["assigned_by"] = filters.assigned_by or None
        clauses["is_assigned"] = filters.is_assigned

    if filters.group:
        # a group shortcut replaces any raw status filter
        clauses.update(group_criteria(filters.group, now, tz))
    else:
        _check_choice("status", filters.status, TASK_STATUSES)
        clauses["status"] = filters.status

    return TaskCriteria(**clauses)


def resolve_sort(sort_by: Optional[str], sort_order: Optional[str]) -> TaskSort:
    field = sort_by or DEFAULT_SORT_FIELD
    order = (sort_order or DEFAULT_SORT_ORDER).lower()
    if field not in SORT_FIELDS:
        raise InvalidParameter(f"Cannot sort by {field!r}; expected one of: {', '.join(SORT_FIELDS)}")
    if order not in (SORT_ASC, SORT_DESC):
        raise InvalidParameter(f"Sort order must be '{SORT_ASC}' or '{SORT_DESC}', got {sort_order!r}")
    return TaskSort(column=SORT_FIELDS[field], descending=order == SORT_DESC)


def resolve_page(
    page: Optional[int], page_size: Optional[int], default_size: int, max_size: int
) -> tuple[int, int]:
    page = DEFAULT_PAGE if page is None else page
    page_size = default_size if page_size is None else page_size
    if not isinstance(page, int) or page < 1:
        raise InvalidParameter("page must be a positive integer")
    if not isinstance(page_size, int) or page_size < 1:
        raise InvalidParameter("page_size must be a positive integer")
    return page, min(page_size, max_size)
