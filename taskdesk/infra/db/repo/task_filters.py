# taskdesk/infra/db/repo/task_filters.py
from __future__ import annotations

from typing import Any

from taskdesk.constants import CLOSED_STATUSES, TASK_PRIORITIES
from taskdesk.domain.common.time import to_iso
from taskdesk.domain.tasks.models import TaskCriteria, TaskSort

TASK_COLUMNS = (
    "id, user_id, title, description, due_date, category, priority, status, "
    "assigned_by, completed_at, created_at, updated_at"
)

SORTABLE_COLUMNS = {
    "created_at", "updated_at", "due_date", "completed_at", "title", "priority", "status", "category",
}

GROUPABLE_COLUMNS = {"status", "category", "priority"}

# priority sorts by rank, not alphabetically
PRIORITY_RANK_SQL = (
    "CASE priority "
    + " ".join(f"WHEN '{p}' THEN {i}" for i, p in enumerate(TASK_PRIORITIES))
    + " END"
)

OVERDUE_SQL = (
    "(status NOT IN (" + ", ".join(f"'{s}'" for s in CLOSED_STATUSES) + ") AND due_date < ?)"
)


def where_clause(c: TaskCriteria) -> tuple[str, list[Any]]:
    """Render criteria as ' WHERE ...' (or '') plus bound parameters."""
    parts: list[str] = []
    params: list[Any] = []

    if c.owner_id is not None:
        parts.append("user_id = ?")
        params.append(c.owner_id)
    if c.status is not None:
        parts.append("status = ?")
        params.append(c.status)
    if c.exclude_statuses:
        parts.append("status NOT IN (" + ",".join("?" * len(c.exclude_statuses)) + ")")
        params.extend(c.exclude_statuses)
    if c.category is not None:
        parts.append("category = ?")
        params.append(c.category)
    if c.priority is not None:
        parts.append("priority = ?")
        params.append(c.priority)
    if c.due_from is not None:
        parts.append("due_date >= ?")
        params.append(to_iso(c.due_from))
    if c.due_before is not None:
        parts.append("due_date < ?")
        params.append(to_iso(c.due_before))
    if c.created_from is not None:
        parts.append("created_at >= ?")
        params.append(to_iso(c.created_from))
    if c.created_before is not None:
        parts.append("created_at < ?")
        params.append(to_iso(c.created_before))
    if c.search:
        parts.append(
            "(icontains(title, ?) OR icontains(description, ?) OR icontains(category, ?))"
        )
        params.extend([c.search] * 3)
    if c.assigned_by is not None:
        parts.append("assigned_by = ?")
        params.append(c.assigned_by)
    if c.is_assigned is True:
        parts.append("assigned_by IS NOT NULL")
    elif c.is_assigned is False:
        parts.append("assigned_by IS NULL")

    if not parts:
        return "", params
    return " WHERE " + " AND ".join(parts), params


def order_clause(sort: TaskSort) -> str:
    if sort.column not in SORTABLE_COLUMNS:
        raise ValueError(f"unsortable column: {sort.column}")
    expr = PRIORITY_RANK_SQL if sort.column == "priority" else sort.column
    direction = "DESC" if sort.descending else "ASC"
    # rowid keeps equal keys in insertion order
    return f" ORDER BY {expr} {direction}, rowid ASC"
