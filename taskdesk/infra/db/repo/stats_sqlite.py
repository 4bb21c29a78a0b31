# taskdesk/infra/db/repo/stats_sqlite.py
from __future__ import annotations

from typing import Any, Iterable, Optional, Sequence

from taskdesk.constants import (
    TASK_STATUS_CANCELLED,
    TASK_STATUS_COMPLETED,
    TASK_STATUS_IN_PROGRESS,
    TASK_STATUS_PENDING,
)
from taskdesk.domain.analytics.ports import TaskStatsRepository
from taskdesk.domain.tasks.models import TaskCriteria
from taskdesk.infra.db.connection import Database
from taskdesk.infra.db.repo.task_filters import GROUPABLE_COLUMNS, OVERDUE_SQL, where_clause


def _count_when(cond: str) -> str:
    return f"COALESCE(SUM(CASE WHEN {cond} THEN 1 ELSE 0 END), 0)"


_STATUS_COUNTS_SELECT = ", ".join([
    "COUNT(*) AS total",
    f"{_count_when(f'status = {TASK_STATUS_PENDING!r}')} AS pending",
    f"{_count_when(f'status = {TASK_STATUS_IN_PROGRESS!r}')} AS in_progress",
    f"{_count_when(f'status = {TASK_STATUS_COMPLETED!r}')} AS completed",
    f"{_count_when(f'status = {TASK_STATUS_CANCELLED!r}')} AS cancelled",
    f"{_count_when(OVERDUE_SQL)} AS overdue",
    f"{_count_when('assigned_by IS NOT NULL')} AS assigned",
])

_COUNT_KEYS = ("total", "pending", "in_progress", "completed", "cancelled", "overdue", "assigned")


class StatsSqliteRepo(TaskStatsRepository):
    """Grouped counts over tasks, computed in SQL in a single pass each."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def count(self, criteria: TaskCriteria) -> int:
        where, params = where_clause(criteria)
        return int(await self._db.fetchval(f"SELECT COUNT(*) FROM tasks{where};", params, default=0))

    async def status_counts(self, criteria: TaskCriteria, now_iso: str) -> dict[str, int]:
        where, params = where_clause(criteria)
        row = await self._db.fetchone(
            f"SELECT {_STATUS_COUNTS_SELECT} FROM tasks{where};",
            (now_iso, *params),
        )
        return {k: int(row[k]) for k in _COUNT_KEYS}

    async def status_counts_by_owner(
        self, owner_ids: Iterable[str], now_iso: str
    ) -> dict[str, dict[str, int]]:
        owner_ids = list(owner_ids)
        if not owner_ids:
            return {}
        placeholders = ",".join("?" * len(owner_ids))
        rows = await self._db.fetchall(
            f"""
            SELECT user_id, {_STATUS_COUNTS_SELECT}
            FROM tasks WHERE user_id IN ({placeholders})
            GROUP BY user_id;
            """,
            (now_iso, *owner_ids),
        )
        return {r["user_id"]: {k: int(r[k]) for k in _COUNT_KEYS} for r in rows}

    async def group_counts(self, criteria: TaskCriteria, column: str) -> Sequence[dict[str, Any]]:
        if column not in GROUPABLE_COLUMNS:
            raise ValueError(f"cannot group by {column}")
        where, params = where_clause(criteria)
        rows = await self._db.fetchall(
            f"""
            SELECT {column} AS value, COUNT(*) AS count,
                   {_count_when(f'status = {TASK_STATUS_COMPLETED!r}')} AS completed
            FROM tasks{where}
            GROUP BY {column}
            ORDER BY count DESC, value ASC;
            """,
            params,
        )
        return [{"value": r["value"], "count": int(r["count"]), "completed": int(r["completed"])} for r in rows]

    async def created_at_values(self, criteria: TaskCriteria) -> Sequence[str]:
        where, params = where_clause(criteria)
        rows = await self._db.fetchall(f"SELECT created_at FROM tasks{where};", params)
        return [r["created_at"] for r in rows]

    async def owner_totals(
        self, criteria: TaskCriteria, now_iso: str, recent_from_iso: Optional[str] = None
    ) -> Sequence[dict[str, Any]]:
        where, params = where_clause(criteria)
        # with no recent window every task counts as recent
        recent_cond = "created_at >= ?" if recent_from_iso else "1 = 1"
        head: list[Any] = [now_iso]
        if recent_from_iso:
            head.append(recent_from_iso)
        rows = await self._db.fetchall(
            f"""
            SELECT user_id,
                   COUNT(*) AS total,
                   {_count_when(f'status = {TASK_STATUS_COMPLETED!r}')} AS completed,
                   {_count_when(OVERDUE_SQL)} AS overdue,
                   {_count_when('assigned_by IS NOT NULL')} AS assigned,
                   {_count_when(recent_cond)} AS recent
            FROM tasks{where}
            GROUP BY user_id
            ORDER BY total DESC, completed DESC, user_id ASC;
            """,
            (*head, *params),
        )
        return [
            {
                "user_id": r["user_id"],
                "total": int(r["total"]),
                "completed": int(r["completed"]),
                "overdue": int(r["overdue"]),
                "assigned": int(r["assigned"]),
                "recent": int(r["recent"]),
            }
            for r in rows
        ]

    async def assigner_totals(self) -> Sequence[dict[str, Any]]:
        rows = await self._db.fetchall(
            f"""
            SELECT assigned_by,
                   COUNT(*) AS total,
                   {_count_when(f'status = {TASK_STATUS_COMPLETED!r}')} AS completed
            FROM tasks
            WHERE assigned_by IS NOT NULL
            GROUP BY assigned_by
            ORDER BY total DESC, assigned_by ASC;
            """
        )
        return [
            {"assigned_by": r["assigned_by"], "total": int(r["total"]), "completed": int(r["completed"])}
            for r in rows
        ]
