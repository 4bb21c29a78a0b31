# taskdesk/infra/db/repo/tasks_sqlite.py
from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence

from taskdesk.constants import TASK_STATUS_COMPLETED
from taskdesk.domain.common.time import from_iso, to_iso
from taskdesk.domain.tasks.models import Task, TaskCriteria, TaskSort
from taskdesk.domain.tasks.ports import TaskRepository
from taskdesk.infra.db.connection import Database
from taskdesk.infra.db.repo.task_filters import TASK_COLUMNS, order_clause, where_clause

_PLAIN_COLUMNS = ("title", "description", "due_date", "category", "priority", "user_id", "assigned_by")

# Evaluated against the pre-update row: keep the first completion stamp,
# stamp on entry into completed, clear on exit.
_COMPLETED_AT_SQL = (
    "completed_at = CASE WHEN ? = '" + TASK_STATUS_COMPLETED + "' "
    "THEN COALESCE(CASE WHEN status = '" + TASK_STATUS_COMPLETED + "' THEN completed_at END, ?) "
    "ELSE NULL END"
)


class TaskSqliteRepo(TaskRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, task: Task) -> None:
        await self._db.execute(
            f"""
            INSERT INTO tasks({TASK_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                task.id,
                task.user_id,
                task.title,
                task.description,
                to_iso(task.due_date),
                task.category,
                task.priority,
                task.status,
                task.assigned_by,
                to_iso(task.completed_at) if task.completed_at else None,
                to_iso(task.created_at),
                to_iso(task.updated_at),
            ),
        )

    async def get(self, task_id: str) -> Optional[Task]:
        row = await self._db.fetchone(f"SELECT {TASK_COLUMNS} FROM tasks WHERE id = ?;", (task_id,))
        return self._row_to_task(row) if row else None

    async def update_fields(self, task_id: str, fields: Mapping[str, Any], now_iso: str) -> bool:
        sets: list[str] = []
        params: list[Any] = []
        for col in _PLAIN_COLUMNS:
            if col not in fields:
                continue
            value = fields[col]
            if col == "due_date" and value is not None:
                value = to_iso(value)
            sets.append(f"{col} = ?")
            params.append(value)
        if "status" in fields:
            # status and completed_at change in one statement, never apart
            sets.append(_COMPLETED_AT_SQL)
            params.extend([fields["status"], now_iso])
            sets.append("status = ?")
            params.append(fields["status"])
        sets.append("updated_at = ?")
        params.append(now_iso)
        params.append(task_id)

        rowcount = await self._db.execute(
            "UPDATE tasks SET " + ", ".join(sets) + " WHERE id = ?;",
            params,
        )
        return rowcount > 0

    async def delete(self, task_id: str) -> bool:
        return await self._db.execute("DELETE FROM tasks WHERE id = ?;", (task_id,)) > 0

    async def find(
        self, criteria: TaskCriteria, sort: TaskSort, offset: int, limit: int
    ) -> Sequence[Task]:
        where, params = where_clause(criteria)
        rows = await self._db.fetchall(
            f"SELECT {TASK_COLUMNS} FROM tasks{where}{order_clause(sort)} LIMIT ? OFFSET ?;",
            (*params, limit, offset),
        )
        return [self._row_to_task(r) for r in rows]

    async def count(self, criteria: TaskCriteria) -> int:
        where, params = where_clause(criteria)
        return int(await self._db.fetchval(f"SELECT COUNT(*) FROM tasks{where};", params, default=0))

    @staticmethod
    def _row_to_task(row) -> Task:
        return Task(
            id=row["id"],
            user_id=row["user_id"],
            title=row["title"],
            description=row["description"],
            due_date=from_iso(row["due_date"]),
            category=row["category"],
            priority=row["priority"],
            status=row["status"],
            assigned_by=row["assigned_by"],
            completed_at=from_iso(row["completed_at"]) if row["completed_at"] else None,
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
