# taskdesk/infra/db/repo/users_sqlite.py
from __future__ import annotations

from typing import Any, Iterable, Mapping, Optional, Sequence

from taskdesk.constants import ROLE_ADMIN
from taskdesk.domain.common.time import from_iso, to_iso
from taskdesk.domain.users.models import User, UserCriteria
from taskdesk.domain.users.ports import UserRepository
from taskdesk.infra.db.connection import Database

USER_COLUMNS = (
    "id, username, email, password_hash, role, is_active, last_login_at, "
    "profile_image, created_at, updated_at"
)

_UPDATABLE = ("username", "email", "password_hash", "role", "is_active", "last_login_at", "profile_image")


def _user_where(c: UserCriteria) -> tuple[str, list[Any]]:
    parts: list[str] = []
    params: list[Any] = []
    if c.search:
        parts.append("(icontains(username, ?) OR icontains(email, ?))")
        params.extend([c.search, c.search])
    if c.role is not None:
        parts.append("role = ?")
        params.append(c.role)
    if c.is_active is not None:
        parts.append("is_active = ?")
        params.append(1 if c.is_active else 0)
    if c.created_from is not None:
        parts.append("created_at >= ?")
        params.append(to_iso(c.created_from))
    if not parts:
        return "", params
    return " WHERE " + " AND ".join(parts), params


class UserSqliteRepo(UserRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, user: User) -> None:
        await self._db.execute(
            f"""
            INSERT INTO users({USER_COLUMNS})
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                user.id,
                user.username,
                user.email,
                user.password_hash,
                user.role,
                1 if user.is_active else 0,
                to_iso(user.last_login_at) if user.last_login_at else None,
                user.profile_image,
                to_iso(user.created_at),
                to_iso(user.updated_at),
            ),
        )

    async def get(self, user_id: str) -> Optional[User]:
        row = await self._db.fetchone(f"SELECT {USER_COLUMNS} FROM users WHERE id = ?;", (user_id,))
        return self._row_to_user(row) if row else None

    async def get_many(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = sorted({i for i in user_ids if i})
        if not ids:
            return {}
        placeholders = ",".join("?" * len(ids))
        rows = await self._db.fetchall(
            f"SELECT {USER_COLUMNS} FROM users WHERE id IN ({placeholders});", ids
        )
        return {r["id"]: self._row_to_user(r) for r in rows}

    async def find_by_login(self, email_or_username: str) -> Optional[User]:
        row = await self._db.fetchone(
            f"SELECT {USER_COLUMNS} FROM users WHERE email = ? OR username = ? LIMIT 1;",
            (email_or_username.strip().lower(), email_or_username.strip()),
        )
        return self._row_to_user(row) if row else None

    async def username_taken(self, username: str, exclude_id: Optional[str] = None) -> bool:
        row = await self._db.fetchone(
            "SELECT 1 FROM users WHERE username = ? AND id IS NOT ?;", (username, exclude_id)
        )
        return row is not None

    async def email_taken(self, email: str, exclude_id: Optional[str] = None) -> bool:
        row = await self._db.fetchone(
            "SELECT 1 FROM users WHERE email = ? AND id IS NOT ?;", (email.lower(), exclude_id)
        )
        return row is not None

    async def update_fields(self, user_id: str, fields: Mapping[str, Any], now_iso: str) -> bool:
        sets: list[str] = []
        params: list[Any] = []
        for col in _UPDATABLE:
            if col not in fields:
                continue
            value = fields[col]
            if col == "is_active":
                value = 1 if value else 0
            sets.append(f"{col} = ?")
            params.append(value)
        sets.append("updated_at = ?")
        params.extend([now_iso, user_id])
        rowcount = await self._db.execute(
            "UPDATE users SET " + ", ".join(sets) + " WHERE id = ?;", params
        )
        return rowcount > 0

    async def find_active_by_role(self, role: str) -> Sequence[User]:
        rows = await self._db.fetchall(
            f"SELECT {USER_COLUMNS} FROM users WHERE role = ? AND is_active = 1 ORDER BY created_at ASC;",
            (role,),
        )
        return [self._row_to_user(r) for r in rows]

    async def is_last_active_admin(self, user_id: str) -> bool:
        others = await self._db.fetchval(
            "SELECT COUNT(*) FROM users WHERE role = ? AND is_active = 1 AND id != ?;",
            (ROLE_ADMIN, user_id),
            default=0,
        )
        return int(others) == 0

    async def find(self, criteria: UserCriteria, offset: int, limit: int) -> Sequence[User]:
        where, params = _user_where(criteria)
        rows = await self._db.fetchall(
            f"SELECT {USER_COLUMNS} FROM users{where} ORDER BY created_at DESC, rowid ASC LIMIT ? OFFSET ?;",
            (*params, limit, offset),
        )
        return [self._row_to_user(r) for r in rows]

    async def count(self, criteria: UserCriteria) -> int:
        where, params = _user_where(criteria)
        return int(await self._db.fetchval(f"SELECT COUNT(*) FROM users{where};", params, default=0))

    @staticmethod
    def _row_to_user(row) -> User:
        return User(
            id=row["id"],
            username=row["username"],
            email=row["email"],
            password_hash=row["password_hash"],
            role=row["role"],
            is_active=bool(row["is_active"]),
            last_login_at=from_iso(row["last_login_at"]) if row["last_login_at"] else None,
            profile_image=row["profile_image"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
