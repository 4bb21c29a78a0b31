# taskdesk/infra/db/repo/login_attempts_sqlite.py
from __future__ import annotations

from taskdesk.domain.users.ports import AttemptCounter
from taskdesk.infra.db.connection import Database


class LoginAttemptsSqliteRepo(AttemptCounter):
    """Failed login attempts per client key, shared by every process using the DB."""

    def __init__(self, db: Database) -> None:
        self._db = db

    async def hit(self, key: str, now_iso: str) -> None:
        await self._db.execute(
            "INSERT INTO login_attempts(client_key, at) VALUES (?, ?);", (key, now_iso)
        )

    async def count_since(self, key: str, since_iso: str) -> int:
        n = await self._db.fetchval(
            "SELECT COUNT(*) FROM login_attempts WHERE client_key = ? AND at >= ?;",
            (key, since_iso),
            default=0,
        )
        return int(n)

    async def reset(self, key: str) -> None:
        await self._db.execute("DELETE FROM login_attempts WHERE client_key = ?;", (key,))
