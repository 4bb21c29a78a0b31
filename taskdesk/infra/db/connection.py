# taskdesk/infra/db/connection.py
from __future__ import annotations

import contextlib
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

import aiosqlite


def _icontains(haystack: Optional[str], needle: Optional[str]) -> int:
    if haystack is None or needle is None:
        return 0
    return int(needle.casefold() in haystack.casefold())


class Database:
    """
    Async SQLite helper:
    - opens a new connection per operation (simple + safe)
    - sets row_factory to aiosqlite.Row
    - enables WAL + foreign keys
    - registers icontains(haystack, needle) for case-insensitive search
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @contextlib.asynccontextmanager
    async def connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            await db.create_function("icontains", 2, _icontains, deterministic=True)
            yield db

    async def executescript(self, sql: str) -> None:
        async with self.connect() as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.executescript(sql)
            await db.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and commit; returns the affected row count."""
        async with self.connect() as db:
            cur = await db.execute(sql, params)
            await db.commit()
            return cur.rowcount

    async def executemany(self, sql: str, seq_of_params: Iterable[Sequence[Any]]) -> None:
        async with self.connect() as db:
            await db.executemany(sql, seq_of_params)
            await db.commit()

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async with self.connect() as db:
            cur = await db.execute(sql, params)
            return await cur.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with self.connect() as db:
            cur = await db.execute(sql, params)
            return list(await cur.fetchall())

    async def fetchval(self, sql: str, params: Sequence[Any] = (), default: Any = None) -> Any:
        row = await self.fetchone(sql, params)
        if row is None or row[0] is None:
            return default
        return row[0]
