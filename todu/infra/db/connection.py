# todu/infra/db/connection.py
from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Iterable, Optional, Sequence

import aiosqlite


class Database:
    """
    Async SQLite helper:
    - opens a new connection per operation
    - sets row_factory to aiosqlite.Row
    - enables WAL + foreign keys
    """

    def __init__(self, path: str) -> None:
        self._path = path

    @property
    def path(self) -> str:
        return self._path

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        async with aiosqlite.connect(self._path) as db:
            db.row_factory = aiosqlite.Row
            await db.execute("PRAGMA foreign_keys=ON;")
            yield db

    async def executescript(self, sql: str) -> None:
        async with self._connect() as db:
            await db.execute("PRAGMA journal_mode=WAL;")
            await db.executescript(sql)
            await db.commit()

    async def execute(self, sql: str, params: Sequence[Any] = ()) -> int:
        """Run one statement and return the affected row count."""
        async with self._connect() as db:
            cur = await db.execute(sql, params)
            await db.commit()
            return cur.rowcount

    async def executemany(self, sql: str, seq_of_params: Iterable[Sequence[Any]]) -> None:
        async with self._connect() as db:
            await db.executemany(sql, seq_of_params)
            await db.commit()

    async def fetchone(self, sql: str, params: Sequence[Any] = ()) -> Optional[aiosqlite.Row]:
        async with self._connect() as db:
            cur = await db.execute(sql, params)
            return await cur.fetchone()

    async def fetchall(self, sql: str, params: Sequence[Any] = ()) -> list[aiosqlite.Row]:
        async with self._connect() as db:
            cur = await db.execute(sql, params)
            return list(await cur.fetchall())

    async def fetchval(self, sql: str, params: Sequence[Any] = ()) -> Any:
        row = await self.fetchone(sql, params)
        return row[0] if row else None
