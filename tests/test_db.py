"""
The connection-per-call database helper and the migration runner.
"""
import asyncio
import sqlite3

import pytest

from todu.infra.db.schema_version import MIGRATIONS_DIR, apply_migrations

NOW = "2025-05-01T10:00:00+00:00"


def test_migrations_apply_once(container):
    async def run():
        before = await container.db.fetchval("SELECT COUNT(*) FROM schema_migrations;")
        await apply_migrations(container.db, str(MIGRATIONS_DIR), NOW)
        assert await container.db.fetchval("SELECT COUNT(*) FROM schema_migrations;") == before

    asyncio.run(run())


def test_execute_reports_rowcount_and_rows_read_by_name(container):
    async def run():
        db = container.db
        await db.executemany(
            "INSERT INTO users(id, name, email, created_at, updated_at) VALUES (?, ?, ?, ?, ?);",
            [("u1", "Ann", "ann@example.com", NOW, NOW), ("u2", "Bob", "bob@example.com", NOW, NOW)],
        )
        assert await db.execute("UPDATE users SET name = upper(name);") == 2

        row = await db.fetchone("SELECT name, email FROM users WHERE id = ?;", ("u2",))
        assert row["name"] == "BOB"
        assert [r["id"] for r in await db.fetchall("SELECT id FROM users ORDER BY id;")] == ["u1", "u2"]
        assert await db.fetchval("SELECT name FROM users WHERE id = ?;", ("missing",)) is None

    asyncio.run(run())


def test_foreign_keys_are_enforced_on_every_connection(container):
    async def run():
        with pytest.raises(sqlite3.IntegrityError):
            await container.db.execute(
                "INSERT INTO lists(id, user_id, name, last_modified, created_at, updated_at)"
                " VALUES (?, ?, ?, ?, ?, ?);",
                ("l1", "nobody", "Ghost", NOW, NOW, NOW),
            )

    asyncio.run(run())
