from __future__ import annotations

from datetime import datetime
from typing import Optional

from todu.domain.common.time import from_iso, to_iso
from todu.domain.lists.ports import ListRepository
from todu.infra.db.connection import Database
from todu.infra.db.repo.users_sqlite import row_to_summary
from todu.models import Collaborator, TaskList


class ListsSqliteRepo(ListRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, lst: TaskList) -> None:
        await self._db.execute(
            """
            INSERT INTO lists(
              id, user_id, name, description, color, icon,
              sort_order, is_default, is_archived, task_count,
              sync_version, last_modified, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                lst.id,
                lst.user_id,
                lst.name,
                lst.description,
                lst.color,
                lst.icon,
                lst.order,
                int(lst.is_default),
                int(lst.is_archived),
                lst.task_count,
                lst.sync_version,
                to_iso(lst.last_modified),
                to_iso(lst.created_at),
                to_iso(lst.updated_at),
            ),
        )

    async def save(self, lst: TaskList) -> None:
        await self._db.execute(
            """
            UPDATE lists
            SET name = ?,
                description = ?,
                color = ?,
                icon = ?,
                sort_order = ?,
                is_default = ?,
                is_archived = ?,
                task_count = ?,
                sync_version = ?,
                last_modified = ?,
                updated_at = ?
            WHERE id = ?;
            """,
            (
                lst.name,
                lst.description,
                lst.color,
                lst.icon,
                lst.order,
                int(lst.is_default),
                int(lst.is_archived),
                lst.task_count,
                lst.sync_version,
                to_iso(lst.last_modified),
                to_iso(lst.updated_at),
                lst.id,
            ),
        )

    async def get(self, list_id: str) -> Optional[TaskList]:
        row = await self._db.fetchone("SELECT * FROM lists WHERE id = ?;", (list_id,))
        if not row:
            return None
        collaborators = await self._collaborators([list_id])
        return self._row_to_list(row, collaborators.get(list_id, ()))

    async def delete(self, list_id: str) -> None:
        await self._db.execute("DELETE FROM lists WHERE id = ?;", (list_id,))

    async def for_user(self, user_id: str, include_archived: bool) -> list[TaskList]:
        archived_clause = "" if include_archived else "AND l.is_archived = 0"
        rows = await self._db.fetchall(
            f"""
            SELECT l.*
            FROM lists l
            WHERE (
              l.user_id = ?
              OR l.id IN (SELECT list_id FROM list_collaborators WHERE user_id = ?)
            )
            {archived_clause}
            ORDER BY l.sort_order ASC, l.created_at ASC;
            """,
            (user_id, user_id),
        )
        collaborators = await self._collaborators([r["id"] for r in rows])
        return [self._row_to_list(r, collaborators.get(r["id"], ())) for r in rows]

    async def visible_ids(self, user_id: str) -> list[str]:
        rows = await self._db.fetchall(
            """
            SELECT id FROM lists WHERE user_id = ?
            UNION
            SELECT list_id FROM list_collaborators WHERE user_id = ?;
            """,
            (user_id, user_id),
        )
        return [r[0] for r in rows]

    async def shared_ids(self, user_id: str) -> list[str]:
        rows = await self._db.fetchall(
            "SELECT list_id FROM list_collaborators WHERE user_id = ?;",
            (user_id,),
        )
        return [r[0] for r in rows]

    async def max_order(self, user_id: str) -> Optional[int]:
        return await self._db.fetchval("SELECT MAX(sort_order) FROM lists WHERE user_id = ?;", (user_id,))

    async def unset_default(self, user_id: str, now: datetime, except_id: Optional[str] = None) -> int:
        now_iso = to_iso(now)
        return await self._db.execute(
            """
            UPDATE lists
            SET is_default = 0,
                sync_version = sync_version + 1,
                last_modified = ?,
                updated_at = ?
            WHERE user_id = ? AND is_default = 1 AND id != ?;
            """,
            (now_iso, now_iso, user_id, except_id or ""),
        )

    async def add_collaborator(self, list_id: str, user_id: str, role: str, invited_at: datetime) -> None:
        await self._db.execute(
            """
            INSERT INTO list_collaborators(list_id, user_id, role, invited_at)
            VALUES (?, ?, ?, ?);
            """,
            (list_id, user_id, role, to_iso(invited_at)),
        )

    async def remove_collaborator(self, list_id: str, user_id: str) -> bool:
        n = await self._db.execute(
            "DELETE FROM list_collaborators WHERE list_id = ? AND user_id = ?;",
            (list_id, user_id),
        )
        return n > 0

    async def delete_for_user(self, user_id: str) -> int:
        return await self._db.execute("DELETE FROM lists WHERE user_id = ?;", (user_id,))

    async def _collaborators(self, list_ids: list[str]) -> dict[str, tuple[Collaborator, ...]]:
        if not list_ids:
            return {}
        marks = ",".join("?" for _ in list_ids)
        rows = await self._db.fetchall(
            f"""
            SELECT c.list_id, c.user_id, c.role, c.invited_at,
                   u.id AS u_id, u.name AS u_name, u.email AS u_email, u.avatar_url AS u_avatar_url
            FROM list_collaborators c
            LEFT JOIN users u ON u.id = c.user_id
            WHERE c.list_id IN ({marks})
            ORDER BY c.invited_at ASC;
            """,
            tuple(list_ids),
        )
        out: dict[str, list[Collaborator]] = {}
        for r in rows:
            out.setdefault(r["list_id"], []).append(
                Collaborator(
                    user_id=r["user_id"],
                    role=r["role"],
                    invited_at=from_iso(r["invited_at"]),
                    user=row_to_summary(r, prefix="u_"),
                )
            )
        return {k: tuple(v) for k, v in out.items()}

    def _row_to_list(self, row, shared_with: tuple[Collaborator, ...]) -> TaskList:
        return TaskList(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            color=row["color"],
            icon=row["icon"],
            order=int(row["sort_order"]),
            is_default=bool(row["is_default"]),
            is_archived=bool(row["is_archived"]),
            task_count=int(row["task_count"]),
            sync_version=int(row["sync_version"]),
            last_modified=from_iso(row["last_modified"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            shared_with=shared_with,
        )
