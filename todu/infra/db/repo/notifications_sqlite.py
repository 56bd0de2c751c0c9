from __future__ import annotations

import json
from datetime import datetime
from typing import Any, Optional, Sequence

from todu.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from todu.domain.notifications.ports import NotificationRepository
from todu.infra.db.connection import Database
from todu.models import Notification


class NotificationsSqliteRepo(NotificationRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, notification: Notification) -> None:
        n = notification
        await self._db.execute(
            """
            INSERT INTO notifications(
              id, user_id, task_id, type, title, message, read, read_at,
              action_url, metadata_json, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                n.id,
                n.user_id,
                n.task_id,
                n.type,
                n.title,
                n.message,
                int(n.read),
                to_iso_opt(n.read_at),
                n.action_url,
                json.dumps(n.metadata or {}, ensure_ascii=False),
                to_iso(n.created_at),
                to_iso(n.updated_at),
            ),
        )

    async def list_for_user(
        self, user_id: str, read: Optional[bool], limit: int, skip: int
    ) -> list[Notification]:
        sql = "SELECT * FROM notifications WHERE user_id = ?"
        params: list[Any] = [user_id]
        if read is not None:
            sql += " AND read = ?"
            params.append(int(read))
        sql += " ORDER BY created_at DESC LIMIT ? OFFSET ?;"
        params.extend([limit, skip])
        rows = await self._db.fetchall(sql, tuple(params))
        return [self._row_to_notification(r) for r in rows]

    async def count_unread(self, user_id: str) -> int:
        n = await self._db.fetchval(
            "SELECT COUNT(*) FROM notifications WHERE user_id = ? AND read = 0;",
            (user_id,),
        )
        return int(n or 0)

    async def mark_read(self, ids: Sequence[str], user_id: str, now: datetime) -> int:
        if not ids:
            return 0
        now_iso = to_iso(now)
        marks = ",".join("?" for _ in ids)
        return await self._db.execute(
            f"""
            UPDATE notifications
            SET read = 1, read_at = ?, updated_at = ?
            WHERE user_id = ? AND read = 0 AND id IN ({marks});
            """,
            (now_iso, now_iso, user_id, *ids),
        )

    async def mark_all_read(self, user_id: str, now: datetime) -> int:
        now_iso = to_iso(now)
        return await self._db.execute(
            """
            UPDATE notifications
            SET read = 1, read_at = ?, updated_at = ?
            WHERE user_id = ? AND read = 0;
            """,
            (now_iso, now_iso, user_id),
        )

    async def delete(self, ids: Sequence[str], user_id: str) -> int:
        if not ids:
            return 0
        marks = ",".join("?" for _ in ids)
        return await self._db.execute(
            f"DELETE FROM notifications WHERE user_id = ? AND id IN ({marks});",
            (user_id, *ids),
        )

    async def exists_since(self, user_id: str, task_id: str, type_: str, since: datetime) -> bool:
        row = await self._db.fetchone(
            """
            SELECT 1
            FROM notifications
            WHERE user_id = ? AND task_id = ? AND type = ? AND created_at >= ?
            LIMIT 1;
            """,
            (user_id, task_id, type_, to_iso(since)),
        )
        return row is not None

    async def purge_read_before(self, cutoff: datetime) -> int:
        return await self._db.execute(
            "DELETE FROM notifications WHERE read = 1 AND read_at IS NOT NULL AND read_at < ?;",
            (to_iso(cutoff),),
        )

    def _row_to_notification(self, row) -> Notification:
        return Notification(
            id=row["id"],
            user_id=row["user_id"],
            task_id=row["task_id"],
            type=row["type"],
            title=row["title"],
            message=row["message"],
            read=bool(row["read"]),
            read_at=from_iso_opt(row["read_at"]),
            action_url=row["action_url"],
            metadata=json.loads(row["metadata_json"] or "{}"),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
        )
