from __future__ import annotations

import json
from typing import Any, Sequence

from todu.constants import VISIBILITY_TEAM
from todu.domain.activities.ports import ActivityRepository
from todu.domain.common.time import from_iso, to_iso
from todu.infra.db.connection import Database
from todu.infra.db.repo.users_sqlite import row_to_summary
from todu.models import Activity

_SELECT_FEED = """
    SELECT a.*,
           u.id AS u_id, u.name AS u_name, u.email AS u_email, u.avatar_url AS u_avatar_url,
           t.title AS task_title, t.status AS task_status,
           l.name AS list_name
    FROM activities a
    LEFT JOIN users u ON u.id = a.user_id
    LEFT JOIN tasks t ON t.id = a.task_id
    LEFT JOIN lists l ON l.id = a.list_id
"""


class ActivitiesSqliteRepo(ActivityRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, activity: Activity) -> None:
        a = activity
        await self._db.execute(
            """
            INSERT INTO activities(id, user_id, task_id, list_id, type, description, metadata_json, visibility, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                a.id,
                a.user_id,
                a.task_id,
                a.list_id,
                a.type,
                a.description,
                json.dumps(a.metadata or {}, ensure_ascii=False),
                a.visibility,
                to_iso(a.created_at),
            ),
        )

    async def feed(self, user_id: str, list_ids: Sequence[str], limit: int, skip: int) -> list[Activity]:
        params: list[Any] = [user_id]
        team_clause = ""
        if list_ids:
            marks = ",".join("?" for _ in list_ids)
            team_clause = f" OR (a.visibility = ? AND a.list_id IN ({marks}))"
            params.append(VISIBILITY_TEAM)
            params.extend(list_ids)
        params.extend([limit, skip])
        rows = await self._db.fetchall(
            _SELECT_FEED
            + f" WHERE a.user_id = ?{team_clause} ORDER BY a.created_at DESC LIMIT ? OFFSET ?;",
            tuple(params),
        )
        return [self._row_to_activity(r) for r in rows]

    async def for_list(self, list_id: str, limit: int, skip: int) -> list[Activity]:
        rows = await self._db.fetchall(
            _SELECT_FEED + " WHERE a.list_id = ? ORDER BY a.created_at DESC LIMIT ? OFFSET ?;",
            (list_id, limit, skip),
        )
        return [self._row_to_activity(r) for r in rows]

    async def for_task(self, task_id: str, limit: int, skip: int) -> list[Activity]:
        rows = await self._db.fetchall(
            _SELECT_FEED + " WHERE a.task_id = ? ORDER BY a.created_at DESC LIMIT ? OFFSET ?;",
            (task_id, limit, skip),
        )
        return [self._row_to_activity(r) for r in rows]

    def _row_to_activity(self, row) -> Activity:
        return Activity(
            id=row["id"],
            user_id=row["user_id"],
            task_id=row["task_id"],
            list_id=row["list_id"],
            type=row["type"],
            description=row["description"],
            metadata=json.loads(row["metadata_json"] or "{}"),
            visibility=row["visibility"],
            created_at=from_iso(row["created_at"]),
            actor=row_to_summary(row, prefix="u_"),
            task_title=row["task_title"],
            task_status=row["task_status"],
            list_name=row["list_name"],
        )
