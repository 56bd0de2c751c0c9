from __future__ import annotations

import json
from typing import Optional

from todu.domain.comments.ports import CommentRepository
from todu.domain.common.time import from_iso, to_iso
from todu.infra.db.connection import Database
from todu.infra.db.repo.users_sqlite import row_to_summary
from todu.models import Comment

_SELECT_WITH_AUTHOR = """
    SELECT c.*,
           u.id AS u_id, u.name AS u_name, u.email AS u_email, u.avatar_url AS u_avatar_url
    FROM comments c
    LEFT JOIN users u ON u.id = c.user_id
"""


class CommentsSqliteRepo(CommentRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, comment: Comment) -> None:
        await self._db.execute(
            """
            INSERT INTO comments(id, task_id, user_id, content, mentions_json, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?);
            """,
            (
                comment.id,
                comment.task_id,
                comment.user_id,
                comment.content,
                json.dumps(list(comment.mentions)),
                to_iso(comment.created_at),
                to_iso(comment.updated_at),
            ),
        )

    async def save(self, comment: Comment) -> None:
        await self._db.execute(
            "UPDATE comments SET content = ?, mentions_json = ?, updated_at = ? WHERE id = ?;",
            (comment.content, json.dumps(list(comment.mentions)), to_iso(comment.updated_at), comment.id),
        )

    async def get(self, comment_id: str) -> Optional[Comment]:
        row = await self._db.fetchone(_SELECT_WITH_AUTHOR + " WHERE c.id = ?;", (comment_id,))
        return self._row_to_comment(row) if row else None

    async def delete(self, comment_id: str) -> None:
        await self._db.execute("DELETE FROM comments WHERE id = ?;", (comment_id,))

    async def for_task(self, task_id: str) -> list[Comment]:
        rows = await self._db.fetchall(
            _SELECT_WITH_AUTHOR + " WHERE c.task_id = ? ORDER BY c.created_at ASC;",
            (task_id,),
        )
        return [self._row_to_comment(r) for r in rows]

    def _row_to_comment(self, row) -> Comment:
        return Comment(
            id=row["id"],
            task_id=row["task_id"],
            user_id=row["user_id"],
            content=row["content"],
            mentions=tuple(json.loads(row["mentions_json"] or "[]")),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            author=row_to_summary(row, prefix="u_"),
        )
