from __future__ import annotations

from datetime import datetime
from typing import Optional

from todu.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from todu.domain.messages.ports import MessageRepository
from todu.infra.db.connection import Database
from todu.infra.db.repo.users_sqlite import row_to_summary
from todu.models import Conversation, Message

_SELECT_WITH_USERS = """
    SELECT m.*,
           s.id AS s_id, s.name AS s_name, s.email AS s_email, s.avatar_url AS s_avatar_url,
           r.id AS r_id, r.name AS r_name, r.email AS r_email, r.avatar_url AS r_avatar_url
    FROM messages m
    LEFT JOIN users s ON s.id = m.sender_id
    LEFT JOIN users r ON r.id = m.receiver_id
"""


class MessagesSqliteRepo(MessageRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, message: Message) -> None:
        m = message
        await self._db.execute(
            """
            INSERT INTO messages(id, sender_id, receiver_id, content, is_read, read_at, conversation_id, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                m.id,
                m.sender_id,
                m.receiver_id,
                m.content,
                int(m.is_read),
                to_iso_opt(m.read_at),
                m.conversation_id,
                to_iso(m.created_at),
                to_iso(m.updated_at),
            ),
        )

    async def get(self, message_id: str) -> Optional[Message]:
        row = await self._db.fetchone(_SELECT_WITH_USERS + " WHERE m.id = ?;", (message_id,))
        return self._row_to_message(row) if row else None

    async def mark_read(self, message_id: str, now: datetime) -> None:
        now_iso = to_iso(now)
        await self._db.execute(
            "UPDATE messages SET is_read = 1, read_at = ?, updated_at = ? WHERE id = ? AND is_read = 0;",
            (now_iso, now_iso, message_id),
        )

    async def conversation(self, conversation_id: str, limit: int) -> list[Message]:
        # newest `limit` messages, returned oldest first
        rows = await self._db.fetchall(
            f"""
            SELECT * FROM (
              {_SELECT_WITH_USERS}
              WHERE m.conversation_id = ?
              ORDER BY m.created_at DESC
              LIMIT ?
            )
            ORDER BY created_at ASC;
            """,
            (conversation_id, limit),
        )
        return [self._row_to_message(r) for r in rows]

    async def mark_conversation_read(self, conversation_id: str, receiver_id: str, now: datetime) -> int:
        now_iso = to_iso(now)
        return await self._db.execute(
            """
            UPDATE messages
            SET is_read = 1, read_at = ?, updated_at = ?
            WHERE conversation_id = ? AND receiver_id = ? AND is_read = 0;
            """,
            (now_iso, now_iso, conversation_id, receiver_id),
        )

    async def conversations_for(self, user_id: str) -> list[Conversation]:
        rows = await self._db.fetchall(
            """
            WITH mine AS (
              SELECT m.*,
                     CASE WHEN m.sender_id = ? THEN m.receiver_id ELSE m.sender_id END AS other_id,
                     ROW_NUMBER() OVER (PARTITION BY m.conversation_id ORDER BY m.created_at DESC, m.id DESC) AS rn
              FROM messages m
              WHERE m.sender_id = ? OR m.receiver_id = ?
            )
            SELECT mine.conversation_id, mine.content, mine.created_at, mine.sender_id,
                   (SELECT COUNT(*) FROM messages x
                     WHERE x.conversation_id = mine.conversation_id
                       AND x.receiver_id = ? AND x.is_read = 0) AS unread_count,
                   u.id AS u_id, u.name AS u_name, u.email AS u_email, u.avatar_url AS u_avatar_url
            FROM mine
            LEFT JOIN users u ON u.id = mine.other_id
            WHERE mine.rn = 1
            ORDER BY mine.created_at DESC;
            """,
            (user_id, user_id, user_id, user_id),
        )
        return [
            Conversation(
                conversation_id=r["conversation_id"],
                other_user=row_to_summary(r, prefix="u_"),
                last_content=r["content"],
                last_created_at=from_iso(r["created_at"]),
                is_from_me=r["sender_id"] == user_id,
                unread_count=int(r["unread_count"] or 0),
            )
            for r in rows
        ]

    async def unread_count(self, user_id: str) -> int:
        n = await self._db.fetchval(
            "SELECT COUNT(*) FROM messages WHERE receiver_id = ? AND is_read = 0;",
            (user_id,),
        )
        return int(n or 0)

    def _row_to_message(self, row) -> Message:
        return Message(
            id=row["id"],
            sender_id=row["sender_id"],
            receiver_id=row["receiver_id"],
            content=row["content"],
            is_read=bool(row["is_read"]),
            read_at=from_iso_opt(row["read_at"]),
            conversation_id=row["conversation_id"],
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            sender=row_to_summary(row, prefix="s_"),
            receiver=row_to_summary(row, prefix="r_"),
        )
