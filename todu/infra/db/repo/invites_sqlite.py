from __future__ import annotations

from datetime import datetime
from typing import Optional

from todu.constants import INVITE_EXPIRED, INVITE_PENDING
from todu.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from todu.domain.invites.ports import InviteRepository
from todu.infra.db.connection import Database
from todu.models import ListInvite


class InvitesSqliteRepo(InviteRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, invite: ListInvite) -> None:
        i = invite
        await self._db.execute(
            """
            INSERT INTO list_invites(
              id, list_id, invited_by, email, role, token, status,
              expires_at, accepted_at, accepted_by, created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                i.id,
                i.list_id,
                i.invited_by,
                i.email,
                i.role,
                i.token,
                i.status,
                to_iso(i.expires_at),
                to_iso_opt(i.accepted_at),
                i.accepted_by,
                to_iso(i.created_at),
                to_iso(i.updated_at),
            ),
        )

    async def save(self, invite: ListInvite) -> None:
        i = invite
        await self._db.execute(
            """
            UPDATE list_invites
            SET role = ?, status = ?, expires_at = ?, accepted_at = ?, accepted_by = ?, updated_at = ?
            WHERE id = ?;
            """,
            (
                i.role,
                i.status,
                to_iso(i.expires_at),
                to_iso_opt(i.accepted_at),
                i.accepted_by,
                to_iso(i.updated_at),
                i.id,
            ),
        )

    async def get_pending_by_token(self, token: str) -> Optional[ListInvite]:
        row = await self._db.fetchone(
            "SELECT * FROM list_invites WHERE token = ? AND status = ?;",
            (token, INVITE_PENDING),
        )
        return self._row_to_invite(row) if row else None

    async def find_pending(self, list_id: str, email: str) -> Optional[ListInvite]:
        row = await self._db.fetchone(
            """
            SELECT *
            FROM list_invites
            WHERE list_id = ? AND email = ? AND status = ?
            ORDER BY created_at DESC
            LIMIT 1;
            """,
            (list_id, email, INVITE_PENDING),
        )
        return self._row_to_invite(row) if row else None

    async def expire_before(self, now: datetime) -> int:
        now_iso = to_iso(now)
        return await self._db.execute(
            "UPDATE list_invites SET status = ?, updated_at = ? WHERE status = ? AND expires_at <= ?;",
            (INVITE_EXPIRED, now_iso, INVITE_PENDING, now_iso),
        )

    def _row_to_invite(self, row) -> ListInvite:
        return ListInvite(
            id=row["id"],
            list_id=row["list_id"],
            invited_by=row["invited_by"],
            email=row["email"],
            role=row["role"],
            token=row["token"],
            status=row["status"],
            expires_at=from_iso(row["expires_at"]),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            accepted_at=from_iso_opt(row["accepted_at"]),
            accepted_by=row["accepted_by"],
        )
