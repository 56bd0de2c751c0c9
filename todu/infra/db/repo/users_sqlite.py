from __future__ import annotations

from datetime import datetime
from typing import Dict, Optional, Sequence

from todu.domain.accounts.ports import UserRepository
from todu.domain.common.time import from_iso, from_iso_opt, to_iso, to_iso_opt
from todu.infra.db.connection import Database
from todu.models import User, UserPreferences, UserSummary


def row_to_summary(row, prefix: str = "") -> Optional[UserSummary]:
    """Build a summary from joined ``<prefix>id/name/email/avatar_url`` columns."""
    user_id = row[f"{prefix}id"]
    if user_id is None:
        return None
    return UserSummary(
        id=user_id,
        name=row[f"{prefix}name"],
        email=row[f"{prefix}email"],
        avatar_url=row[f"{prefix}avatar_url"],
    )


class UsersSqliteRepo(UserRepository):
    def __init__(self, db: Database) -> None:
        self._db = db

    async def insert(self, user: User) -> None:
        await self._db.execute(
            """
            INSERT INTO users(
              id, name, email, password_hash, google_id, avatar_url,
              theme, timezone, language,
              reset_password_token, reset_password_expire,
              created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?);
            """,
            (
                user.id,
                user.name,
                user.email,
                user.password_hash,
                user.google_id,
                user.avatar_url,
                user.preferences.theme,
                user.preferences.timezone,
                user.preferences.language,
                user.reset_password_token,
                to_iso_opt(user.reset_password_expire),
                to_iso(user.created_at),
                to_iso(user.updated_at),
            ),
        )

    async def save(self, user: User) -> None:
        await self._db.execute(
            """
            UPDATE users
            SET name = ?,
                email = ?,
                password_hash = ?,
                google_id = ?,
                avatar_url = ?,
                theme = ?,
                timezone = ?,
                language = ?,
                reset_password_token = ?,
                reset_password_expire = ?,
                updated_at = ?
            WHERE id = ?;
            """,
            (
                user.name,
                user.email,
                user.password_hash,
                user.google_id,
                user.avatar_url,
                user.preferences.theme,
                user.preferences.timezone,
                user.preferences.language,
                user.reset_password_token,
                to_iso_opt(user.reset_password_expire),
                to_iso(user.updated_at),
                user.id,
            ),
        )

    async def get(self, user_id: str) -> Optional[User]:
        row = await self._db.fetchone("SELECT * FROM users WHERE id = ?;", (user_id,))
        return self._row_to_user(row) if row else None

    async def get_by_email(self, email: str) -> Optional[User]:
        row = await self._db.fetchone("SELECT * FROM users WHERE email = ?;", (email.strip().lower(),))
        return self._row_to_user(row) if row else None

    async def get_by_google_id_or_email(self, google_id: str, email: str) -> Optional[User]:
        row = await self._db.fetchone(
            """
            SELECT *
            FROM users
            WHERE google_id = ? OR email = ?
            ORDER BY CASE WHEN google_id = ? THEN 0 ELSE 1 END
            LIMIT 1;
            """,
            (google_id, email, google_id),
        )
        return self._row_to_user(row) if row else None

    async def get_by_reset_token(self, token_hash: str, now: datetime) -> Optional[User]:
        row = await self._db.fetchone(
            """
            SELECT *
            FROM users
            WHERE reset_password_token = ? AND reset_password_expire > ?
            LIMIT 1;
            """,
            (token_hash, to_iso(now)),
        )
        return self._row_to_user(row) if row else None

    async def find_by_names(self, names: Sequence[str]) -> list[User]:
        if not names:
            return []
        marks = ",".join("?" for _ in names)
        rows = await self._db.fetchall(f"SELECT * FROM users WHERE name IN ({marks});", tuple(names))
        return [self._row_to_user(r) for r in rows]

    async def summaries(self, user_ids: Sequence[str]) -> Dict[str, UserSummary]:
        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        marks = ",".join("?" for _ in ids)
        rows = await self._db.fetchall(
            f"SELECT id, name, email, avatar_url FROM users WHERE id IN ({marks});",
            tuple(ids),
        )
        return {r["id"]: row_to_summary(r) for r in rows}

    async def delete(self, user_id: str) -> None:
        await self._db.execute("DELETE FROM users WHERE id = ?;", (user_id,))

    def _row_to_user(self, row) -> User:
        return User(
            id=row["id"],
            name=row["name"],
            email=row["email"],
            password_hash=row["password_hash"],
            google_id=row["google_id"],
            avatar_url=row["avatar_url"],
            preferences=UserPreferences(
                theme=row["theme"],
                timezone=row["timezone"],
                language=row["language"],
            ),
            created_at=from_iso(row["created_at"]),
            updated_at=from_iso(row["updated_at"]),
            reset_password_token=row["reset_password_token"],
            reset_password_expire=from_iso_opt(row["reset_password_expire"]),
        )
