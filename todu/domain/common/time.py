from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def ensure_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        raise ValueError("datetime must be timezone-aware")
    return dt


def as_utc(dt: datetime) -> datetime:
    # naive input from the API is taken as UTC
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: datetime) -> str:
    ensure_aware(dt)
    # fixed-width UTC so stored values compare correctly as text
    return dt.astimezone(timezone.utc).isoformat(timespec="microseconds")


def to_iso_opt(dt: Optional[datetime]) -> Optional[str]:
    return to_iso(dt) if dt is not None else None


def from_iso(s: str) -> datetime:
    return datetime.fromisoformat(s)


def from_iso_opt(s: Optional[str]) -> Optional[datetime]:
    return from_iso(s) if s else None
