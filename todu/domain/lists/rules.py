from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

from todu.constants import SHARE_ROLES
from todu.domain.common.errors import ValidationError
from todu.models import TaskList

MAX_NAME_LENGTH = 100
MAX_DESCRIPTION_LENGTH = 500


def touch_list(lst: TaskList, now: datetime, **changes: Any) -> TaskList:
    """Apply changes and bump the sync counters, as every list save does."""
    return replace(
        lst,
        **changes,
        sync_version=lst.sync_version + 1,
        last_modified=now,
        updated_at=now,
    )


def normalize_name(name: Optional[str]) -> str:
    n = (name or "").strip()
    if not n:
        raise ValidationError("List name is required.")
    if len(n) > MAX_NAME_LENGTH:
        raise ValidationError(f"List name is too long (max {MAX_NAME_LENGTH} chars).")
    return n


def normalize_description(description: Optional[str]) -> Optional[str]:
    if description is None:
        return None
    d = description.strip()
    if len(d) > MAX_DESCRIPTION_LENGTH:
        raise ValidationError(f"Description is too long (max {MAX_DESCRIPTION_LENGTH} chars).")
    return d or None


def validate_share_role(role: str) -> str:
    if role not in SHARE_ROLES:
        raise ValidationError("Role must be 'viewer' or 'editor'")
    return role
