# -*- coding: utf-8 -*-
"""Shared data models (users, lists, tasks and their side records)."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class UserPreferences:
    theme: str = "system"  # 'light' | 'dark' | 'system'
    timezone: str = "UTC"
    language: str = "en"


@dataclass(frozen=True)
class User:
    id: str
    name: str
    email: str
    password_hash: Optional[str]
    google_id: Optional[str]
    avatar_url: Optional[str]
    preferences: UserPreferences
    created_at: datetime
    updated_at: datetime
    reset_password_token: Optional[str] = None  # sha256 hex of the emailed token
    reset_password_expire: Optional[datetime] = None


@dataclass(frozen=True)
class UserSummary:
    id: str
    name: str
    email: str
    avatar_url: Optional[str]


@dataclass(frozen=True)
class Collaborator:
    user_id: str
    role: str  # 'viewer' | 'editor'
    invited_at: datetime
    user: Optional[UserSummary] = None


@dataclass(frozen=True)
class TaskList:
    id: str
    user_id: str
    name: str
    description: Optional[str]
    color: str
    icon: str
    order: int
    is_default: bool
    is_archived: bool
    task_count: int
    sync_version: int
    last_modified: datetime
    created_at: datetime
    updated_at: datetime
    shared_with: Tuple[Collaborator, ...] = ()


@dataclass(frozen=True)
class Subtask:
    id: str
    title: str
    done: bool = False


@dataclass(frozen=True)
class Recurrence:
    frequency: str  # 'daily' | 'weekly' | 'monthly' | 'yearly'
    interval: int
    end_date: Optional[datetime] = None


@dataclass(frozen=True)
class Task:
    id: str
    user_id: str
    list_id: Optional[str]
    title: str
    description: Optional[str]
    status: str
    priority: str
    tags: Tuple[str, ...]
    subtasks: Tuple[Subtask, ...]
    due_date: Optional[datetime]
    reminder_date: Optional[datetime]
    recurrence: Optional[Recurrence]
    order: int
    completed_at: Optional[datetime]
    sync_version: int
    last_modified: datetime
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class TaskQuery:
    """Filters for listing tasks. ``list_id=None`` with ``no_list=True`` means inbox tasks."""
    user_id: str
    list_id: Optional[str] = None
    no_list: bool = False
    visible_list_ids: Tuple[str, ...] = ()
    status: Optional[str] = None
    priority: Optional[str] = None
    tags: Tuple[str, ...] = ()
    search: Optional[str] = None
    due_from: Optional[datetime] = None
    due_to: Optional[datetime] = None
    sort_by: str = "order"
    descending: bool = False


@dataclass(frozen=True)
class TaskStats:
    total: int
    completed: int
    in_progress: int
    overdue: int
    by_priority: Tuple[Tuple[str, int], ...]
    by_list: Tuple[Tuple[Optional[str], Optional[str], int], ...]  # (list_id, list_name, count)

    @property
    def todo(self) -> int:
        return self.total - self.completed - self.in_progress


@dataclass(frozen=True)
class Comment:
    id: str
    task_id: str
    user_id: str
    content: str
    mentions: Tuple[str, ...]
    created_at: datetime
    updated_at: datetime
    author: Optional[UserSummary] = None


@dataclass(frozen=True)
class Notification:
    id: str
    user_id: str
    task_id: Optional[str]
    type: str
    title: str
    message: str
    read: bool
    read_at: Optional[datetime]
    action_url: Optional[str]
    metadata: Dict[str, Any]
    created_at: datetime
    updated_at: datetime


@dataclass(frozen=True)
class Activity:
    id: str
    user_id: str
    task_id: Optional[str]
    list_id: Optional[str]
    type: str
    description: str
    metadata: Dict[str, Any]
    visibility: str
    created_at: datetime
    actor: Optional[UserSummary] = None
    task_title: Optional[str] = None
    task_status: Optional[str] = None
    list_name: Optional[str] = None


@dataclass(frozen=True)
class Message:
    id: str
    sender_id: str
    receiver_id: str
    content: str
    is_read: bool
    read_at: Optional[datetime]
    conversation_id: str
    created_at: datetime
    updated_at: datetime
    sender: Optional[UserSummary] = None
    receiver: Optional[UserSummary] = None


@dataclass(frozen=True)
class Conversation:
    conversation_id: str
    other_user: Optional[UserSummary]
    last_content: str
    last_created_at: datetime
    is_from_me: bool
    unread_count: int


@dataclass(frozen=True)
class ListInvite:
    id: str
    list_id: str
    invited_by: str
    email: str
    role: str
    token: str
    status: str  # 'pending' | 'accepted' | 'expired'
    expires_at: datetime
    created_at: datetime
    updated_at: datetime
    accepted_at: Optional[datetime] = None
    accepted_by: Optional[str] = None

    def is_valid(self, now: datetime) -> bool:
        return self.status == "pending" and self.expires_at > now


@dataclass
class SweepResult:
    processed: int = 0
    errors: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {"processed": self.processed, "errors": self.errors}


@dataclass(frozen=True)
class AuthResult:
    token: str
    user: User
    message: str = "Login successful"


@dataclass(frozen=True)
class UpdateBatch:
    """One entry of a bulk update request: the target id and its field updates."""
    id: str
    updates: Dict[str, Any] = field(default_factory=dict)
