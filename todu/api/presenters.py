"""
JSON shapes returned to the web client. Keys are camelCase and datetimes
are ISO-8601 strings; secrets (password hash, reset token) never leave here.
"""
from __future__ import annotations

from typing import Any, Dict, Optional

from todu.domain.common.time import to_iso, to_iso_opt
from todu.domain.invites.service import InviteDetails
from todu.domain.lists.service import ShareOutcome
from todu.models import (
    Activity,
    Collaborator,
    Comment,
    Conversation,
    ListInvite,
    Message,
    Notification,
    Task,
    TaskList,
    TaskStats,
    User,
    UserSummary,
)


def user_summary(u: Optional[UserSummary]) -> Optional[Dict[str, Any]]:
    if u is None:
        return None
    return {"id": u.id, "name": u.name, "email": u.email, "avatarUrl": u.avatar_url}


def user_out(u: User) -> Dict[str, Any]:
    return {
        "id": u.id,
        "name": u.name,
        "email": u.email,
        "avatarUrl": u.avatar_url,
        "hasPassword": bool(u.password_hash),
        "googleLinked": bool(u.google_id),
        "preferences": {
            "theme": u.preferences.theme,
            "timezone": u.preferences.timezone,
            "language": u.preferences.language,
        },
        "createdAt": to_iso(u.created_at),
        "updatedAt": to_iso(u.updated_at),
    }


def collaborator_out(c: Collaborator) -> Dict[str, Any]:
    return {
        "userId": user_summary(c.user) or c.user_id,
        "role": c.role,
        "invitedAt": to_iso(c.invited_at),
    }


def list_out(lst: TaskList) -> Dict[str, Any]:
    return {
        "id": lst.id,
        "userId": lst.user_id,
        "name": lst.name,
        "description": lst.description,
        "color": lst.color,
        "icon": lst.icon,
        "order": lst.order,
        "isDefault": lst.is_default,
        "isArchived": lst.is_archived,
        "taskCount": lst.task_count,
        "sharedWith": [collaborator_out(c) for c in lst.shared_with],
        "syncVersion": lst.sync_version,
        "lastModified": to_iso(lst.last_modified),
        "createdAt": to_iso(lst.created_at),
        "updatedAt": to_iso(lst.updated_at),
    }


def task_out(t: Task) -> Dict[str, Any]:
    recurrence = None
    if t.recurrence is not None:
        recurrence = {
            "frequency": t.recurrence.frequency,
            "interval": t.recurrence.interval,
            "endDate": to_iso_opt(t.recurrence.end_date),
        }
    return {
        "id": t.id,
        "userId": t.user_id,
        "listId": t.list_id,
        "title": t.title,
        "description": t.description,
        "status": t.status,
        "priority": t.priority,
        "tags": list(t.tags),
        "subtasks": [{"id": s.id, "title": s.title, "done": s.done} for s in t.subtasks],
        "dueDate": to_iso_opt(t.due_date),
        "reminderDate": to_iso_opt(t.reminder_date),
        "recurrence": recurrence,
        "order": t.order,
        "completedAt": to_iso_opt(t.completed_at),
        "syncVersion": t.sync_version,
        "lastModified": to_iso(t.last_modified),
        "createdAt": to_iso(t.created_at),
        "updatedAt": to_iso(t.updated_at),
    }


def stats_out(s: TaskStats) -> Dict[str, Any]:
    return {
        "total": s.total,
        "completed": s.completed,
        "inProgress": s.in_progress,
        "todo": s.todo,
        "overdue": s.overdue,
        "byPriority": [{"priority": p, "count": n} for p, n in s.by_priority],
        "byList": [{"listId": lid, "listName": name, "count": n} for lid, name, n in s.by_list],
    }


def comment_out(c: Comment) -> Dict[str, Any]:
    return {
        "id": c.id,
        "taskId": c.task_id,
        "userId": user_summary(c.author) or c.user_id,
        "content": c.content,
        "mentions": list(c.mentions),
        "createdAt": to_iso(c.created_at),
        "updatedAt": to_iso(c.updated_at),
    }


def notification_out(n: Notification) -> Dict[str, Any]:
    return {
        "id": n.id,
        "userId": n.user_id,
        "taskId": n.task_id,
        "type": n.type,
        "title": n.title,
        "message": n.message,
        "read": n.read,
        "readAt": to_iso_opt(n.read_at),
        "actionUrl": n.action_url,
        "metadata": n.metadata,
        "createdAt": to_iso(n.created_at),
        "updatedAt": to_iso(n.updated_at),
    }


def activity_out(a: Activity) -> Dict[str, Any]:
    task = None
    if a.task_id and a.task_title is not None:
        task = {"id": a.task_id, "title": a.task_title, "status": a.task_status}
    lst = None
    if a.list_id and a.list_name is not None:
        lst = {"id": a.list_id, "name": a.list_name}
    return {
        "id": a.id,
        "userId": user_summary(a.actor) or a.user_id,
        "taskId": task or a.task_id,
        "listId": lst or a.list_id,
        "type": a.type,
        "description": a.description,
        "metadata": a.metadata,
        "visibility": a.visibility,
        "createdAt": to_iso(a.created_at),
    }


def message_out(m: Message) -> Dict[str, Any]:
    return {
        "id": m.id,
        "senderId": user_summary(m.sender) or m.sender_id,
        "receiverId": user_summary(m.receiver) or m.receiver_id,
        "content": m.content,
        "isRead": m.is_read,
        "readAt": to_iso_opt(m.read_at),
        "conversationId": m.conversation_id,
        "createdAt": to_iso(m.created_at),
        "updatedAt": to_iso(m.updated_at),
    }


def conversation_out(c: Conversation) -> Dict[str, Any]:
    return {
        "conversationId": c.conversation_id,
        "otherUser": user_summary(c.other_user),
        "lastMessage": {
            "content": c.last_content,
            "createdAt": to_iso(c.last_created_at),
            "isFromMe": c.is_from_me,
        },
        "unreadCount": c.unread_count,
    }


def invite_out(i: ListInvite) -> Dict[str, Any]:
    return {
        "id": i.id,
        "listId": i.list_id,
        "email": i.email,
        "role": i.role,
        "status": i.status,
        "expiresAt": to_iso(i.expires_at),
        "createdAt": to_iso(i.created_at),
    }


def invite_details_out(d: InviteDetails) -> Dict[str, Any]:
    lst = None
    if d.list is not None:
        lst = {
            "id": d.list.id,
            "name": d.list.name,
            "description": d.list.description,
            "color": d.list.color,
            "icon": d.list.icon,
        }
    return {
        "email": d.invite.email,
        "role": d.invite.role,
        "expiresAt": to_iso(d.invite.expires_at),
        "list": lst,
        "invitedBy": user_summary(d.invited_by),
    }


def share_out(outcome: ShareOutcome) -> Dict[str, Any]:
    out = list_out(outcome.list)
    if outcome.invite is not None:
        out["invite"] = invite_out(outcome.invite)
    return out
