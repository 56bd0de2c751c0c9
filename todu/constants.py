"""
Constants for task/list state, sharing roles, notifications and activities.
"""
from __future__ import annotations

# Task status
TASK_STATUS_TODO = "todo"
TASK_STATUS_IN_PROGRESS = "in-progress"
TASK_STATUS_DONE = "done"
TASK_STATUSES = (TASK_STATUS_TODO, TASK_STATUS_IN_PROGRESS, TASK_STATUS_DONE)

# Task priority
PRIORITY_LOW = "low"
PRIORITY_MEDIUM = "medium"
PRIORITY_HIGH = "high"
PRIORITY_URGENT = "urgent"
TASK_PRIORITIES = (PRIORITY_LOW, PRIORITY_MEDIUM, PRIORITY_HIGH, PRIORITY_URGENT)

RECURRENCE_FREQUENCIES = ("daily", "weekly", "monthly", "yearly")

# Sharing roles (stored in list_collaborators.role)
ROLE_OWNER = "owner"
ROLE_EDITOR = "editor"
ROLE_VIEWER = "viewer"
SHARE_ROLES = (ROLE_VIEWER, ROLE_EDITOR)

# Invite status
INVITE_PENDING = "pending"
INVITE_ACCEPTED = "accepted"
INVITE_EXPIRED = "expired"
INVITE_TTL_DAYS = 7

# Notification types
NOTIFY_REMINDER = "reminder"
NOTIFY_TASK_DUE = "task_due"
NOTIFY_TASK_OVERDUE = "task_overdue"
NOTIFY_SHARED_LIST = "shared_list"
NOTIFY_COMMENT = "comment"
NOTIFY_MENTION = "mention"
NOTIFY_MESSAGE = "message"
NOTIFY_SYSTEM = "system"
NOTIFICATION_TYPES = (
    NOTIFY_REMINDER,
    NOTIFY_TASK_DUE,
    NOTIFY_TASK_OVERDUE,
    NOTIFY_SHARED_LIST,
    NOTIFY_COMMENT,
    NOTIFY_MENTION,
    NOTIFY_MESSAGE,
    NOTIFY_SYSTEM,
)
READ_NOTIFICATION_TTL_DAYS = 30
REMINDER_WINDOW_SECONDS = 60
OVERDUE_DEDUP_HOURS = 24

# Activity types (stored in activities.type)
ACTIVITY_TASK_CREATED = "task_created"
ACTIVITY_TASK_UPDATED = "task_updated"
ACTIVITY_TASK_DELETED = "task_deleted"
ACTIVITY_TASK_STATUS_CHANGED = "task_status_changed"
ACTIVITY_TASK_ASSIGNED = "task_assigned"
ACTIVITY_COMMENT_ADDED = "comment_added"
ACTIVITY_LIST_CREATED = "list_created"
ACTIVITY_LIST_SHARED = "list_shared"
ACTIVITY_COLLABORATOR_ADDED = "collaborator_added"
ACTIVITY_COLLABORATOR_REMOVED = "collaborator_removed"

VISIBILITY_PRIVATE = "private"
VISIBILITY_TEAM = "team"

# Starter lists created for every new account; only the first is the default
STARTER_LISTS = (
    {"name": "Inbox", "description": "Default inbox for all unorganized tasks", "icon": "inbox", "color": "#3B82F6", "is_default": True},
    {"name": "Today", "description": "Tasks to complete today", "icon": "calendar", "color": "#10B981", "is_default": False},
    {"name": "Upcoming", "description": "Tasks scheduled for the future", "icon": "clock", "color": "#F59E0B", "is_default": False},
)
DEFAULT_LIST_COLOR = "#3b82f6"
DEFAULT_LIST_ICON = "📝"

# Account rules
MIN_PASSWORD_LENGTH = 6
PASSWORD_RESET_TTL_MINUTES = 10
DELETE_ACCOUNT_CONFIRMATION = "DELETE MY ACCOUNT"

# Avatar upload
AVATAR_MAX_BYTES = 5 * 1024 * 1024
AVATAR_EXTENSIONS = ("jpeg", "jpg", "png", "gif", "webp")

MESSAGE_MAX_LENGTH = 2000
CONVERSATION_PAGE_SIZE = 100
