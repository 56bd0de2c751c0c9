"""
Request bodies for the HTTP API.

Fields are declared in snake_case and accepted in the client's camelCase.
Services receive ``model_dump(exclude_unset=True)`` so that a field the
client did not send is never treated as an update.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from todu.domain.common.errors import ValidationError

TaskStatus = Literal["todo", "in-progress", "done"]
TaskPriority = Literal["low", "medium", "high", "urgent"]
ShareRole = Literal["viewer", "editor"]
HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


class ApiInput(BaseModel):
    """Base input model with common configuration."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# Auth
# =============================================================================


class SignupInput(ApiInput):
    # checked by the account rules so every problem is reported together
    name: str = ""
    email: str = ""
    password: str = Field(default="", json_schema_extra={"format": "password"})


class LoginInput(ApiInput):
    email: str = ""
    password: str = ""


class GoogleVerifyInput(ApiInput):
    credential: Optional[str] = None


class PreferencesInput(ApiInput):
    theme: Optional[Literal["light", "dark", "system"]] = None
    timezone: Optional[str] = None
    language: Optional[str] = None


class ProfileUpdateInput(ApiInput):
    name: Optional[str] = Field(default=None, max_length=100)
    email: Optional[str] = None
    avatar_url: Optional[str] = None
    preferences: Optional[PreferencesInput] = None


class ChangePasswordInput(ApiInput):
    current_password: str = ""
    new_password: str = ""


class ForgotPasswordInput(ApiInput):
    email: str = ""


class ResetPasswordInput(ApiInput):
    password: str = ""


class DeleteAccountInput(ApiInput):
    password: Optional[str] = None
    confirm_delete: Optional[str] = None


# =============================================================================
# Tasks
# =============================================================================


class SubtaskInput(ApiInput):
    id: Optional[str] = None
    title: str = Field(..., min_length=1, max_length=500)
    done: bool = False


class RecurrenceInput(ApiInput):
    frequency: Literal["daily", "weekly", "monthly", "yearly"]
    interval: int = Field(default=1, ge=1)
    end_date: Optional[datetime] = None


class TaskUpdateInput(ApiInput):
    title: Optional[str] = Field(default=None, min_length=1, max_length=500)
    description: Optional[str] = Field(default=None, max_length=5000)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    tags: Optional[List[str]] = None
    subtasks: Optional[List[SubtaskInput]] = None
    due_date: Optional[datetime] = None
    reminder_date: Optional[datetime] = None
    recurrence: Optional[RecurrenceInput] = None
    list_id: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)


class TaskCreateInput(TaskUpdateInput):
    title: str = Field(..., min_length=1, max_length=500)


class BulkEntry(ApiInput):
    id: str
    updates: Dict[str, Any] = Field(default_factory=dict)


class BulkUpdateInput(ApiInput):
    updates: List[BulkEntry]


# =============================================================================
# Lists
# =============================================================================


class ListUpdateInput(ApiInput):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    color: Optional[str] = Field(default=None, pattern=HEX_COLOR)
    icon: Optional[str] = None
    order: Optional[int] = Field(default=None, ge=0)
    is_default: Optional[bool] = None
    is_archived: Optional[bool] = None


class ListCreateInput(ListUpdateInput):
    name: str = Field(..., min_length=1, max_length=100)
    is_default: bool = False


class ArchiveInput(ApiInput):
    is_archived: bool


class ShareInput(ApiInput):
    email: str = Field(..., min_length=3)
    role: ShareRole = "viewer"


# =============================================================================
# Comments, notifications, messages
# =============================================================================


class CommentInput(ApiInput):
    content: Optional[str] = None


class NotificationIdsInput(ApiInput):
    notification_ids: List[str] = Field(..., min_length=1)


class TestNotificationInput(ApiInput):
    title: str = ""
    message: str = ""
    type: str = "system"


class ProcessInput(ApiInput):
    kind: str = "all"


class MessageInput(ApiInput):
    receiver_id: Optional[str] = None
    content: Optional[str] = None


def validate_updates(model: Type[ApiInput], raw: Dict[str, Any]) -> Dict[str, Any]:
    """Validate one bulk entry's ``updates`` object and return its snake_case changes."""
    try:
        return model.model_validate(raw).changes()
    except PydanticValidationError as e:
        details = [{"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]} for err in e.errors()]
        raise ValidationError("Validation failed", details)
