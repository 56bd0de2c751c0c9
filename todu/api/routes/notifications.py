from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Body, Depends, Query, status

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import notification_out
from todu.api.schemas import NotificationIdsInput, ProcessInput, TestNotificationInput
from todu.domain.common.errors import PermissionDeniedError
from todu.models import User

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _dev_only(c: Container) -> None:
    if c.settings.is_production:
        raise PermissionDeniedError("Not available in production")


@router.get("")
async def list_notifications(
    read: Optional[bool] = Query(None),
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    items = await c.notifications.list_for_user(user.id, read=read, limit=limit, skip=skip)
    return ok([notification_out(n) for n in items], count=len(items))


@router.get("/unread-count")
async def unread_count(user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok({"count": await c.notifications.unread_count(user.id)})


@router.patch("/read")
async def mark_read(
    body: NotificationIdsInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    n = await c.notifications.mark_read(user.id, body.notification_ids)
    return ok({"modifiedCount": n}, message="Notifications marked as read")


@router.patch("/read-all")
async def mark_all_read(user: User = Depends(require_user), c: Container = Depends(get_container)):
    n = await c.notifications.mark_all_read(user.id)
    return ok({"modifiedCount": n}, message="All notifications marked as read")


@router.delete("")
async def delete_notifications(
    body: NotificationIdsInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    n = await c.notifications.delete(user.id, body.notification_ids)
    return ok({"deletedCount": n}, message="Notifications deleted")


@router.post("/test", status_code=status.HTTP_201_CREATED)
async def create_test_notification(
    body: TestNotificationInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    _dev_only(c)
    notification = await c.notifications.create(user.id, body.type, body.title, body.message)
    return ok(notification_out(notification), message="Test notification created")


@router.post("/process")
async def process_notifications(
    body: Optional[ProcessInput] = Body(None),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    _dev_only(c)
    results = await c.sweeps.process(body.kind if body else "all")
    return ok(results, message="Notifications processed")
