from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import activity_out
from todu.models import User

router = APIRouter(prefix="/activities", tags=["activities"])


@router.get("")
async def feed(
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    items = await c.activities.feed(user.id, limit=limit, skip=skip)
    return ok([activity_out(a) for a in items], count=len(items))


@router.get("/lists/{list_id}")
async def list_activities(
    list_id: str,
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    items = await c.activities.for_list(user.id, list_id, limit=limit, skip=skip)
    return ok([activity_out(a) for a in items], count=len(items))


@router.get("/tasks/{task_id}")
async def task_activities(
    task_id: str,
    limit: int = Query(50, ge=1, le=100),
    skip: int = Query(0, ge=0),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    items = await c.activities.for_task(user.id, task_id, limit=limit, skip=skip)
    return ok([activity_out(a) for a in items], count=len(items))
