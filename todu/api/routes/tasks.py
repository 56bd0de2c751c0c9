from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import comment_out, stats_out, task_out
from todu.api.schemas import BulkUpdateInput, CommentInput, TaskCreateInput, TaskUpdateInput, validate_updates
from todu.domain.common.errors import ValidationError
from todu.models import TaskQuery, UpdateBatch, User

router = APIRouter(prefix="/tasks", tags=["tasks"])

# client sort key -> repository sort key
SORT_KEYS = {
    "order": "order",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "dueDate": "due_date",
    "priority": "priority",
    "title": "title",
    "status": "status",
}


def _day_window(raw: str, c: Container) -> tuple[datetime, datetime]:
    """[local midnight, next local midnight) of the given calendar day."""
    try:
        day = date.fromisoformat(raw[:10])
    except ValueError:
        raise ValidationError("Invalid dueDate, expected YYYY-MM-DD")
    tz = c.clock.local_now().tzinfo
    start = datetime(day.year, day.month, day.day, tzinfo=tz)
    return start, start + timedelta(days=1)


@router.get("")
async def list_tasks(
    list_id: Optional[str] = Query(None, alias="listId"),
    status_: Optional[str] = Query(None, alias="status"),
    priority: Optional[str] = Query(None),
    tags: Optional[List[str]] = Query(None),
    search: Optional[str] = Query(None),
    due_date: Optional[str] = Query(None, alias="dueDate"),
    sort_by: str = Query("order", alias="sortBy"),
    sort_order: str = Query("asc", alias="sortOrder"),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    no_list = list_id in ("null", "")
    due_from = due_to = None
    if due_date:
        due_from, due_to = _day_window(due_date, c)

    query = TaskQuery(
        user_id=user.id,
        list_id=None if no_list else list_id,
        no_list=no_list,
        status=status_ or None,
        priority=priority or None,
        # ?tags=a,b and ?tags=a&tags=b are both accepted
        tags=tuple(t.strip() for raw in tags or () for t in raw.split(",") if t.strip()),
        search=(search or "").strip() or None,
        due_from=due_from,
        due_to=due_to,
        sort_by=SORT_KEYS.get(sort_by, "order"),
        descending=sort_order.lower() == "desc",
    )
    tasks = await c.tasks.list(query)
    return ok([task_out(t) for t in tasks], count=len(tasks))


@router.get("/stats")
async def task_stats(user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok(stats_out(await c.tasks.stats(user.id)))


@router.patch("/bulk")
async def bulk_update_tasks(
    body: BulkUpdateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    batches = [UpdateBatch(id=e.id, updates=validate_updates(TaskUpdateInput, e.updates)) for e in body.updates]
    tasks = await c.tasks.bulk_update(user.id, batches)
    return ok([task_out(t) for t in tasks], message=f"{len(tasks)} tasks updated", count=len(tasks))


@router.get("/{task_id}")
async def get_task(task_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok(task_out(await c.tasks.get(user.id, task_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_task(
    body: TaskCreateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    task = await c.tasks.create(user.id, body.changes())
    return ok(task_out(task), message="Task created successfully")


@router.patch("/{task_id}")
async def update_task(
    task_id: str,
    body: TaskUpdateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    task = await c.tasks.update(user.id, task_id, body.changes())
    return ok(task_out(task), message="Task updated successfully")


@router.delete("/{task_id}")
async def delete_task(task_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    await c.tasks.delete(user.id, task_id)
    return ok(message="Task deleted successfully")


# comments are nested under their task


@router.get("/{task_id}/comments")
async def list_comments(task_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    comments = await c.comments.for_task(user.id, task_id)
    return ok([comment_out(x) for x in comments], count=len(comments))


@router.post("/{task_id}/comments", status_code=status.HTTP_201_CREATED)
async def create_comment(
    task_id: str,
    body: CommentInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    comment = await c.comments.create(user.id, task_id, body.content or "")
    return ok(comment_out(comment), message="Comment added successfully")
