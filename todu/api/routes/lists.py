from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import list_out, share_out
from todu.api.schemas import ArchiveInput, BulkUpdateInput, ListCreateInput, ListUpdateInput, ShareInput, validate_updates
from todu.models import UpdateBatch, User

router = APIRouter(prefix="/lists", tags=["lists"])


@router.get("")
async def list_lists(
    include_archived: bool = Query(False, alias="includeArchived"),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    lists = await c.lists.list_for_user(user.id, include_archived)
    return ok([list_out(x) for x in lists], count=len(lists))


@router.patch("/bulk")
async def bulk_update_lists(
    body: BulkUpdateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    batches = [UpdateBatch(id=e.id, updates=validate_updates(ListUpdateInput, e.updates)) for e in body.updates]
    lists = await c.lists.bulk_update(user.id, batches)
    return ok([list_out(x) for x in lists], message=f"{len(lists)} lists updated", count=len(lists))


@router.get("/{list_id}")
async def get_list(list_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok(list_out(await c.lists.get(user.id, list_id)))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_list(
    body: ListCreateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    lst = await c.lists.create(
        user.id,
        body.name,
        description=body.description,
        color=body.color,
        icon=body.icon,
        is_default=body.is_default,
        order=body.order,
    )
    return ok(list_out(lst), message="List created successfully")


@router.patch("/{list_id}")
async def update_list(
    list_id: str,
    body: ListUpdateInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    lst = await c.lists.update(user.id, list_id, body.changes())
    return ok(list_out(lst), message="List updated successfully")


@router.patch("/{list_id}/archive")
async def archive_list(
    list_id: str,
    body: ArchiveInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    lst = await c.lists.archive(user.id, list_id, body.is_archived)
    message = "List archived successfully" if body.is_archived else "List unarchived successfully"
    return ok(list_out(lst), message=message)


@router.delete("/{list_id}")
async def delete_list(
    list_id: str,
    move_tasks_to_list_id: Optional[str] = Query(None, alias="moveTasksToListId"),
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    await c.lists.delete(user.id, list_id, move_tasks_to_list_id or None)
    return ok(message="List deleted successfully")


@router.post("/{list_id}/refresh-count")
async def refresh_count(list_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    lst = await c.lists.refresh_count(user.id, list_id)
    return ok(list_out(lst), message="Task count refreshed")


@router.post("/{list_id}/share")
async def share_list(
    list_id: str,
    body: ShareInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    outcome = await c.lists.share(user.id, list_id, body.email, body.role)
    return ok(share_out(outcome), message=outcome.message)


@router.delete("/{list_id}/collaborators/{collaborator_id}")
async def remove_collaborator(
    list_id: str,
    collaborator_id: str,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    lst = await c.lists.remove_collaborator(user.id, list_id, collaborator_id)
    return ok(list_out(lst), message="Collaborator removed successfully")


@router.post("/{list_id}/leave")
async def leave_list(list_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    await c.lists.leave(user.id, list_id)
    return ok(message="You have left the list")
