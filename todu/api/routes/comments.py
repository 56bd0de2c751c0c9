from __future__ import annotations

from fastapi import APIRouter, Depends

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import comment_out
from todu.api.schemas import CommentInput
from todu.models import User

router = APIRouter(prefix="/comments", tags=["comments"])


@router.patch("/{comment_id}")
async def update_comment(
    comment_id: str,
    body: CommentInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    comment = await c.comments.update(user.id, comment_id, body.content or "")
    return ok(comment_out(comment), message="Comment updated successfully")


@router.delete("/{comment_id}")
async def delete_comment(comment_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    await c.comments.delete(user.id, comment_id)
    return ok(message="Comment deleted successfully")
