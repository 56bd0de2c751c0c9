from __future__ import annotations

from fastapi import APIRouter, Depends, status

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import conversation_out, message_out
from todu.api.schemas import MessageInput
from todu.models import User

router = APIRouter(prefix="/messages", tags=["messages"])


@router.get("/conversations")
async def conversations(user: User = Depends(require_user), c: Container = Depends(get_container)):
    items = await c.messages.conversations(user.id)
    return ok([conversation_out(x) for x in items], count=len(items))


@router.get("/unread-count")
async def unread_count(user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok({"count": await c.messages.unread_count(user.id)})


@router.get("/{other_user_id}")
async def conversation(other_user_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    items = await c.messages.with_user(user.id, other_user_id)
    return ok([message_out(m) for m in items], count=len(items))


@router.post("", status_code=status.HTTP_201_CREATED)
async def send_message(
    body: MessageInput,
    user: User = Depends(require_user),
    c: Container = Depends(get_container),
):
    message = await c.messages.send(user.id, body.receiver_id, body.content)
    return ok(message_out(message), message="Message sent")


@router.patch("/{message_id}/read")
async def mark_read(message_id: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    return ok(message_out(await c.messages.mark_read(user.id, message_id)))
