from __future__ import annotations

from fastapi import APIRouter, Depends

from todu.api.container import Container
from todu.api.deps import get_container, ok, require_user
from todu.api.presenters import invite_details_out, list_out
from todu.models import User

router = APIRouter(prefix="/invites", tags=["invites"])


@router.get("/{token}")
async def get_invite(token: str, c: Container = Depends(get_container)):
    """Public: the invite page shows this before the person signs in."""
    return ok(invite_details_out(await c.invites.get(token)))


@router.post("/{token}/accept")
async def accept_invite(token: str, user: User = Depends(require_user), c: Container = Depends(get_container)):
    accepted = await c.invites.accept(user.id, token)
    return ok(list_out(accepted.list), message=accepted.message)
