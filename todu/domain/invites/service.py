from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass, replace
from datetime import timedelta
from typing import Optional

from todu.constants import INVITE_ACCEPTED, INVITE_EXPIRED, INVITE_PENDING, INVITE_TTL_DAYS, NOTIFY_SHARED_LIST
from todu.domain.accounts.ports import UserRepository
from todu.domain.common.errors import GoneError, NotFoundError, PermissionDeniedError
from todu.domain.common.ports import Clock, IdGenerator, Mailer
from todu.domain.invites.ports import InviteRepository
from todu.domain.lists.ports import ListRepository
from todu.domain.lists.rules import touch_list, validate_share_role
from todu.domain.notifications.service import NotificationService
from todu.domain.tasks.access import list_role
from todu.email_templates import render_list_invite
from todu.models import ListInvite, TaskList, User, UserSummary

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InviteDetails:
    invite: ListInvite
    list: Optional[TaskList]
    invited_by: Optional[UserSummary]


@dataclass(frozen=True)
class AcceptedInvite:
    list: TaskList
    already_shared: bool

    @property
    def message(self) -> str:
        if self.already_shared:
            return "List is already shared with you"
        return "Invitation accepted successfully"


class InviteService:
    """
    Email invitations to a list for people who do not have an account yet.
    """

    def __init__(
        self,
        repo: InviteRepository,
        lists: ListRepository,
        users: UserRepository,
        notifications: NotificationService,
        mailer: Mailer,
        clock: Clock,
        ids: IdGenerator,
        client_url: str,
    ) -> None:
        self._repo = repo
        self._lists = lists
        self._users = users
        self._notifications = notifications
        self._mailer = mailer
        self._clock = clock
        self._ids = ids
        self._client_url = client_url

    def invite_url(self, invite: ListInvite) -> str:
        return f"{self._client_url}/invite/{invite.token}"

    async def create_invite(self, inviter: User, lst: TaskList, email: str, role: str) -> ListInvite:
        validate_share_role(role)
        email = email.strip().lower()
        now = self._clock.now()

        invite = await self._repo.find_pending(lst.id, email)
        if invite and invite.is_valid(now):
            if invite.role != role:
                invite = replace(invite, role=role, updated_at=now)
                await self._repo.save(invite)
        else:
            invite = ListInvite(
                id=self._ids.new_id(),
                list_id=lst.id,
                invited_by=inviter.id,
                email=email,
                role=role,
                token=secrets.token_hex(32),
                status=INVITE_PENDING,
                expires_at=now + timedelta(days=INVITE_TTL_DAYS),
                created_at=now,
                updated_at=now,
            )
            await self._repo.insert(invite)

        rendered = render_list_invite(inviter, lst, role, self.invite_url(invite))
        try:
            await self._mailer.send(email, rendered.subject, rendered.text, rendered.html)
        except Exception as e:
            logger.warning("Invite email failed: list_id=%s, error=%s", lst.id, e)
        return invite

    async def _pending(self, token: str) -> ListInvite:
        invite = await self._repo.get_pending_by_token(token)
        if not invite:
            raise NotFoundError("Invitation not found or has expired")
        now = self._clock.now()
        if invite.expires_at <= now:
            await self._repo.save(replace(invite, status=INVITE_EXPIRED, updated_at=now))
            raise GoneError("This invitation has expired")
        return invite

    async def get(self, token: str) -> InviteDetails:
        invite = await self._pending(token)
        lst = await self._lists.get(invite.list_id)
        inviters = await self._users.summaries([invite.invited_by])
        return InviteDetails(invite=invite, list=lst, invited_by=inviters.get(invite.invited_by))

    async def accept(self, user_id: str, token: str) -> AcceptedInvite:
        invite = await self._pending(token)

        user = await self._users.get(user_id)
        if not user:
            raise NotFoundError("User not found")
        if user.email.lower() != invite.email.lower():
            raise PermissionDeniedError(
                "This invitation is for a different email address",
                details={"invitedEmail": invite.email, "yourEmail": user.email},
            )

        lst = await self._lists.get(invite.list_id)
        if not lst:
            raise NotFoundError("List not found")

        now = self._clock.now()
        accepted = replace(invite, status=INVITE_ACCEPTED, accepted_at=now, accepted_by=user_id, updated_at=now)

        if list_role(lst, user_id) is not None:
            await self._repo.save(accepted)
            return AcceptedInvite(list=lst, already_shared=True)

        await self._lists.add_collaborator(lst.id, user_id, invite.role, invite.created_at)
        await self._lists.save(touch_list(lst, now))
        await self._repo.save(accepted)

        inviter = await self._users.get(invite.invited_by)
        inviter_name = inviter.name if inviter else "Someone"
        await self._notifications.create(
            user_id=user_id,
            type_=NOTIFY_SHARED_LIST,
            title="List Shared With You",
            message=f'{inviter_name} shared the list "{lst.name}" with you'[:500],
            action_url=f"/dashboard?list={lst.id}",
            metadata={"listId": lst.id, "listName": lst.name, "sharedBy": inviter_name, "role": invite.role},
        )

        return AcceptedInvite(list=await self._lists.get(lst.id), already_shared=False)
