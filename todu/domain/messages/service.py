from __future__ import annotations

from typing import Optional

from todu.constants import CONVERSATION_PAGE_SIZE, MESSAGE_MAX_LENGTH, NOTIFY_MESSAGE
from todu.domain.accounts.ports import UserRepository
from todu.domain.common.errors import NotFoundError, ValidationError
from todu.domain.common.ports import Clock, IdGenerator
from todu.domain.messages.ports import MessageRepository
from todu.domain.notifications.service import NotificationService
from todu.models import Conversation, Message


def conversation_id_for(user_a: str, user_b: str) -> str:
    """Stable id for a pair of users, independent of who sent first."""
    return "_".join(sorted((user_a, user_b)))


class MessageService:
    def __init__(
        self,
        repo: MessageRepository,
        users: UserRepository,
        notifications: NotificationService,
        clock: Clock,
        ids: IdGenerator,
    ) -> None:
        self._repo = repo
        self._users = users
        self._notifications = notifications
        self._clock = clock
        self._ids = ids

    async def conversations(self, user_id: str) -> list[Conversation]:
        return await self._repo.conversations_for(user_id)

    async def with_user(self, user_id: str, other_user_id: str) -> list[Message]:
        """Last messages with another user, oldest first. Received ones are marked read."""
        if await self._users.get(other_user_id) is None:
            raise NotFoundError("User not found")
        conversation_id = conversation_id_for(user_id, other_user_id)
        messages = await self._repo.conversation(conversation_id, CONVERSATION_PAGE_SIZE)
        await self._repo.mark_conversation_read(conversation_id, user_id, self._clock.now())
        return messages

    async def send(self, sender_id: str, receiver_id: Optional[str], content: Optional[str]) -> Message:
        content = (content or "").strip()
        if not receiver_id or not content:
            raise ValidationError("Receiver and content are required")
        if len(content) > MESSAGE_MAX_LENGTH:
            raise ValidationError(f"Message is too long (max {MESSAGE_MAX_LENGTH} chars).")
        if receiver_id == sender_id:
            raise ValidationError("Cannot send message to yourself")
        if await self._users.get(receiver_id) is None:
            raise NotFoundError("Receiver not found")

        now = self._clock.now()
        message = Message(
            id=self._ids.new_id(),
            sender_id=sender_id,
            receiver_id=receiver_id,
            content=content,
            is_read=False,
            read_at=None,
            conversation_id=conversation_id_for(sender_id, receiver_id),
            created_at=now,
            updated_at=now,
        )
        await self._repo.insert(message)

        sender = await self._users.get(sender_id)
        sender_name = sender.name if sender else "A user"
        await self._notifications.create(
            user_id=receiver_id,
            type_=NOTIFY_MESSAGE,
            title="New Message",
            message=f"New message from {sender_name}"[:500],
            action_url=f"/messages?user={sender_id}",
            metadata={"messageId": message.id, "senderId": sender_id},
        )
        return await self._repo.get(message.id)

    async def mark_read(self, user_id: str, message_id: str) -> Message:
        message = await self._repo.get(message_id)
        if message is None or message.receiver_id != user_id:
            raise NotFoundError("Message not found")
        await self._repo.mark_read(message_id, self._clock.now())
        return await self._repo.get(message_id)

    async def unread_count(self, user_id: str) -> int:
        return await self._repo.unread_count(user_id)
