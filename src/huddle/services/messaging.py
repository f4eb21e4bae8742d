"""Message routing: persistence, live fan-out and conversation lookup.

``MessageRouter.send`` commits the message before pushing it anywhere, so a
message that reached a client is always in the transcript. Live delivery is
at most once; a recipient without a connection reads the message from
history later.
"""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import and_, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from huddle.core.errors import Forbidden, NotFound, StorageFailure, ValidationError
from huddle.core.settings import settings
from huddle.models import Message, NotificationType, User
from huddle.schemas.message import MessageResponse
from huddle.services.notifications import NotificationService
from huddle.services.presence import PresenceRegistry, get_presence_registry
from huddle.services.storage import commit

logger = logging.getLogger(__name__)

RECEIVE_MESSAGE_EVENT = "receive_message"


def serialize_message(message: Message) -> dict[str, Any]:
    """Render a message with sender and recipient summaries, JSON-ready."""
    return MessageResponse.model_validate(message).model_dump(mode="json")


class MessageRouter:
    """Sends, deletes and lists messages for one database session."""

    def __init__(
        self,
        db: Session,
        presence: PresenceRegistry | None = None,
        notifier: NotificationService | None = None,
    ) -> None:
        self.db = db
        self.presence = presence or get_presence_registry()
        self.notifier = notifier or NotificationService(db)

    async def send(self, sender_id: int, recipient_id: int, text: str) -> Message:
        """Persist a message, push it to both parties and notify the recipient.

        Raises:
            ValidationError: If the text is blank or too long.
            NotFound: If the sender or recipient does not exist.
            StorageFailure: If the message cannot be read or written.
        """
        body = (text or "").strip()
        if not body:
            raise ValidationError("Message text is required")
        if len(body) > settings.max_message_length:
            raise ValidationError(f"Message exceeds {settings.max_message_length} characters")
        if self._load_user(sender_id) is None:
            raise NotFound("Sender not found")
        if self._load_user(recipient_id) is None:
            raise NotFound("Recipient not found")

        message = Message(sender_id=sender_id, recipient_id=recipient_id, text=body)
        self.db.add(message)
        commit(self.db, action=f"storing message {sender_id}->{recipient_id}")
        try:
            self.db.refresh(message)
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.exception("Storage failure while reloading message %s->%s", sender_id, recipient_id)
            raise StorageFailure() from err
        logger.info("Stored message %s from user %s to user %s", message.id, sender_id, recipient_id)

        payload = serialize_message(message)
        await self._deliver(recipient_id, payload)
        if sender_id != recipient_id:
            await self._deliver(sender_id, payload)

        if sender_id != recipient_id:
            self.notifier.emit(recipient_id, NotificationType.MESSAGE, sender_id)
        return message

    def _load_user(self, user_id: int) -> User | None:
        try:
            return self.db.get(User, user_id)
        except SQLAlchemyError as err:
            self.db.rollback()
            logger.exception("Storage failure while loading user %s", user_id)
            raise StorageFailure() from err

    async def _deliver(self, user_id: int, payload: dict[str, Any]) -> None:
        channels = self.presence.channels_of(user_id)
        if not channels:
            logger.debug("User %s has no live channels; message %s not pushed", user_id, payload["id"])
            return

        for channel in channels:
            try:
                await channel.deliver(RECEIVE_MESSAGE_EVENT, payload)
            except Exception:
                logger.warning(
                    "Dropping %r of user %s after failed delivery", channel, user_id, exc_info=True
                )
                self.presence.unregister(user_id, channel)
            else:
                logger.debug("Delivered message %s to %r", payload["id"], channel)

    def delete(self, message_id: int, requester_id: int) -> None:
        """Delete a stored message. Copies already pushed to clients stay where they are.

        Raises:
            NotFound: If the message does not exist.
            Forbidden: If ``requester_id`` did not send it.
        """
        message = self.db.get(Message, message_id)
        if message is None:
            raise NotFound("Message not found")
        if message.sender_id != requester_id:
            raise Forbidden("User not authorized")

        self.db.delete(message)
        commit(self.db, action=f"deleting message {message_id}")
        logger.info("User %s deleted message %s", requester_id, message_id)

    def history(self, user_a: int, user_b: int) -> list[Message]:
        """Return every message between the two users, oldest first."""
        stmt = (
            select(Message)
            .where(
                or_(
                    and_(Message.sender_id == user_a, Message.recipient_id == user_b),
                    and_(Message.sender_id == user_b, Message.recipient_id == user_a),
                )
            )
            .options(selectinload(Message.sender), selectinload(Message.recipient))
            .order_by(Message.created_at.asc(), Message.id.asc())
        )
        return list(self.db.scalars(stmt))

    def conversations(self, user_id: int) -> list[User]:
        """Return everyone ``user_id`` has exchanged messages with, most recent first."""
        rows = self.db.execute(
            select(Message.sender_id, Message.recipient_id)
            .where(or_(Message.sender_id == user_id, Message.recipient_id == user_id))
            .order_by(Message.created_at.desc(), Message.id.desc())
        )

        ordered: list[int] = []
        seen: set[int] = set()
        for sender_id, recipient_id in rows:
            counterpart = recipient_id if sender_id == user_id else sender_id
            if counterpart == user_id or counterpart in seen:
                continue
            seen.add(counterpart)
            ordered.append(counterpart)

        if not ordered:
            return []
        users = {user.id: user for user in self.db.scalars(select(User).where(User.id.in_(ordered)))}
        return [users[uid] for uid in ordered if uid in users]
