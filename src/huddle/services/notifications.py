"""Notification fan-out: append-only records of follows, likes, comments and messages."""

from __future__ import annotations

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from huddle.core.errors import Forbidden, NotFound
from huddle.core.settings import settings
from huddle.models import Notification, NotificationType
from huddle.services.storage import commit

logger = logging.getLogger(__name__)


class NotificationService:
    """Writes and reads notifications for a single database session.

    ``emit`` is best-effort: callers commit their primary change first and then
    emit, so a failed notification write never undoes the action that caused it.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def emit(
        self,
        recipient_id: int,
        type_: NotificationType,
        from_user_id: int,
        related_post_id: int | None = None,
    ) -> Notification | None:
        """Record one notification, returning ``None`` if the write failed."""
        notification = Notification(
            user_id=recipient_id,
            type=type_,
            from_user_id=from_user_id,
            related_post_id=related_post_id,
        )
        try:
            self.db.add(notification)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.exception(
                "Failed to record %s notification for user %s from user %s",
                type_.value,
                recipient_id,
                from_user_id,
            )
            return None

        logger.debug(
            "Recorded %s notification %s for user %s", type_.value, notification.id, recipient_id
        )
        return notification

    def list_for(self, user_id: int, limit: int | None = None) -> list[Notification]:
        """Return the user's most recent notifications, newest first."""
        page_size = limit if limit is not None else settings.notification_page_size
        stmt = (
            select(Notification)
            .where(Notification.user_id == user_id)
            .options(selectinload(Notification.from_user))
            .order_by(Notification.created_at.desc(), Notification.id.desc())
            .limit(page_size)
        )
        return list(self.db.scalars(stmt))

    def unread_count(self, user_id: int) -> int:
        """Return how many of the user's notifications are unread."""
        stmt = (
            select(func.count())
            .select_from(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
        )
        return int(self.db.scalar(stmt) or 0)

    def mark_read(self, notification_id: int, requester_id: int) -> Notification:
        """Mark a single notification as read on behalf of its recipient.

        Raises:
            NotFound: If the notification does not exist.
            Forbidden: If ``requester_id`` is not the recipient.
        """
        notification = self.db.get(Notification, notification_id)
        if notification is None:
            raise NotFound("Notification not found")
        if notification.user_id != requester_id:
            raise Forbidden("Not authorized")

        if not notification.read:
            notification.read = True
            commit(self.db, action=f"marking notification {notification_id} read")
        return notification

    def mark_all_read(self, user_id: int) -> int:
        """Mark every unread notification of the user as read.

        Returns:
            Number of notifications that changed state.
        """
        result = self.db.execute(
            update(Notification)
            .where(Notification.user_id == user_id, Notification.read.is_(False))
            .values(read=True)
            .execution_options(synchronize_session="fetch")
        )
        commit(self.db, action=f"marking notifications of user {user_id} read")
        return int(result.rowcount or 0)
