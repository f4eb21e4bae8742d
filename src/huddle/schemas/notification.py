# src/huddle/schemas/notification.py
"""Notification Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from huddle.models.notification import NotificationType

from .user import UserSummary


class NotificationResponse(BaseModel):
    """A single notification."""

    id: int
    type: NotificationType
    from_user: UserSummary
    related_post_id: int | None
    read: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class NotificationList(BaseModel):
    """Latest notifications plus the total number still unread."""

    notifications: list[NotificationResponse]
    unread_count: int


class MarkedRead(BaseModel):
    """Result of a bulk mark-as-read."""

    updated: int
