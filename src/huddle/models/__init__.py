# src/huddle/models/__init__.py
"""SQLAlchemy models for the Huddle application."""

from .follow import Follow
from .message import Message
from .notification import Notification, NotificationType
from .post import Comment, Post, PostLike
from .user import User

__all__ = [
    "Follow",
    "Message",
    "Notification", "NotificationType",
    "Comment", "Post", "PostLike",
    "User",
]
