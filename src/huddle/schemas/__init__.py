# src/huddle/schemas/__init__.py
"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .message import MessageCreate, MessageResponse
from .notification import MarkedRead, NotificationList, NotificationResponse
from .post import CommentCreate, CommentResponse, DeletedPosts, PostCreate, PostResponse
from .profile import ProfileResponse
from .user import FollowResponse, UserListItem, UserSummary

__all__ = [
    "MessageCreate", "MessageResponse",
    "MarkedRead", "NotificationList", "NotificationResponse",
    "CommentCreate", "CommentResponse", "DeletedPosts", "PostCreate", "PostResponse",
    "ProfileResponse",
    "FollowResponse", "UserListItem", "UserSummary",
]
