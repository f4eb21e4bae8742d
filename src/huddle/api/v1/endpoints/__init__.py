# src/huddle/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .chat import router as chat_router
from .conversations import router as conversations_router
from .follows import router as follows_router
from .messages import router as messages_router
from .notifications import router as notifications_router
from .posts import router as posts_router
from .users import router as users_router

__all__ = [
    "chat_router",
    "conversations_router",
    "follows_router",
    "messages_router",
    "notifications_router",
    "posts_router",
    "users_router",
]
