# src/huddle/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    chat_router,
    conversations_router,
    follows_router,
    messages_router,
    notifications_router,
    posts_router,
    users_router,
)

__all__ = [
    "chat_router",
    "conversations_router",
    "follows_router",
    "messages_router",
    "notifications_router",
    "posts_router",
    "users_router",
]
