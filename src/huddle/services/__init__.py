# src/huddle/services/__init__.py
"""Business logic services for the Huddle application."""

from .messaging import MessageRouter
from .notifications import NotificationService
from .presence import PresenceRegistry, WebSocketChannel, get_presence_registry

__all__ = [
    "MessageRouter",
    "NotificationService",
    "PresenceRegistry",
    "WebSocketChannel",
    "get_presence_registry",
]
