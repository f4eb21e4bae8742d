"""In-process registry of live delivery channels per user.

The registry is process-local and never persisted: a restart forgets every
connection and clients register again when they reconnect. Running more than
one worker needs an external pub/sub broker to fan out across processes.
"""

from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Protocol, runtime_checkable

from fastapi import WebSocket

logger = logging.getLogger(__name__)


@runtime_checkable
class Channel(Protocol):
    """A live connection that can receive server-pushed events."""

    async def deliver(self, event: str, payload: dict[str, Any]) -> None:
        """Push one event to the connected client."""


class WebSocketChannel:
    """Channel backed by an accepted FastAPI WebSocket."""

    def __init__(self, websocket: WebSocket) -> None:
        self.websocket = websocket

    async def deliver(self, event: str, payload: dict[str, Any]) -> None:
        await self.websocket.send_json({"event": event, "data": payload})

    def __repr__(self) -> str:
        client = self.websocket.client
        peer = f"{client.host}:{client.port}" if client else "unknown"
        return f"WebSocketChannel({peer})"


class PresenceRegistry:
    """Maps user ids to the set of channels currently connected for them.

    A user may be connected from several devices at once. All mutations go
    through one lock; readers get snapshots so delivery never holds it.
    """

    def __init__(self) -> None:
        self._channels: dict[int, set[Channel]] = {}
        self._owners: dict[Channel, int] = {}
        self._lock = Lock()

    def register(self, user_id: int, channel: Channel) -> None:
        """Attach ``channel`` to ``user_id``.

        A channel belongs to one user at a time; joining again as a different
        user moves it.
        """
        with self._lock:
            previous = self._owners.get(channel)
            if previous is not None and previous != user_id:
                self._discard(previous, channel)
            self._channels.setdefault(user_id, set()).add(channel)
            self._owners[channel] = user_id
        logger.info("Registered %r for user %s", channel, user_id)

    def unregister(self, user_id: int, channel: Channel) -> None:
        """Detach ``channel`` from ``user_id``; a no-op if it was not attached."""
        with self._lock:
            if self._owners.get(channel) == user_id:
                del self._owners[channel]
            self._discard(user_id, channel)

    def unregister_channel(self, channel: Channel) -> int | None:
        """Detach ``channel`` from whichever user it joined as.

        Returns:
            The user id the channel belonged to, or None if it never joined.
        """
        with self._lock:
            user_id = self._owners.pop(channel, None)
            if user_id is not None:
                self._discard(user_id, channel)
        return user_id

    def channels_of(self, user_id: int) -> frozenset[Channel]:
        """Return a snapshot of the user's live channels, possibly empty."""
        with self._lock:
            return frozenset(self._channels.get(user_id, ()))

    def is_online(self, user_id: int) -> bool:
        """Return True if the user has at least one live channel."""
        with self._lock:
            return bool(self._channels.get(user_id))

    def online_users(self) -> set[int]:
        """Return the ids of every user with a live channel."""
        with self._lock:
            return set(self._channels)

    def clear(self) -> None:
        """Forget every registration."""
        with self._lock:
            self._channels.clear()
            self._owners.clear()

    def _discard(self, user_id: int, channel: Channel) -> None:
        channels = self._channels.get(user_id)
        if not channels:
            return
        channels.discard(channel)
        if not channels:
            del self._channels[user_id]


_REGISTRY = PresenceRegistry()


def get_presence_registry() -> PresenceRegistry:
    """Return the process-wide presence registry."""
    return _REGISTRY
