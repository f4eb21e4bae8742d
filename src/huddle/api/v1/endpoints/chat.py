# src/huddle/api/v1/endpoints/chat.py
"""Real-time chat socket.

Protocol (JSON text frames):

* client → ``{"event": "join", "user_id": <id>}`` registers the socket for
  live delivery; the id must be the one the token was issued for.
* client → ``{"event": "send_message", "recipient": <id>, "text": "..."}``
* server → ``{"event": "joined" | "receive_message" | "error", "data": {...}}``

The token is checked once, before the socket is accepted. The socket holds no
database session while idle; each ``send_message`` frame opens and closes its
own.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.orm import Session, sessionmaker

from huddle.core.errors import HuddleError, ValidationError
from huddle.core.security import InvalidToken
from huddle.schemas.common import MAX_ID
from huddle.services.messaging import MessageRouter
from huddle.services.presence import PresenceRegistry, WebSocketChannel

from ..dependencies import PresenceDep, SessionFactoryDep, resolve_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["chat"])


async def _send_error(channel: WebSocketChannel, detail: str) -> None:
    await channel.deliver("error", {"detail": detail})


def _as_user_id(value: Any) -> int:
    # bool is an int subclass; floats and other types are rejected outright.
    if isinstance(value, bool):
        user_id = None
    elif isinstance(value, int):
        user_id = value
    elif isinstance(value, str) and value.isascii() and value.isdigit():
        user_id = int(value)
    else:
        user_id = None

    if user_id is None or not 1 <= user_id <= MAX_ID:
        raise ValidationError("A valid user id is required")
    return user_id


async def _handle_frame(
    frame: dict[str, Any],
    *,
    user_id: int,
    channel: WebSocketChannel,
    presence: PresenceRegistry,
    session_factory: sessionmaker[Session],
) -> None:
    event = frame.get("event")

    if event == "join":
        if _as_user_id(frame.get("user_id")) != user_id:
            raise ValidationError("Cannot join as another user")
        presence.register(user_id, channel)
        await channel.deliver("joined", {"user_id": user_id})
        return

    if event == "send_message":
        if channel not in presence.channels_of(user_id):
            raise ValidationError("Join before sending messages")
        recipient_id = _as_user_id(frame.get("recipient"))
        with session_factory() as db:
            message_router = MessageRouter(db, presence)
            await message_router.send(user_id, recipient_id, str(frame.get("text") or ""))
        return

    raise ValidationError(f"Unknown event: {event!r}")


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    presence: PresenceDep,
    session_factory: SessionFactoryDep,
    token: str = Query(..., description="Bearer token issued by the identity service"),
) -> None:
    """Register the connection for live delivery and relay outgoing messages."""
    try:
        with session_factory() as db:
            user_id = resolve_user(db, token).id
    except InvalidToken:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    channel = WebSocketChannel(websocket)
    logger.info("Chat connection opened for user %s via %r", user_id, channel)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
                if not isinstance(frame, dict):
                    raise ValueError("frame must be an object")
            except ValueError:
                await _send_error(channel, "Frames must be JSON objects")
                continue

            try:
                await _handle_frame(
                    frame,
                    user_id=user_id,
                    channel=channel,
                    presence=presence,
                    session_factory=session_factory,
                )
            except HuddleError as err:
                await _send_error(channel, err.public_detail)
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception("Unhandled error in %r frame from user %s", frame.get("event"), user_id)
                await _send_error(channel, "Internal server error")
    except WebSocketDisconnect:
        pass
    finally:
        presence.unregister_channel(channel)
        logger.info("Chat connection closed for user %s via %r", user_id, channel)
