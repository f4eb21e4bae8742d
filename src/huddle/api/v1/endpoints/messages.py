# src/huddle/api/v1/endpoints/messages.py
"""Message endpoints for the Huddle API."""

from __future__ import annotations

from fastapi import APIRouter, status

from huddle.models import Message
from huddle.schemas.message import MessageCreate, MessageResponse

from ..dependencies import CurrentUserDep, MessageRouterDep

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("/", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def send_message(
    message_data: MessageCreate,
    current_user: CurrentUserDep,
    message_router: MessageRouterDep,
) -> Message:
    """Store a message and push it to both parties' live connections."""
    return await message_router.send(current_user.id, message_data.recipient_id, message_data.text)


@router.get("/{user_id}", response_model=list[MessageResponse])
async def get_history(
    user_id: int,
    current_user: CurrentUserDep,
    message_router: MessageRouterDep,
) -> list[Message]:
    """Return the caller's conversation with ``user_id``, oldest first."""
    return message_router.history(current_user.id, user_id)


@router.delete("/{message_id}")
async def delete_message(
    message_id: int,
    current_user: CurrentUserDep,
    message_router: MessageRouterDep,
) -> dict[str, str]:
    """Delete a message sent by the caller."""
    message_router.delete(message_id, current_user.id)
    return {"status": "deleted"}
