# src/huddle/api/v1/endpoints/conversations.py
"""Conversation list endpoint."""

from fastapi import APIRouter

from huddle.models import User
from huddle.schemas.user import UserSummary

from ..dependencies import CurrentUserDep, MessageRouterDep

router = APIRouter(prefix="/conversations", tags=["messages"])


@router.get("/", response_model=list[UserSummary])
async def list_conversations(
    current_user: CurrentUserDep,
    message_router: MessageRouterDep,
) -> list[User]:
    """Return the users the caller has exchanged messages with, most recent first."""
    return message_router.conversations(current_user.id)
