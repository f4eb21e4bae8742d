# src/huddle/schemas/message.py
"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .common import EntityId
from .user import UserSummary


class MessageCreate(BaseModel):
    """Schema for sending a message over HTTP."""

    recipient_id: EntityId = Field(..., description="User id of the recipient")
    text: str = Field(..., description="Message body")


class MessageResponse(BaseModel):
    """Message with sender and recipient summaries populated."""

    id: int
    sender: UserSummary
    recipient: UserSummary
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
