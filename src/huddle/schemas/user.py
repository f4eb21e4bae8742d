# src/huddle/schemas/user.py
"""User-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class UserSummary(BaseModel):
    """Minimal profile fields embedded in posts, comments and messages."""

    id: int
    username: str
    profile_picture: str | None = None

    model_config = ConfigDict(from_attributes=True)


class UserListItem(UserSummary):
    """Entry in the discover list, annotated from the caller's point of view."""

    created_at: datetime
    is_following: bool = Field(..., description="True if the caller follows this user")
    followers_count: int
    following_count: int


class FollowResponse(BaseModel):
    """Result of a successful follow."""

    followers_count: int = Field(..., description="Follower count of the followed user")
