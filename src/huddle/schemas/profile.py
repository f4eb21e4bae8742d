# src/huddle/schemas/profile.py
"""Profile page schema."""

from pydantic import BaseModel

from .post import PostResponse
from .user import UserSummary


class ProfileResponse(BaseModel):
    """A user's profile with their posts and follow statistics."""

    user: UserSummary
    posts: list[PostResponse]
    is_following: bool
    followers_count: int
    following_count: int
