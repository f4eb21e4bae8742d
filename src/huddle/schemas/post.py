# src/huddle/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .user import UserSummary


class PostCreate(BaseModel):
    """Schema for creating a new post."""

    content: str = Field("", description="Post body")
    image: str | None = Field(None, description="Image URI returned by the asset store")


class CommentCreate(BaseModel):
    """Schema for adding a comment to a post."""

    text: str = Field(..., description="Comment body")


class CommentResponse(BaseModel):
    """Comment as returned by the API."""

    id: int
    user: UserSummary
    text: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PostResponse(BaseModel):
    """Post with its likes and comments, newest first."""

    id: int
    author: UserSummary
    content: str
    image: str | None
    created_at: datetime
    likes: list[int] = Field(default_factory=list, description="User ids, most recent like first")
    comments: list[CommentResponse] = Field(default_factory=list)

    @field_validator("likes", mode="before")
    @classmethod
    def _like_user_ids(cls, value: object) -> object:
        if isinstance(value, list):
            return [getattr(like, "user_id", like) for like in value]
        return value

    model_config = ConfigDict(from_attributes=True)


class DeletedPosts(BaseModel):
    """Result of a bulk post deletion."""

    deleted: int
