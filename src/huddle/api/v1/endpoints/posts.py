# src/huddle/api/v1/endpoints/posts.py
"""Post, like and comment endpoints for the Huddle API."""

from fastapi import APIRouter, Query, status

from huddle.core.settings import settings
from huddle.models import Comment, Post
from huddle.schemas.post import (
    CommentCreate,
    CommentResponse,
    DeletedPosts,
    PostCreate,
    PostResponse,
)
from huddle.services import interactions

from ..dependencies import CurrentUserDep, NotifierDep, SessionDep

router = APIRouter(prefix="/posts", tags=["posts"])


@router.get("/", response_model=list[PostResponse])
async def list_posts(
    _: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.feed_page_size, ge=1, le=100),
) -> list[Post]:
    """Return the most recent posts, newest first."""
    return interactions.list_feed(db, limit=limit)


@router.post("/", response_model=PostResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> Post:
    """Create a post. ``image`` is a URI already stored by the asset service."""
    return interactions.create_post(db, current_user.id, post_data.content, post_data.image)


@router.delete("/me/all", response_model=DeletedPosts)
async def delete_my_posts(current_user: CurrentUserDep, db: SessionDep) -> DeletedPosts:
    """Delete every post written by the caller."""
    return DeletedPosts(deleted=interactions.delete_all_posts(db, current_user.id))


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: int, _: CurrentUserDep, db: SessionDep) -> Post:
    """Return a single post."""
    return interactions.get_post(db, post_id)


@router.delete("/{post_id}")
async def delete_post(post_id: int, current_user: CurrentUserDep, db: SessionDep) -> dict[str, str]:
    """Delete a post written by the caller."""
    interactions.delete_post(db, post_id, current_user.id)
    return {"status": "deleted"}


@router.put("/{post_id}/like", response_model=list[int])
async def toggle_like(
    post_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotifierDep,
) -> list[int]:
    """Like or unlike a post; returns liker ids, most recent first."""
    likes = interactions.toggle_like(db, post_id, current_user.id, notifier=notifier)
    return [like.user_id for like in likes]


@router.post("/{post_id}/comments", response_model=list[CommentResponse])
async def add_comment(
    post_id: int,
    comment_data: CommentCreate,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotifierDep,
) -> list[Comment]:
    """Comment on a post; returns all comments, most recent first."""
    return interactions.add_comment(
        db, post_id, current_user.id, comment_data.text, notifier=notifier
    )


@router.delete("/{post_id}/comments/{comment_id}", response_model=list[CommentResponse])
async def delete_comment(
    post_id: int,
    comment_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> list[Comment]:
    """Delete a comment written by the caller or left on the caller's post."""
    return interactions.delete_comment(db, post_id, comment_id, current_user.id)
