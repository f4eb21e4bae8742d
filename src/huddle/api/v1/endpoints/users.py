# src/huddle/api/v1/endpoints/users.py
"""Profile and discovery endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Query
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from huddle.core.errors import NotFound
from huddle.core.settings import settings
from huddle.models import Follow, User
from huddle.schemas.post import PostResponse
from huddle.schemas.profile import ProfileResponse
from huddle.schemas.user import UserListItem, UserSummary
from huddle.services import graph, interactions

from ..dependencies import CurrentUserDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


def _build_profile(db: Session, user: User, viewer_id: int) -> ProfileResponse:
    followers, following = graph.follow_counts(db, user.id)
    return ProfileResponse(
        user=UserSummary.model_validate(user),
        posts=[PostResponse.model_validate(post) for post in interactions.posts_by(db, user.id)],
        is_following=user.id != viewer_id and graph.is_following(db, viewer_id, user.id),
        followers_count=followers,
        following_count=following,
    )


def _count_by(db: Session, column, user_ids: list[int]) -> dict[int, int]:
    rows = db.execute(
        select(column, func.count()).where(column.in_(user_ids)).group_by(column)
    )
    return {user_id: int(count) for user_id, count in rows}


@router.get("/", response_model=list[UserListItem])
async def list_users(
    current_user: CurrentUserDep,
    db: SessionDep,
    limit: int = Query(settings.users_page_size, ge=1, le=100),
) -> list[UserListItem]:
    """List other users with the caller's follow status and follow counts."""
    users = list(
        db.scalars(
            select(User).where(User.id != current_user.id).order_by(User.id).limit(limit)
        )
    )
    user_ids = [user.id for user in users]
    followed = graph.following_ids(db, current_user.id)
    followers = _count_by(db, Follow.followed_id, user_ids)
    following = _count_by(db, Follow.follower_id, user_ids)

    return [
        UserListItem(
            id=user.id,
            username=user.username,
            profile_picture=user.profile_picture,
            created_at=user.created_at,
            is_following=user.id in followed,
            followers_count=followers.get(user.id, 0),
            following_count=following.get(user.id, 0),
        )
        for user in users
    ]


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(current_user: CurrentUserDep, db: SessionDep) -> ProfileResponse:
    """Return the caller's own profile."""
    return _build_profile(db, current_user, current_user.id)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(user_id: int, current_user: CurrentUserDep, db: SessionDep) -> ProfileResponse:
    """Return another user's profile as seen by the caller."""
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    return _build_profile(db, user, current_user.id)
