# src/huddle/api/v1/endpoints/follows.py
"""Follow graph endpoints for the Huddle API."""

from fastapi import APIRouter

from huddle.models import User
from huddle.schemas.user import FollowResponse, UserSummary
from huddle.services import graph

from ..dependencies import CurrentUserDep, NotifierDep, SessionDep

router = APIRouter(prefix="/follows", tags=["follows"])


@router.post("/{user_id}", response_model=FollowResponse)
async def follow_user(
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
    notifier: NotifierDep,
) -> FollowResponse:
    """Follow another user and return their new follower count."""
    count = graph.follow(db, current_user.id, user_id, notifier=notifier)
    return FollowResponse(followers_count=count)


@router.delete("/{user_id}")
async def unfollow_user(
    user_id: int,
    current_user: CurrentUserDep,
    db: SessionDep,
) -> dict[str, str]:
    """Stop following a user."""
    graph.unfollow(db, current_user.id, user_id)
    return {"status": "unfollowed"}


@router.get("/{user_id}/followers", response_model=list[UserSummary])
async def list_followers(user_id: int, _: CurrentUserDep, db: SessionDep) -> list[User]:
    """List the users following ``user_id``."""
    return graph.followers_of(db, user_id)


@router.get("/{user_id}/following", response_model=list[UserSummary])
async def list_following(user_id: int, _: CurrentUserDep, db: SessionDep) -> list[User]:
    """List the users ``user_id`` follows."""
    return graph.following_of(db, user_id)
