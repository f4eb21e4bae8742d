"""Follow graph operations.

Edges live in the ``follow`` table, one row per directed pair, so a user's
``following`` and ``followers`` sets are two queries over the same rows and
cannot disagree.
"""
from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from huddle.core.errors import AlreadyExists, InvalidOperation, NotFound
from huddle.models import Follow, NotificationType, User
from huddle.services.notifications import NotificationService
from huddle.services.storage import commit

logger = logging.getLogger(__name__)

__all__ = [
    "follow",
    "unfollow",
    "is_following",
    "follower_count",
    "following_count",
    "follow_counts",
    "followers_of",
    "following_of",
    "following_ids",
]


def _require_user(db: Session, user_id: int, detail: str = "User not found") -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound(detail)
    return user


def follow(
    db: Session,
    actor_id: int,
    target_id: int,
    *,
    notifier: NotificationService | None = None,
) -> int:
    """Make ``actor_id`` follow ``target_id``.

    Returns:
        The follower count of the target after the edge was added.

    Raises:
        InvalidOperation: If the actor tries to follow itself.
        NotFound: If either user does not exist.
        AlreadyExists: If the actor already follows the target.
    """
    if actor_id == target_id:
        raise InvalidOperation("You cannot follow yourself")
    _require_user(db, actor_id, "Current user not found")
    _require_user(db, target_id)

    if db.get(Follow, (actor_id, target_id)) is not None:
        raise AlreadyExists("You are already following this user")

    db.add(Follow(follower_id=actor_id, followed_id=target_id))
    # A concurrent follow of the same pair loses on the primary key.
    commit(
        db,
        action=f"adding follow {actor_id}->{target_id}",
        conflict=AlreadyExists("You are already following this user"),
    )
    logger.info("User %s followed user %s", actor_id, target_id)

    (notifier or NotificationService(db)).emit(target_id, NotificationType.FOLLOW, actor_id)
    return follower_count(db, target_id)


def unfollow(db: Session, actor_id: int, target_id: int) -> None:
    """Remove the edge ``actor_id -> target_id``.

    Raises:
        NotFound: If either user does not exist or the actor is not following the target.
    """
    _require_user(db, actor_id, "Current user not found")
    _require_user(db, target_id)

    edge = db.get(Follow, (actor_id, target_id))
    if edge is None:
        raise NotFound("You are not following this user")

    db.delete(edge)
    commit(db, action=f"removing follow {actor_id}->{target_id}")
    logger.info("User %s unfollowed user %s", actor_id, target_id)


def is_following(db: Session, actor_id: int, target_id: int) -> bool:
    """Return True if ``actor_id`` follows ``target_id``."""
    return db.get(Follow, (actor_id, target_id)) is not None


def follower_count(db: Session, user_id: int) -> int:
    """Return how many users follow ``user_id``."""
    stmt = select(func.count()).select_from(Follow).where(Follow.followed_id == user_id)
    return int(db.scalar(stmt) or 0)


def following_count(db: Session, user_id: int) -> int:
    """Return how many users ``user_id`` follows."""
    stmt = select(func.count()).select_from(Follow).where(Follow.follower_id == user_id)
    return int(db.scalar(stmt) or 0)


def follow_counts(db: Session, user_id: int) -> tuple[int, int]:
    """Return (followers, following) for ``user_id``."""
    return follower_count(db, user_id), following_count(db, user_id)


def followers_of(db: Session, user_id: int) -> list[User]:
    """Return users following ``user_id``, most recent first."""
    _require_user(db, user_id)
    stmt = (
        select(User)
        .join(Follow, Follow.follower_id == User.id)
        .where(Follow.followed_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


def following_of(db: Session, user_id: int) -> list[User]:
    """Return users that ``user_id`` follows, most recent first."""
    _require_user(db, user_id)
    stmt = (
        select(User)
        .join(Follow, Follow.followed_id == User.id)
        .where(Follow.follower_id == user_id)
        .order_by(Follow.created_at.desc())
    )
    return list(db.scalars(stmt))


def following_ids(db: Session, user_id: int) -> set[int]:
    """Return the ids of every user ``user_id`` follows."""
    stmt = select(Follow.followed_id).where(Follow.follower_id == user_id)
    return set(db.scalars(stmt))
