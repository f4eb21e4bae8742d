"""Post, like and comment operations.

Likes and comments belong to the post aggregate. Every mutation here loads the
post first and commits one transaction, so a post is never observed with half
of a change applied and deleting a post takes its likes and comments with it.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from huddle.core.errors import Forbidden, NotFound, StorageFailure, ValidationError
from huddle.core.settings import settings
from huddle.models import Comment, Notification, NotificationType, Post, PostLike, User
from huddle.services.notifications import NotificationService
from huddle.services.storage import commit

logger = logging.getLogger(__name__)

__all__ = [
    "create_post",
    "get_post",
    "list_feed",
    "posts_by",
    "delete_post",
    "delete_all_posts",
    "toggle_like",
    "add_comment",
    "delete_comment",
]


def _post_options() -> tuple:
    return (
        selectinload(Post.author),
        selectinload(Post.likes),
        selectinload(Post.comments).selectinload(Comment.user),
    )


def _get_post_or_404(db: Session, post_id: int, *, for_update: bool = False) -> Post:
    stmt = select(Post).where(Post.id == post_id)
    if for_update:
        # Serializes same-post toggles where the backend supports row locks.
        stmt = stmt.with_for_update()
    post = db.scalars(stmt).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def create_post(db: Session, author_id: int, content: str, image: str | None = None) -> Post:
    """Create a post owned by ``author_id``.

    A post needs either non-blank text or an image.

    Raises:
        NotFound: If the author does not exist.
        ValidationError: If the post is empty or too long.
    """
    body = (content or "").strip()
    if not body and not image:
        raise ValidationError("Post content is required")
    if len(body) > settings.max_post_length:
        raise ValidationError(f"Post content exceeds {settings.max_post_length} characters")
    if db.get(User, author_id) is None:
        raise NotFound("User not found")

    post = Post(author_id=author_id, content=body, image=image or None)
    db.add(post)
    commit(db, action=f"creating post for user {author_id}")
    logger.info("User %s created post %s", author_id, post.id)
    return get_post(db, post.id)


def get_post(db: Session, post_id: int) -> Post:
    """Return a post with author, likes and comments loaded.

    Raises:
        NotFound: If the post does not exist.
    """
    stmt = select(Post).where(Post.id == post_id).options(*_post_options())
    post = db.scalars(stmt).first()
    if post is None:
        raise NotFound("Post not found")
    return post


def list_feed(db: Session, limit: int | None = None) -> list[Post]:
    """Return the most recent posts from everyone, newest first."""
    stmt = (
        select(Post)
        .options(*_post_options())
        .order_by(Post.created_at.desc(), Post.id.desc())
        .limit(limit if limit is not None else settings.feed_page_size)
    )
    return list(db.scalars(stmt))


def posts_by(db: Session, author_id: int) -> list[Post]:
    """Return every post written by ``author_id``, newest first."""
    stmt = (
        select(Post)
        .where(Post.author_id == author_id)
        .options(*_post_options())
        .order_by(Post.created_at.desc(), Post.id.desc())
    )
    return list(db.scalars(stmt))


def _detach_notifications(db: Session, post_ids: Sequence[int]) -> None:
    # Notifications outlive the post they mention.
    db.execute(
        update(Notification)
        .where(Notification.related_post_id.in_(post_ids))
        .values(related_post_id=None)
        .execution_options(synchronize_session="fetch")
    )


def delete_post(db: Session, post_id: int, actor_id: int) -> None:
    """Delete a post together with its likes and comments.

    Raises:
        NotFound: If the post does not exist.
        Forbidden: If ``actor_id`` is not the author.
    """
    post = _get_post_or_404(db, post_id)
    if post.author_id != actor_id:
        raise Forbidden("User not authorized")

    _detach_notifications(db, [post.id])
    db.delete(post)
    commit(db, action=f"deleting post {post_id}")
    logger.info("User %s deleted post %s", actor_id, post_id)


def delete_all_posts(db: Session, actor_id: int) -> int:
    """Delete every post written by ``actor_id`` in a single transaction.

    Returns:
        Number of posts removed.
    """
    posts = list(db.scalars(select(Post).where(Post.author_id == actor_id)))
    if not posts:
        return 0

    _detach_notifications(db, [post.id for post in posts])
    for post in posts:
        db.delete(post)
    commit(db, action=f"deleting all posts of user {actor_id}")
    logger.info("User %s deleted all %d of their posts", actor_id, len(posts))
    return len(posts)


def _apply_toggle(db: Session, post_id: int, actor_id: int) -> tuple[Post, bool]:
    post = _get_post_or_404(db, post_id, for_update=True)
    existing = db.scalars(
        select(PostLike).where(PostLike.post_id == post_id, PostLike.user_id == actor_id)
    ).first()

    if existing is not None:
        db.delete(existing)
        liked = False
    else:
        db.add(PostLike(post_id=post_id, user_id=actor_id))
        liked = True

    db.commit()
    return post, liked


def toggle_like(
    db: Session,
    post_id: int,
    actor_id: int,
    *,
    notifier: NotificationService | None = None,
) -> list[PostLike]:
    """Like the post if the actor has not liked it yet, otherwise unlike it.

    Returns:
        The post's likes after the toggle, most recent first.

    Raises:
        NotFound: If the post does not exist.
    """
    try:
        try:
            post, liked = _apply_toggle(db, post_id, actor_id)
        except IntegrityError:
            # Another request inserted the same like first; toggle against it.
            db.rollback()
            logger.info("Concurrent like on post %s by user %s, re-applying", post_id, actor_id)
            post, liked = _apply_toggle(db, post_id, actor_id)
    except SQLAlchemyError as err:
        db.rollback()
        logger.exception("Storage failure while toggling like on post %s", post_id)
        raise StorageFailure() from err

    logger.debug("User %s %s post %s", actor_id, "liked" if liked else "unliked", post_id)
    if liked and post.author_id != actor_id:
        (notifier or NotificationService(db)).emit(
            post.author_id, NotificationType.LIKE, actor_id, related_post_id=post.id
        )

    db.refresh(post, attribute_names=["likes"])
    return list(post.likes)


def add_comment(
    db: Session,
    post_id: int,
    actor_id: int,
    text: str,
    *,
    notifier: NotificationService | None = None,
) -> list[Comment]:
    """Add a comment at the front of the post's comment list.

    Returns:
        All comments of the post, most recent first.

    Raises:
        ValidationError: If the text is blank or too long.
        NotFound: If the post does not exist.
    """
    body = (text or "").strip()
    if not body:
        raise ValidationError("Comment text is required")
    if len(body) > settings.max_comment_length:
        raise ValidationError(f"Comment exceeds {settings.max_comment_length} characters")

    post = _get_post_or_404(db, post_id)
    db.add(Comment(post_id=post.id, user_id=actor_id, text=body))
    commit(db, action=f"adding comment to post {post_id}")
    logger.debug("User %s commented on post %s", actor_id, post_id)

    if post.author_id != actor_id:
        (notifier or NotificationService(db)).emit(
            post.author_id, NotificationType.COMMENT, actor_id, related_post_id=post.id
        )

    db.refresh(post, attribute_names=["comments"])
    return list(post.comments)


def delete_comment(db: Session, post_id: int, comment_id: int, actor_id: int) -> list[Comment]:
    """Remove a comment; allowed for the comment's author and the post's author.

    Returns:
        The remaining comments, most recent first.

    Raises:
        NotFound: If the post or comment does not exist.
        Forbidden: If the actor wrote neither the comment nor the post.
    """
    post = _get_post_or_404(db, post_id)
    comment = db.get(Comment, comment_id)
    if comment is None or comment.post_id != post.id:
        raise NotFound("Comment not found")
    if actor_id not in (comment.user_id, post.author_id):
        raise Forbidden("User not authorized")

    db.delete(comment)
    commit(db, action=f"deleting comment {comment_id}")
    logger.debug("User %s deleted comment %s on post %s", actor_id, comment_id, post_id)

    db.refresh(post, attribute_names=["comments"])
    return list(post.comments)
