# src/huddle/models/follow.py
"""Directed follow edges between users."""

from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer
from sqlalchemy.orm import Mapped, mapped_column

from huddle.db.session import Base
from huddle.db.time import utcnow


class Follow(Base):
    """One row per "follower follows followed" edge.

    A user's ``following`` set is every row where they are the follower and
    their ``followers`` set is every row where they are followed, so the two
    projections cannot drift apart.
    """

    __tablename__ = "follow"
    __table_args__ = (
        CheckConstraint("follower_id <> followed_id", name="ck_follow_not_self"),
        Index("ix_follow_followed_id", "followed_id"),
    )

    # Composite primary key prevents duplicate edges.
    follower_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    followed_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("user_account.id", ondelete="CASCADE"),
        primary_key=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
