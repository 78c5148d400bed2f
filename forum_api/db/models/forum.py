from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, ForeignKey, Integer, Text, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from forum_api.db.base import Base, IntPkMixin, TimestampMixin, utcnow


TOPIC_NORMAL = 0
TOPIC_STICKY = 1
TOPIC_ANNOUNCE = 2

TOPIC_UNLOCKED = 0
TOPIC_LOCKED = 1


class Forum(IntPkMixin, TimestampMixin, Base):
    """Named container of topics, sorted among its siblings by display_order."""
    __tablename__ = "forums"

    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    moderated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    topics: Mapped[list["Topic"]] = relationship(
        "Topic",
        back_populates="forum",
        foreign_keys="Topic.forum_id",
    )


class Topic(IntPkMixin, TimestampMixin, Base):
    """
    Thread of posts within a forum.

    moved_id keeps the id of the forum the topic was moved out of (0 when it
    never moved), so the old forum can still list it.
    """
    __tablename__ = "topics"

    forum_id: Mapped[int] = mapped_column(ForeignKey("forums.id", ondelete="CASCADE"), nullable=False, index=True)
    subject: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[int] = mapped_column(Integer, nullable=False, default=TOPIC_NORMAL, server_default="0")
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=TOPIC_UNLOCKED, server_default="0")
    moved_id: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0", index=True)
    pending_moderation: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    first_post_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("posts.id", use_alter=True, ondelete="SET NULL"), nullable=True
    )
    last_post_id: Mapped[Optional[int]] = mapped_column(
        ForeignKey("posts.id", use_alter=True, ondelete="SET NULL"), nullable=True
    )
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    views: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")
    replies: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    forum: Mapped["Forum"] = relationship("Forum", back_populates="topics", foreign_keys=[forum_id])
    posts: Mapped[list["Post"]] = relationship(
        "Post",
        back_populates="topic",
        foreign_keys="Post.topic_id",
        order_by="Post.id",
    )
    # post_update breaks the topics <-> posts insert cycle
    first_post: Mapped[Optional["Post"]] = relationship(
        "Post", foreign_keys=[first_post_id], post_update=True, lazy="selectin"
    )
    last_post: Mapped[Optional["Post"]] = relationship(
        "Post", foreign_keys=[last_post_id], post_update=True, lazy="selectin"
    )


class Post(IntPkMixin, TimestampMixin, Base):
    """Single message within a topic. Hidden from listings while moderate is set."""
    __tablename__ = "posts"

    topic_id: Mapped[int] = mapped_column(ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    forum_id: Mapped[int] = mapped_column(ForeignKey("forums.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id: Mapped[Optional[int]] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    subject: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    text: Mapped[str] = mapped_column(Text, nullable=False, default="")
    date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, default=utcnow)
    moderate: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    topic: Mapped["Topic"] = relationship("Topic", back_populates="posts", foreign_keys=[topic_id])
