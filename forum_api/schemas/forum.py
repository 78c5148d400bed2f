from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class ForumStats(BaseModel):
    """Board totals and per-day rates."""
    posts: int = Field(0, description="Total number of posts")
    total_users: int = Field(0, description="Total number of users")
    total_topics: int = Field(0, description="Total number of topics")
    posts_per_day: float = Field(0.0, description="Posts per day since the first post")
    topics_per_day: float = Field(0.0, description="Topics per day since the first post")
    users_per_day: float = Field(0.0, description="Registrations per day since the first registration")


class ForumCreate(BaseModel):
    """Create forum payload. The display order is assigned by the server."""
    name: str = Field(..., min_length=1, description="Forum name")
    description: Optional[str] = Field(None)
    moderated: bool = Field(False, description="New posts need approval")


class ForumRead(BaseModel):
    """Forum read model."""
    id: int = Field(..., description="Forum id")
    name: str = Field(..., description="Forum name")
    description: Optional[str] = Field(None)
    display_order: int = Field(..., description="Rank among sibling forums")
    moderated: bool = Field(False)

    class Config:
        from_attributes = True


class ForumTotals(BaseModel):
    """Post and topic counters of a single forum."""
    forum_id: int
    total_posts: int
    total_topics: int


class GroupRead(BaseModel):
    """Group read model."""
    id: int
    name: str
    description: Optional[str] = Field(None)

    class Config:
        from_attributes = True


class PostRead(BaseModel):
    """Post read model."""
    id: int = Field(..., description="Post id")
    topic_id: int
    forum_id: int
    user_id: Optional[int] = Field(None)
    subject: Optional[str] = Field(None)
    text: str
    date: datetime
    moderate: bool

    class Config:
        from_attributes = True


class TopicRead(BaseModel):
    """Topic read model."""
    id: int = Field(..., description="Topic id")
    forum_id: int
    subject: str
    type: int
    status: int
    moved_id: int = Field(0, description="Forum the topic was moved from, 0 if never moved")
    pending_moderation: bool
    first_post_id: Optional[int] = Field(None)
    last_post_id: Optional[int] = Field(None)
    user_id: Optional[int] = Field(None)
    date: datetime
    views: int
    replies: int

    class Config:
        from_attributes = True


class TopicPage(BaseModel):
    """A page of topics plus the number of matching topics."""
    total: int
    results: List[TopicRead]


class MoveTopicsRequest(BaseModel):
    """Topics to move into the forum named in the path."""
    topic_ids: List[int] = Field(..., min_length=1, description="Ids of the topics to move")
