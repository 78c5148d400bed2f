from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from forum_api.core.deps import get_forum_or_404, get_forum_repository, get_forum_service
from forum_api.core.settings import AppSettings, get_app_settings
from forum_api.db.models import Forum
from forum_api.repositories.forum import ForumRepository
from forum_api.schemas.forum import (
    ForumCreate,
    ForumRead,
    ForumTotals,
    GroupRead,
    MoveTopicsRequest,
    PostRead,
    TopicRead,
)
from forum_api.services.forum import ForumNotFoundError, ForumService

router = APIRouter(prefix="/forums", tags=["Forums"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[ForumRead],
    summary="List forums",
    description="List every forum ordered by display order.",
)
async def list_forums(repo: ForumRepository = Depends(get_forum_repository)) -> List[ForumRead]:
    forums = await repo.find_all()
    return [ForumRead.model_validate(f) for f in forums]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=ForumRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create forum",
    description="Create a forum placed after all existing forums.",
)
async def create_forum(
    payload: ForumCreate,
    service: ForumService = Depends(get_forum_service),
) -> ForumRead:
    forum = await service.create_forum(payload)
    return ForumRead.model_validate(forum)


# PUBLIC_INTERFACE
@router.get("/{forum_id}", response_model=ForumRead, summary="Get forum")
async def get_forum(forum: Forum = Depends(get_forum_or_404)) -> ForumRead:
    return ForumRead.model_validate(forum)


# PUBLIC_INTERFACE
@router.get(
    "/{forum_id}/moderators",
    response_model=List[GroupRead],
    summary="List forum moderators",
    description="Groups holding the moderate_forum role for this forum.",
)
async def list_moderators(
    forum: Forum = Depends(get_forum_or_404),
    repo: ForumRepository = Depends(get_forum_repository),
) -> List[GroupRead]:
    groups = await repo.get_moderators(forum)
    return [GroupRead.model_validate(g) for g in groups]


# PUBLIC_INTERFACE
@router.get(
    "/{forum_id}/topics",
    response_model=List[TopicRead],
    summary="List forum topics",
    description="One page of approved topics, stickies and announcements first, then by latest post.",
)
async def list_topics(
    forum: Forum = Depends(get_forum_or_404),
    repo: ForumRepository = Depends(get_forum_repository),
    settings: AppSettings = Depends(get_app_settings),
    start: int = Query(0, ge=0, description="Number of topics to skip"),
    count: Optional[int] = Query(None, ge=1, le=1000, description="Page size (default TOPICS_PER_PAGE)"),
) -> List[TopicRead]:
    topics = await repo.get_topics(forum, start, count or settings.TOPICS_PER_PAGE)
    return [TopicRead.model_validate(t) for t in topics]


# PUBLIC_INTERFACE
@router.get(
    "/{forum_id}/topics/pending",
    response_model=List[TopicRead],
    summary="List topics waiting for moderation",
)
async def list_pending_topics(
    forum: Forum = Depends(get_forum_or_404),
    repo: ForumRepository = Depends(get_forum_repository),
) -> List[TopicRead]:
    topics = await repo.get_topics_pending_moderation(forum)
    return [TopicRead.model_validate(t) for t in topics]


# PUBLIC_INTERFACE
@router.get("/{forum_id}/last-post", response_model=PostRead, summary="Get latest approved post")
async def get_last_post(
    forum: Forum = Depends(get_forum_or_404),
    repo: ForumRepository = Depends(get_forum_repository),
) -> PostRead:
    post = await repo.get_last_post(forum)
    if post is None:
        raise HTTPException(status_code=404, detail="Forum has no posts")
    return PostRead.model_validate(post)


# PUBLIC_INTERFACE
@router.get("/{forum_id}/totals", response_model=ForumTotals, summary="Get forum counters")
async def get_totals(
    forum: Forum = Depends(get_forum_or_404),
    repo: ForumRepository = Depends(get_forum_repository),
) -> ForumTotals:
    return ForumTotals(
        forum_id=forum.id,
        total_posts=await repo.get_total_posts(forum),
        total_topics=await repo.get_total_topics(forum),
    )


# PUBLIC_INTERFACE
@router.post(
    "/{forum_id}/move-topics",
    response_model=ForumRead,
    summary="Move topics into this forum",
    description="Reassign the topics and all of their posts; each topic remembers the forum it came from.",
)
async def move_topics(
    forum_id: int,
    payload: MoveTopicsRequest,
    service: ForumService = Depends(get_forum_service),
) -> ForumRead:
    try:
        forum = await service.move_topics(forum_id, payload.topic_ids)
    except ForumNotFoundError:
        raise HTTPException(status_code=404, detail="Forum not found")
    return ForumRead.model_validate(forum)
