from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from forum_api.core.deps import get_forum_repository
from forum_api.core.settings import AppSettings, get_app_settings
from forum_api.db.models import Group
from forum_api.repositories.base import EntityRepository
from forum_api.repositories.forum import ForumRepository
from forum_api.schemas.forum import ForumStats, TopicPage, TopicRead

router = APIRouter(tags=["Board"])


# PUBLIC_INTERFACE
@router.get(
    "/messages/new",
    response_model=TopicPage,
    summary="List topics with new messages",
    description="Approved topics whose last post is at or after `since`, with the total match count.",
)
async def list_new_messages(
    since: datetime = Query(..., description="ISO-8601 timestamp"),
    start: int = Query(0, ge=0),
    count: Optional[int] = Query(None, ge=1, le=1000),
    repo: ForumRepository = Depends(get_forum_repository),
    settings: AppSettings = Depends(get_app_settings),
) -> TopicPage:
    page = await repo.get_new_messages(since, start, count or settings.TOPICS_PER_PAGE)
    return TopicPage(total=page.total, results=[TopicRead.model_validate(t) for t in page.results])


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=ForumStats,
    summary="Board statistics",
    description=(
        "Totals and per-day rates for the whole board. When one or more `group_id` "
        "values are given, only the number of users in those groups is reported."
    ),
)
async def get_stats(
    group_id: Optional[List[int]] = Query(None, description="Restrict the user count to these groups"),
    repo: ForumRepository = Depends(get_forum_repository),
) -> ForumStats:
    if group_id:
        groups = await EntityRepository(repo.session, Group).get_many(group_id)
        return await repo.get_forum_stats(groups)
    return await repo.get_forum_stats()
