from __future__ import annotations

import logging
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from forum_api.core.cache import QueryCache, forum_regions
from forum_api.core.settings import AppSettings
from forum_api.db.models import Forum, Topic
from forum_api.repositories.forum import ForumRepository
from forum_api.schemas.forum import ForumCreate
from forum_api.services.base import BaseService

logger = logging.getLogger(__name__)


class ForumNotFoundError(LookupError):
    """Raised when an operation targets a forum that does not exist."""

    def __init__(self, forum_id: int) -> None:
        super().__init__(f"Forum {forum_id} not found")
        self.forum_id = forum_id


class ForumService(BaseService):
    """
    Write-side orchestration for forums.

    Commits the repository's changes and evicts the cache regions they make stale.
    """

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[AppSettings] = None,
        cache: Optional[QueryCache] = None,
    ) -> None:
        super().__init__(session)
        self.cache = cache
        self.forum_repo = ForumRepository(session, settings=settings, cache=cache)

    # PUBLIC_INTERFACE
    async def create_forum(self, payload: ForumCreate) -> Forum:
        """Create a forum at the end of the display order and commit it."""
        forum = Forum(name=payload.name, description=payload.description, moderated=payload.moderated)
        await self.forum_repo.add(forum)
        await self.session.commit()
        logger.info("Created forum %s (%s) with display order %s", forum.id, forum.name, forum.display_order)
        return forum

    # PUBLIC_INTERFACE
    async def move_topics(self, target_forum_id: int, topic_ids: Sequence[int]) -> Forum:
        """
        Move topics to another forum and commit.

        Parameters:
            target_forum_id: forum receiving the topics
            topic_ids: topics to move; unknown ids are ignored
        Returns:
            The target Forum
        Raises:
            ForumNotFoundError: the target forum does not exist
        """
        target = await self.forum_repo.get(target_forum_id)
        if target is None:
            raise ForumNotFoundError(target_forum_id)

        ids = list(topic_ids)
        source_ids: set[int] = set()
        # forums still listing a topic through an earlier moved-from trail
        trail_ids: set[int] = set()
        if ids:
            res = await self.session.execute(select(Topic.forum_id, Topic.moved_id).where(Topic.id.in_(ids)))
            for forum_id, moved_id in res.all():
                source_ids.add(forum_id)
                if moved_id:
                    trail_ids.add(moved_id)

        await self.forum_repo.move_topics(target, *ids)
        await self.session.commit()
        logger.info("Moved %d topic(s) from forums %s to forum %s", len(ids), sorted(source_ids), target.id)

        if self.cache is not None:
            for forum_id in source_ids | trail_ids | {target.id}:
                await self.cache.evict(*forum_regions(forum_id))
        return target
