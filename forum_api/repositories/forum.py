from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable, List, Optional, Sequence

from sqlalchemy import distinct, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, contains_eager

from forum_api.core.cache import (
    MODERATORS_REGION,
    TOTAL_MESSAGES_REGION,
    QueryCache,
    topics_region,
    total_posts_region,
    total_topics_region,
)
from forum_api.core.settings import AppSettings
from forum_api.db.base import utcnow
from forum_api.db.models import MODERATE_FORUM_ROLE, Forum, Group, Post, Role, RoleValue, Topic, User, user_groups
from forum_api.schemas.forum import ForumStats
from .base import EntityRepository, PaginatedResult

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def days_until_today(today: datetime, start: datetime) -> int:
    """Whole days elapsed since ``start``, never less than 1."""
    if start.tzinfo is None:
        start = start.replace(tzinfo=timezone.utc)
    if today.tzinfo is None:
        today = today.replace(tzinfo=timezone.utc)
    days = int((today - start).total_seconds() // SECONDS_PER_DAY)
    return max(days, 1)


class ForumRepository(EntityRepository[Forum]):
    """
    Queries over forums and the topics and posts they hold.

    Some lookups are served from a QueryCache when one is given. Cached
    entries hold ids or counts only; entities are always loaded through the
    session. Nothing here commits.
    """

    model = Forum

    def __init__(
        self,
        session: AsyncSession,
        settings: Optional[AppSettings] = None,
        cache: Optional[QueryCache] = None,
    ) -> None:
        super().__init__(session)
        self.settings = settings
        self.cache = cache

    async def _cached_value(self, region: str, loader: Callable[[], Awaitable], *params):
        if self.cache is None:
            return await loader()
        value = await self.cache.get(region, *params)
        if value is None:
            value = await loader()
            await self.cache.set(region, value, *params)
        return value

    async def move_topics(self, target_forum: Forum, *topic_ids: int) -> None:
        """
        Move topics, and every post in them, to ``target_forum``.

        Each topic keeps the id of the forum it came from in moved_id.
        """
        ids = list(topic_ids)
        if not ids:
            return
        # moved_id takes the pre-update forum_id, which only the database knows
        await self.execute(
            update(Topic)
            .where(Topic.id.in_(ids))
            .values(moved_id=Topic.forum_id, forum_id=target_forum.id)
            .execution_options(synchronize_session=False)
        )
        await self.execute(
            update(Post)
            .where(Post.topic_id.in_(ids))
            .values(forum_id=target_forum.id)
            .execution_options(synchronize_session="fetch")
        )
        # refresh topics already in the session
        await self.scalars(
            select(Topic).where(Topic.id.in_(ids)).execution_options(populate_existing=True)
        )
        logger.debug("Moved topics %s to forum %s", ids, target_forum.id)

    async def add(self, forum: Forum) -> None:
        """Insert a forum, placing it after every existing one."""
        forum.display_order = await self._next_display_order()
        await super().add(forum)

    async def _next_display_order(self) -> int:
        result = await self.execute(select(func.max(Forum.display_order)))
        current = result.scalar_one_or_none()
        return 1 if current is None else current + 1

    async def get_moderators(self, forum: Forum) -> List[Group]:
        """Groups holding the moderate_forum role for this forum."""

        async def load_ids() -> list[int]:
            stmt = (
                select(Group.id)
                .join(Role, Role.group_id == Group.id)
                .join(RoleValue, RoleValue.role_id == Role.id)
                .where(Role.name == MODERATE_FORUM_ROLE, RoleValue.value == forum.id)
                .distinct()
                .order_by(Group.id)
            )
            return list(await self.scalars(stmt))

        ids = await self._cached_value(MODERATORS_REGION, load_ids, forum.id)
        return await EntityRepository(self.session, Group).get_many(ids)

    async def get_topics_pending_moderation(self, forum: Forum) -> List[Topic]:
        """
        Topics of the forum that are pending themselves or hold a post
        waiting for approval.

        Topic.posts holds only the matching posts afterwards, replacing any
        collection already loaded in the session.
        """
        stmt = (
            select(Topic)
            .outerjoin(Topic.posts)
            .options(contains_eager(Topic.posts))
            .execution_options(populate_existing=True)
            .where(
                Topic.forum_id == forum.id,
                or_(Post.moderate.is_(True), Topic.pending_moderation.is_(True)),
            )
            .order_by(Topic.id, Post.id)
        )
        result = await self.execute(stmt)
        # one row per joined post
        return list(result.unique().scalars().all())

    async def get_last_post(self, forum: Forum) -> Optional[Post]:
        newest = (
            select(func.max(Post.id))
            .where(Post.forum_id == forum.id, Post.moderate.is_(False))
            .scalar_subquery()
        )
        return await self.scalar_one_or_none(select(Post).where(Post.id == newest))

    async def get_total_messages(self) -> int:
        """Number of posts on the whole board."""
        return await self._cached_value(
            TOTAL_MESSAGES_REGION,
            lambda: self.count_of(select(func.count(Post.id))),
        )

    async def get_total_posts(self, forum: Forum) -> int:
        return await self._cached_value(
            total_posts_region(forum.id),
            lambda: self.count_of(select(func.count(Post.id)).where(Post.forum_id == forum.id)),
        )

    async def get_total_topics(self, forum: Forum) -> int:
        """Approved topics that live in this forum and were never moved."""
        stmt = select(func.count(Topic.id)).where(
            Topic.pending_moderation.is_(False),
            Topic.forum_id == forum.id,
            Topic.moved_id == 0,
        )
        return await self._cached_value(total_topics_region(forum.id), lambda: self.count_of(stmt))

    def _include_moved(self) -> bool:
        return self.settings is None or not self.settings.QUERY_IGNORE_TOPIC_MOVED

    async def get_topics(self, forum: Forum, start: int, count: int) -> List[Topic]:
        """
        One page of the forum's topics, stickies and announcements first, then
        by most recent post.

        Unless QUERY_IGNORE_TOPIC_MOVED is set, topics moved out of this forum
        are listed as well.
        """
        # only the first page is cached, keyed by page size
        cacheable = self.cache is not None and start == 0
        region = topics_region(forum.id)
        if cacheable:
            ids = await self.cache.get(region, count)
            if ids is not None:
                return await EntityRepository(self.session, Topic).get_many(ids)

        first_post = aliased(Post)
        last_post = aliased(Post)
        stmt = (
            select(Topic)
            .join(Topic.first_post.of_type(first_post))
            .join(Topic.last_post.of_type(last_post))
        )
        if self._include_moved():
            stmt = stmt.where(or_(Topic.forum_id == forum.id, Topic.moved_id == forum.id))
        else:
            stmt = stmt.where(Topic.forum_id == forum.id)
        stmt = (
            stmt.where(Topic.pending_moderation.is_(False))
            .order_by(Topic.type.desc(), Topic.last_post_id.desc())
            .offset(start)
            .limit(count)
        )
        topics = list(await self.scalars(stmt))

        if cacheable:
            await self.cache.set(region, [t.id for t in topics], count)
        return topics

    async def get_new_messages(self, since: datetime, start: int, records_per_page: int) -> PaginatedResult[Topic]:
        """Approved topics whose last post is at or after ``since``."""
        last_post = aliased(Post)
        total = await self.count_of(
            select(func.count(Topic.id))
            .join(Topic.last_post.of_type(last_post))
            .where(Topic.pending_moderation.is_(False), last_post.date >= since)
        )
        stmt = (
            select(Topic)
            .join(Topic.last_post.of_type(last_post))
            .options(contains_eager(Topic.last_post.of_type(last_post)))
            .where(Topic.pending_moderation.is_(False), last_post.date >= since)
            .order_by(last_post.date.desc(), Topic.id.desc())
            .offset(start)
            .limit(records_per_page)
        )
        results = list(await self.scalars(stmt))
        return PaginatedResult(results=results, total=total)

    async def find_all(self) -> List[Forum]:
        stmt = select(Forum).order_by(Forum.display_order, Forum.id)
        return list(await self.scalars(stmt))

    async def get_forum_stats(self, groups: Optional[Sequence[Group]] = None) -> ForumStats:
        """
        Board-wide totals and daily rates.

        With ``groups`` only total_users is filled, counting the users that
        belong to at least one of them.
        """
        if groups is not None:
            return await self._get_group_stats(groups)

        stats = ForumStats(
            posts=await self.get_total_messages(),
            total_users=await self.count_of(select(func.count(User.id))),
            total_topics=await self.count_of(select(func.count(Topic.id))),
        )

        today = utcnow()
        first_post_date = (await self.execute(select(func.min(Post.date)))).scalar_one_or_none()
        if first_post_date is not None:
            days = days_until_today(today, first_post_date)
            stats.posts_per_day = stats.posts / days
            stats.topics_per_day = stats.total_topics / days

        first_registration = (await self.execute(select(func.min(User.registration_date)))).scalar_one_or_none()
        if first_registration is not None:
            stats.users_per_day = stats.total_users / days_until_today(today, first_registration)

        return stats

    async def _get_group_stats(self, groups: Sequence[Group]) -> ForumStats:
        group_ids = [g.id for g in groups]
        if not group_ids:
            return ForumStats()
        stmt = (
            select(func.count(distinct(User.id)))
            .join(user_groups, user_groups.c.user_id == User.id)
            .where(user_groups.c.group_id.in_(group_ids))
        )
        return ForumStats(total_users=await self.count_of(stmt))
