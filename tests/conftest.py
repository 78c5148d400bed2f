"""Pytest configuration and shared fixtures."""
# ruff: noqa: E402

import sys
from pathlib import Path

# Add the project root to sys.path so `forum_api` imports work without installing
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from datetime import datetime
from typing import Optional, Sequence

import pytest
import pytest_asyncio
from cashews import Cache
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from forum_api.core.cache import QueryCache
from forum_api.db.base import Base, utcnow
from forum_api.db.models import (
    MODERATE_FORUM_ROLE,
    TOPIC_NORMAL,
    Forum,
    Group,
    Post,
    Role,
    RoleValue,
    Topic,
    User,
)


# ==================== database ====================


@pytest_asyncio.fixture
async def engine():
    """Fresh in-memory SQLite database per test."""
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    maker = async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)
    async with maker() as s:
        yield s


@pytest.fixture
def query_cache():
    """Isolated in-memory cashews cache."""
    cache = Cache()
    cache.setup("mem://?size=1000")
    return QueryCache(cache, ttl_seconds=60)


# ==================== factories ====================


@pytest.fixture
def make_forum(session):
    async def _create(name: str = "General", display_order: int = 0) -> Forum:
        forum = Forum(name=name, display_order=display_order)
        session.add(forum)
        await session.flush()
        return forum

    return _create


@pytest.fixture
def make_topic(session):
    """
    Create a topic with ``posts`` posts and point first/last post at them.

    ``moderate`` flags posts as waiting for approval by position.
    """

    async def _create(
        forum: Forum,
        subject: str = "Topic",
        *,
        posts: int = 1,
        moderate: Optional[Sequence[bool]] = None,
        date: Optional[datetime] = None,
        pending: bool = False,
        topic_type: int = TOPIC_NORMAL,
    ) -> Topic:
        when = date or utcnow()
        topic = Topic(forum_id=forum.id, subject=subject, pending_moderation=pending, type=topic_type, date=when)
        session.add(topic)
        await session.flush()

        created = [
            Post(
                topic_id=topic.id,
                forum_id=forum.id,
                subject=subject,
                text=f"{subject} #{i}",
                date=when,
                moderate=bool(moderate[i]) if moderate else False,
            )
            for i in range(posts)
        ]
        if created:
            session.add_all(created)
            await session.flush()
            topic.first_post_id = created[0].id
            topic.last_post_id = created[-1].id
            topic.replies = len(created) - 1
            await session.flush()
        return topic

    return _create


@pytest.fixture
def make_group(session):
    async def _create(name: str, moderates: Sequence[int] = (), role_name: str = MODERATE_FORUM_ROLE) -> Group:
        group = Group(name=name)
        if moderates:
            group.roles.append(Role(name=role_name, role_values=[RoleValue(value=v) for v in moderates]))
        session.add(group)
        await session.flush()
        return group

    return _create


@pytest.fixture
def make_user(session):
    async def _create(username: str, groups: Sequence[Group] = (), registered: Optional[datetime] = None) -> User:
        user = User(username=username, registration_date=registered or utcnow())
        user.groups.extend(groups)
        session.add(user)
        await session.flush()
        return user

    return _create
