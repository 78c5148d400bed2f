import pytest

from forum_api.core.cache import (
    MODERATORS_REGION,
    TOTAL_MESSAGES_REGION,
    QueryCache,
    forum_regions,
    topics_region,
    total_posts_region,
)
from forum_api.repositories.forum import ForumRepository


def test_key_joins_region_and_params():
    assert QueryCache.key("forum_repo.topics#3", 15) == "forum_repo.topics#3:15"
    assert QueryCache.key(TOTAL_MESSAGES_REGION) == "forum_repo.total_messages:"


def test_forum_regions_cover_every_per_forum_query():
    assert forum_regions(7) == [
        "forum_repo.topics#7",
        "forum_repo.total_posts#7",
        "forum_repo.total_topics#7",
    ]


@pytest.mark.asyncio
async def test_get_set_and_evict_by_region(query_cache):
    await query_cache.set(topics_region(1), [3, 2, 1], 15)
    await query_cache.set(topics_region(1), [3, 2], 2)
    await query_cache.set(topics_region(2), [9], 15)
    await query_cache.set(total_posts_region(1), 0)

    assert await query_cache.get(topics_region(1), 15) == [3, 2, 1]
    assert await query_cache.get(total_posts_region(1)) == 0
    assert await query_cache.get(topics_region(1), 30) is None

    await query_cache.evict(topics_region(1))

    assert await query_cache.get(topics_region(1), 15) is None
    assert await query_cache.get(topics_region(1), 2) is None
    assert await query_cache.get(topics_region(2), 15) == [9]
    assert await query_cache.get(total_posts_region(1)) == 0

    await query_cache.clear()
    assert await query_cache.get(topics_region(2), 15) is None


@pytest.mark.asyncio
async def test_cached_totals_stay_until_evicted(session, query_cache, make_forum, make_topic):
    forum = await make_forum("a")
    await make_topic(forum, "one", posts=2)
    repo = ForumRepository(session, cache=query_cache)

    assert await repo.get_total_messages() == 2
    assert await repo.get_total_posts(forum) == 2
    assert await repo.get_total_topics(forum) == 1

    await make_topic(forum, "two", posts=3)

    assert await repo.get_total_messages() == 2
    assert await repo.get_total_posts(forum) == 2
    assert await repo.get_total_topics(forum) == 1

    await query_cache.evict(TOTAL_MESSAGES_REGION, *forum_regions(forum.id))

    assert await repo.get_total_messages() == 5
    assert await repo.get_total_posts(forum) == 5
    assert await repo.get_total_topics(forum) == 2


@pytest.mark.asyncio
async def test_only_first_page_of_topics_is_cached(session, query_cache, make_forum, make_topic):
    forum = await make_forum("a")
    first = await make_topic(forum, "first")
    second = await make_topic(forum, "second")
    repo = ForumRepository(session, cache=query_cache)

    assert [t.id for t in await repo.get_topics(forum, 0, 10)] == [second.id, first.id]
    assert await query_cache.get(topics_region(forum.id), 10) == [second.id, first.id]

    third = await make_topic(forum, "third")

    # first page served from the cached ids, later pages always hit the database
    assert [t.id for t in await repo.get_topics(forum, 0, 10)] == [second.id, first.id]
    assert [t.id for t in await repo.get_topics(forum, 1, 10)] == [second.id, first.id]
    # a different page size is a different entry
    assert [t.id for t in await repo.get_topics(forum, 0, 1)] == [third.id]

    await query_cache.evict(topics_region(forum.id))
    assert [t.id for t in await repo.get_topics(forum, 0, 10)] == [third.id, second.id, first.id]


@pytest.mark.asyncio
async def test_moderators_are_cached_per_forum(session, query_cache, make_forum, make_group):
    forum = await make_forum("a")
    other = await make_forum("b")
    mods = await make_group("mods", moderates=[forum.id])
    repo = ForumRepository(session, cache=query_cache)

    assert [g.id for g in await repo.get_moderators(forum)] == [mods.id]
    assert await repo.get_moderators(other) == []

    await make_group("late-mods", moderates=[forum.id])
    assert [g.id for g in await repo.get_moderators(forum)] == [mods.id]

    await query_cache.evict(MODERATORS_REGION)
    assert len(await repo.get_moderators(forum)) == 2
